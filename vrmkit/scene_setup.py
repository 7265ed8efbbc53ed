"""Scene set-up for VRM avatars: first-person flags and spring bones."""

import logging
from collections import deque
from collections.abc import Iterable, Mapping

import numpy as np

from .extension import Vrm
from .graph import GltfNode
from .properties import MeshAnnotation, MeshAnnotationEdges
from .schema import BoneName, FirstPersonFlag
from .spring_bones import SpringBone, SpringBoneLogicState, Transform

__all__ = [
    "TAIL_BONE_NAME",
    "TAIL_BONE_OFFSET",
    "build_spring_bones",
    "expand_descendants",
    "find_child",
    "initial_logic_state",
    "primitive_first_person_flag",
]

_log = logging.getLogger(__name__)

# Marker name given to the extra bone appended under a childless spring bone.
TAIL_BONE_NAME = "donotaddmore"

# Translation of that extra bone relative to its parent.
TAIL_BONE_OFFSET = (0.0, -0.07, 0.0)


def find_child(graph, target: GltfNode, parent: GltfNode) -> bool:
    """Whether ``target`` is ``parent`` or one of its descendants."""
    pending = [parent]
    while pending:
        node = pending.pop()
        if node == target:
            return True
        pending.extend(node.children(graph))
    return False


def primitive_first_person_flag(graph, doc, primitive) -> FirstPersonFlag | None:
    """The first-person flag for ``primitive``.

    An ``AUTO`` flag becomes ``THIRD_PERSON_ONLY`` when any node using the
    primitive's mesh lies under the head bone. Returns None when the
    document has no VRM extension.
    """
    flag = FirstPersonFlag.AUTO
    sources = graph.sources(primitive.index, str(MeshAnnotationEdges.MESH))
    if sources:
        flag = MeshAnnotation(sources[0]).read(graph).first_person_flag

    if flag != FirstPersonFlag.AUTO:
        return flag

    mesh = primitive.mesh(graph)
    if mesh is None:
        raise ValueError(f"primitive {primitive.index} belongs to no mesh")
    nodes = mesh.nodes(graph)

    ext = doc.get_extension(graph, Vrm)
    if ext is None:
        _log.warning("VRM extension not found")
        return None

    head = next(
        (b for b in ext.human_bones(graph) if b.read(graph).name == BoneName.HEAD), None
    )
    if head is None:
        raise ValueError("VRM has no head bone")
    head_node = head.node(graph)
    if head_node is None:
        raise ValueError("VRM head bone has no node")

    if any(find_child(graph, node, head_node) for node in nodes):
        return FirstPersonFlag.THIRD_PERSON_ONLY
    return flag


def build_spring_bones(graph, vrm, node_names: Mapping) -> list[SpringBone]:
    """One ``SpringBone`` per VRM bone group.

    ``node_names`` maps glTF nodes to their names; bones whose node has no
    name are left out. ``bones`` holds the nodes, ``bone_names`` their names.
    """
    spring_bones = []
    for group in vrm.bone_groups(graph):
        named = [(node, node_names[node]) for node in group.bones(graph) if node in node_names]
        weight = group.read(graph)
        gravity = weight.gravity_dir
        spring_bones.append(
            SpringBone(
                bones=[node for node, _ in named],
                bone_names=[name for _, name in named],
                center=weight.center or 0.0,
                drag_force=weight.drag_force or 0.0,
                gravity_dir=(gravity.x, gravity.y, gravity.z),
                gravity_power=weight.gravity_power or 0.0,
                hit_radius=weight.hit_radius or 0.0,
                stiffness=weight.stiffiness or 0.0,
            )
        )
    return spring_bones


def _descendants(entity, children: Mapping) -> Iterable:
    queue = deque(children.get(entity, ()))
    while queue:
        child = queue.popleft()
        yield child
        queue.extend(children.get(child, ()))


def expand_descendants(spring_bones: Iterable[SpringBone], children: Mapping, names: Mapping) -> None:
    """Add every descendant of each spring bone's bones to that spring bone.

    ``children`` maps entities to their child lists, ``names`` maps entities
    to names; a name is recorded only for entities that have one.
    """
    for spring_bone in spring_bones:
        for bone in list(spring_bone.bones):
            for child in _descendants(bone, children):
                if child not in spring_bone.bones:
                    spring_bone.bones.append(child)
                    if child in names:
                        spring_bone.bone_names.append(str(names[child]))


def initial_logic_state(
    bone_global: Transform, bone_local: Transform, next_local: Transform
) -> SpringBoneLogicState:
    """The rest state of a bone whose first child sits at ``next_local``."""
    offset = next_local.translation
    length = float(np.linalg.norm(offset))
    if length > 0.0 and np.isfinite(length):
        bone_axis = offset / length
    else:
        bone_axis = np.zeros(3)

    tail = bone_global.translation + bone_global.rotate_vector(bone_axis * length)
    return SpringBoneLogicState(
        prev_tail=tail,
        current_tail=tail,
        bone_axis=bone_axis,
        bone_length=length,
        initial_local_matrix=bone_local.compute_matrix(),
        initial_local_rotation=bone_local.rotation,
    )