"""First-person / third-person visibility helpers for VRM meshes."""

from collections.abc import Hashable, Mapping, Sequence

from .schema import FirstPersonFlag

__all__ = [
    "FIRST_PERSON_LAYER",
    "THIRD_PERSON_LAYER",
    "FirstPersonFlag",
    "clean_indices",
    "head_weighted_vertices",
    "is_child",
    "render_layers",
]

FIRST_PERSON_LAYER = 7
THIRD_PERSON_LAYER = 8

_RENDER_LAYERS = {
    FirstPersonFlag.AUTO: frozenset({0, FIRST_PERSON_LAYER, THIRD_PERSON_LAYER}),
    FirstPersonFlag.BOTH: frozenset({0, FIRST_PERSON_LAYER, THIRD_PERSON_LAYER}),
    FirstPersonFlag.FIRST_PERSON_ONLY: frozenset({FIRST_PERSON_LAYER}),
    FirstPersonFlag.THIRD_PERSON_ONLY: frozenset({THIRD_PERSON_LAYER}),
}


def render_layers(flag) -> frozenset[int]:
    """The render layers a mesh with ``flag`` is drawn on."""
    return _RENDER_LAYERS[FirstPersonFlag(flag)]


def clean_indices(indices, vertices) -> list:
    """Return ``indices`` without the triangles that use any of ``vertices``."""
    removed = set(vertices)
    triangles = (indices[start : start + 3] for start in range(0, len(indices), 3))
    return [index for tri in triangles if removed.isdisjoint(tri) for index in tri]


def is_child(child: Hashable, parent: Hashable, parents: Mapping) -> bool:
    """Whether ``child`` is ``parent`` or lies below it.

    ``parents`` maps each entity to its parent entity.
    """
    seen = set()
    current = child
    while current != parent:
        if current in seen or current not in parents:
            return False
        seen.add(current)
        current = parents[current]
    return True


def head_weighted_vertices(
    joints: Sequence[Sequence[int]],
    weights: Sequence[Sequence[float]],
    skin_joints: Sequence,
    head,
    parents: Mapping,
) -> list[int]:
    """Vertices with weight on the head or a bone below it, highest index first.

    ``joints`` and ``weights`` hold per-vertex joint indices into
    ``skin_joints`` and their weights.
    """
    removed = {
        vertex
        for vertex, (joint_set, weight_set) in enumerate(zip(joints, weights, strict=True))
        for joint, weight in zip(joint_set, weight_set, strict=True)
        if is_child(skin_joints[joint], head, parents) and weight > 0.0
    }
    return sorted(removed, reverse=True)