"""Reading VRM 0.x files into a property graph."""

import json
import struct
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .extension import EXTENSION_NAME, FirstPerson, Humanoid, Meta, Vrm, VrmWeight
from .graph import GltfDocument, GltfNode, Graph, Material, Mesh, Primitive, Texture
from .properties import (
    Bind,
    BindWeight,
    BlendShapeGroup,
    BlendShapeGroupWeight,
    Bone,
    BoneGroup,
    BoneGroupWeight,
    BoneWeight,
    ColliderGroup,
    ColliderGroupWeight,
    MaterialProperty,
    MaterialPropertyWeight,
    MeshAnnotation,
    MeshAnnotationWeight,
)
from .schema import (
    FloatProperties,
    KeywordMap,
    TagMap,
    Vec3,
    VectorProperties,
    parse_vrm,
)

_GLB_MAGIC = b"glTF"
_GLB_HEADER = struct.Struct("<4sII")
_GLB_CHUNK = struct.Struct("<II")
_CHUNK_JSON = 0x4E4F534A


class VrmImportError(Exception):
    """A VRM extension refers to something the document does not hold."""

    what = "Item"

    def __init__(self, index: int) -> None:
        super().__init__(f"{self.what} not found: {index}")
        self.index = index


class MaterialNotFound(VrmImportError):
    what = "Material"


class NodeNotFound(VrmImportError):
    what = "Node"


class TextureNotFound(VrmImportError):
    what = "Texture"


class BoneNotFound(VrmImportError):
    what = "Bone"


class BoneGroupNotFound(VrmImportError):
    what = "Bone group"


class ColliderGroupNotFound(VrmImportError):
    what = "Collider group"


@dataclass
class LoadedVrm:
    """A loaded VRM file: its graph, document, extension and chosen scene."""

    graph: Graph
    document: GltfDocument
    vrm: Vrm | None
    gltf_json: dict
    scene: int | None


def is_glb(data) -> bool:
    """Whether ``data`` starts with the binary glTF magic."""
    return len(data) >= 4 and bytes(data[:4]) == _GLB_MAGIC


def _glb_json_text(data: bytes) -> str:
    if len(data) < _GLB_HEADER.size + _GLB_CHUNK.size:
        raise ValueError("truncated GLB header")
    _, version, length = _GLB_HEADER.unpack_from(data, 0)
    if version != 2:
        raise ValueError(f"unsupported GLB version {version}")
    if length > len(data):
        raise ValueError("GLB length exceeds the data")
    chunk_length, chunk_type = _GLB_CHUNK.unpack_from(data, _GLB_HEADER.size)
    if chunk_type != _CHUNK_JSON:
        raise ValueError("first GLB chunk is not JSON")
    start = _GLB_HEADER.size + _GLB_CHUNK.size
    end = start + chunk_length
    if end > length:
        raise ValueError("GLB JSON chunk is truncated")
    return data[start:end].decode("utf-8")


def parse_gltf_json(data) -> dict:
    """Return the glTF JSON object held in a ``.gltf``/``.glb`` file's bytes."""
    if isinstance(data, str):
        text = data
    else:
        raw = bytes(data)
        text = _glb_json_text(raw) if is_glb(raw) else raw.decode("utf-8")
    document = json.loads(text)
    if not isinstance(document, dict):
        raise ValueError("glTF JSON must be an object")
    return document


def _ref(items: list, index: Any, what: str):
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(items):
        raise ValueError(f"invalid {what} index {index!r}")
    return items[index]


def _name(graph: Graph, handle, item: Mapping) -> None:
    name = item.get("name")
    if isinstance(name, str):
        handle.write(graph, {"name": name})


def build_document(graph, gltf_json) -> GltfDocument:
    """Add the document, textures, materials, meshes and nodes to ``graph``."""
    doc = GltfDocument.create(graph)

    textures = []
    for texture_json in gltf_json.get("textures", []):
        texture = Texture.create(graph)
        _name(graph, texture, texture_json)
        doc.add_texture(graph, texture)
        textures.append(texture)

    materials = []
    for material_json in gltf_json.get("materials", []):
        material = Material.create(graph)
        _name(graph, material, material_json)
        doc.add_material(graph, material)
        materials.append(material)

    meshes = []
    for mesh_json in gltf_json.get("meshes", []):
        mesh = Mesh.create(graph)
        _name(graph, mesh, mesh_json)
        doc.add_mesh(graph, mesh)
        meshes.append(mesh)
        for primitive_json in mesh_json.get("primitives", []):
            primitive = Primitive.create(graph)
            mesh.add_primitive(graph, primitive)
            if "material" in primitive_json:
                primitive.set_material(
                    graph, _ref(materials, primitive_json["material"], "material")
                )

    node_jsons = gltf_json.get("nodes", [])
    nodes = []
    for node_json in node_jsons:
        node = GltfNode.create(graph)
        _name(graph, node, node_json)
        doc.add_node(graph, node)
        if "mesh" in node_json:
            node.set_mesh(graph, _ref(meshes, node_json["mesh"], "mesh"))
        nodes.append(node)

    for node, node_json in zip(nodes, node_jsons):
        for child in node_json.get("children", []):
            node.add_child(graph, _ref(nodes, child, "node"))

    return doc


def _lookup(items: list, index: int, error: type[VrmImportError]):
    if 0 <= index < len(items):
        return items[index]
    raise error(index)


_TEXTURE_SETTERS = (
    ("base_color", MaterialProperty.set_main_texture),
    ("shade", MaterialProperty.set_shade_texture),
    ("additive", MaterialProperty.set_sphere_add_texture),
    ("normal", MaterialProperty.set_bump_map),
    ("emissive", MaterialProperty.set_emission_map),
)


def _import_material_properties(graph, doc, vrm, ext) -> None:
    for i, prop_json in enumerate(ext.material_properties or []):
        material = _lookup(doc.materials(graph), i, MaterialNotFound)

        prop = MaterialProperty.create(graph)
        vrm.add_material_property(graph, prop)
        prop.set_material(graph, material)

        textures = prop_json.texture_properties
        if textures is not None:
            for attr, setter in _TEXTURE_SETTERS:
                index = getattr(textures, attr)
                if index is not None:
                    setter(prop, graph, _lookup(doc.textures(graph), index, TextureNotFound))

        prop.write(
            graph,
            MaterialPropertyWeight(
                name=prop_json.name,
                render_queue=prop_json.render_queue,
                shader=prop_json.shader,
                float_properties=prop_json.float_properties or FloatProperties(),
                vector_properties=prop_json.vector_properties or VectorProperties(),
                keyword_map=prop_json.keyword_map or KeywordMap(),
                tag_map=prop_json.tag_map or TagMap(),
            ),
        )


def _import_meta(graph, doc, vrm, ext) -> Meta:
    meta = ext.meta
    if meta is None:
        return Meta()
    if meta.texture is not None:
        vrm.set_thumbnail(graph, _lookup(doc.textures(graph), meta.texture, TextureNotFound))
    return Meta(
        title=meta.title,
        version=meta.version,
        author=meta.author,
        contact_information=meta.contact_information,
        reference=meta.reference,
        allowed_user_name=meta.allowed_user_name,
        violent_usage_name=meta.violent_usage_name,
        sexual_usage_name=meta.sexual_usage_name,
        commercial_usage_name=meta.commercial_usage_name,
        other_permission_url=meta.other_permission_url,
        license_name=meta.license_name,
        other_license_url=meta.other_license_url,
    )


def _import_humanoid(graph, doc, vrm, ext, graph_bones: list) -> Humanoid:
    humanoid = ext.humanoid
    if humanoid is None:
        return Humanoid()
    for bone_json in humanoid.human_bones or []:
        bone = Bone.create(graph)
        graph_bones.append(bone)
        vrm.add_human_bone(graph, bone)
        if bone_json.node is not None:
            bone.set_node(graph, _lookup(doc.nodes(graph), bone_json.node, NodeNotFound))
        bone.write(
            graph,
            BoneWeight(name=bone_json.bone, use_default_values=bone_json.use_default_values),
        )
    return Humanoid(
        arm_stretch=humanoid.arm_stretch,
        leg_stretch=humanoid.leg_stretch,
        upper_arm_twist=humanoid.upper_arm_twist,
        lower_arm_twist=humanoid.lower_arm_twist,
        upper_leg_twist=humanoid.upper_leg_twist,
        lower_leg_twist=humanoid.lower_leg_twist,
        feet_spacing=humanoid.feet_spacing,
        has_translation_dof=humanoid.has_translation_dof,
    )


def _import_first_person(graph, doc, vrm, ext, graph_bones: list) -> FirstPerson:
    first_person = ext.first_person
    if first_person is None:
        return FirstPerson()

    bone_index = first_person.first_person_bone
    if bone_index is not None:
        nodes = doc.nodes(graph)
        node = nodes[bone_index] if bone_index < len(nodes) else None
        bone = None
        if node is not None:
            bone = next((b for b in graph_bones if b.node(graph) == node), None)
        if bone is None:
            raise BoneNotFound(bone_index)
        vrm.set_first_person_bone(graph, bone)

    meshes = doc.meshes(graph)
    for annotation_json in first_person.mesh_annotations or []:
        mesh_index = annotation_json.mesh or 0
        if mesh_index < len(meshes):
            annotation = MeshAnnotation.create(graph)
            annotation.set_mesh(graph, meshes[mesh_index])
            annotation.write(
                graph,
                MeshAnnotationWeight(first_person_flag=annotation_json.first_person_flag),
            )
            vrm.add_mesh_annotation(graph, annotation)

    return FirstPerson(
        first_person_bone_offset=first_person.first_person_bone_offset or Vec3(),
        look_at_type_name=first_person.look_at_type_name,
        look_at_horizontal_inner=first_person.look_at_horizontal_inner,
        look_at_horizontal_outer=first_person.look_at_horizontal_outer,
        look_at_vertical_down=first_person.look_at_vertical_down,
        look_at_vertical_up=first_person.look_at_vertical_up,
    )


def _import_blend_shapes(graph, doc, ext) -> None:
    master = ext.blend_shape_master
    if master is None:
        return
    for group_json in master.blend_shape_groups or []:
        group = BlendShapeGroup.create(graph)
        for bind_json in group_json.binds or []:
            bind = Bind.create(graph)
            if bind_json.mesh is not None:
                meshes = doc.meshes(graph)
                if bind_json.mesh < len(meshes):
                    primitives = meshes[bind_json.mesh].primitives(graph)
                    index = bind_json.index or 0
                    if index < len(primitives):
                        bind.set_primitive(graph, primitives[index])
            bind.write(graph, BindWeight(weight=bind_json.weight))
        group.write(
            graph,
            BlendShapeGroupWeight(
                is_binary=group_json.is_binary,
                material_values=group_json.material_values or [],
                name=group_json.name,
                preset_name=group_json.preset_name,
            ),
        )


def _import_secondary_animation(graph, doc, vrm, ext) -> None:
    secondary = ext.secondary_animation
    if secondary is None:
        return

    collider_groups = []
    for collider_json in secondary.collider_groups or []:
        collider_group = ColliderGroup.create(graph)
        collider_groups.append(collider_group)
        if collider_json.node is not None:
            collider_group.set_node(
                graph, _lookup(doc.nodes(graph), collider_json.node, NodeNotFound)
            )
        collider_group.write(
            graph, ColliderGroupWeight(colliders=collider_json.colliders or [])
        )

    for group_json in secondary.bone_groups or []:
        bone_group = BoneGroup.create(graph)
        vrm.add_bone_group(graph, bone_group)
        for bone_index in group_json.bones or []:
            bone_group.add_bone(graph, _lookup(doc.nodes(graph), bone_index, BoneNotFound))
        for collider_index in group_json.collider_groups or []:
            bone_group.add_collider_group(
                graph, _lookup(collider_groups, collider_index, ColliderGroupNotFound)
            )
        bone_group.write(
            graph,
            BoneGroupWeight(
                comment=group_json.comment,
                stiffiness=group_json.stiffiness,
                gravity_power=group_json.gravity_power,
                gravity_dir=group_json.gravity_dir or Vec3(),
                drag_force=group_json.drag_force,
                center=group_json.center,
                hit_radius=group_json.hit_radius,
            ),
        )


def import_vrm(graph, gltf_json, doc) -> Vrm | None:
    """Import the ``VRM`` extension of ``gltf_json`` into ``graph``.

    Returns the new extension node, or None when the file has no extension.
    """
    extensions = gltf_json.get("extensions")
    if not isinstance(extensions, Mapping):
        return None
    ext_json = extensions.get(EXTENSION_NAME)
    if ext_json is None:
        return None

    ext = parse_vrm(ext_json)

    vrm = Vrm.create(graph)
    doc.add_extension(graph, vrm)

    _import_material_properties(graph, doc, vrm, ext)
    meta = _import_meta(graph, doc, vrm, ext)
    graph_bones: list[Bone] = []
    humanoid = _import_humanoid(graph, doc, vrm, ext, graph_bones)
    first_person = _import_first_person(graph, doc, vrm, ext, graph_bones)
    _import_blend_shapes(graph, doc, ext)
    _import_secondary_animation(graph, doc, vrm, ext)

    vrm.write(
        graph,
        VrmWeight(
            exporter_version=ext.exporter_version or "",
            meta=meta,
            humanoid=humanoid,
            first_person=first_person,
        ),
    )
    return vrm


def select_scene(gltf_json) -> int | None:
    """The default scene's index, else the first scene's, else None."""
    scenes = gltf_json.get("scenes") or []
    default = gltf_json.get("scene")
    if default is not None:
        return _ref(list(range(len(scenes))), default, "scene")
    return 0 if scenes else None


def load_vrm(data) -> LoadedVrm:
    """Load a ``.vrm`` file (glTF JSON or GLB) from its bytes."""
    gltf_json = parse_gltf_json(data)
    graph = Graph()
    doc = build_document(graph, gltf_json)
    vrm = import_vrm(graph, gltf_json, doc)
    return LoadedVrm(
        graph=graph,
        document=doc,
        vrm=vrm,
        gltf_json=gltf_json,
        scene=select_scene(gltf_json),
    )