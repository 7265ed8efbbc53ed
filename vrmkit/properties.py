"""VRM 0.x property nodes stored in a ``Graph``."""

import json
from dataclasses import dataclass, field
from enum import Enum

from .graph import GltfNode, Material, Mesh, Primitive, PropertyNode, Texture
from .schema import (
    BoneName,
    Collider,
    FirstPersonFlag,
    FloatProperties,
    JsonRecord,
    KeywordMap,
    MaterialBind,
    PresetName,
    Shader,
    TagMap,
    Vec3,
    VectorProperties,
)


class _EdgeName(Enum):
    def __str__(self) -> str:
        return json.dumps(self.value)


def _json(key: str, factory) -> object:
    return field(default_factory=factory, metadata={"json": key})


class BindEdges(_EdgeName):
    PRIMITIVE = "VRM/Bind/Primitive"


@dataclass
class BindWeight(JsonRecord):
    weight: float | None = None


class Bind(PropertyNode):
    weight_type = BindWeight

    def primitive(self, graph) -> Primitive | None:
        return self.find_property(graph, str(BindEdges.PRIMITIVE), Primitive)

    def set_primitive(self, graph, primitive) -> None:
        self.set_property(graph, str(BindEdges.PRIMITIVE), primitive)


class BlendShapeGroupEdges(_EdgeName):
    BIND = "VRM/BlendShapeGroup/Bind"


@dataclass
class BlendShapeGroupWeight(JsonRecord):
    is_binary: bool | None = None
    material_values: list[MaterialBind] = field(default_factory=list)
    name: str | None = None
    preset_name: PresetName | None = None


class BlendShapeGroup(PropertyNode):
    weight_type = BlendShapeGroupWeight

    def binds(self, graph) -> list[Bind]:
        return self.find_properties(graph, str(BlendShapeGroupEdges.BIND), Bind)

    def add_bind(self, graph, bind) -> None:
        self.add_property(graph, str(BlendShapeGroupEdges.BIND), bind)

    def remove_bind(self, graph, bind) -> None:
        self.remove_property(graph, str(BlendShapeGroupEdges.BIND), bind)


class BoneEdges(_EdgeName):
    NODE = "VRM/Bone/Node"


@dataclass
class BoneWeight(JsonRecord):
    name: BoneName | None = None
    use_default_values: bool | None = None


class Bone(PropertyNode):
    weight_type = BoneWeight

    def node(self, graph) -> GltfNode | None:
        return self.find_property(graph, str(BoneEdges.NODE), GltfNode)

    def set_node(self, graph, node) -> None:
        self.set_property(graph, str(BoneEdges.NODE), node)


class BoneGroupEdges(_EdgeName):
    BONE = "VRM/BoneGroup/Bone"
    COLLIDER_GROUP = "VRM/BoneGroup/ColliderGroup"


@dataclass
class BoneGroupWeight(JsonRecord):
    comment: str | None = None
    stiffiness: float | None = None
    gravity_power: float | None = None
    gravity_dir: Vec3 = field(default_factory=Vec3)
    drag_force: float | None = None
    center: float | None = None
    hit_radius: float | None = None


class ColliderGroupEdges(_EdgeName):
    NODE = "VRM/ColliderGroup/Node"


@dataclass
class ColliderGroupWeight(JsonRecord):
    colliders: list[Collider] = field(default_factory=list)


class ColliderGroup(PropertyNode):
    weight_type = ColliderGroupWeight

    def node(self, graph) -> GltfNode | None:
        return self.find_property(graph, str(ColliderGroupEdges.NODE), GltfNode)

    def set_node(self, graph, node) -> None:
        self.set_property(graph, str(ColliderGroupEdges.NODE), node)


class BoneGroup(PropertyNode):
    weight_type = BoneGroupWeight

    def bones(self, graph) -> list[GltfNode]:
        return self.find_properties(graph, str(BoneGroupEdges.BONE), GltfNode)

    def add_bone(self, graph, bone) -> None:
        self.add_property(graph, str(BoneGroupEdges.BONE), bone)

    def remove_bone(self, graph, bone) -> None:
        self.remove_property(graph, str(BoneGroupEdges.BONE), bone)

    def collider_groups(self, graph) -> list[ColliderGroup]:
        return self.find_properties(
            graph, str(BoneGroupEdges.COLLIDER_GROUP), ColliderGroup
        )

    def add_collider_group(self, graph, group) -> None:
        self.add_property(graph, str(BoneGroupEdges.COLLIDER_GROUP), group)

    def remove_collider_group(self, graph, group) -> None:
        self.remove_property(graph, str(BoneGroupEdges.COLLIDER_GROUP), group)


class MaterialPropertyEdges(_EdgeName):
    MATERIAL = "VRM/MaterialProperty/Material"
    MAIN_TEXTURE = "VRM/MaterialProperty/MainTexture"
    SHADE_TEXTURE = "VRM/MaterialProperty/ShadeTexture"
    BUMP_MAP = "VRM/MaterialProperty/BumpMap"
    SPHERE_ADD = "VRM/MaterialProperty/SphereAdd"
    EMISSION_MAP = "VRM/MaterialProperty/EmissionMap"


@dataclass
class MaterialPropertyWeight(JsonRecord):
    name: str | None = None
    render_queue: int | None = None
    shader: Shader | None = None
    float_properties: FloatProperties = _json("float", FloatProperties)
    vector_properties: VectorProperties = _json("vector", VectorProperties)
    keyword_map: KeywordMap = field(default_factory=KeywordMap)
    tag_map: TagMap = field(default_factory=TagMap)


class MaterialProperty(PropertyNode):
    weight_type = MaterialPropertyWeight

    def _texture(self, graph, edge: MaterialPropertyEdges) -> Texture | None:
        return self.find_property(graph, str(edge), Texture)

    def material(self, graph) -> Material | None:
        return self.find_property(graph, str(MaterialPropertyEdges.MATERIAL), Material)

    def set_material(self, graph, material) -> None:
        self.set_property(graph, str(MaterialPropertyEdges.MATERIAL), material)

    def main_texture(self, graph) -> Texture | None:
        return self._texture(graph, MaterialPropertyEdges.MAIN_TEXTURE)

    def set_main_texture(self, graph, texture) -> None:
        self.set_property(graph, str(MaterialPropertyEdges.MAIN_TEXTURE), texture)

    def shade_texture(self, graph) -> Texture | None:
        return self._texture(graph, MaterialPropertyEdges.SHADE_TEXTURE)

    def set_shade_texture(self, graph, texture) -> None:
        self.set_property(graph, str(MaterialPropertyEdges.SHADE_TEXTURE), texture)

    def bump_map(self, graph) -> Texture | None:
        return self._texture(graph, MaterialPropertyEdges.BUMP_MAP)

    def set_bump_map(self, graph, texture) -> None:
        self.set_property(graph, str(MaterialPropertyEdges.BUMP_MAP), texture)

    def sphere_add(self, graph) -> Texture | None:
        return self._texture(graph, MaterialPropertyEdges.SPHERE_ADD)

    def set_sphere_add_texture(self, graph, texture) -> None:
        self.set_property(graph, str(MaterialPropertyEdges.SPHERE_ADD), texture)

    def emission_map(self, graph) -> Texture | None:
        return self._texture(graph, MaterialPropertyEdges.EMISSION_MAP)

    def set_emission_map(self, graph, texture) -> None:
        self.set_property(graph, str(MaterialPropertyEdges.EMISSION_MAP), texture)


class MeshAnnotationEdges(_EdgeName):
    MESH = "VRM/MeshAnnotation/Mesh"


@dataclass
class MeshAnnotationWeight(JsonRecord):
    first_person_flag: FirstPersonFlag = FirstPersonFlag.AUTO


class MeshAnnotation(PropertyNode):
    weight_type = MeshAnnotationWeight

    def mesh(self, graph) -> Mesh | None:
        return self.find_property(graph, str(MeshAnnotationEdges.MESH), Mesh)

    def set_mesh(self, graph, mesh) -> None:
        self.set_property(graph, str(MeshAnnotationEdges.MESH), mesh)