"""The ``VRM`` extension node and the VRM 1.0 extension markers."""

import json
from dataclasses import dataclass, field
from enum import Enum

from .graph import PropertyNode, Texture
from .properties import BlendShapeGroup, Bone, BoneGroup, MaterialProperty, MeshAnnotation
from .schema import Allow, AllowedUserName, JsonRecord, LookAtCurve, Vec3

EXTENSION_NAME = "VRM"
VRMC_VRM_EXTENSION_NAME = "VRMC_vrm"
VRMC_MATERIALS_MTOON_EXTENSION_NAME = "VRMC_materials_mtoon"


class VrmEdge(Enum):
    """Names of the edges leaving a ``Vrm`` node; the string form is quoted JSON."""

    BLEND_SHAPE_GROUP = "VRM/BlendShapeGroup"
    BONE_GROUP = "VRM/BoneGroup"
    FIRST_PERSON_BONE = "VRM/FirstPersonBone"
    HUMAN_BONE = "VRM/HumanBone"
    MATERIAL_PROPERTY = "VRM/MaterialProperty"
    MESH_ANNOTATION = "VRM/MeshAnnotation"
    THUMBNAIL = "VRM/Thumbnail"

    def __str__(self) -> str:
        return json.dumps(self.value)


@dataclass
class Meta(JsonRecord):
    title: str | None = None
    version: str | None = None
    author: str | None = None
    contact_information: str | None = None
    reference: str | None = None
    allowed_user_name: AllowedUserName | None = None
    violent_usage_name: Allow | None = None
    sexual_usage_name: Allow | None = None
    commercial_usage_name: Allow | None = None
    other_permission_url: str | None = None
    license_name: str | None = None
    other_license_url: str | None = None


@dataclass
class Humanoid(JsonRecord):
    arm_stretch: float | None = None
    leg_stretch: float | None = None
    upper_arm_twist: float | None = None
    lower_arm_twist: float | None = None
    upper_leg_twist: float | None = None
    lower_leg_twist: float | None = None
    feet_spacing: float | None = None
    has_translation_dof: bool | None = None


@dataclass
class FirstPerson(JsonRecord):
    first_person_bone_offset: Vec3 = field(default_factory=Vec3)
    look_at_type_name: str | None = None
    look_at_horizontal_inner: LookAtCurve | None = None
    look_at_horizontal_outer: LookAtCurve | None = None
    look_at_vertical_down: LookAtCurve | None = None
    look_at_vertical_up: LookAtCurve | None = None


@dataclass
class VrmWeight(JsonRecord):
    """Data stored on the ``Vrm`` node itself."""

    exporter_version: str = ""
    meta: Meta = field(default_factory=Meta)
    humanoid: Humanoid = field(default_factory=Humanoid)
    first_person: FirstPerson = field(default_factory=FirstPerson)


class Vrm(PropertyNode):
    """The ``VRM`` extension attached to a glTF document."""

    weight_type = VrmWeight
    extension_name = EXTENSION_NAME

    def blend_shape_groups(self, graph) -> list[BlendShapeGroup]:
        return self.find_properties(graph, str(VrmEdge.BLEND_SHAPE_GROUP), BlendShapeGroup)

    def add_blend_shape_group(self, graph, group) -> None:
        self.add_property(graph, str(VrmEdge.BLEND_SHAPE_GROUP), group)

    def remove_blend_shape_group(self, graph, group) -> None:
        self.remove_property(graph, str(VrmEdge.BLEND_SHAPE_GROUP), group)

    def bone_groups(self, graph) -> list[BoneGroup]:
        return self.find_properties(graph, str(VrmEdge.BONE_GROUP), BoneGroup)

    def add_bone_group(self, graph, group) -> None:
        self.add_property(graph, str(VrmEdge.BONE_GROUP), group)

    def remove_bone_group(self, graph, group) -> None:
        self.remove_property(graph, str(VrmEdge.BONE_GROUP), group)

    def first_person_bone(self, graph) -> Bone | None:
        return self.find_property(graph, str(VrmEdge.FIRST_PERSON_BONE), Bone)

    def set_first_person_bone(self, graph, bone) -> None:
        self.set_property(graph, str(VrmEdge.FIRST_PERSON_BONE), bone)

    def human_bones(self, graph) -> list[Bone]:
        return self.find_properties(graph, str(VrmEdge.HUMAN_BONE), Bone)

    def add_human_bone(self, graph, bone) -> None:
        self.add_property(graph, str(VrmEdge.HUMAN_BONE), bone)

    def remove_human_bone(self, graph, bone) -> None:
        self.remove_property(graph, str(VrmEdge.HUMAN_BONE), bone)

    def material_properties(self, graph) -> list[MaterialProperty]:
        return self.find_properties(graph, str(VrmEdge.MATERIAL_PROPERTY), MaterialProperty)

    def add_material_property(self, graph, prop) -> None:
        self.add_property(graph, str(VrmEdge.MATERIAL_PROPERTY), prop)

    def remove_material_property(self, graph, prop) -> None:
        self.remove_property(graph, str(VrmEdge.MATERIAL_PROPERTY), prop)

    def mesh_annotations(self, graph) -> list[MeshAnnotation]:
        return self.find_properties(graph, str(VrmEdge.MESH_ANNOTATION), MeshAnnotation)

    def add_mesh_annotation(self, graph, annotation) -> None:
        self.add_property(graph, str(VrmEdge.MESH_ANNOTATION), annotation)

    def remove_mesh_annotation(self, graph, annotation) -> None:
        self.remove_property(graph, str(VrmEdge.MESH_ANNOTATION), annotation)

    def thumbnail(self, graph) -> Texture | None:
        return self.find_property(graph, str(VrmEdge.THUMBNAIL), Texture)

    def set_thumbnail(self, graph, texture) -> None:
        self.set_property(graph, str(VrmEdge.THUMBNAIL), texture)


class VrmcVrm(PropertyNode):
    """Marker node for the ``VRMC_vrm`` extension."""

    kind = "Extension"
    extension_name = VRMC_VRM_EXTENSION_NAME


class VrmcMaterialsMtoon(PropertyNode):
    """Marker node for the ``VRMC_materials_mtoon`` extension."""

    kind = "Extension"
    extension_name = VRMC_MATERIALS_MTOON_EXTENSION_NAME