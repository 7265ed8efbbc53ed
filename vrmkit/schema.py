"""Typed records for the VRM 0.x glTF extension and their JSON form."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from types import UnionType
from typing import Any, ClassVar, NewType, Union, get_args, get_origin

UInt32 = NewType("UInt32", int)
_Float4 = NewType("_Float4", tuple)
_Float8 = NewType("_Float8", tuple)

_FIXED_ARRAYS = {_Float4: 4, _Float8: 8}
_U32_MAX = 2**32 - 1
_I32_RANGE = range(-(2**31), 2**31)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _json(key: str, default: Any = None) -> Any:
    return field(default=default, metadata={"json": key})


def _is_optional(tp: Any) -> bool:
    return get_origin(tp) in (Union, UnionType) and type(None) in get_args(tp)


def _decode(tp: Any, value: Any, where: str) -> Any:
    origin = get_origin(tp)
    if origin in (Union, UnionType):
        if value is None:
            return None
        inner = next(arg for arg in get_args(tp) if arg is not type(None))
        return _decode(inner, value, where)
    if origin is list:
        if not isinstance(value, list):
            raise ValueError(f"{where}: expected an array")
        (item,) = get_args(tp)
        return [_decode(item, v, f"{where}[{i}]") for i, v in enumerate(value)]
    if tp in _FIXED_ARRAYS:
        size = _FIXED_ARRAYS[tp]
        if not isinstance(value, list) or len(value) != size:
            raise ValueError(f"{where}: expected an array of {size} numbers")
        return tuple(_decode(float, v, f"{where}[{i}]") for i, v in enumerate(value))
    if tp is UInt32:
        number = _decode(int, value, where)
        if not 0 <= number <= _U32_MAX:
            raise ValueError(f"{where}: {number} is out of range for an unsigned index")
        return number
    if tp is bool:
        if not isinstance(value, bool):
            raise ValueError(f"{where}: expected a boolean")
        return value
    if tp is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{where}: expected an integer")
        if value not in _I32_RANGE:
            raise ValueError(f"{where}: {value} is out of range")
        return value
    if tp is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{where}: expected a number")
        return float(value)
    if tp is str:
        if not isinstance(value, str):
            raise ValueError(f"{where}: expected a string")
        return value
    if isinstance(tp, type) and issubclass(tp, Enum):
        try:
            return tp(value)
        except (ValueError, TypeError):
            raise ValueError(f"{where}: unknown {tp.__name__} {value!r}") from None
    if isinstance(tp, type) and hasattr(tp, "from_json"):
        return tp.from_json(value)
    raise TypeError(f"{where}: unsupported field type {tp!r}")


def _encode(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (JsonRecord, Shader)):
        return value.to_json()
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    raise TypeError(f"cannot encode {value!r} as JSON")


class JsonRecord:
    """Base for dataclass records that map to and from JSON objects.

    Optional fields may be absent or null; other fields must be present.
    Unknown keys are ignored. Absent values are written back as null.
    """

    _camel_case: ClassVar[bool] = False

    def __init_subclass__(cls, camel_case: bool = False, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._camel_case = camel_case

    @classmethod
    def _json_fields(cls):
        for f in fields(cls):
            key = f.metadata.get("json")
            if key is None:
                key = _camel(f.name) if cls._camel_case else f.name
            yield f, key

    @classmethod
    def from_json(cls, data):
        """Build a record from a decoded JSON object."""
        if not isinstance(data, Mapping):
            raise ValueError(f"{cls.__name__}: expected a JSON object")
        values = {}
        for f, key in cls._json_fields():
            if key in data:
                values[f.name] = _decode(f.type, data[key], f"{cls.__name__}.{key}")
            elif _is_optional(f.type):
                values[f.name] = None
            else:
                raise ValueError(f"{cls.__name__}: missing field {key!r}")
        return cls(**values)

    def to_json(self):
        """Return the record as a JSON-ready dictionary."""
        return {key: _encode(getattr(self, f.name)) for f, key in self._json_fields()}


class AllowedUserName(Enum):
    EVERYONE = "Everyone"
    EXPLICITLY_LICENSED_PERSON = "ExplicitlyLicensedPerson"
    ONLY_AUTHOR = "OnlyAuthor"


class Allow(Enum):
    ALLOW = "Allow"
    DISALLOW = "Disallow"


class BoneName(Enum):
    """Humanoid bone names; the string form is the quoted JSON value."""

    HIPS = "hips"
    LEFT_UPPER_LEG = "leftUpperLeg"
    RIGHT_UPPER_LEG = "rightUpperLeg"
    LEFT_LOWER_LEG = "leftLowerLeg"
    RIGHT_LOWER_LEG = "rightLowerLeg"
    LEFT_FOOT = "leftFoot"
    RIGHT_FOOT = "rightFoot"
    SPINE = "spine"
    CHEST = "chest"
    NECK = "neck"
    HEAD = "head"
    LEFT_SHOULDER = "leftShoulder"
    RIGHT_SHOULDER = "rightShoulder"
    LEFT_UPPER_ARM = "leftUpperArm"
    RIGHT_UPPER_ARM = "rightUpperArm"
    LEFT_LOWER_ARM = "leftLowerArm"
    RIGHT_LOWER_ARM = "rightLowerArm"
    LEFT_HAND = "leftHand"
    RIGHT_HAND = "rightHand"
    LEFT_TOES = "leftToes"
    RIGHT_TOES = "rightToes"
    LEFT_EYE = "leftEye"
    RIGHT_EYE = "rightEye"
    JAW = "jaw"
    LEFT_THUMB_PROXIMAL = "leftThumbProximal"
    LEFT_THUMB_INTERMEDIATE = "leftThumbIntermediate"
    LEFT_THUMB_DISTAL = "leftThumbDistal"
    LEFT_INDEX_PROXIMAL = "leftIndexProximal"
    LEFT_INDEX_INTERMEDIATE = "leftIndexIntermediate"
    LEFT_INDEX_DISTAL = "leftIndexDistal"
    LEFT_MIDDLE_PROXIMAL = "leftMiddleProximal"
    LEFT_MIDDLE_INTERMEDIATE = "leftMiddleIntermediate"
    LEFT_MIDDLE_DISTAL = "leftMiddleDistal"
    LEFT_RING_PROXIMAL = "leftRingProximal"
    LEFT_RING_INTERMEDIATE = "leftRingIntermediate"
    LEFT_RING_DISTAL = "leftRingDistal"
    LEFT_LITTLE_PROXIMAL = "leftLittleProximal"
    LEFT_LITTLE_INTERMEDIATE = "leftLittleIntermediate"
    LEFT_LITTLE_DISTAL = "leftLittleDistal"
    RIGHT_THUMB_PROXIMAL = "rightThumbProximal"
    RIGHT_THUMB_INTERMEDIATE = "rightThumbIntermediate"
    RIGHT_THUMB_DISTAL = "rightThumbDistal"
    RIGHT_INDEX_PROXIMAL = "rightIndexProximal"
    RIGHT_INDEX_INTERMEDIATE = "rightIndexIntermediate"
    RIGHT_INDEX_DISTAL = "rightIndexDistal"
    RIGHT_MIDDLE_PROXIMAL = "rightMiddleProximal"
    RIGHT_MIDDLE_INTERMEDIATE = "rightMiddleIntermediate"
    RIGHT_MIDDLE_DISTAL = "rightMiddleDistal"
    RIGHT_RING_PROXIMAL = "rightRingProximal"
    RIGHT_RING_INTERMEDIATE = "rightRingIntermediate"
    RIGHT_RING_DISTAL = "rightRingDistal"
    RIGHT_LITTLE_PROXIMAL = "rightLittleProximal"
    RIGHT_LITTLE_INTERMEDIATE = "rightLittleIntermediate"
    RIGHT_LITTLE_DISTAL = "rightLittleDistal"
    UPPER_CHEST = "upperChest"

    def __str__(self) -> str:
        return json.dumps(self.value)


class FirstPersonFlag(Enum):
    """Which views a mesh is rendered in; reads both camelCase and PascalCase."""

    AUTO = "auto"
    BOTH = "both"
    FIRST_PERSON_ONLY = "firstPersonOnly"
    THIRD_PERSON_ONLY = "thirdPersonOnly"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        aliases = {
            "Auto": cls.AUTO,
            "Both": cls.BOTH,
            "FirstPersonOnly": cls.FIRST_PERSON_ONLY,
            "ThirdPersonOnly": cls.THIRD_PERSON_ONLY,
        }
        return aliases.get(value)


class PresetName(Enum):
    UNKNOWN = "unknown"
    NEUTRAL = "neutral"
    A = "a"
    I = "i"  # noqa: E741
    U = "u"
    E = "e"
    O = "o"  # noqa: E741
    BLINK = "blink"
    JOY = "joy"
    ANGRY = "angry"
    SORROW = "sorrow"
    FUN = "fun"
    LOOK_UP = "lookup"
    LOOK_DOWN = "lookdown"
    LOOK_LEFT = "lookleft"
    LOOK_RIGHT = "lookright"
    BLINK_LEFT = "blink_l"
    BLINK_RIGHT = "blink_r"


class RenderType(Enum):
    OPAQUE = "Opaque"
    TRANSPARENT = "Transparent"
    TRANSPARENT_CUTOUT = "TransparentCutout"


_KNOWN_SHADERS = frozenset(
    {
        "VRM_USE_GLTFSHADER",
        "VRM/MToon",
        "VRM/UnlitCutout",
        "VRM/UnlitTexture",
        "VRM/UnlitTransparent",
        "VRM/UnlitTransparentZWrite",
    }
)


@dataclass(frozen=True)
class Shader:
    """A material shader name.

    Known shaders are written as plain strings; any other shader is written
    as ``{"Other": name}`` and must be built with ``other=True``.
    """

    name: str
    other: bool = False

    GLTF: ClassVar["Shader"]
    MTOON: ClassVar["Shader"]
    UNLIT_CUTOUT: ClassVar["Shader"]
    UNLIT_TEXTURE: ClassVar["Shader"]
    UNLIT_TRANSPARENT: ClassVar["Shader"]
    UNLIT_TRANSPARENT_ZWRITE: ClassVar["Shader"]

    def __post_init__(self) -> None:
        if not self.other and self.name not in _KNOWN_SHADERS:
            raise ValueError(f"unknown shader {self.name!r}")

    @classmethod
    def from_json(cls, value):
        """Read a shader from its JSON form."""
        if isinstance(value, str):
            return cls(value)
        if (
            isinstance(value, Mapping)
            and len(value) == 1
            and isinstance(value.get("Other"), str)
        ):
            return cls(value["Other"], other=True)
        raise ValueError(f"invalid shader {value!r}")

    def to_json(self):
        """Return the JSON form of the shader."""
        return {"Other": self.name} if self.other else self.name


Shader.GLTF = Shader("VRM_USE_GLTFSHADER")
Shader.MTOON = Shader("VRM/MToon")
Shader.UNLIT_CUTOUT = Shader("VRM/UnlitCutout")
Shader.UNLIT_TEXTURE = Shader("VRM/UnlitTexture")
Shader.UNLIT_TRANSPARENT = Shader("VRM/UnlitTransparent")
Shader.UNLIT_TRANSPARENT_ZWRITE = Shader("VRM/UnlitTransparentZWrite")


@dataclass
class Vec3(JsonRecord):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass
class Meta(JsonRecord, camel_case=True):
    title: str | None = None
    version: str | None = None
    author: str | None = None
    contact_information: str | None = None
    reference: str | None = None
    texture: UInt32 | None = None
    allowed_user_name: AllowedUserName | None = None
    violent_usage_name: Allow | None = None
    sexual_usage_name: Allow | None = None
    commercial_usage_name: Allow | None = None
    other_permission_url: str | None = None
    license_name: str | None = None
    other_license_url: str | None = None


@dataclass
class Bone(JsonRecord, camel_case=True):
    bone: BoneName | None = None
    node: UInt32 | None = None
    use_default_values: bool | None = None


@dataclass
class Humanoid(JsonRecord, camel_case=True):
    human_bones: list[Bone] | None = None
    arm_stretch: float | None = None
    leg_stretch: float | None = None
    upper_arm_twist: float | None = None
    lower_arm_twist: float | None = None
    upper_leg_twist: float | None = None
    lower_leg_twist: float | None = None
    feet_spacing: float | None = None
    has_translation_dof: bool | None = None


@dataclass
class LookAtCurve(JsonRecord, camel_case=True):
    curve: _Float8 | None = None
    x_range: float | None = None
    y_range: float | None = None


@dataclass
class MeshAnnotation(JsonRecord, camel_case=True):
    mesh: UInt32 | None = None
    first_person_flag: FirstPersonFlag = FirstPersonFlag.AUTO


@dataclass
class FirstPerson(JsonRecord, camel_case=True):
    first_person_bone: UInt32 | None = None
    first_person_bone_offset: Vec3 | None = None
    mesh_annotations: list[MeshAnnotation] | None = None
    look_at_type_name: str | None = None
    look_at_horizontal_inner: LookAtCurve | None = None
    look_at_horizontal_outer: LookAtCurve | None = None
    look_at_vertical_down: LookAtCurve | None = None
    look_at_vertical_up: LookAtCurve | None = None


@dataclass
class MaterialBind(JsonRecord, camel_case=True):
    material_name: str | None = None
    property_name: str | None = None
    target_value: list[float] | None = None


@dataclass
class Bind(JsonRecord):
    mesh: UInt32 | None = None
    index: UInt32 | None = None
    weight: float | None = None


@dataclass
class BlendShapeGroup(JsonRecord, camel_case=True):
    name: str | None = None
    preset_name: PresetName | None = None
    binds: list[Bind] | None = None
    material_values: list[MaterialBind] | None = None
    is_binary: bool | None = None


@dataclass
class BlendShapeMaster(JsonRecord, camel_case=True):
    blend_shape_groups: list[BlendShapeGroup] | None = None


@dataclass
class Collider(JsonRecord):
    offset: Vec3 | None = None
    radius: float | None = None


@dataclass
class ColliderGroup(JsonRecord):
    node: UInt32 | None = None
    colliders: list[Collider] | None = None


@dataclass
class BoneGroup(JsonRecord, camel_case=True):
    comment: str | None = None
    stiffiness: float | None = None
    gravity_power: float | None = None
    gravity_dir: Vec3 | None = None
    drag_force: float | None = None
    center: float | None = None
    hit_radius: float | None = None
    bones: list[UInt32] | None = None
    collider_groups: list[UInt32] | None = None


@dataclass
class SecondaryAnimation(JsonRecord, camel_case=True):
    bone_groups: list[BoneGroup] | None = None
    collider_groups: list[ColliderGroup] | None = None


@dataclass
class FloatProperties(JsonRecord):
    shade_shift: float | None = _json("_ShadeShift")
    shade_toony: float | None = _json("_ShadeToony")
    cutoff: float | None = _json("_Cutoff")
    gi_intensity_factor: float | None = _json("_IndirectLightIntensity")
    normal_scale: float | None = _json("_BumpScale")
    double_sided: float | None = _json("_CullMode")
    shade_receive_multiply_factor: float | None = _json("_ReceiveShadowRate")
    rim_lighting_mix_factor: float | None = _json("_RimLightingMix")
    rim_fresnel_power_factor: float | None = _json("_RimFresnelPower")
    rim_lift_factor: float | None = _json("_RimLift")
    outline_factor: float | None = _json("_OutlineWidth")
    outline_width_mode: float | None = _json("_OutlineWidthMode")
    outline_scaled_max_distance_factor: float | None = _json("_OutlineScaledMaxDistance")
    outline_lighting_mix_factor: float | None = _json("_OutlineLightingMix")
    uv_animation_scroll_x_speed_factor: float | None = _json("_UvAnimScrollX")
    uv_animation_scroll_y_speed_factor: float | None = _json("_UvAnimScrollY")
    uv_animation_rotation_speed_factor: float | None = _json("_UvAnimRotation")


@dataclass
class TextureProperties(JsonRecord):
    base_color: UInt32 | None = _json("_MainTex")
    shade: UInt32 | None = _json("_ShadeTexture")
    normal: UInt32 | None = _json("_BumpMap")
    additive: UInt32 | None = _json("_SphereAdd")
    emissive: UInt32 | None = _json("_EmissionMap")
    rim_multiply: UInt32 | None = _json("_RimTexture")
    outline_width_multiply_texture: UInt32 | None = _json("_OutlineWidthTexture")
    uv_animation_mask_texture: UInt32 | None = _json("_UvAnimMaskTexture")


@dataclass
class VectorProperties(JsonRecord):
    color: _Float4 | None = _json("_Color")
    emissive_factor: _Float4 | None = _json("_EmissionColor")
    outline_color: _Float4 | None = _json("_OutlineColor")
    shade_color: _Float4 | None = _json("_ShadeColor")
    rim_factor: _Float4 | None = _json("_RimColor")


@dataclass
class TagMap(JsonRecord):
    render_type: RenderType | None = _json("RenderType")


@dataclass
class KeywordMap(JsonRecord):
    alpha_blend: bool | None = _json("_ALPHABLEND_ON")
    alpha_test: bool | None = _json("_ALPHATEST_ON")
    normal_map: bool | None = _json("_NORMALMAP")
    outline_color_fixed: bool | None = _json("MTOON_OUTLINE_COLOR_FIXED")
    outline_color_mixed: bool | None = _json("MTOON_OUTLINE_COLOR_MIXED")
    outline_width_world: bool | None = _json("MTOON_OUTLINE_WIDTH_WORLD")


@dataclass
class MaterialProperty(JsonRecord):
    name: str | None = None
    render_queue: int | None = _json("renderQueue")
    shader: Shader | None = None
    float_properties: FloatProperties | None = _json("floatProperties")
    vector_properties: VectorProperties | None = _json("vectorProperties")
    texture_properties: TextureProperties | None = _json("textureProperties")
    keyword_map: KeywordMap | None = _json("keywordMap")
    tag_map: TagMap | None = _json("tagMap")


@dataclass
class Vrm(JsonRecord, camel_case=True):
    """The root object of the ``VRM`` glTF extension."""

    exporter_version: str | None = None
    spec_version: str | None = None
    meta: Meta | None = None
    humanoid: Humanoid | None = None
    first_person: FirstPerson | None = None
    blend_shape_master: BlendShapeMaster | None = None
    secondary_animation: SecondaryAnimation | None = None
    material_properties: list[MaterialProperty] | None = None


def parse_vrm(data) -> Vrm:
    """Parse a ``VRM`` extension object given as a mapping, JSON text or bytes."""
    if isinstance(data, (str, bytes, bytearray)):
        data = json.loads(data)
    return Vrm.from_json(data)