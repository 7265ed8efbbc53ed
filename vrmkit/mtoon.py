"""MToon toon-shading materials and their construction from VRM 0.x data."""

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum, IntFlag

from .schema import Shader

_log = logging.getLogger(__name__)

Color = tuple[float, float, float, float]
Vector3 = tuple[float, float, float]

BLACK: Color = (0.0, 0.0, 0.0, 1.0)
WHITE: Color = (1.0, 1.0, 1.0, 1.0)

_CULL_BACK = "back"
_WORLD_WIDTH_SCALE = 0.04


class OutlineMode(Enum):
    """How the outline width of a material is measured."""

    NONE = "none"
    SCREEN = "screen"
    WORLD = "world"


class AlphaModeKind(Enum):
    OPAQUE = "opaque"
    MASK = "mask"
    BLEND = "blend"
    PREMULTIPLIED = "premultiplied"
    ALPHA_TO_COVERAGE = "alpha_to_coverage"
    ADD = "add"
    MULTIPLY = "multiply"


@dataclass(frozen=True)
class AlphaMode:
    """How a material's alpha is used; only masks carry a cutoff."""

    kind: AlphaModeKind = AlphaModeKind.OPAQUE
    cutoff: float = 0.0

    def __post_init__(self) -> None:
        if self.kind is not AlphaModeKind.MASK and self.cutoff != 0.0:
            raise ValueError("only a mask alpha mode has a cutoff")

    @classmethod
    def opaque(cls) -> "AlphaMode":
        return cls(AlphaModeKind.OPAQUE)

    @classmethod
    def mask(cls, cutoff: float) -> "AlphaMode":
        return cls(AlphaModeKind.MASK, float(cutoff))


class MtoonMaterialFlags(IntFlag):
    ALPHA_MODE_MASK = 1 << 0
    ALPHA_MODE_OPAQUE = 1 << 1
    BASE_COLOR_TEXTURE = 1 << 2
    DOUBLE_SIDED = 1 << 3
    EMISSIVE_TEXTURE = 1 << 4
    MATCAP_TEXTURE = 1 << 5
    NORMAL_MAP_TEXTURE = 1 << 6
    RIM_MULTIPLY_TEXTURE = 1 << 7
    SHADE_COLOR_TEXTURE = 1 << 8
    SHADING_SHIFT_TEXTURE = 1 << 9


_TEXTURE_FLAGS = (
    ("base_color_texture", MtoonMaterialFlags.BASE_COLOR_TEXTURE),
    ("emissive_texture", MtoonMaterialFlags.EMISSIVE_TEXTURE),
    ("matcap_texture", MtoonMaterialFlags.MATCAP_TEXTURE),
    ("normal_map_texture", MtoonMaterialFlags.NORMAL_MAP_TEXTURE),
    ("rim_multiply_texture", MtoonMaterialFlags.RIM_MULTIPLY_TEXTURE),
    ("shade_multiply_texture", MtoonMaterialFlags.SHADE_COLOR_TEXTURE),
    ("shade_shift_texture", MtoonMaterialFlags.SHADING_SHIFT_TEXTURE),
)


@dataclass(frozen=True)
class MtoonShaderUniform:
    """The values handed to the shader for one material."""

    alpha_cutoff: float
    base_color: Color
    emissive_factor: Color
    flags: int
    gi_equalization_factor: float
    light_color: Vector3
    light_dir: Vector3
    matcap_factor: Vector3
    normal_map_scale: float
    parametric_rim_color: Vector3
    parametric_rim_fresnel_power: float
    parametric_rim_lift_factor: float
    rim_lighting_mix_factor: float
    shade_color: Vector3
    shading_shift_factor: float
    shading_toony_factor: float
    view_dir: Vector3


def _rgb(color: Color) -> Vector3:
    return (float(color[0]), float(color[1]), float(color[2]))


def _rgba(color: Sequence[float]) -> Color:
    return (float(color[0]), float(color[1]), float(color[2]), float(color[3]))


@dataclass
class MtoonMaterial:
    """An MToon material; colours are linear RGBA, textures are asset labels."""

    outline_color: Color = BLACK
    outline_mode: OutlineMode = OutlineMode.NONE
    outline_width: float = 0.0

    alpha_mode: AlphaMode = AlphaMode()
    base_color: Color = WHITE
    double_sided: bool = False
    emissive_factor: Color = BLACK
    gi_equalization_factor: float = 0.9
    light_color: Color = WHITE
    light_dir: Vector3 = (0.0, 1.0, 0.0)
    matcap_factor: Vector3 = (0.0, 0.0, 0.0)
    normal_map_scale: float = 1.0
    parametric_rim_color: Color = WHITE
    parametric_rim_fresnel_power: float = 5.0
    parametric_rim_lift_factor: float = 0.0
    rim_lighting_mix_factor: float = 1.0
    shade_factor: Color = BLACK
    shading_shift_factor: float = 0.0
    shading_toony_factor: float = 0.9
    view_dir: Vector3 = (0.0, 0.0, 0.0)

    base_color_texture: str | None = None
    emissive_texture: str | None = None
    matcap_texture: str | None = None
    normal_map_texture: str | None = None
    rim_multiply_texture: str | None = None
    shade_multiply_texture: str | None = None
    shade_shift_texture: str | None = None

    def shader_uniform(self) -> MtoonShaderUniform:
        """The shader uniform for this material, with its feature flags."""
        flags = MtoonMaterialFlags(0)
        for attr, flag in _TEXTURE_FLAGS:
            if getattr(self, attr) is not None:
                flags |= flag

        if self.alpha_mode.kind is AlphaModeKind.MASK:
            flags |= MtoonMaterialFlags.ALPHA_MODE_MASK
            alpha_cutoff = self.alpha_mode.cutoff
        elif self.alpha_mode.kind is AlphaModeKind.OPAQUE:
            flags |= MtoonMaterialFlags.ALPHA_MODE_OPAQUE
            alpha_cutoff = 0.0
        else:
            alpha_cutoff = 0.0

        return MtoonShaderUniform(
            alpha_cutoff=alpha_cutoff,
            base_color=_rgba(self.base_color),
            emissive_factor=_rgba(self.emissive_factor),
            flags=int(flags),
            gi_equalization_factor=self.gi_equalization_factor,
            light_color=_rgb(self.light_color),
            light_dir=tuple(self.light_dir),
            matcap_factor=tuple(self.matcap_factor),
            normal_map_scale=self.normal_map_scale,
            parametric_rim_color=_rgb(self.parametric_rim_color),
            parametric_rim_fresnel_power=self.parametric_rim_fresnel_power,
            parametric_rim_lift_factor=self.parametric_rim_lift_factor,
            rim_lighting_mix_factor=self.rim_lighting_mix_factor,
            shade_color=_rgb(self.shade_factor),
            shading_shift_factor=self.shading_shift_factor,
            shading_toony_factor=self.shading_toony_factor,
            view_dir=tuple(self.view_dir),
        )

    def cull_mode(self) -> str | None:
        """``"back"`` for one-sided materials, None for double-sided ones."""
        return None if self.double_sided else _CULL_BACK


@dataclass(frozen=True)
class OutlineState:
    """Outline settings for one entity; None means left as it was."""

    visible: bool
    width: float | None = None
    color: Color | None = None


def _divide(numerator: float, denominator: float) -> float:
    if denominator:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator)


def outline_state(
    material: MtoonMaterial,
    window_heights: Iterable[float],
    camera_positions: Iterable[Sequence[float]],
    position: Sequence[float],
) -> OutlineState:
    """Outline settings for an entity at ``position`` using ``material``.

    Screen widths are a ratio of the tallest window; world widths are in
    metres, turned into pixels from the distance to the nearest camera.
    """
    max_height = max(window_heights, default=0.0)
    max_height = max(max_height, 0.0)

    if material.outline_mode is OutlineMode.NONE:
        return OutlineState(visible=False)

    if material.outline_mode is OutlineMode.SCREEN:
        width = material.outline_width * max_height
    else:
        distance = min(
            (math.dist(camera, position) for camera in camera_positions), default=0.0
        )
        width = _divide(
            material.outline_width * max_height * _WORLD_WIDTH_SCALE, distance
        )

    return OutlineState(visible=True, width=width, color=material.outline_color)


def mtoon_label(index: int) -> str:
    """The asset label of the MToon material built from property ``index``."""
    return f"MaterialMtoon{index}"


def texture_label(index: int) -> str:
    """The asset label of the document texture at ``index``."""
    return f"Texture{index}"


def _texture_label(graph, doc, texture) -> str:
    index = doc.texture_index(graph, texture)
    if index is None:
        raise ValueError(f"texture {texture.index} is not in the document")
    return texture_label(index)


def load_mtoon_material(graph, doc, material_property) -> MtoonMaterial:
    """Build an ``MtoonMaterial`` from a VRM material property."""
    mtoon = MtoonMaterial()
    weight = material_property.read(graph)
    floats = weight.float_properties
    vectors = weight.vector_properties
    keywords = weight.keyword_map

    if floats.double_sided is not None:
        mtoon.double_sided = floats.double_sided == 0.0
    if floats.cutoff is not None:
        mtoon.alpha_mode = AlphaMode.mask(floats.cutoff)
    if vectors.color is not None:
        mtoon.base_color = _rgba(vectors.color)

    texture = material_property.main_texture(graph)
    if texture is not None:
        mtoon.base_color_texture = _texture_label(graph, doc, texture)

    if floats.normal_scale is not None:
        mtoon.normal_map_scale = floats.normal_scale

    texture = material_property.bump_map(graph)
    if texture is not None:
        mtoon.normal_map_texture = _texture_label(graph, doc, texture)

    if vectors.emissive_factor is not None:
        mtoon.emissive_factor = _rgba(vectors.emissive_factor)

    texture = material_property.emission_map(graph)
    if texture is not None:
        mtoon.emissive_texture = _texture_label(graph, doc, texture)

    if floats.outline_factor is not None:
        mtoon.outline_width = floats.outline_factor
    if vectors.outline_color is not None:
        mtoon.outline_color = _rgba(vectors.outline_color)
    if keywords.outline_width_world is not None:
        mtoon.outline_mode = (
            OutlineMode.WORLD if keywords.outline_width_world else OutlineMode.SCREEN
        )

    if floats.gi_intensity_factor is not None:
        mtoon.gi_equalization_factor = 1.0 - floats.gi_intensity_factor
    if floats.shade_shift is not None:
        mtoon.shading_shift_factor = -floats.shade_shift
    if floats.shade_toony is not None:
        mtoon.shading_toony_factor = floats.shade_toony
    if vectors.shade_color is not None:
        mtoon.shade_factor = _rgba(vectors.shade_color)

    texture = material_property.shade_texture(graph)
    if texture is not None:
        mtoon.shade_multiply_texture = _texture_label(graph, doc, texture)

    return mtoon


def mtoon_materials(graph, doc, vrm) -> dict[str, MtoonMaterial]:
    """MToon materials for every document material, keyed by ``mtoon_label``."""
    materials: dict[str, MtoonMaterial] = {}
    properties = vrm.material_properties(graph)
    for material in doc.materials(graph):
        for i, prop in enumerate(properties):
            target = prop.material(graph)
            if target is None:
                _log.warning("Material not found for property %d", i)
                continue
            if target.index != material.index:
                continue

            shader = prop.read(graph).shader
            if shader == Shader.MTOON:
                label = mtoon_label(i)
                if label not in materials:
                    materials[label] = load_mtoon_material(graph, doc, prop)
            elif shader is not None and shader != Shader.GLTF:
                _log.warning("Unsupported shader: %r", shader)
    return materials


def primitive_material_label(graph, vrm, primitive) -> str | None:
    """The MToon material label a primitive should use, or None to keep its own."""
    primitive_material = primitive.material(graph)
    if primitive_material is None:
        return None

    label = None
    for i, prop in enumerate(vrm.material_properties(graph)):
        material = prop.material(graph)
        if material is None:
            _log.warning("Material not found for property %d", i)
            continue
        if material.index != primitive_material.index:
            continue

        shader = prop.read(graph).shader
        if shader == Shader.MTOON:
            label = mtoon_label(i)
        elif shader is not None:
            _log.warning("Unsupported shader: %r", shader)
    return label