import json
import logging
import math

import pytest

from vrmkit.graph import GltfDocument, Graph, Material, Texture
from vrmkit.importer import load_vrm
from vrmkit.mtoon import (
    AlphaMode,
    AlphaModeKind,
    MtoonMaterial,
    MtoonMaterialFlags,
    OutlineMode,
    load_mtoon_material,
    mtoon_label,
    mtoon_materials,
    outline_state,
    primitive_material_label,
    texture_label,
)
from vrmkit.properties import MaterialProperty

GLTF = {
    "asset": {"version": "2.0"},
    "textures": [{}, {}],
    "materials": [{"name": "skin"}, {"name": "plain"}, {"name": "unlit"}],
    "meshes": [
        {"primitives": [{"material": 0}, {"material": 1}, {"material": 2}, {}]}
    ],
    "extensions": {
        "VRM": {
            "materialProperties": [
                {
                    "name": "skin",
                    "shader": "VRM/MToon",
                    "floatProperties": {
                        "_CullMode": 0,
                        "_Cutoff": 0.5,
                        "_BumpScale": 0.8,
                        "_OutlineWidth": 0.1,
                        "_IndirectLightIntensity": 0.25,
                        "_ShadeShift": 0.3,
                        "_ShadeToony": 0.7,
                    },
                    "vectorProperties": {
                        "_Color": [1.0, 0.5, 0.25, 1.0],
                        "_ShadeColor": [0.1, 0.2, 0.3, 1.0],
                        "_OutlineColor": [0.4, 0.5, 0.6, 1.0],
                    },
                    "textureProperties": {"_MainTex": 1, "_ShadeTexture": 0},
                    "keywordMap": {"MTOON_OUTLINE_WIDTH_WORLD": True},
                },
                {"name": "plain", "shader": "VRM_USE_GLTFSHADER"},
                {"name": "unlit", "shader": "VRM/UnlitTexture"},
            ]
        }
    },
}


@pytest.fixture
def loaded():
    return load_vrm(json.dumps(GLTF))


def test_defaults_match_source():
    material = MtoonMaterial()
    assert material.gi_equalization_factor == 0.9
    assert material.parametric_rim_fresnel_power == 5.0
    assert material.shading_toony_factor == 0.9
    assert material.outline_mode is OutlineMode.NONE
    assert material.alpha_mode.kind is AlphaModeKind.OPAQUE


def test_default_uniform_is_opaque():
    uniform = MtoonMaterial().shader_uniform()
    assert uniform.flags == int(MtoonMaterialFlags.ALPHA_MODE_OPAQUE)
    assert MtoonMaterialFlags.ALPHA_MODE_OPAQUE == 1 << 1
    assert uniform.alpha_cutoff == 0.0


def test_uniform_flags_follow_textures_and_mask():
    material = MtoonMaterial(
        base_color_texture="Texture0",
        normal_map_texture="Texture1",
        alpha_mode=AlphaMode.mask(0.4),
    )
    uniform = material.shader_uniform()
    expected = (
        MtoonMaterialFlags.BASE_COLOR_TEXTURE
        | MtoonMaterialFlags.NORMAL_MAP_TEXTURE
        | MtoonMaterialFlags.ALPHA_MODE_MASK
    )
    assert uniform.flags == int(expected)
    assert uniform.alpha_cutoff == 0.4


def test_blend_alpha_sets_no_alpha_flag():
    uniform = MtoonMaterial(alpha_mode=AlphaMode(AlphaModeKind.BLEND)).shader_uniform()
    assert uniform.flags == 0


def test_uniform_drops_alpha_from_rgb_colors():
    material = MtoonMaterial(light_color=(0.2, 0.4, 0.6, 1.0), shade_factor=(0.1, 0.3, 0.5, 0.5))
    uniform = material.shader_uniform()
    assert uniform.light_color == (0.2, 0.4, 0.6)
    assert uniform.shade_color == (0.1, 0.3, 0.5)
    assert uniform.base_color == MtoonMaterial().base_color


def test_cull_mode():
    assert MtoonMaterial().cull_mode() == "back"
    assert MtoonMaterial(double_sided=True).cull_mode() is None


def test_alpha_cutoff_only_for_mask():
    with pytest.raises(ValueError):
        AlphaMode(AlphaModeKind.OPAQUE, 0.5)


def test_labels():
    assert mtoon_label(3) == "MaterialMtoon3"
    assert texture_label(0) == "Texture0"


def test_outline_none_is_hidden():
    state = outline_state(MtoonMaterial(outline_width=1.0), [600.0], [], (0, 0, 0))
    assert state.visible is False
    assert state.width is None


def test_outline_screen_uses_tallest_window():
    material = MtoonMaterial(
        outline_mode=OutlineMode.SCREEN, outline_width=1.0, outline_color=(0.1, 0.2, 0.3, 1.0)
    )
    state = outline_state(material, [100.0, 800.0], [], (0, 0, 0))
    assert state.visible is True
    assert state.width == 800.0
    assert state.color == (0.1, 0.2, 0.3, 1.0)


def test_outline_screen_without_windows_is_zero():
    material = MtoonMaterial(outline_mode=OutlineMode.SCREEN, outline_width=1.0)
    assert outline_state(material, [], [], (0, 0, 0)).width == 0.0


def test_outline_world_scales_with_nearest_camera():
    material = MtoonMaterial(outline_mode=OutlineMode.WORLD, outline_width=0.5)
    far = outline_state(material, [720.0], [(0.0, 0.0, 4.0)], (0.0, 0.0, 0.0))
    near = outline_state(material, [720.0], [(0.0, 0.0, 4.0), (0.0, 2.0, 0.0)], (0.0, 0.0, 0.0))
    assert near.width == pytest.approx(2 * far.width)


def test_outline_world_without_camera_is_infinite():
    material = MtoonMaterial(outline_mode=OutlineMode.WORLD, outline_width=0.5)
    state = outline_state(material, [720.0], [], (1.0, 2.0, 3.0))
    assert state.visible is True
    assert state.width == math.inf


def test_mtoon_materials_built_from_vrm(loaded):
    materials = mtoon_materials(loaded.graph, loaded.document, loaded.vrm)
    assert list(materials) == ["MaterialMtoon0"]
    material = materials["MaterialMtoon0"]
    assert material.double_sided is True
    assert material.alpha_mode == AlphaMode.mask(0.5)
    assert material.base_color == (1.0, 0.5, 0.25, 1.0)
    assert material.normal_map_scale == pytest.approx(0.8)
    assert material.outline_width == pytest.approx(0.1)
    assert material.outline_color == (0.4, 0.5, 0.6, 1.0)
    assert material.outline_mode is OutlineMode.WORLD
    assert material.gi_equalization_factor == pytest.approx(0.75)
    assert material.shading_shift_factor == pytest.approx(-0.3)
    assert material.shading_toony_factor == pytest.approx(0.7)
    assert material.shade_factor == (0.1, 0.2, 0.3, 1.0)
    assert material.base_color_texture == texture_label(1)
    assert material.shade_multiply_texture == texture_label(0)
    assert material.emissive_texture is None


def test_unsupported_shader_warns(loaded, caplog):
    with caplog.at_level(logging.WARNING, logger="vrmkit.mtoon"):
        materials = mtoon_materials(loaded.graph, loaded.document, loaded.vrm)
    assert mtoon_label(2) not in materials
    assert "Unsupported shader" in caplog.text


def test_primitive_material_label(loaded):
    graph = loaded.graph
    mesh = loaded.document.meshes(graph)[0]
    primitives = mesh.primitives(graph)
    assert primitive_material_label(graph, loaded.vrm, primitives[0]) == mtoon_label(0)
    assert primitive_material_label(graph, loaded.vrm, primitives[1]) is None
    assert primitive_material_label(graph, loaded.vrm, primitives[3]) is None


def test_screen_outline_when_keyword_false():
    graph = Graph()
    doc = GltfDocument.create(graph)
    material = Material.create(graph)
    doc.add_material(graph, material)
    prop = MaterialProperty.create(graph)
    prop.set_material(graph, material)
    weight = prop.read(graph)
    weight.keyword_map.outline_width_world = False
    prop.write(graph, weight)
    assert load_mtoon_material(graph, doc, prop).outline_mode is OutlineMode.SCREEN


def test_texture_outside_document_is_an_error():
    graph = Graph()
    doc = GltfDocument.create(graph)
    stray = Texture.create(graph)
    prop = MaterialProperty.create(graph)
    prop.set_main_texture(graph, stray)
    with pytest.raises(ValueError):
        load_mtoon_material(graph, doc, prop)