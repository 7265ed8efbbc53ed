import json

import pytest

from vrmkit.schema import (
    Allow,
    AllowedUserName,
    BoneName,
    FirstPersonFlag,
    JsonRecord,
    LookAtCurve,
    MaterialProperty,
    MeshAnnotation,
    PresetName,
    RenderType,
    Shader,
    Vec3,
    Vrm,
    parse_vrm,
)

SAMPLE = {
    "exporterVersion": "UniVRM-0.61.1",
    "specVersion": "0.0",
    "meta": {
        "title": "Sample",
        "author": "Someone",
        "texture": 3,
        "allowedUserName": "OnlyAuthor",
        "commercialUsageName": "Disallow",
        "licenseName": "CC0",
    },
    "humanoid": {
        "humanBones": [
            {"bone": "hips", "node": 0, "useDefaultValues": True},
            {"bone": "head", "node": 5},
        ],
        "armStretch": 0.05,
        "hasTranslationDoF": False,
    },
    "firstPerson": {
        "firstPersonBone": 5,
        "firstPersonBoneOffset": {"x": 0, "y": 0.06, "z": 0},
        "meshAnnotations": [
            {"mesh": 0, "firstPersonFlag": "Auto"},
            {"mesh": 1, "firstPersonFlag": "thirdPersonOnly"},
        ],
        "lookAtTypeName": "Bone",
        "lookAtHorizontalInner": {
            "curve": [0, 0, 0, 1, 1, 1, 1, 0],
            "xRange": 90,
            "yRange": 10,
        },
    },
    "blendShapeMaster": {
        "blendShapeGroups": [
            {
                "name": "Blink_L",
                "presetName": "blink_l",
                "binds": [{"mesh": 0, "index": 2, "weight": 100}],
                "materialValues": [],
                "isBinary": False,
            }
        ]
    },
    "secondaryAnimation": {
        "boneGroups": [
            {
                "comment": "hair",
                "stiffiness": 1.5,
                "gravityPower": 0,
                "gravityDir": {"x": 0, "y": -1, "z": 0},
                "dragForce": 0.4,
                "hitRadius": 0.02,
                "bones": [7, 8],
                "colliderGroups": [0],
            }
        ],
        "colliderGroups": [
            {"node": 5, "colliders": [{"offset": {"x": 0, "y": 0.1, "z": 0}, "radius": 0.1}]}
        ],
    },
    "materialProperties": [
        {
            "name": "Body",
            "renderQueue": 2000,
            "shader": "VRM/MToon",
            "floatProperties": {"_ShadeShift": -0.3, "_ShadeToony": 0.8, "_Cutoff": 0.5},
            "vectorProperties": {"_Color": [1, 1, 1, 1]},
            "textureProperties": {"_MainTex": 0, "_ShadeTexture": 1},
            "keywordMap": {"_NORMALMAP": True},
            "tagMap": {"RenderType": "Opaque"},
        }
    ],
}


def test_parse_sample_top_level_and_meta():
    vrm = parse_vrm(SAMPLE)
    assert vrm.exporter_version == "UniVRM-0.61.1"
    assert vrm.spec_version == "0.0"
    assert vrm.meta.title == "Sample"
    assert vrm.meta.texture == 3
    assert vrm.meta.allowed_user_name is AllowedUserName.ONLY_AUTHOR
    assert vrm.meta.commercial_usage_name is Allow.DISALLOW
    assert vrm.meta.violent_usage_name is None


def test_parse_sample_humanoid_and_first_person():
    vrm = parse_vrm(SAMPLE)
    bones = vrm.humanoid.human_bones
    assert [b.bone for b in bones] == [BoneName.HIPS, BoneName.HEAD]
    assert bones[0].use_default_values is True
    assert bones[1].node == 5
    assert vrm.humanoid.arm_stretch == 0.05

    fp = vrm.first_person
    assert fp.first_person_bone == 5
    assert fp.first_person_bone_offset == Vec3(0.0, 0.06, 0.0)
    flags = [a.first_person_flag for a in fp.mesh_annotations]
    assert flags == [FirstPersonFlag.AUTO, FirstPersonFlag.THIRD_PERSON_ONLY]
    curve = fp.look_at_horizontal_inner
    assert curve.curve == (0.0, 0.0, 0.0, 1.0, 1.0, 1.0, 1.0, 0.0)
    assert curve.x_range == 90.0
    assert fp.look_at_vertical_up is None


def test_parse_sample_blend_shapes_and_springs():
    vrm = parse_vrm(SAMPLE)
    group = vrm.blend_shape_master.blend_shape_groups[0]
    assert group.preset_name is PresetName.BLINK_LEFT
    assert group.binds[0].index == 2
    assert group.binds[0].weight == 100.0
    assert group.material_values == []

    bone_group = vrm.secondary_animation.bone_groups[0]
    assert bone_group.stiffiness == 1.5
    assert bone_group.gravity_dir == Vec3(0.0, -1.0, 0.0)
    assert bone_group.bones == [7, 8]
    assert bone_group.center is None
    collider = vrm.secondary_animation.collider_groups[0].colliders[0]
    assert collider.radius == 0.1


def test_parse_sample_material_properties():
    prop = parse_vrm(SAMPLE).material_properties[0]
    assert prop.shader == Shader.MTOON
    assert prop.render_queue == 2000
    assert prop.float_properties.shade_shift == -0.3
    assert prop.float_properties.cutoff == 0.5
    assert prop.float_properties.normal_scale is None
    assert prop.vector_properties.color == (1.0, 1.0, 1.0, 1.0)
    assert prop.texture_properties.base_color == 0
    assert prop.texture_properties.shade == 1
    assert prop.keyword_map.normal_map is True
    assert prop.tag_map.render_type is RenderType.OPAQUE


def test_round_trip_through_json():
    vrm = parse_vrm(SAMPLE)
    encoded = vrm.to_json()
    assert Vrm.from_json(json.loads(json.dumps(encoded))) == vrm


def test_to_json_uses_source_key_names():
    encoded = parse_vrm(SAMPLE).to_json()
    assert encoded["exporterVersion"] == "UniVRM-0.61.1"
    annotation = encoded["firstPerson"]["meshAnnotations"][0]
    assert annotation["firstPersonFlag"] == "auto"
    prop = encoded["materialProperties"][0]
    assert prop["shader"] == "VRM/MToon"
    assert prop["floatProperties"]["_ShadeShift"] == -0.3
    assert prop["tagMap"] == {"RenderType": "Opaque"}


def test_absent_options_are_written_as_null():
    assert Vec3().to_json() == {"x": 0.0, "y": 0.0, "z": 0.0}
    encoded = LookAtCurve().to_json()
    assert encoded == {"curve": None, "xRange": None, "yRange": None}


def test_null_and_missing_optionals_become_none():
    vrm = parse_vrm({"meta": None, "exporterVersion": None})
    assert vrm == Vrm()


def test_unknown_keys_are_ignored():
    assert Vec3.from_json({"x": 1, "y": 2, "z": 3, "w": 4}) == Vec3(1.0, 2.0, 3.0)


def test_missing_required_field_raises():
    with pytest.raises(ValueError):
        Vec3.from_json({"x": 1, "y": 2})
    with pytest.raises(ValueError):
        MeshAnnotation.from_json({"mesh": 0})


@pytest.mark.parametrize(
    "data",
    [
        {"meta": {"texture": -1}},
        {"meta": {"texture": "3"}},
        {"meta": {"allowedUserName": "Nobody"}},
        {"humanoid": {"humanBones": [{"bone": "tail"}]}},
        {"humanoid": {"hasTranslationDoF": 1}},
        {"humanoid": {"humanBones": {"bone": "hips"}}},
        {"firstPerson": {"lookAtVerticalUp": {"curve": [0, 1, 2]}}},
        {"materialProperties": [{"renderQueue": 1.5}]},
        {"meta": []},
    ],
)
def test_invalid_values_raise(data):
    with pytest.raises(ValueError):
        parse_vrm(data)


def test_non_object_raises():
    with pytest.raises(ValueError):
        Vrm.from_json([1, 2, 3])


def test_parse_accepts_text_and_bytes():
    text = json.dumps(SAMPLE)
    expected = parse_vrm(SAMPLE)
    assert parse_vrm(text) == expected
    assert parse_vrm(text.encode()) == expected


def test_parse_rejects_malformed_text():
    with pytest.raises(ValueError):
        parse_vrm("{not json")


@pytest.mark.parametrize(
    "raw, flag",
    [
        ("Auto", FirstPersonFlag.AUTO),
        ("auto", FirstPersonFlag.AUTO),
        ("Both", FirstPersonFlag.BOTH),
        ("FirstPersonOnly", FirstPersonFlag.FIRST_PERSON_ONLY),
        ("ThirdPersonOnly", FirstPersonFlag.THIRD_PERSON_ONLY),
        ("thirdPersonOnly", FirstPersonFlag.THIRD_PERSON_ONLY),
    ],
)
def test_first_person_flag_aliases(raw, flag):
    annotation = MeshAnnotation.from_json({"firstPersonFlag": raw})
    assert annotation.first_person_flag is flag
    assert MeshAnnotation.from_json(annotation.to_json()) == annotation


def test_first_person_flag_unknown_raises():
    with pytest.raises(ValueError):
        MeshAnnotation.from_json({"firstPersonFlag": "never"})


def test_bone_name_display_is_quoted_json():
    assert str(BoneName.HEAD) == '"head"'
    assert BoneName("leftUpperLeg") is BoneName.LEFT_UPPER_LEG
    assert json.loads(str(BoneName.UPPER_CHEST)) == "upperChest"


def test_shader_known_and_other():
    assert Shader.from_json("VRM_USE_GLTFSHADER") == Shader.GLTF
    other = Shader.from_json({"Other": "Standard"})
    assert other.other is True
    assert other.name == "Standard"
    assert other.to_json() == {"Other": "Standard"}
    assert Shader.from_json(Shader.UNLIT_CUTOUT.to_json()) == Shader.UNLIT_CUTOUT


@pytest.mark.parametrize("value", ["Standard", {"Other": 3}, {"Name": "x"}, 5])
def test_shader_invalid_raises(value):
    with pytest.raises(ValueError):
        Shader.from_json(value)


def test_material_property_with_other_shader_round_trips():
    prop = MaterialProperty.from_json({"shader": {"Other": "Custom/Toon"}})
    assert prop.shader == Shader("Custom/Toon", other=True)
    assert MaterialProperty.from_json(prop.to_json()) == prop


def test_json_record_is_base_of_records():
    assert issubclass(Vrm, JsonRecord)
    assert Vrm.from_json({}).to_json()["materialProperties"] is None