import pytest

from vrmkit.first_person import (
    FIRST_PERSON_LAYER,
    THIRD_PERSON_LAYER,
    FirstPersonFlag,
    clean_indices,
    head_weighted_vertices,
    is_child,
    render_layers,
)

PARENTS = {"neck": "spine", "head": "neck", "eye": "head", "hair": "head", "arm": "spine"}


def test_layer_numbers():
    assert render_layers(FirstPersonFlag.FIRST_PERSON_ONLY) == {7}
    assert render_layers(FirstPersonFlag.THIRD_PERSON_ONLY) == {8}
    assert FIRST_PERSON_LAYER == 7
    assert THIRD_PERSON_LAYER == 8


def test_render_layers_for_each_flag():
    assert render_layers(FirstPersonFlag.AUTO) == {0, FIRST_PERSON_LAYER, THIRD_PERSON_LAYER}
    assert render_layers(FirstPersonFlag.BOTH) == render_layers(FirstPersonFlag.AUTO)
    assert render_layers(FirstPersonFlag.FIRST_PERSON_ONLY) == {FIRST_PERSON_LAYER}
    assert render_layers(FirstPersonFlag.THIRD_PERSON_ONLY) == {THIRD_PERSON_LAYER}


def test_render_layers_accepts_flag_value():
    assert render_layers("firstPersonOnly") == {FIRST_PERSON_LAYER}


def test_render_layers_rejects_unknown():
    with pytest.raises(ValueError):
        render_layers("sideways")


def test_clean_indices_removes_triangles_touching_vertex():
    indices = [0, 1, 2, 2, 3, 4, 4, 5, 6]
    assert clean_indices(indices, [3]) == [0, 1, 2, 4, 5, 6]


def test_clean_indices_keeps_everything_without_matches():
    indices = [0, 1, 2, 3, 4, 5]
    assert clean_indices(indices, [9]) == indices


def test_clean_indices_result_avoids_removed_vertices():
    indices = [0, 1, 2, 1, 2, 3, 3, 4, 5, 5, 6, 7]
    result = clean_indices(indices, [1, 5])
    assert not {1, 5} & set(result)
    assert len(result) % 3 == 0


def test_is_child_self_and_descendants():
    assert is_child("head", "head", PARENTS)
    assert is_child("eye", "head", PARENTS)
    assert is_child("eye", "spine", PARENTS)


def test_is_child_false_for_unrelated():
    assert not is_child("arm", "head", PARENTS)
    assert not is_child("spine", "head", PARENTS)


def test_is_child_survives_cycles():
    assert not is_child("a", "z", {"a": "b", "b": "a"})


def test_head_weighted_vertices():
    skin_joints = ["spine", "head", "eye", "arm"]
    joints = [
        (0, 3, 0, 0),
        (1, 0, 0, 0),
        (2, 0, 0, 0),
        (0, 1, 0, 0),
    ]
    weights = [
        (1.0, 0.0, 0.0, 0.0),
        (1.0, 0.0, 0.0, 0.0),
        (0.5, 0.5, 0.0, 0.0),
        (1.0, 0.0, 0.0, 0.0),
    ]
    assert head_weighted_vertices(joints, weights, skin_joints, "head", PARENTS) == [2, 1]


def test_head_weighted_vertices_with_clean_indices():
    skin_joints = ["spine", "hair"]
    joints = [(0, 0), (1, 0), (0, 0), (0, 0)]
    weights = [(1.0, 0.0), (1.0, 0.0), (1.0, 0.0), (1.0, 0.0)]
    removed = head_weighted_vertices(joints, weights, skin_joints, "head", PARENTS)
    assert removed == [1]
    assert clean_indices([0, 2, 3, 0, 1, 2], removed) == [0, 2, 3]


def test_head_weighted_vertices_length_mismatch():
    with pytest.raises(ValueError):
        head_weighted_vertices([(0,)], [], ["head"], "head", PARENTS)