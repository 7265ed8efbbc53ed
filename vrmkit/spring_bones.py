"""Spring-bone (secondary animation) state and its per-frame simulation."""

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field

import numpy as np

__all__ = [
    "SpringBone",
    "SpringBoneLogicState",
    "Transform",
    "remap_spring_bones",
    "step_spring_bone",
]

_EPSILON = float(np.finfo(np.float32).eps)
_IDENTITY_QUAT = (0.0, 0.0, 0.0, 1.0)


def _array(values, size: int) -> np.ndarray:
    arr = np.array(values, dtype=float)
    if arr.shape != (size,):
        raise ValueError(f"expected {size} components, got shape {arr.shape}")
    return arr


def _normalize(vector: np.ndarray) -> np.ndarray:
    with np.errstate(invalid="ignore", divide="ignore"):
        return vector / np.linalg.norm(vector)


def _quat_mul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return np.array(
        [
            aw * bx + ax * bw + ay * bz - az * by,
            aw * by - ax * bz + ay * bw + az * bx,
            aw * bz + ax * by - ay * bx + az * bw,
            aw * bw - ax * bx - ay * by - az * bz,
        ]
    )


def _quat_rotate(quat: np.ndarray, vector: np.ndarray) -> np.ndarray:
    axis = quat[:3]
    w = quat[3]
    t = 2.0 * np.cross(axis, vector)
    return vector + w * t + np.cross(axis, t)


def _quat_to_matrix(quat: np.ndarray) -> np.ndarray:
    x, y, z, w = quat
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
        ]
    )


def _any_orthonormal(vector: np.ndarray) -> np.ndarray:
    x, y, z = vector
    sign = 1.0 if z >= 0.0 else -1.0
    a = -1.0 / (sign + z)
    b = x * y * a
    return np.array([b, sign + y * y * a, -y])


def _rotation_arc(start: np.ndarray, end: np.ndarray) -> np.ndarray:
    """The shortest rotation taking unit vector ``start`` onto unit vector ``end``."""
    one_minus_eps = 1.0 - 2.0 * _EPSILON
    dot = float(np.dot(start, end))
    if dot > one_minus_eps:
        return np.array(_IDENTITY_QUAT)
    if dot < -one_minus_eps:
        axis = _any_orthonormal(start)
        return np.array([axis[0], axis[1], axis[2], 0.0])
    cross = np.cross(start, end)
    return _normalize(np.array([cross[0], cross[1], cross[2], 1.0 + dot]))


@dataclass(eq=False)
class Transform:
    """Translation, rotation (quaternion x, y, z, w) and scale."""

    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.array(_IDENTITY_QUAT))
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))

    def __post_init__(self) -> None:
        self.translation = _array(self.translation, 3)
        self.rotation = _array(self.rotation, 4)
        self.scale = _array(self.scale, 3)

    def rotate_vector(self, vector) -> np.ndarray:
        """``vector`` turned by this transform's rotation."""
        return _quat_rotate(self.rotation, _array(vector, 3))

    def transform_point(self, point) -> np.ndarray:
        """``point`` scaled, rotated and moved by this transform."""
        return self.translation + _quat_rotate(self.rotation, self.scale * _array(point, 3))

    def compute_matrix(self) -> np.ndarray:
        """The 4x4 affine matrix of this transform."""
        matrix = np.eye(4)
        matrix[:3, :3] = _quat_to_matrix(self.rotation) * self.scale
        matrix[:3, 3] = self.translation
        return matrix

    def mul_transform(self, other) -> "Transform":
        """``other`` expressed in the space that this transform places."""
        return Transform(
            translation=self.transform_point(other.translation),
            rotation=_quat_mul(self.rotation, other.rotation),
            scale=self.scale * other.scale,
        )


@dataclass(eq=False)
class SpringBone:
    """One spring-bone group: the bones it moves and its physical settings."""

    bones: list = field(default_factory=list)
    bone_names: list[str] = field(default_factory=list)
    center: float = 0.0
    drag_force: float = 0.0
    gravity_dir: np.ndarray = field(default_factory=lambda: np.zeros(3))
    gravity_power: float = 0.0
    hit_radius: float = 0.0
    stiffness: float = 0.0

    def __post_init__(self) -> None:
        self.gravity_dir = _array(self.gravity_dir, 3)


@dataclass(eq=False)
class SpringBoneLogicState:
    """Per-bone simulation state: tail positions and the rest pose."""

    prev_tail: np.ndarray
    current_tail: np.ndarray
    bone_axis: np.ndarray
    bone_length: float
    initial_local_matrix: np.ndarray
    initial_local_rotation: np.ndarray

    def __post_init__(self) -> None:
        self.prev_tail = _array(self.prev_tail, 3)
        self.current_tail = _array(self.current_tail, 3)
        self.bone_axis = _array(self.bone_axis, 3)
        self.bone_length = float(self.bone_length)
        matrix = np.array(self.initial_local_matrix, dtype=float)
        if matrix.shape != (4, 4):
            raise ValueError("initial_local_matrix must be 4x4")
        self.initial_local_matrix = matrix
        self.initial_local_rotation = _array(self.initial_local_rotation, 4)


def remap_spring_bones(spring_bones: Iterable[SpringBone], names, existing: Collection) -> bool:
    """Re-resolve bones by name when any of them is not in ``existing``.

    ``names`` maps entities to their names (or yields entity, name pairs).
    Returns whether the bones were remapped.
    """
    spring_bones = list(spring_bones)
    if all(bone in existing for sb in spring_bones for bone in sb.bones):
        return False

    pairs = names.items() if isinstance(names, Mapping) else names
    name_to_entity = {name: entity for entity, name in pairs}
    for spring_bone in spring_bones:
        spring_bone.bones = [
            name_to_entity[name] for name in spring_bone.bone_names if name in name_to_entity
        ]
    return True


def step_spring_bone(
    spring_bone: SpringBone,
    state: SpringBoneLogicState,
    bone_global: Transform,
    parent_global: Transform,
    delta: float,
) -> np.ndarray:
    """Advance one bone by ``delta`` seconds and return its new local rotation.

    ``state`` is updated in place. The bone's global transform becomes
    ``parent_global.mul_transform(local)`` once ``local.rotation`` is set
    to the returned quaternion.
    """
    inertia = (state.current_tail - state.prev_tail) * (1.0 - spring_bone.drag_force)
    stiffness = (
        delta * parent_global.rotate_vector(state.bone_axis) * spring_bone.stiffness
    )
    external = delta * spring_bone.gravity_dir * spring_bone.gravity_power

    next_tail = state.current_tail + inertia + stiffness + external
    origin = bone_global.translation
    next_tail = origin + _normalize(next_tail - origin) * state.bone_length

    state.prev_tail = state.current_tail
    state.current_tail = next_tail

    rest = parent_global.compute_matrix() @ state.initial_local_matrix
    local_tail = (np.linalg.inv(rest) @ np.append(next_tail, 1.0))[:3]
    to = _normalize(local_tail)

    return _quat_mul(state.initial_local_rotation, _rotation_arc(state.bone_axis, to))