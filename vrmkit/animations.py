"""Animation target identifiers for VRM humanoid bones."""

import json
import uuid
from dataclasses import dataclass, field
from functools import cache

from .schema import BoneName

_TARGET_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_OID, "vrmkit.animation_target")

_FINGERS = ("THUMB", "INDEX", "MIDDLE", "RING", "LITTLE")
_FINGER_SEGMENTS = ("PROXIMAL", "INTERMEDIATE", "DISTAL")
_ARM_BONES = ("SHOULDER", "UPPER_ARM", "LOWER_ARM", "HAND")
_LEG_BONES = ("UPPER_LEG", "LOWER_LEG", "FOOT", "TOES")


@dataclass
class TargetChain:
    """A path of node names from which animation target ids are derived."""

    names: list[str] = field(default_factory=list)

    def copy(self) -> "TargetChain":
        return TargetChain(list(self.names))

    def push_target(self, name) -> uuid.UUID:
        """Append ``name`` and return the id of the extended path."""
        self.names.append(str(name))
        return self.target()

    def target(self) -> uuid.UUID:
        """The id for the current path; equal paths give equal ids."""
        return uuid.uuid5(_TARGET_NAMESPACE, json.dumps(self.names))


def _push_bone(targets: dict, chain: TargetChain, bone: BoneName) -> None:
    targets[bone] = chain.push_target(str(bone))


def _arm(targets: dict, chain: TargetChain, side: str) -> None:
    arm = chain.copy()
    for part in _ARM_BONES:
        _push_bone(targets, arm, BoneName[f"{side}_{part}"])
    for finger in _FINGERS:
        digit = arm.copy()
        for segment in _FINGER_SEGMENTS:
            _push_bone(targets, digit, BoneName[f"{side}_{finger}_{segment}"])


def _leg(targets: dict, chain: TargetChain, side: str) -> None:
    leg = chain.copy()
    for part in _LEG_BONES:
        _push_bone(targets, leg, BoneName[f"{side}_{part}"])


@cache
def _build_targets() -> dict:
    targets: dict = {}
    chain = TargetChain()

    _push_bone(targets, chain, BoneName.HIPS)
    _leg(targets, chain, "LEFT")
    _leg(targets, chain, "RIGHT")

    for bone in (BoneName.SPINE, BoneName.CHEST, BoneName.UPPER_CHEST):
        _push_bone(targets, chain, bone)

    _arm(targets, chain, "LEFT")
    _arm(targets, chain, "RIGHT")

    _push_bone(targets, chain, BoneName.NECK)
    _push_bone(targets, chain, BoneName.HEAD)

    for bone in (BoneName.JAW, BoneName.LEFT_EYE, BoneName.RIGHT_EYE):
        _push_bone(targets, chain.copy(), bone)

    return targets


def vrm_animation_targets() -> dict:
    """Map every humanoid ``BoneName`` to its animation target id."""
    return dict(_build_targets())