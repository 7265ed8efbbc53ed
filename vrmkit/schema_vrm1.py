"""Typed records for the VRM 1.0 ``VRMC_vrm`` and ``VRMC_materials_mtoon`` extensions."""

import json
from dataclasses import dataclass, field
from typing import Any

from .schema import JsonRecord, UInt32


def _json(key: str, default: Any = None) -> Any:
    return field(default=default, metadata={"json": key})


@dataclass
class VrmcMeta(JsonRecord):
    name: str = ""
    version: str | None = None
    authors: list[str] = field(default_factory=list)
    copy_right_information: str | None = _json("copyrightInformation")
    contact_information: str | None = _json("contactInformation")
    reference: list[str] | None = None
    third_party_licenses: str | None = _json("thirdPartyLicenses")
    thumbnail_image: UInt32 | None = _json("thumbnailImage")
    license_url: str = _json("licenseUrl", "")
    avatar_permission: str = _json("avatarPermission", "")
    allow_excessively_violent_usage: bool | None = _json("allowExcessivelyViolentUsage")
    allow_excessively_sexual_usage: bool | None = _json("allowExcessivelySexualUsage")
    commercial_usage: str | None = _json("commercialUsage")
    allow_political_or_religious_usage: bool | None = _json(
        "allowPoliticalOrReligiousUsage"
    )
    allow_antisocial_or_hate_usage: bool | None = _json("allowAntisocialOrHateUsage")
    credit_notation: str | None = _json("creditNotation")
    allow_redistribution: bool | None = _json("allowRedistribution")
    modification: str | None = None
    other_license_url: str | None = _json("otherLicenseUrl")


@dataclass
class VrmcHumanoid(JsonRecord):
    """Humanoid section; its contents are not modelled."""


@dataclass
class VrmcFirstPerson(JsonRecord):
    """First-person section; its contents are not modelled."""


@dataclass
class VrmcLookAt(JsonRecord):
    """Look-at section; its contents are not modelled."""


@dataclass
class VrmcExpressions(JsonRecord):
    """Expressions section; its contents are not modelled."""


@dataclass
class VrmcVrm(JsonRecord):
    """The root object of the ``VRMC_vrm`` extension."""

    spec_version: str = _json("specVersion", "")
    meta: VrmcMeta = field(default_factory=VrmcMeta)
    humanoid: VrmcHumanoid = field(default_factory=VrmcHumanoid)
    first_person: VrmcFirstPerson | None = _json("firstPerson")
    look_at: VrmcLookAt | None = _json("lookAt")
    expressions: VrmcExpressions | None = None

    @classmethod
    def from_json(cls, data):
        """Build the extension from a mapping, JSON text or bytes."""
        if isinstance(data, (str, bytes, bytearray)):
            data = json.loads(data)
        return super().from_json(data)

    def to_json(self):
        """Return the extension as a JSON-ready dictionary."""
        return super().to_json()


@dataclass
class VrmcMaterialsMtoonSchema(JsonRecord):
    """The ``VRMC_materials_mtoon`` extension object; it defines no properties."""