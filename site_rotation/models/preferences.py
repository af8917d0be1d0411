"""
User preferences consumed by status evaluation and recommendation.

Persisted shape (camelCase keys)::

    {"cooldownDays": 7, "alternateSide": true, "alternateRegion": true,
     "dailySlots": 2, "enabledRegions": {"abdomen": true, "thigh": true, "arm": true},
     "language": "pt", "pinEnabled": false, "pinCode": ""}

Merge over defaults
-------------------
``Preferences.from_persisted()`` merges a stored document over the defaults.
Top-level fields missing from the document fall back to their defaults, and
``enabledRegions`` is merged key by key: regions absent from the stored map
stay enabled, stored keys for regions the catalog no longer has are kept.

``daily_slots`` and ``language`` are informational; the core never reads them.
``pin_enabled`` / ``pin_code`` are opaque: stored and returned as-is, never
validated or enforced here.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from site_rotation.taxonomy.site_taxonomy import Region
from site_rotation.utils.time_utils import DAY_MS

logger = logging.getLogger(__name__)

VALID_LANGUAGES = frozenset({"pt", "en"})

DEFAULT_COOLDOWN_DAYS = 7


def _default_enabled_regions() -> dict[str, bool]:
    return {region.value: True for region in Region}


class Preferences(BaseModel):
    """Rotation preferences.

    Attributes:
        cooldown_days: Days before a used point is available again (>= 1).
        alternate_side: Prefer switching body side relative to the last use.
        alternate_region: Prefer switching region relative to the last use.
        daily_slots: Planned injections per day (informational, >= 1).
        enabled_regions: Region key → whether its points may be suggested.
        language: Display language, ``"pt"`` or ``"en"``.
        pin_enabled: Opaque UI gate flag.
        pin_code: Opaque UI gate value.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    cooldown_days: int = Field(default=DEFAULT_COOLDOWN_DAYS, alias="cooldownDays")
    alternate_side: bool = Field(default=True, alias="alternateSide")
    alternate_region: bool = Field(default=True, alias="alternateRegion")
    daily_slots: int = Field(default=2, alias="dailySlots")
    enabled_regions: dict[str, bool] = Field(
        default_factory=_default_enabled_regions, alias="enabledRegions"
    )
    language: str = "pt"
    pin_enabled: bool = Field(default=False, alias="pinEnabled")
    pin_code: str = Field(default="", alias="pinCode")

    @field_validator("cooldown_days", "daily_slots", mode="before")
    @classmethod
    def clamp_positive(cls, v: Any) -> Any:
        if isinstance(v, bool):
            return v
        if isinstance(v, (int, float)):
            return max(1, int(v))
        if isinstance(v, str) and v.strip().lstrip("-").isdigit():
            return max(1, int(v.strip()))
        return v

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        if v not in VALID_LANGUAGES:
            raise ValueError(
                f"Unknown language '{v}'. Must be one of {sorted(VALID_LANGUAGES)}."
            )
        return v

    @property
    def cooldown_ms(self) -> int:
        return self.cooldown_days * DAY_MS

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True)

    def with_changes(self, **changes: Any) -> "Preferences":
        """Return a validated copy with ``changes`` (snake_case names) applied.

        ``enabled_regions`` in ``changes`` is merged over the current map.

        Raises:
            pydantic.ValidationError: If a changed value is invalid.
        """
        data = self.model_dump()
        if "enabled_regions" in changes:
            data["enabled_regions"] = {
                **self.enabled_regions,
                **changes.pop("enabled_regions"),
            }
        data.update(changes)
        return Preferences.model_validate(data)

    @classmethod
    def from_persisted(cls, raw: Any) -> "Preferences":
        """Merge a persisted preferences document over the defaults.

        Never raises: a non-object document yields the defaults, and fields
        that fail validation are dropped (falling back to their defaults)
        with a warning.
        """
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            logger.warning(
                "Persisted preferences are not an object (%s); using defaults.",
                type(raw).__name__,
            )
            return cls()

        merged: dict[str, Any] = cls().to_record()
        for key, val in raw.items():
            if key == "enabledRegions" and isinstance(val, dict):
                merged[key] = {**merged[key], **val}
            else:
                merged[key] = val

        try:
            return cls.model_validate(merged)
        except ValidationError as exc:
            bad_fields = {err["loc"][0] for err in exc.errors() if err["loc"]}
            logger.warning(
                "Dropping invalid persisted preference field(s) %s; defaults applied.",
                sorted(str(f) for f in bad_fields),
            )
            defaults = cls().to_record()
            for field in bad_fields:
                if field in merged:
                    merged[field] = defaults.get(field)
            return cls.model_validate(merged)
