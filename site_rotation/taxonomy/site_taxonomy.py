"""
Site taxonomy for injection rotation.

Three small vocabularies describe every site and every recorded use:
  - ``Side``        — which side of the body (``na`` only for orphaned history).
  - ``Region``      — the anatomical grouping a point belongs to.
  - ``PointStatus`` — availability classification derived from history.

History entries keep region and side as denormalized strings, so a region
that is later removed from the catalog (or the ``"unknown"`` sentinel) must
still round-trip. ``UNKNOWN_REGION`` and ``Side.NA`` are those sentinels.

This module has NO imports from any other ``site_rotation`` package.
"""

from enum import StrEnum


class Side(StrEnum):
    """Body side of a point or of a recorded use."""

    LEFT = "left"
    RIGHT = "right"

    NA = "na"
    """Side could not be resolved (point missing from the current catalog)."""


class Region(StrEnum):
    """Anatomical region grouping several points."""

    ABDOMEN = "abdomen"
    THIGH = "thigh"
    ARM = "arm"


class PointStatus(StrEnum):
    """Availability of a point given the cooldown preference.

    Cooldown is a hard threshold: there is no partial-availability state.
    """

    AVAILABLE = "available"
    """Never used, or last use is at least ``cooldown_days`` old."""

    RECENT = "recent"
    """Last use falls inside the cooldown window."""


UNKNOWN_REGION = "unknown"
"""Region sentinel for history entries whose point cannot be resolved."""
