"""
Point and area models for the body-map catalog.

``Point`` is an immutable catalog entry. ``region`` and ``area_name`` are
denormalized from the owning ``Area`` when the catalog is built, so a lookup
by point id returns everything a caller needs without a second lookup.

Coordinates live in a fixed normalized plane (0–100 per axis). Distances are
measured in those units and are not scaled to anatomical dimensions.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, field_validator

from site_rotation.taxonomy.site_taxonomy import Region, Side


class Position(BaseModel):
    """2D coordinate in the normalized body-map plane."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    def distance_to(self, other: "Position") -> float:
        """Euclidean distance to ``other`` in plane units."""
        return math.hypot(self.x - other.x, self.y - other.y)


class Point(BaseModel):
    """A designated injection site.

    Attributes:
        id: Stable unique identifier, e.g. ``"abd_r1"``.
        name: Display name within its area, e.g. ``"Right 1"``.
        side: ``Side.LEFT`` or ``Side.RIGHT``.
        region: Owning region key.
        area_name: Display name of the owning area.
        position: Coordinate in the normalized plane.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    side: Side
    region: Region
    area_name: str
    position: Position

    @field_validator("side")
    @classmethod
    def validate_side(cls, v: Side) -> Side:
        if v == Side.NA:
            raise ValueError("Catalog points must be on the left or right side.")
        return v

    @property
    def label(self) -> str:
        return f"{self.area_name} · {self.name} ({self.side.value})"


class Area(BaseModel):
    """Groups the points of one region in declaration order."""

    model_config = ConfigDict(frozen=True)

    region: Region
    name: str
    points: tuple[Point, ...]
