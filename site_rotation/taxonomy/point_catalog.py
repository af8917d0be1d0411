"""
Static body-map catalog: areas and their injection points.

Declaration order is significant. ``all_points()`` returns points in the
order they are declared here, and the recommender uses that order as its
deterministic tie-break.

The catalog is read-only. History may reference point ids that a later
catalog revision removed; ``lookup()`` returns ``None`` for those and callers
treat them as orphaned rather than as an error.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Optional

from site_rotation.models.point import Area, Point, Position
from site_rotation.taxonomy.site_taxonomy import Region, Side

# (point_id, name, side, x, y) per region, in declaration order.
_AREA_DEFINITIONS: tuple[tuple[Region, str, tuple[tuple[str, str, Side, float, float], ...]], ...] = (
    (
        Region.ABDOMEN,
        "Abdomen",
        (
            ("abd_r1", "Right 1", Side.RIGHT, 45, 35),
            ("abd_r2", "Right 2", Side.RIGHT, 45, 45),
            ("abd_r3", "Right 3", Side.RIGHT, 45, 55),
            ("abd_l1", "Left 1",  Side.LEFT,  55, 35),
            ("abd_l2", "Left 2",  Side.LEFT,  55, 45),
            ("abd_l3", "Left 3",  Side.LEFT,  55, 55),
        ),
    ),
    (
        Region.THIGH,
        "Thigh",
        (
            ("th_r1", "Right 1", Side.RIGHT, 45, 75),
            ("th_r2", "Right 2", Side.RIGHT, 45, 85),
            ("th_l1", "Left 1",  Side.LEFT,  55, 75),
            ("th_l2", "Left 2",  Side.LEFT,  55, 85),
        ),
    ),
    (
        Region.ARM,
        "Arm",
        (
            ("arm_r1", "Right 1", Side.RIGHT, 35, 40),
            ("arm_l1", "Left 1",  Side.LEFT,  65, 40),
        ),
    ),
)


def _build_areas() -> tuple[Area, ...]:
    areas: list[Area] = []
    for region, area_name, defs in _AREA_DEFINITIONS:
        points = tuple(
            Point(
                id=point_id,
                name=name,
                side=side,
                region=region,
                area_name=area_name,
                position=Position(x=x, y=y),
            )
            for point_id, name, side, x, y in defs
        )
        areas.append(Area(region=region, name=area_name, points=points))
    return tuple(areas)


AREAS: tuple[Area, ...] = _build_areas()

_POINTS: tuple[Point, ...] = tuple(pt for area in AREAS for pt in area.points)

_POINT_BY_ID: dict[str, Point] = {pt.id: pt for pt in _POINTS}


def all_areas() -> tuple[Area, ...]:
    """Return every area in declaration order."""
    return AREAS


def all_points() -> tuple[Point, ...]:
    """Return every point in declaration order (area by area)."""
    return _POINTS


def lookup(point_id: Optional[str]) -> Optional[Point]:
    """Return the catalog point for ``point_id``, or ``None`` if unknown."""
    if point_id is None:
        return None
    return _POINT_BY_ID.get(point_id)


def region_names() -> dict[str, str]:
    """Map region key → area display name, in declaration order."""
    return {area.region.value: area.name for area in AREAS}


def points_in_regions(enabled_regions: Mapping[str, bool]) -> list[Point]:
    """Return points whose region is enabled, preserving declaration order.

    Regions absent from ``enabled_regions`` are treated as disabled.
    """
    return [
        pt
        for area in AREAS
        if enabled_regions.get(area.region.value, False)
        for pt in area.points
    ]
