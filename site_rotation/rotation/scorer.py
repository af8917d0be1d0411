"""
Candidate scoring: converts a candidate point, its status, and the last-used
point into an additive score with a per-component breakdown.

Score formula (additive, approximate range -15 to 115)
-------------------------------------------------------
    total = (
        availability_bonus       # +50 when the candidate is available
        + side_alternation       # +20 side differs / -10 same side
        + region_alternation     # +15 region differs / -5 same region
        + spatial_diversity      # min(20, distance to last point)
        + frequency_dampening    # 10 - min(10, 2 * uses in last 30 days)
    )

Component explanations
----------------------
availability_bonus (0 or 50):
    Status is evaluated per candidate, so a fallback pool (no point available)
    scores every candidate without the bonus.

side_alternation (-10, 0, +20):
    Only when ``alternate_side`` is on and a last-used point exists.

region_alternation (-5, 0, +15):
    Only when ``alternate_region`` is on and a last-used point exists.

spatial_diversity (0–20):
    Euclidean distance in normalized plane units, capped at 20.
    Skipped (0) when there is no last-used point.

frequency_dampening (0–10):
    Decreases by 2 per use inside the trailing 30-day window and floors at 0
    from the fifth use onwards. Never negative.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from site_rotation.models.point import Point
from site_rotation.taxonomy.site_taxonomy import PointStatus

AVAILABLE_BONUS = 50.0
SIDE_SWITCH_BONUS = 20.0
SIDE_REPEAT_PENALTY = -10.0
REGION_SWITCH_BONUS = 15.0
REGION_REPEAT_PENALTY = -5.0
MAX_DISTANCE_BONUS = 20.0
FREQUENCY_CEILING = 10.0
FREQUENCY_STEP = 2.0
FREQUENCY_WINDOW_DAYS = 30


@dataclass
class ScoreComponents:
    """All components of a candidate score.

    Attributes:
        availability_bonus:  0 or 50.
        side_alternation:    -10, 0, or +20.
        region_alternation:  -5, 0, or +15.
        spatial_diversity:   0–20, capped distance to the last-used point.
        frequency_dampening: 0–10, from uses in the trailing 30-day window.
        distance:            Raw distance to the last-used point (None if none).
        recent_uses:         Raw count of uses in the trailing 30-day window.
    """

    availability_bonus:  float
    side_alternation:    float
    region_alternation:  float
    spatial_diversity:   float
    frequency_dampening: float
    distance:            Optional[float]
    recent_uses:         int

    @property
    def total(self) -> float:
        """Additive total score."""
        return (
            self.availability_bonus
            + self.side_alternation
            + self.region_alternation
            + self.spatial_diversity
            + self.frequency_dampening
        )


def compute_score(
    candidate:        Point,
    status:           PointStatus,
    last:             Optional[Point],
    alternate_side:   bool,
    alternate_region: bool,
    recent_uses:      int,
) -> ScoreComponents:
    """Compute all score components for one candidate point.

    Args:
        candidate:        The point being scored.
        status:           The candidate's own status (evaluated per candidate).
        last:             Point of the most recent history entry, or ``None``.
        alternate_side:   Preference flag.
        alternate_region: Preference flag.
        recent_uses:      Uses of this exact point in the trailing 30 days.

    Returns:
        ScoreComponents with all fields populated.
    """
    availability_bonus = AVAILABLE_BONUS if status == PointStatus.AVAILABLE else 0.0

    side_alternation = 0.0
    if alternate_side and last is not None:
        side_alternation = (
            SIDE_SWITCH_BONUS if candidate.side != last.side else SIDE_REPEAT_PENALTY
        )

    region_alternation = 0.0
    if alternate_region and last is not None:
        region_alternation = (
            REGION_SWITCH_BONUS if candidate.region != last.region else REGION_REPEAT_PENALTY
        )

    distance: Optional[float] = None
    spatial_diversity = 0.0
    if last is not None:
        distance = candidate.position.distance_to(last.position)
        spatial_diversity = min(MAX_DISTANCE_BONUS, distance)

    frequency_dampening = FREQUENCY_CEILING - min(FREQUENCY_CEILING, recent_uses * FREQUENCY_STEP)

    return ScoreComponents(
        availability_bonus=availability_bonus,
        side_alternation=side_alternation,
        region_alternation=region_alternation,
        spatial_diversity=spatial_diversity,
        frequency_dampening=frequency_dampening,
        distance=distance,
        recent_uses=recent_uses,
    )


def build_reasoning(
    components: ScoreComponents,
    candidate:  Point,
    last:       Optional[Point],
) -> str:
    """Assemble a human-readable explanation of a candidate's score.

    Returns a semicolon-separated list of tokens such as:
        "Past cooldown; Switches side from right to left; Far from last site
        (14.1 units); Not used in the last 30 days"
    """
    reasons: list[str] = []

    if components.availability_bonus > 0:
        reasons.append("Past cooldown")
    else:
        reasons.append("Still cooling down (no site is past cooldown)")

    if last is None:
        reasons.append("No previous use recorded")
    else:
        if components.side_alternation > 0:
            reasons.append(f"Switches side from {last.side.value} to {candidate.side.value}")
        elif components.side_alternation < 0:
            reasons.append(f"Same side as last use ({last.side.value})")

        if components.region_alternation > 0:
            reasons.append(f"Switches region from {last.region.value} to {candidate.region.value}")
        elif components.region_alternation < 0:
            reasons.append(f"Same region as last use ({last.region.value})")

        if components.distance is not None:
            if components.distance >= MAX_DISTANCE_BONUS:
                reasons.append(f"Far from last site ({components.distance:.1f} units)")
            elif components.distance == 0:
                reasons.append("Same site as last use")
            else:
                reasons.append(f"Near last site ({components.distance:.1f} units)")

    if components.recent_uses == 0:
        reasons.append(f"Not used in the last {FREQUENCY_WINDOW_DAYS} days")
    else:
        reasons.append(
            f"Used {components.recent_uses}x in the last {FREQUENCY_WINDOW_DAYS} days"
        )

    return "; ".join(reasons)
