"""
services/grading.py

Grade arithmetic shared by the gradebook, summary and analytics endpoints.

- normalize(): raw score -> fraction of max points (None = not graded yet)
- aggregate(): weighted percentage over the items that are actually graded
- classify(): percentage -> letter grade on an explicit GradeScale
- round_percentage(): the one rounding rule used for every displayed percentage

No I/O and no shared state. Non-finite values are only reported on the
`gradebook.diagnostics` logger.
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Iterable, NamedTuple, Optional, Tuple

from services.errors import InvalidScore, InvalidTaskDefinition

diagnostics_logger = logging.getLogger("gradebook.diagnostics")


# ==========================================================
# [1] Score normalizer
# ==========================================================
def normalize(score: Optional[float], max_points: float, task_id: Any = None) -> Optional[float]:
    """
    score / max_points, or None when the score has not been entered.
    Values above 1.0 (extra credit) are returned as-is.
    Raises InvalidTaskDefinition when max_points <= 0 or not finite, and
    InvalidScore for an inf/nan score.
    """
    if max_points is None or not math.isfinite(max_points) or max_points <= 0:
        raise InvalidTaskDefinition(task_id, max_points)
    if score is None:
        return None
    if not math.isfinite(score):
        raise InvalidScore(None, task_id, score)
    return score / max_points


# ==========================================================
# [2] Weighted aggregator
# ==========================================================
class WeightedItem(NamedTuple):
    fraction: Optional[float]
    weight: float


def _default_fraction(item):
    if isinstance(item, tuple):
        return item[0]
    if isinstance(item, dict):
        return item["fraction"]
    return item.fraction


def _default_weight(item):
    if isinstance(item, tuple):
        return item[1]
    if isinstance(item, dict):
        return item["weight"]
    return item.weight


def aggregate(
    items: Iterable[Any],
    fraction: Callable[[Any], Optional[float]] = _default_fraction,
    weight: Callable[[Any], float] = _default_weight,
) -> Optional[float]:
    """
    Weighted percentage of the graded items:

        sum(fraction * weight) / sum(weight) * 100

    Items whose fraction is None are skipped in both sums, so the denominator is
    the weight actually present. Returns None when that weight is zero
    (nothing graded yet, or every graded item has weight 0).

    Used unchanged at every level: tasks -> category, categories -> period,
    periods -> final grade. `fraction`/`weight` adapt it to the item shape.
    """
    numerator = 0.0
    denominator = 0.0
    for item in items:
        value = fraction(item)
        if value is None:
            continue
        w = weight(item) or 0.0
        numerator += value * w
        denominator += w

    if denominator == 0:
        return None
    return numerator * 100 / denominator


def percentage_to_fraction(percentage: Optional[float]) -> Optional[float]:
    """Feed an already computed percentage back into aggregate()."""
    return None if percentage is None else percentage / 100


# ==========================================================
# [3] Letter grade classifier
# ==========================================================
class GradeBand(NamedTuple):
    min_percentage: float
    label: str


@dataclass(frozen=True)
class GradeScale:
    """
    Ordered breakpoints, highest first. A percentage gets the label of the first
    band whose lower bound (inclusive) it reaches, otherwise `fallback`.
    """
    name: str
    bands: Tuple[GradeBand, ...]
    fallback: str = "F"

    def __post_init__(self) -> None:
        if not self.bands:
            raise ValueError(f"grade scale {self.name!r} has no bands")
        bounds = [b.min_percentage for b in self.bands]
        if any(hi <= lo for hi, lo in zip(bounds, bounds[1:])):
            raise ValueError(f"grade scale {self.name!r} bands must strictly descend: {bounds}")

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(b.label for b in self.bands) + (self.fallback,)


# gradebook / summary views
SIMPLE_SCALE = GradeScale(
    name="simple",
    bands=(
        GradeBand(90, "A"),
        GradeBand(80, "B"),
        GradeBand(70, "C"),
        GradeBand(60, "D"),
    ),
)

# analytics view
DETAILED_SCALE = GradeScale(
    name="detailed",
    bands=(
        GradeBand(97, "A+"),
        GradeBand(93, "A"),
        GradeBand(90, "A-"),
        GradeBand(87, "B+"),
        GradeBand(83, "B"),
        GradeBand(80, "B-"),
        GradeBand(77, "C+"),
        GradeBand(73, "C"),
        GradeBand(70, "C-"),
        GradeBand(67, "D+"),
        GradeBand(63, "D"),
        GradeBand(60, "D-"),
    ),
)

GRADE_SCALES: Dict[str, GradeScale] = {
    SIMPLE_SCALE.name: SIMPLE_SCALE,
    DETAILED_SCALE.name: DETAILED_SCALE,
}


def get_scale(name: str) -> GradeScale:
    try:
        return GRADE_SCALES[name]
    except KeyError:
        raise ValueError(f"unknown grade scale {name!r}; expected one of {sorted(GRADE_SCALES)}") from None


def classify(percentage: float, scale: GradeScale = SIMPLE_SCALE) -> str:
    """Above 100 lands in the top band; below the lowest band gets scale.fallback."""
    for band in scale.bands:
        if percentage >= band.min_percentage:
            return band.label
    return scale.fallback


def classify_optional(percentage: Optional[float], scale: GradeScale = SIMPLE_SCALE) -> Optional[str]:
    return None if percentage is None else classify(percentage, scale)


# ==========================================================
# [4] Rounding policy
# ==========================================================
def round_percentage(value: Optional[float], digits: Optional[int] = None) -> Optional[float]:
    """
    Half-up rounding (not banker's) to GRADE_DECIMALS places. None passes through.
    inf/nan has no displayable percentage and also comes back as None (logged).
    """
    if value is None:
        return None
    if not math.isfinite(value):
        diagnostics_logger.warning("dropping non-finite percentage %r", value)
        return None
    if digits is None:
        from config.settings import settings
        digits = settings.GRADE_DECIMALS
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


# text for an ungraded cell (CSV export); never "0"
UNGRADED_DISPLAY = "—"

