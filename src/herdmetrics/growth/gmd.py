"""
Average daily gain (GMD) from irregular weighing histories.

Weighings are taken whenever the herd passes through the crush, so intervals
are uneven and only some entries are tagged (birth, weaning, yearling, turn).
All windows use the same rate formula:

    GMD = (final_weight - initial_weight) / days, rounded to 3 decimals

where days is the calendar-day difference. A non-positive span yields 0
rather than dividing by zero. Fewer than two weighings is "no gain data",
not an error.
"""

import math
from dataclasses import dataclass, replace
from datetime import date, timedelta
from enum import Enum
from typing import TypedDict

from herdmetrics.data.models import Animal, WeighingType, WeightEntry

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

TRAILING_WINDOW_DAYS = 30
GMD_DECIMALS = 3

# Classification thresholds (kg/day), checked top-down
GMD_EXCELLENT = 1.5
GMD_GOOD = 1.0
GMD_FAIR = 0.7
GMD_BELOW = 0.4

# Age windows (months) for inferring untagged weaning/yearling weighings
DAYS_PER_MONTH = 30.44
WEANING_TARGET_MONTHS = 7
WEANING_WINDOW_MONTHS = (5, 9)
YEARLING_TARGET_MONTHS = 18
YEARLING_WINDOW_MONTHS = (12, 23)


class GainClass(Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    BELOW = "below"
    CRITICAL = "critical"


@dataclass
class GainMetrics:
    """Gain windows for one animal. Optional windows are None when not computable."""

    gmd_total: float = 0.0
    tracked_days: int = 0
    gmd_birth_to_weaning: float | None = None
    gmd_weaning_to_yearling: float | None = None
    gmd_last_30_days: float | None = None
    gmd_last_period: float | None = None
    days_last_period: int | None = None
    initial_weight: float | None = None
    final_weight: float | None = None
    last_weighing_date: date | None = None
    days_since_last_weighing: int | None = None

    @property
    def has_data(self) -> bool:
        return self.last_weighing_date is not None

    @property
    def trailing_rate(self) -> float | None:
        """Current-phase rate: last 30 days when available, else the last period."""
        if self.gmd_last_30_days is not None:
            return self.gmd_last_30_days
        return self.gmd_last_period


class GMDRanking(TypedDict):
    rank: int
    animal: Animal
    gmd: GainMetrics


# -----------------------------------------------------------------------------
# Rate helpers
# -----------------------------------------------------------------------------


def days_between(start: date, end: date) -> int:
    """Calendar days from start to end, rounded up for datetimes."""
    delta = end - start
    return math.ceil(delta.total_seconds() / 86400)


def gmd_between(initial_weight: float, final_weight: float, start: date, end: date) -> float:
    """
    Average daily gain between two weighings.

    Returns:
        kg/day rounded to 3 decimals, or 0 when the span is not positive
    """
    days = days_between(start, end)
    if days <= 0:
        return 0.0
    return round((final_weight - initial_weight) / days, GMD_DECIMALS)


def _between_entries(first: WeightEntry, last: WeightEntry) -> float:
    return gmd_between(first.weight_kg, last.weight_kg, first.date, last.date)


def _first_of_type(entries: list[WeightEntry], weighing_type: WeighingType) -> WeightEntry | None:
    return next((e for e in entries if e.type == weighing_type), None)


# -----------------------------------------------------------------------------
# Gain metrics
# -----------------------------------------------------------------------------


def calculate_gmd_from_weights(weights: list[WeightEntry], today: date | None = None) -> GainMetrics:
    """
    Compute every gain window from a weighing history.

    Args:
        weights: Weighings in any order
        today: Reference day for the trailing window (defaults to today)

    Returns:
        GainMetrics; all-empty with tracked_days = 0 for fewer than two entries
    """
    if len(weights) < 2:
        return GainMetrics()

    if today is None:
        today = date.today()

    entries = sorted(weights, key=lambda e: e.date)
    first, last = entries[0], entries[-1]

    tracked_days = days_between(first.date, last.date)
    metrics = GainMetrics(
        gmd_total=_between_entries(first, last),
        tracked_days=tracked_days,
        initial_weight=first.weight_kg,
        final_weight=last.weight_kg,
        last_weighing_date=last.date,
        days_since_last_weighing=max(0, days_between(last.date, today)),
    )

    birth = _first_of_type(entries, WeighingType.BIRTH)
    weaning = _first_of_type(entries, WeighingType.WEANING)
    yearling = _first_of_type(entries, WeighingType.YEARLING)

    if birth and weaning:
        metrics.gmd_birth_to_weaning = _between_entries(birth, weaning)
    if weaning and yearling:
        metrics.gmd_weaning_to_yearling = _between_entries(weaning, yearling)

    cutoff = today - timedelta(days=TRAILING_WINDOW_DAYS)
    recent = [e for e in entries if e.date >= cutoff]
    if len(recent) >= 2:
        metrics.gmd_last_30_days = _between_entries(recent[0], recent[-1])

    # Last period reflects the current rearing phase (penultimate -> last)
    penultimate = entries[-2]
    period_days = days_between(penultimate.date, last.date)
    metrics.days_last_period = period_days
    if period_days > 0:
        metrics.gmd_last_period = _between_entries(penultimate, last)

    return metrics


def calculate_gmd(animal: Animal, today: date | None = None) -> GainMetrics:
    """Gain metrics for an animal's weighing history."""
    return calculate_gmd_from_weights(animal.weights, today=today)


def estimate_weight_today(metrics: GainMetrics, today: date | None = None) -> float | None:
    """
    Project today's weight from the last weighing and the trailing gain rate.

    Returns:
        Estimated kg (1 decimal, never negative), or None when the last
        weighing is from today or no trailing rate exists
    """
    if not metrics.has_data or metrics.final_weight is None:
        return None

    rate = metrics.trailing_rate
    if rate is None:
        return None

    if today is None:
        today = date.today()

    days_elapsed = days_between(metrics.last_weighing_date, today)
    if days_elapsed <= 0:
        return None

    return max(0.0, round(metrics.final_weight + rate * days_elapsed, 1))


# -----------------------------------------------------------------------------
# Herd-level helpers
# -----------------------------------------------------------------------------


def mean_gmd(animals: list[Animal], today: date | None = None) -> float:
    """Mean total GMD over animals with a positive rate (0 when none)."""
    rates = [g for g in (calculate_gmd(a, today).gmd_total for a in animals) if g > 0]
    if not rates:
        return 0.0
    return round(sum(rates) / len(rates), GMD_DECIMALS)


def rank_by_gmd(animals: list[Animal], today: date | None = None) -> list[GMDRanking]:
    """Animals with positive total GMD, best first, ranked from 1."""
    with_gmd = [(a, calculate_gmd(a, today)) for a in animals]
    with_gmd = [(a, g) for a, g in with_gmd if g.gmd_total > 0]
    with_gmd.sort(key=lambda pair: pair[1].gmd_total, reverse=True)
    return [{"rank": i + 1, "animal": a, "gmd": g} for i, (a, g) in enumerate(with_gmd)]


def classify_gmd(gmd: float) -> GainClass:
    """Performance band for a daily gain."""
    if gmd >= GMD_EXCELLENT:
        return GainClass.EXCELLENT
    elif gmd >= GMD_GOOD:
        return GainClass.GOOD
    elif gmd >= GMD_FAIR:
        return GainClass.FAIR
    elif gmd >= GMD_BELOW:
        return GainClass.BELOW
    else:
        return GainClass.CRITICAL


def age_in_months(birth_date: date | None, today: date | None = None) -> int:
    """Whole calendar months between birth and today (0 when unknown)."""
    if birth_date is None:
        return 0
    if today is None:
        today = date.today()
    return (today.year - birth_date.year) * 12 + (today.month - birth_date.month)


def auto_classify_weight_types(weights: list[WeightEntry], birth_date: date | None) -> list[WeightEntry]:
    """
    Infer weaning and yearling tags from age at weighing.

    Existing weaning/yearling tags are cleared and re-assigned: weaning goes
    to the weighing closest to 7 months of age (5 to 9 accepted), yearling to
    the one closest to 18 months (12 to 23 accepted). Birth and turn
    weighings are never re-tagged.

    Returns:
        New entries; the input list is not modified
    """
    if birth_date is None or not weights:
        return list(weights)

    cleaned = [
        replace(e, type=WeighingType.NONE) if e.type in (WeighingType.WEANING, WeighingType.YEARLING) else replace(e)
        for e in weights
    ]
    ages = [(e.date - birth_date).days / DAYS_PER_MONTH for e in cleaned]

    def closest(target: float, window: tuple[int, int]) -> int | None:
        best = None
        for i, (entry, age) in enumerate(zip(cleaned, ages)):
            if entry.type != WeighingType.NONE or not window[0] <= age <= window[1]:
                continue
            if best is None or abs(age - target) < abs(ages[best] - target):
                best = i
        return best

    weaning_idx = closest(WEANING_TARGET_MONTHS, WEANING_WINDOW_MONTHS)
    if weaning_idx is not None:
        cleaned[weaning_idx].type = WeighingType.WEANING

    yearling_idx = closest(YEARLING_TARGET_MONTHS, YEARLING_WINDOW_MONTHS)
    if yearling_idx is not None:
        cleaned[yearling_idx].type = WeighingType.YEARLING

    return cleaned
