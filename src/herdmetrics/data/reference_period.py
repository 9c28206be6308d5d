"""Reference period filter.

Animals born before the cutoff are under-represented in the export: the
best of them were sold or removed over the years, so the ones left behind
bias any average computed over them. Genetic baselines and weight averages
therefore use only animals born on or after the cutoff. Headcount, pregnancy
and mortality figures describe the herd as it is and use everyone.
"""

from datetime import date
from typing import TypedDict

from herdmetrics.core.config import settings
from herdmetrics.data.models import Animal


class ReferencePeriodStats(TypedDict):
    start: date
    total: int
    in_period: int
    excluded: int
    percent_in_period: float


def reference_start_or_default(start: date | None) -> date:
    return start if start is not None else settings.reference_period_start


def is_in_reference_period(animal: Animal, start: date | None = None) -> bool:
    """True if the animal was born on or after the cutoff (unknown birth: False)."""
    if animal.birth_date is None:
        return False
    return animal.birth_date >= reference_start_or_default(start)


def filter_by_reference_period(animals: list[Animal], start: date | None = None) -> list[Animal]:
    start = reference_start_or_default(start)
    return [a for a in animals if is_in_reference_period(a, start)]


def reference_period_stats(animals: list[Animal], start: date | None = None) -> ReferencePeriodStats:
    start = reference_start_or_default(start)
    in_period = len(filter_by_reference_period(animals, start))
    total = len(animals)
    return {
        "start": start,
        "total": total,
        "in_period": in_period,
        "excluded": total - in_period,
        "percent_in_period": round(in_period / total * 100, 1) if total else 0.0,
    }
