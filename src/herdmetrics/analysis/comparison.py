"""
Sire progeny comparison.

Groups the herd by sire and compares the offspring groups on daily gain and
on weaning and yearling weights. Offspring are grouped under the resolved
sire when it is in the herd, otherwise under the recorded sire ID or name.
"""

import logging
from datetime import date
from typing import TypedDict

import numpy as np

from herdmetrics.data.models import Animal, WeighingType
from herdmetrics.growth.gmd import GainMetrics, calculate_gmd
from herdmetrics.pedigree.index import AnimalIndices, ParentRole, build_indices, normalize_key
from herdmetrics.pedigree.resolver import resolve_parent

logger = logging.getLogger(__name__)

# Sires with fewer offspring are not compared
MIN_OFFSPRING = 2


class SireProgenyComparison(TypedDict):
    sire_id: str | None  # None when the sire is known only by name
    sire_label: str
    offspring_count: int
    avg_gmd: float
    avg_weaning_weight: float
    avg_yearling_weight: float
    best_offspring_tag: str | None
    best_offspring_gmd: float


def _mean(values: list[float], decimals: int) -> float:
    return round(float(np.mean(values)), decimals) if values else 0.0


def _sire_key(animal: Animal, indices: AnimalIndices) -> tuple[str, str | None, str] | None:
    """(group key, sire ID, label) for an animal's sire, None when no sire is recorded."""
    sire = resolve_parent(animal, ParentRole.SIRE, indices)
    if sire is not None:
        return sire.id, sire.id, sire.label
    if animal.sire.id:
        return animal.sire.id, animal.sire.id, animal.sire.name or animal.sire.id
    name = normalize_key(animal.sire.name)
    if name:
        return f"name:{name}", None, animal.sire.name.strip()
    return None


def compare_sire_progeny(
    animals: list[Animal],
    indices: AnimalIndices | None = None,
    today: date | None = None,
    gmd_by_id: dict[str, GainMetrics] | None = None,
) -> list[SireProgenyComparison]:
    """
    Compare offspring performance per sire, best average gain first.

    Args:
        animals: Full herd
        indices: Pre-built indices for `animals`
        today: Reference day for gain metrics
        gmd_by_id: Pre-computed gain metrics by animal ID

    Returns:
        One entry per sire with at least MIN_OFFSPRING offspring
    """
    if indices is None:
        indices = build_indices(animals)

    def gmd_of(animal: Animal) -> float:
        if gmd_by_id is not None and animal.id in gmd_by_id:
            return gmd_by_id[animal.id].gmd_total
        return calculate_gmd(animal, today).gmd_total

    groups: dict[str, list[Animal]] = {}
    sires: dict[str, tuple[str | None, str]] = {}
    for animal in indices.animals:
        key = _sire_key(animal, indices)
        if key is None:
            continue
        group_key, sire_id, label = key
        groups.setdefault(group_key, []).append(animal)
        sires.setdefault(group_key, (sire_id, label))

    comparisons: list[SireProgenyComparison] = []
    for group_key, offspring in groups.items():
        if len(offspring) < MIN_OFFSPRING:
            continue

        gains = {a.id: gmd_of(a) for a in offspring}
        positive = [g for g in gains.values() if g > 0]
        weaning = [w for w in (a.weight_of(WeighingType.WEANING) for a in offspring) if w]
        yearling = [w for w in (a.weight_of(WeighingType.YEARLING) for a in offspring) if w]

        best = max(offspring, key=lambda a: gains[a.id])
        best_gmd = gains[best.id]

        sire_id, label = sires[group_key]
        comparisons.append(
            {
                "sire_id": sire_id,
                "sire_label": label,
                "offspring_count": len(offspring),
                "avg_gmd": _mean(positive, 3),
                "avg_weaning_weight": _mean(weaning, 1),
                "avg_yearling_weight": _mean(yearling, 1),
                "best_offspring_tag": best.tag if best_gmd > 0 else None,
                "best_offspring_gmd": best_gmd if best_gmd > 0 else 0.0,
            }
        )

    logger.debug("Compared progeny of %d sires", len(comparisons))
    return sorted(comparisons, key=lambda c: (-c["avg_gmd"], c["sire_label"]))
