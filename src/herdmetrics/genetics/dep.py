"""
Expected progeny differences (DEP) for weight traits.

A DEP is the expected deviation of an animal's offspring from the breed
average. Here it is estimated from two kinds of evidence against a per-breed
baseline of reference-period animals:

- Own record: h2 * (own - mean) / 2, weight 0.5
- Progeny:    2 * (progeny_mean - mean), weight min(1, n / 10)

and the weighted average of the components present is the trait DEP. For
dams, the weaning-weight deviation of their calves that is not explained by
the direct DEP is regressed toward zero and reported as milk production.

Accuracy is a step function of the number of records behind a value, not a
variance-based accuracy. The breakpoints are kept exactly as the farm's
reports have always shown them.

Percentiles rank computed DEPs within the breed. A DEP of exactly zero means
"no data": it is left out of the distribution and its own percentile is 50.

Missing data never raises; it shows up as DEP 0, accuracy 0, percentile 50
and an undetermined recommendation.
"""

import logging
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum

import numpy as np

from herdmetrics.data.models import Animal, Breed, Sex, WeighingType
from herdmetrics.data.reference_period import is_in_reference_period, reference_start_or_default
from herdmetrics.pedigree.index import AnimalIndices, build_indices
from herdmetrics.pedigree.resolver import get_siblings, get_unified_progeny

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

H2_BIRTH_WEIGHT = 0.35
H2_WEANING_WEIGHT = 0.25
H2_YEARLING_WEIGHT = 0.30
H2_MATERNAL_WEANING = 0.15

OWN_RECORD_WEIGHT = 0.5
PROGENY_SATURATION = 10  # progeny records at which progeny evidence reaches full weight

# (max information quantity, accuracy), checked in order
ACCURACY_BREAKPOINTS = [
    (0, 0.0),
    (1, 0.30),
    (3, 0.45),
    (5, 0.55),
    (10, 0.65),
    (20, 0.75),
    (50, 0.85),
]
MAX_ACCURACY = 0.90

NEUTRAL_PERCENTILE = 50

# Recommendation thresholds on mean weaning/yearling percentile and accuracy
ELITE_SIRE_PERCENTILE, ELITE_SIRE_ACCURACY = 80, 0.5
SIRE_PERCENTILE, SIRE_ACCURACY = 60, 0.3
MALE_CULL_PERCENTILE = 30
ELITE_DAM_PERCENTILE, ELITE_DAM_ACCURACY = 80, 0.4
DAM_PERCENTILE = 50
FEMALE_CULL_PERCENTILE = 20


class Recommendation(str, Enum):
    ELITE_SIRE = "reprodutor_elite"
    SIRE = "reprodutor"
    ELITE_DAM = "matriz_elite"
    DAM = "matriz"
    CULL = "descarte"
    UNDETERMINED = "indefinido"


ELITE_RECOMMENDATIONS = (Recommendation.ELITE_SIRE, Recommendation.ELITE_DAM)


# -----------------------------------------------------------------------------
# Result types
# -----------------------------------------------------------------------------


@dataclass
class TraitValues:
    birth_weight: float = 0.0
    weaning_weight: float = 0.0
    yearling_weight: float = 0.0
    milk_production: float = 0.0
    total_maternal: float = 0.0

    @classmethod
    def filled(cls, value: float) -> "TraitValues":
        return cls(*(value for _ in fields(cls)))

    def get(self, trait: str) -> float:
        return getattr(self, trait)

    def as_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


TRAITS = tuple(f.name for f in fields(TraitValues))


@dataclass
class TraitStats:
    mean: float = 0.0
    std_dev: float = 0.0
    count: int = 0


@dataclass
class HerdDEPBaseline:
    breed: Breed
    birth_weight: TraitStats = field(default_factory=TraitStats)
    weaning_weight: TraitStats = field(default_factory=TraitStats)
    yearling_weight: TraitStats = field(default_factory=TraitStats)
    animal_count: int = 0


@dataclass
class DataSource:
    own_records: int = 0
    progeny_records: int = 0
    sibling_records: int = 0


@dataclass
class DEPReport:
    animal_id: str
    tag: str
    name: str | None
    sex: Sex
    breed: Breed
    dep: TraitValues = field(default_factory=TraitValues)
    accuracy: TraitValues = field(default_factory=TraitValues)
    percentile: TraitValues = field(default_factory=lambda: TraitValues.filled(NEUTRAL_PERCENTILE))
    data_source: DataSource = field(default_factory=DataSource)
    recommendation: Recommendation = Recommendation.UNDETERMINED
    calculated_at: datetime = field(default_factory=datetime.now)


# -----------------------------------------------------------------------------
# Building blocks
# -----------------------------------------------------------------------------


def _positive_weights(animals: list[Animal], weighing_type: WeighingType) -> list[float]:
    values = (a.weight_of(weighing_type) for a in animals)
    return [v for v in values if v is not None and v > 0]


def _trait_stats(values: list[float]) -> TraitStats:
    if not values:
        return TraitStats()
    arr = np.asarray(values, dtype=float)
    std_dev = float(np.std(arr, ddof=1)) if len(arr) > 1 else 0.0
    return TraitStats(mean=float(np.mean(arr)), std_dev=std_dev, count=len(arr))


def calculate_herd_baselines(
    animals: list[Animal], reference_start: date | None = None
) -> dict[Breed, HerdDEPBaseline]:
    """
    Per-breed mean and sample standard deviation of each weight trait.

    Only reference-period animals count, and only those that actually have a
    positive weighing of the trait. Breeds with no reference-period animal
    get no baseline.
    """
    reference_start = reference_start_or_default(reference_start)
    by_breed: dict[Breed, list[Animal]] = {}
    for animal in animals:
        if is_in_reference_period(animal, reference_start):
            by_breed.setdefault(animal.breed, []).append(animal)

    baselines = {}
    for breed, cohort in by_breed.items():
        baselines[breed] = HerdDEPBaseline(
            breed=breed,
            birth_weight=_trait_stats(_positive_weights(cohort, WeighingType.BIRTH)),
            weaning_weight=_trait_stats(_positive_weights(cohort, WeighingType.WEANING)),
            yearling_weight=_trait_stats(_positive_weights(cohort, WeighingType.YEARLING)),
            animal_count=len(cohort),
        )
    return baselines


def calculate_single_dep(
    own_value: float | None,
    progeny_values: list[float],
    baseline_mean: float,
    heritability: float,
) -> float:
    """
    Blend own record and progeny mean into one trait DEP (unrounded).

    Returns:
        Weighted mean of the components present, or 0 when neither is
    """
    if baseline_mean <= 0:
        return 0.0

    total = 0.0
    weight = 0.0

    if own_value is not None and own_value > 0:
        total += heritability * (own_value - baseline_mean) / 2 * OWN_RECORD_WEIGHT
        weight += OWN_RECORD_WEIGHT

    if progeny_values:
        progeny_weight = min(1.0, len(progeny_values) / PROGENY_SATURATION)
        total += 2 * (float(np.mean(progeny_values)) - baseline_mean) * progeny_weight
        weight += progeny_weight

    return total / weight if weight > 0 else 0.0


def accuracy_from_information(n: int) -> float:
    """Accuracy (0-1) for an information quantity (record count)."""
    for max_n, accuracy in ACCURACY_BREAKPOINTS:
        if n <= max_n:
            return accuracy
    return MAX_ACCURACY


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def calculate_percentile(value: float, distribution: list[float]) -> int:
    """
    Percentile (0-100) of a DEP within its cohort.

    Percentile = share of non-zero cohort values strictly below `value`.
    A zero value, or a cohort with no non-zero values, ranks 50.
    """
    if value == 0:
        return NEUTRAL_PERCENTILE
    cohort = [v for v in distribution if v != 0]
    if not cohort:
        return NEUTRAL_PERCENTILE
    below = sum(1 for v in cohort if v < value)
    return _round_half_up(below / len(cohort) * 100)


def recommend(sex: Sex, avg_percentile: float, avg_accuracy: float) -> Recommendation:
    """Breeding recommendation; dams need less evidence than sires."""
    if sex == Sex.UNKNOWN:
        return Recommendation.UNDETERMINED
    if sex == Sex.MALE:
        if avg_percentile >= ELITE_SIRE_PERCENTILE and avg_accuracy >= ELITE_SIRE_ACCURACY:
            return Recommendation.ELITE_SIRE
        if avg_percentile >= SIRE_PERCENTILE and avg_accuracy >= SIRE_ACCURACY:
            return Recommendation.SIRE
        if avg_percentile < MALE_CULL_PERCENTILE:
            return Recommendation.CULL
        return Recommendation.UNDETERMINED

    if avg_percentile >= ELITE_DAM_PERCENTILE and avg_accuracy >= ELITE_DAM_ACCURACY:
        return Recommendation.ELITE_DAM
    if avg_percentile >= DAM_PERCENTILE:
        return Recommendation.DAM
    if avg_percentile < FEMALE_CULL_PERCENTILE:
        return Recommendation.CULL
    return Recommendation.UNDETERMINED


def _recommend_report(report: DEPReport) -> Recommendation:
    avg_percentile = (report.percentile.weaning_weight + report.percentile.yearling_weight) / 2
    avg_accuracy = (report.accuracy.weaning_weight + report.accuracy.yearling_weight) / 2
    return recommend(report.sex, avg_percentile, avg_accuracy)


# -----------------------------------------------------------------------------
# Per-animal DEP
# -----------------------------------------------------------------------------


def neutral_dep_report(animal: Animal) -> DEPReport:
    """Report for an animal whose breed has no baseline."""
    return DEPReport(
        animal_id=animal.id,
        tag=animal.tag,
        name=animal.name,
        sex=animal.sex,
        breed=animal.breed,
    )


def calculate_animal_dep(
    animal: Animal,
    indices: AnimalIndices,
    baseline: HerdDEPBaseline,
    reference_start: date | None = None,
) -> DEPReport:
    """
    DEPs and accuracies for one animal against its breed baseline.

    Percentiles stay at 50 and the recommendation undetermined until the
    whole cohort is known; `calculate_all_deps` fills them in.
    """
    reference_start = reference_start_or_default(reference_start)
    in_period = is_in_reference_period(animal, reference_start)

    def own(weighing_type: WeighingType) -> float | None:
        value = animal.weight_of(weighing_type) if in_period else None
        return value if value is not None and value > 0 else None

    own_birth = own(WeighingType.BIRTH)
    own_weaning = own(WeighingType.WEANING)
    own_yearling = own(WeighingType.YEARLING)

    progeny = [p for p in get_unified_progeny(animal, indices) if is_in_reference_period(p, reference_start)]
    siblings = [s for s in get_siblings(animal, indices) if is_in_reference_period(s, reference_start)]

    progeny_birth = _positive_weights(progeny, WeighingType.BIRTH)
    progeny_weaning = _positive_weights(progeny, WeighingType.WEANING)
    progeny_yearling = _positive_weights(progeny, WeighingType.YEARLING)
    sibling_weaning = _positive_weights(siblings, WeighingType.WEANING)

    birth_dep = calculate_single_dep(own_birth, progeny_birth, baseline.birth_weight.mean, H2_BIRTH_WEIGHT)
    weaning_dep = calculate_single_dep(own_weaning, progeny_weaning, baseline.weaning_weight.mean, H2_WEANING_WEIGHT)
    yearling_dep = calculate_single_dep(
        own_yearling, progeny_yearling, baseline.yearling_weight.mean, H2_YEARLING_WEIGHT
    )

    milk_dep = 0.0
    total_maternal = 0.0
    if animal.is_female and progeny_weaning and baseline.weaning_weight.mean > 0:
        total_deviation = float(np.mean(progeny_weaning)) - baseline.weaning_weight.mean
        n = len(progeny_weaning)
        k = (4 - H2_MATERNAL_WEANING) / H2_MATERNAL_WEANING
        milk_dep = n / (n + k) * (total_deviation - weaning_dep)
        total_maternal = weaning_dep + milk_dep

    n_own_birth = int(own_birth is not None)
    n_own_weaning = int(own_weaning is not None)
    n_own_yearling = int(own_yearling is not None)

    accuracy = TraitValues(
        birth_weight=accuracy_from_information(n_own_birth + 2 * len(progeny_birth)),
        weaning_weight=accuracy_from_information(
            n_own_weaning + 2 * len(progeny_weaning) + len(sibling_weaning) // 2
        ),
        yearling_weight=accuracy_from_information(n_own_yearling + 2 * len(progeny_yearling)),
    )
    if animal.is_female:
        accuracy.milk_production = accuracy_from_information(len(progeny_weaning))
        accuracy.total_maternal = accuracy_from_information((n_own_weaning + len(progeny_weaning)) // 2)

    return DEPReport(
        animal_id=animal.id,
        tag=animal.tag,
        name=animal.name,
        sex=animal.sex,
        breed=animal.breed,
        dep=TraitValues(
            birth_weight=round(birth_dep, 1),
            weaning_weight=round(weaning_dep, 1),
            yearling_weight=round(yearling_dep, 1),
            milk_production=round(milk_dep, 1),
            total_maternal=round(total_maternal, 1),
        ),
        accuracy=accuracy,
        data_source=DataSource(
            own_records=n_own_birth + n_own_weaning + n_own_yearling,
            progeny_records=len(progeny),
            sibling_records=len(siblings),
        ),
    )


# -----------------------------------------------------------------------------
# Whole-cohort pass
# -----------------------------------------------------------------------------


def assign_percentiles(reports: list[DEPReport]) -> None:
    """
    Rank each report within its breed and derive its recommendation.

    Milk production and total maternal are ranked among females only.
    Reports are updated in place.
    """
    by_breed: dict[Breed, list[DEPReport]] = {}
    for report in reports:
        by_breed.setdefault(report.breed, []).append(report)

    for cohort in by_breed.values():
        distributions = {trait: [r.dep.get(trait) for r in cohort] for trait in TRAITS}
        for trait in ("milk_production", "total_maternal"):
            distributions[trait] = [r.dep.get(trait) for r in cohort if r.sex == Sex.FEMALE]

        for report in cohort:
            report.percentile = TraitValues(
                **{trait: calculate_percentile(report.dep.get(trait), distributions[trait]) for trait in TRAITS}
            )
            report.recommendation = _recommend_report(report)


def calculate_all_deps(
    animals: list[Animal],
    reference_start: date | None = None,
    indices: AnimalIndices | None = None,
) -> list[DEPReport]:
    """
    DEP reports for a whole herd.

    Phase 1 computes breed baselines, phase 2 per-animal DEPs, phase 3
    within-breed percentiles and recommendations. Animals of a breed without
    a baseline get a neutral report.

    Args:
        animals: Full herd
        reference_start: Reference period cutoff (defaults to settings)
        indices: Pre-built indices for `animals`, built here when omitted

    Raises:
        TypeError: If `animals` is not a list
    """
    if indices is None:
        indices = build_indices(animals)
    elif not isinstance(animals, (list, tuple)):
        raise TypeError(f"animals must be a list of Animal, got {type(animals).__name__}")

    baselines = calculate_herd_baselines(animals, reference_start)

    reports = []
    computed = []
    for animal in animals:
        baseline = baselines.get(animal.breed)
        if baseline is None:
            reports.append(neutral_dep_report(animal))
            continue
        report = calculate_animal_dep(animal, indices, baseline, reference_start)
        reports.append(report)
        computed.append(report)

    assign_percentiles(computed)

    logger.debug(
        "Computed DEPs for %d animals (%d breeds with baseline, %d neutral)",
        len(reports),
        len(baselines),
        len(reports) - len(computed),
    )
    return reports


# -----------------------------------------------------------------------------
# Ranking helpers
# -----------------------------------------------------------------------------


def rank_by_dep(reports: list[DEPReport], trait: str = "weaning_weight", ascending: bool = False) -> list[DEPReport]:
    """
    Sort reports by one trait's DEP (highest first by default).

    Raises:
        ValueError: If `trait` is not a DEP trait name
    """
    if trait not in TRAITS:
        raise ValueError(f"Unknown trait {trait!r}; expected one of {', '.join(TRAITS)}")
    return sorted(reports, key=lambda r: r.dep.get(trait), reverse=not ascending)


def get_elite_animals(reports: list[DEPReport]) -> list[DEPReport]:
    return [r for r in reports if r.recommendation in ELITE_RECOMMENDATIONS]


def get_cull_animals(reports: list[DEPReport]) -> list[DEPReport]:
    return [r for r in reports if r.recommendation == Recommendation.CULL]
