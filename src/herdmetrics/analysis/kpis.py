"""
Herd zootechnical KPIs.

Two population filters are used on purpose:

- Weight averages (birth, weaning, yearling) use reference-period animals
  only, so the survivors of past sales do not bias them.
- Headcounts, mortality, pregnancy and birth rates use the whole herd as
  exported, since they describe current operations.

Reproductive rates come from breeding seasons when any active or finished
season exists, and from manual pregnancy records and recent births
otherwise. The two sources are never mixed.
"""

import logging
from datetime import date, datetime
from typing import TypedDict

import numpy as np

from herdmetrics.core.config import settings
from herdmetrics.data.models import (
    Animal,
    AnimalStatus,
    BreedingSeason,
    CalvingResult,
    DiagnosisResult,
    Sex,
    WeighingType,
)
from herdmetrics.data.reference_period import filter_by_reference_period, reference_start_or_default
from herdmetrics.growth.gmd import GainMetrics, age_in_months, calculate_gmd
from herdmetrics.pedigree.index import AnimalIndices, build_indices
from herdmetrics.pedigree.resolver import get_unified_progeny
from herdmetrics.reproduction.breeding import (
    CoveragePass,
    PregnancySource,
    calving_intervals,
    counts_for_kpis,
    effective_calving,
    effective_diagnosis,
    female_reproductive_status,
    first_calving_age_months,
)

logger = logging.getLogger(__name__)

# Minimum sample sizes before a warning is emitted
MIN_WEIGHT_RECORDS = 5
MIN_CALVING_INTERVALS = 3

WARN_FEW_BIRTH_WEIGHTS = "Few birth weight records; average birth weight may be unreliable"
WARN_FEW_WEANING_WEIGHTS = "Few weaning weight records; average weaning weight may be unreliable"
WARN_FEW_CALVING_INTERVALS = "Few calving records; calving interval may be unreliable"


class ZootechnicalKPIs(TypedDict):
    avg_weaning_weight: float
    calving_interval: int
    pregnancy_rate: float
    kg_calf_per_cow_year: float
    mortality_rate: float
    avg_gmd: float
    birth_rate: float
    avg_birth_weight: float
    avg_yearling_weight: float
    avg_first_calving_age_months: int


class KPIDetails(TypedDict):
    total_animals: int
    total_females: int
    total_males: int
    total_unknown_sex: int
    total_active: int
    total_deaths: int
    total_sold: int
    breeding_age_females: int
    calves_weaned: int
    exposed_cows: int
    pregnant_cows: int
    pregnancies: int
    births: int
    pregnancy_source: str
    pregnant_from_breeding_season: int
    pregnant_from_repasse: int
    pregnant_from_manual_record: int
    animals_in_reference_period: int
    animals_excluded_from_period: int
    calving_interval_samples: int
    first_calving_samples: int


class KPICalculationResult(TypedDict):
    kpis: ZootechnicalKPIs
    details: KPIDetails
    warnings: list[str]
    calculated_at: datetime


def _mean(values: list[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def _percent(numerator: int, denominator: int) -> float:
    return numerator / denominator * 100 if denominator > 0 else 0.0


def _one_year_before(today: date) -> date:
    try:
        return today.replace(year=today.year - 1)
    except ValueError:
        # Feb 29
        return today.replace(year=today.year - 1, day=28)


def _weights(animals: list[Animal], weighing_type: WeighingType) -> list[float]:
    values = (a.weight_of(weighing_type) for a in animals)
    return [v for v in values if v is not None and v > 0]


def calculate_zootechnical_kpis(
    animals: list[Animal],
    breeding_seasons: list[BreedingSeason] | None = None,
    reference_start: date | None = None,
    today: date | None = None,
    indices: AnimalIndices | None = None,
    gmd_by_id: dict[str, GainMetrics] | None = None,
) -> KPICalculationResult:
    """
    Calculate herd KPIs.

    Args:
        animals: Full herd (unfiltered)
        breeding_seasons: Breeding seasons; only active and finished ones count
        reference_start: Reference period cutoff (defaults to settings)
        today: Reference day for ages and the 12-month birth window
        indices: Pre-built indices for `animals`
        gmd_by_id: Pre-computed gain metrics by animal ID

    Returns:
        Dict with kpis, details, warnings and calculated_at

    Raises:
        TypeError: If `animals` or `breeding_seasons` is not a list
    """
    if breeding_seasons is None:
        breeding_seasons = []
    if not isinstance(breeding_seasons, (list, tuple)):
        raise TypeError(f"breeding_seasons must be a list, got {type(breeding_seasons).__name__}")
    if indices is None:
        indices = build_indices(animals)
    if today is None:
        today = date.today()
    reference_start = reference_start_or_default(reference_start)

    def gmd_of(animal: Animal) -> GainMetrics:
        if gmd_by_id is not None and animal.id in gmd_by_id:
            return gmd_by_id[animal.id]
        return calculate_gmd(animal, today)

    warnings: list[str] = []

    # Headcounts over the whole herd
    total = len(animals)
    active = indices.by_status[AnimalStatus.ACTIVE]
    deceased = indices.by_status[AnimalStatus.DECEASED]
    sold = indices.by_status[AnimalStatus.SOLD]
    females = indices.by_sex[Sex.FEMALE]
    males = indices.by_sex[Sex.MALE]
    active_females = [a for a in females if a.status == AnimalStatus.ACTIVE]
    breeding_age_females = [
        a for a in active_females if age_in_months(a.birth_date, today) >= settings.breeding_age_months
    ]

    mortality_rate = _percent(len(deceased), total)

    # Weight averages over reference-period animals only
    in_period = filter_by_reference_period(animals, reference_start)
    birth_weights = _weights(in_period, WeighingType.BIRTH)
    weaning_weights = _weights(in_period, WeighingType.WEANING)
    yearling_weights = _weights(in_period, WeighingType.YEARLING)

    if len(birth_weights) < MIN_WEIGHT_RECORDS:
        warnings.append(WARN_FEW_BIRTH_WEIGHTS)
    if len(weaning_weights) < MIN_WEIGHT_RECORDS:
        warnings.append(WARN_FEW_WEANING_WEIGHTS)

    avg_weaning_weight = _mean(weaning_weights)

    # Pregnancy and birth rates
    seasons = [s for s in breeding_seasons if counts_for_kpis(s)]
    pregnant_primary = 0
    pregnant_repasse = 0
    pregnant_manual = 0

    if seasons:
        pregnancy_source = PregnancySource.BREEDING_SEASON
        exposed = sum(len(s.exposed_cow_ids) for s in seasons)
        births = 0
        for season in seasons:
            for record in season.coverage_records:
                diagnosis, source = effective_diagnosis(record)
                if diagnosis != DiagnosisResult.POSITIVE:
                    continue
                if source == CoveragePass.REPASSE:
                    pregnant_repasse += 1
                else:
                    pregnant_primary += 1
                if effective_calving(record) == CalvingResult.REALIZED:
                    births += 1
        pregnant = pregnant_primary + pregnant_repasse
        pregnancies = pregnant
    else:
        pregnancy_source = PregnancySource.MANUAL
        exposed = len(breeding_age_females)
        for cow in breeding_age_females:
            if female_reproductive_status(cow, []).is_pregnant:
                pregnant_manual += 1
        pregnant = pregnant_manual
        year_ago = _one_year_before(today)
        births = sum(1 for a in animals if a.birth_date is not None and a.birth_date >= year_ago)
        pregnancies = len(breeding_age_females)

    pregnancy_rate = _percent(pregnant, exposed)
    birth_rate = _percent(births, pregnancies)

    # Calving interval and first calving age over active females
    intervals: list[int] = []
    first_calving_ages: list[int] = []
    for cow in active_females:
        progeny = get_unified_progeny(cow, indices)
        intervals.extend(calving_intervals([p.birth_date for p in progeny if p.birth_date is not None]))
        first_age = first_calving_age_months(cow, progeny)
        if first_age is not None:
            first_calving_ages.append(first_age)

    if len(intervals) < MIN_CALVING_INTERVALS:
        warnings.append(WARN_FEW_CALVING_INTERVALS)

    # GMD over active animals with a positive rate
    gmd_values = [g for g in (gmd_of(a).gmd_total for a in active) if g > 0]

    kpis: ZootechnicalKPIs = {
        "avg_weaning_weight": round(avg_weaning_weight, 1),
        "calving_interval": round(_mean(intervals)),
        "pregnancy_rate": round(pregnancy_rate, 1),
        "kg_calf_per_cow_year": round(avg_weaning_weight * birth_rate / 100, 1),
        "mortality_rate": round(mortality_rate, 1),
        "avg_gmd": round(_mean(gmd_values), 2),
        "birth_rate": round(birth_rate, 1),
        "avg_birth_weight": round(_mean(birth_weights), 1),
        "avg_yearling_weight": round(_mean(yearling_weights), 1),
        "avg_first_calving_age_months": round(_mean(first_calving_ages)),
    }

    details: KPIDetails = {
        "total_animals": total,
        "total_females": len(females),
        "total_males": len(males),
        "total_unknown_sex": len(indices.by_sex[Sex.UNKNOWN]),
        "total_active": len(active),
        "total_deaths": len(deceased),
        "total_sold": len(sold),
        "breeding_age_females": len(breeding_age_females),
        "calves_weaned": len(weaning_weights),
        "exposed_cows": exposed,
        "pregnant_cows": pregnant,
        "pregnancies": pregnancies,
        "births": births,
        "pregnancy_source": pregnancy_source.value,
        "pregnant_from_breeding_season": pregnant_primary + pregnant_repasse,
        "pregnant_from_repasse": pregnant_repasse,
        "pregnant_from_manual_record": pregnant_manual,
        "animals_in_reference_period": len(in_period),
        "animals_excluded_from_period": total - len(in_period),
        "calving_interval_samples": len(intervals),
        "first_calving_samples": len(first_calving_ages),
    }

    logger.debug("KPIs over %d animals (%s pregnancy source)", total, pregnancy_source.value)

    return {
        "kpis": kpis,
        "details": details,
        "warnings": warnings,
        "calculated_at": datetime.now(),
    }
