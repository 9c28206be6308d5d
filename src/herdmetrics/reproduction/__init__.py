"""Reproduction modules - breeding seasons and reproductive status."""

from herdmetrics.reproduction.breeding import (
    GESTATION_DAYS,
    BreedingSeasonMetrics,
    CoveragePass,
    ExpectedCalving,
    PregnancySource,
    ReproductiveStatus,
    calculate_breeding_metrics,
    calving_intervals,
    counts_for_kpis,
    coverage_calving_date,
    coverage_sire_label,
    effective_calving,
    effective_diagnosis,
    expected_calving_date,
    expected_calvings,
    female_reproductive_status,
    first_calving_age_months,
    is_pregnant,
    repasse_sire_label,
)

__all__ = [
    "GESTATION_DAYS",
    "BreedingSeasonMetrics",
    "CoveragePass",
    "ExpectedCalving",
    "PregnancySource",
    "ReproductiveStatus",
    "calculate_breeding_metrics",
    "calving_intervals",
    "counts_for_kpis",
    "coverage_calving_date",
    "coverage_sire_label",
    "effective_calving",
    "effective_diagnosis",
    "expected_calving_date",
    "expected_calvings",
    "female_reproductive_status",
    "first_calving_age_months",
    "is_pregnant",
    "repasse_sire_label",
]
