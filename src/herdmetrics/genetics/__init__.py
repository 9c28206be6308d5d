"""Genetics modules - breeding values (DEP) with accuracy and percentiles."""

from herdmetrics.genetics.dep import (
    TRAITS,
    DataSource,
    DEPReport,
    HerdDEPBaseline,
    Recommendation,
    TraitStats,
    TraitValues,
    accuracy_from_information,
    assign_percentiles,
    calculate_all_deps,
    calculate_animal_dep,
    calculate_herd_baselines,
    calculate_percentile,
    calculate_single_dep,
    get_cull_animals,
    get_elite_animals,
    neutral_dep_report,
    rank_by_dep,
    recommend,
)

__all__ = [
    "TRAITS",
    "DataSource",
    "DEPReport",
    "HerdDEPBaseline",
    "Recommendation",
    "TraitStats",
    "TraitValues",
    "accuracy_from_information",
    "assign_percentiles",
    "calculate_all_deps",
    "calculate_animal_dep",
    "calculate_herd_baselines",
    "calculate_percentile",
    "calculate_single_dep",
    "get_cull_animals",
    "get_elite_animals",
    "neutral_dep_report",
    "rank_by_dep",
    "recommend",
]
