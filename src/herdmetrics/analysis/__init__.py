"""Analysis modules - whole-herd metrics service, sire comparison and zootechnical KPIs."""

from herdmetrics.analysis.comparison import SireProgenyComparison, compare_sire_progeny
from herdmetrics.analysis.kpis import (
    KPICalculationResult,
    KPIDetails,
    ZootechnicalKPIs,
    calculate_zootechnical_kpis,
)
from herdmetrics.analysis.metrics import AnimalDerivedData, HerdMetricsService

__all__ = [
    # comparison
    "compare_sire_progeny",
    "SireProgenyComparison",
    # kpis
    "calculate_zootechnical_kpis",
    "KPICalculationResult",
    "KPIDetails",
    "ZootechnicalKPIs",
    # metrics
    "HerdMetricsService",
    "AnimalDerivedData",
]
