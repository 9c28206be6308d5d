"""Herd genetic and zootechnical analytics.

This package turns an exported herd snapshot (animals plus breeding-season
records) into growth, breeding-value and whole-herd KPI reports.

Subpackages:
- herdmetrics.core: Configuration, units and HTTP client
- herdmetrics.data: Herd data model, snapshots and the reference period
- herdmetrics.pedigree: Lookup indices and parent/progeny/sibling resolution
- herdmetrics.growth: Average daily gain (GMD) and weight projection
- herdmetrics.genetics: Breeding values (DEP), accuracy and percentiles
- herdmetrics.reproduction: Breeding seasons and reproductive status
- herdmetrics.analysis: Metrics service and zootechnical KPIs
- herdmetrics.cli: Command-line reports
"""

# Re-export common items for convenience
from herdmetrics.analysis import HerdMetricsService, calculate_zootechnical_kpis
from herdmetrics.core import settings
from herdmetrics.data import Animal, BreedingSeason, HerdSnapshot, load_snapshot

__all__ = [
    "settings",
    "Animal",
    "BreedingSeason",
    "HerdSnapshot",
    "load_snapshot",
    "HerdMetricsService",
    "calculate_zootechnical_kpis",
]

__version__ = "0.1.0"
