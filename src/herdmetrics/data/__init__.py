"""Data modules - herd data model and snapshot loading."""

from herdmetrics.data import models, reference_period, snapshot
from herdmetrics.data.models import (
    AbortionRecord,
    Animal,
    AnimalStatus,
    Breed,
    BreedingSeason,
    BullRef,
    CalvingResult,
    CoverageRecord,
    CoverageType,
    DiagnosisResult,
    ParentRef,
    PregnancyRecord,
    PregnancyType,
    ProgenyRecord,
    RepasseData,
    SeasonStatus,
    Sex,
    Treatment,
    WeighingType,
    WeightEntry,
    parse_date,
    parse_weight,
    unique_animals,
)
from herdmetrics.data.reference_period import (
    filter_by_reference_period,
    is_in_reference_period,
    reference_period_stats,
)
from herdmetrics.data.snapshot import (
    HerdSnapshot,
    SnapshotError,
    cache_snapshot,
    fetch_snapshot,
    load_snapshot,
    parse_snapshot,
)

__all__ = [
    "models",
    "snapshot",
    "reference_period",
    "Animal",
    "AnimalStatus",
    "Breed",
    "Sex",
    "WeighingType",
    "WeightEntry",
    "Treatment",
    "PregnancyRecord",
    "PregnancyType",
    "AbortionRecord",
    "ProgenyRecord",
    "ParentRef",
    "BreedingSeason",
    "SeasonStatus",
    "CoverageRecord",
    "CoverageType",
    "RepasseData",
    "BullRef",
    "DiagnosisResult",
    "CalvingResult",
    "parse_date",
    "parse_weight",
    "unique_animals",
    "is_in_reference_period",
    "filter_by_reference_period",
    "reference_period_stats",
    "HerdSnapshot",
    "SnapshotError",
    "load_snapshot",
    "parse_snapshot",
    "fetch_snapshot",
    "cache_snapshot",
]
