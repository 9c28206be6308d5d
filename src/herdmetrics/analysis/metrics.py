"""
Whole-herd metrics service.

Breed baselines, DEP percentiles and GMD rankings are relative to the whole
cohort, so they cannot be computed for one animal in isolation. The service
computes everything for a snapshot in one explicit pass:

1. Breed baselines over reference-period animals
2. Per-animal GMD and DEP
3. Within-breed DEP percentiles, recommendations and GMD rankings, then the
   per-animal derived record (pedigree links, reproductive status)

Results are cached by animal ID until the next `compute_all()`, which
replaces the cache wholesale. A changed snapshot needs a new service.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime

from herdmetrics.analysis.comparison import SireProgenyComparison, compare_sire_progeny
from herdmetrics.analysis.kpis import KPICalculationResult, calculate_zootechnical_kpis
from herdmetrics.data.models import Animal, Breed, BreedingSeason, unique_animals
from herdmetrics.data.reference_period import (
    ReferencePeriodStats,
    is_in_reference_period,
    reference_period_stats,
    reference_start_or_default,
)
from herdmetrics.genetics.dep import (
    DEPReport,
    HerdDEPBaseline,
    assign_percentiles,
    calculate_animal_dep,
    calculate_herd_baselines,
    neutral_dep_report,
)
from herdmetrics.growth.gmd import GainMetrics, age_in_months, calculate_gmd
from herdmetrics.pedigree.index import ParentRole, build_indices
from herdmetrics.pedigree.resolver import get_siblings, get_unified_progeny, resolve_parent
from herdmetrics.reproduction.breeding import (
    ReproductiveStatus,
    calving_intervals,
    female_reproductive_status,
    first_calving_age_months,
)

logger = logging.getLogger(__name__)


@dataclass
class AnimalDerivedData:
    animal_id: str
    tag: str
    gmd: GainMetrics
    dep: DEPReport
    progeny_ids: list[str] = field(default_factory=list)
    sibling_ids: list[str] = field(default_factory=list)
    sire_id: str | None = None
    dam_id: str | None = None
    reproductive: ReproductiveStatus | None = None  # females only
    calving_intervals: list[int] = field(default_factory=list)
    first_calving_age_months: int | None = None
    gmd_rank_overall: int = 0  # 0 = unranked
    gmd_rank_breed: int = 0
    age_months: int = 0
    calculated_at: datetime = field(default_factory=datetime.now)


def _rank_lookup(values: list[float]) -> dict[float, int]:
    """Map each positive value to its 1-based rank, best first (ties share the better rank)."""
    ranks: dict[float, int] = {}
    for i, value in enumerate(sorted(values, reverse=True)):
        ranks.setdefault(value, i + 1)
    return ranks


class HerdMetricsService:
    """Derived metrics for one immutable herd snapshot."""

    def __init__(
        self,
        animals: list[Animal],
        breeding_seasons: list[BreedingSeason] | None = None,
        reference_start: date | None = None,
        today: date | None = None,
    ):
        if breeding_seasons is None:
            breeding_seasons = []
        if not isinstance(breeding_seasons, (list, tuple)):
            raise TypeError(f"breeding_seasons must be a list, got {type(breeding_seasons).__name__}")

        if isinstance(animals, (list, tuple)):
            animals = unique_animals(animals)
        self.indices = build_indices(animals)
        self.animals = self.indices.animals
        self.breeding_seasons = list(breeding_seasons)
        self.reference_start = reference_start_or_default(reference_start)
        self.today = today or date.today()

        self._cache: dict[str, AnimalDerivedData] = {}
        self._baselines: dict[Breed, HerdDEPBaseline] = {}

    # -------------------------------------------------------------------------
    # Computation
    # -------------------------------------------------------------------------

    def compute_all(self) -> dict[str, AnimalDerivedData]:
        """Recompute every derived value and replace the cache."""
        started = time.perf_counter()
        ref = self.reference_start

        baselines = calculate_herd_baselines(self.animals, ref)

        gmds: dict[str, GainMetrics] = {}
        deps: dict[str, DEPReport] = {}
        computed: list[DEPReport] = []
        for animal in self.animals:
            gmds[animal.id] = calculate_gmd(animal, self.today)
            baseline = baselines.get(animal.breed)
            if baseline is None:
                deps[animal.id] = neutral_dep_report(animal)
            else:
                report = calculate_animal_dep(animal, self.indices, baseline, ref)
                deps[animal.id] = report
                computed.append(report)

        assign_percentiles(computed)

        in_period = [a for a in self.animals if is_in_reference_period(a, ref)]
        overall_ranks = _rank_lookup([gmds[a.id].gmd_total for a in in_period if gmds[a.id].gmd_total > 0])
        breed_ranks = {
            breed: _rank_lookup(
                [gmds[a.id].gmd_total for a in in_period if a.breed == breed and gmds[a.id].gmd_total > 0]
            )
            for breed in Breed
        }

        cache: dict[str, AnimalDerivedData] = {}
        for animal in self.animals:
            gmd = gmds[animal.id]
            progeny = get_unified_progeny(animal, self.indices)
            siblings = get_siblings(animal, self.indices)
            sire = resolve_parent(animal, ParentRole.SIRE, self.indices)
            dam = resolve_parent(animal, ParentRole.DAM, self.indices)

            derived = AnimalDerivedData(
                animal_id=animal.id,
                tag=animal.tag,
                gmd=gmd,
                dep=deps[animal.id],
                progeny_ids=[p.id for p in progeny],
                sibling_ids=[s.id for s in siblings],
                sire_id=sire.id if sire else None,
                dam_id=dam.id if dam else None,
                age_months=max(0, age_in_months(animal.birth_date, self.today)),
            )

            if is_in_reference_period(animal, ref) and gmd.gmd_total > 0:
                derived.gmd_rank_overall = overall_ranks.get(gmd.gmd_total, 0)
                derived.gmd_rank_breed = breed_ranks[animal.breed].get(gmd.gmd_total, 0)

            if animal.is_female:
                derived.reproductive = female_reproductive_status(animal, self.breeding_seasons)
                derived.calving_intervals = calving_intervals(
                    [p.birth_date for p in progeny if p.birth_date is not None]
                )
                derived.first_calving_age_months = first_calving_age_months(animal, progeny)

            cache[animal.id] = derived

        self._baselines = baselines
        self._cache = cache

        logger.info("Computed metrics for %d animals in %.3fs", len(cache), time.perf_counter() - started)
        return self._cache

    def _ensure_computed(self) -> None:
        if not self._cache and self.animals:
            self.compute_all()

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def get_derived(self, animal_id: str) -> AnimalDerivedData | None:
        self._ensure_computed()
        return self._cache.get(animal_id)

    def all_derived(self) -> dict[str, AnimalDerivedData]:
        self._ensure_computed()
        return self._cache

    def get_gmd(self, animal_id: str) -> GainMetrics | None:
        derived = self.get_derived(animal_id)
        return derived.gmd if derived else None

    def get_dep(self, animal_id: str) -> DEPReport | None:
        derived = self.get_derived(animal_id)
        return derived.dep if derived else None

    def all_deps(self) -> list[DEPReport]:
        return [d.dep for d in self.all_derived().values()]

    @property
    def baselines(self) -> dict[Breed, HerdDEPBaseline]:
        self._ensure_computed()
        return self._baselines

    def reference_period_stats(self) -> ReferencePeriodStats:
        return reference_period_stats(self.animals, self.reference_start)

    def calculate_kpis(self) -> KPICalculationResult:
        """Herd KPIs reusing this snapshot's indices and gain metrics."""
        derived = self.all_derived()
        return calculate_zootechnical_kpis(
            self.animals,
            self.breeding_seasons,
            reference_start=self.reference_start,
            today=self.today,
            indices=self.indices,
            gmd_by_id={animal_id: d.gmd for animal_id, d in derived.items()},
        )

    def compare_sires(self) -> list[SireProgenyComparison]:
        """Per-sire offspring comparison reusing this snapshot's gain metrics."""
        derived = self.all_derived()
        return compare_sire_progeny(
            self.animals,
            indices=self.indices,
            today=self.today,
            gmd_by_id={animal_id: d.gmd for animal_id, d in derived.items()},
        )
