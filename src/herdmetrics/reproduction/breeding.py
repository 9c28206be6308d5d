"""
Breeding-season records and per-female reproductive status.

A coverage record has a primary breeding attempt and, for cows not confirmed
pregnant by it, an optional rebreeding pass ("repasse"). The two passes are
never counted twice: a cow is pregnant from the primary pass if its diagnosis
is positive, otherwise from the repasse if that diagnosis is positive. The
calving outcome that counts is the one of the pass that produced the
pregnancy.

Breeding seasons outrank the manual pregnancy history kept on each animal;
the manual history is only a fallback.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import TypedDict

from herdmetrics.data.models import (
    Animal,
    BreedingSeason,
    BullRef,
    CalvingResult,
    CoverageRecord,
    CoverageType,
    DiagnosisResult,
    RepasseData,
    SeasonStatus,
)
from herdmetrics.growth.gmd import age_in_months

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

GESTATION_DAYS = 283
PREGNANCY_CHECK_DAYS = 60

# Physiologically plausible calving interval (days, inclusive)
MIN_CALVING_INTERVAL_DAYS = 200
MAX_CALVING_INTERVAL_DAYS = 730

# Plausible age at first calving (months, inclusive)
MIN_FIRST_CALVING_MONTHS = 18
MAX_FIRST_CALVING_MONTHS = 48

KPI_SEASON_STATUSES = (SeasonStatus.ACTIVE, SeasonStatus.FINISHED)


class CoveragePass(Enum):
    PRIMARY = "primary"
    REPASSE = "repasse"


class PregnancySource(Enum):
    BREEDING_SEASON = "breeding_season"
    MANUAL = "manual"
    NONE = "none"


@dataclass
class ReproductiveStatus:
    is_pregnant: bool = False
    source: PregnancySource = PregnancySource.NONE
    expected_calving_date: date | None = None


class BullStats(TypedDict):
    bull_id: str
    bull_tag: str
    count: int
    pregnancies: int


class PregnancyCheckDue(TypedDict):
    cow_id: str
    cow_tag: str | None
    coverage_id: str
    due_date: date
    is_repasse: bool


class BreedingSeasonMetrics(TypedDict):
    total_exposed: int
    total_covered: int
    total_pregnant: int
    total_empty: int
    total_pending: int
    pregnancy_rate: float  # first service only
    service_rate: float
    conception_rate: float
    overall_pregnancy_rate: float  # including repasse
    repasse_count: int
    repasse_pregnant: int
    coverages_by_type: dict[str, int]
    coverages_by_bull: list[BullStats]
    daily_coverages: list[tuple[date, int]]
    pregnancy_checks_due: list[PregnancyCheckDue]


class ExpectedCalving(TypedDict):
    cow_id: str
    cow_tag: str | None
    coverage_id: str
    expected_date: date
    sire_label: str
    is_ivf: bool
    donor_cow_tag: str | None
    is_repasse: bool


# -----------------------------------------------------------------------------
# Coverage precedence
# -----------------------------------------------------------------------------


def counts_for_kpis(season: BreedingSeason) -> bool:
    """Only active and finished seasons feed herd KPIs."""
    return season.status in KPI_SEASON_STATUSES


def _has_repasse(record: CoverageRecord) -> bool:
    return record.repasse is not None and record.repasse.enabled


def effective_diagnosis(record: CoverageRecord) -> tuple[DiagnosisResult, CoveragePass]:
    """
    Diagnosis that counts for a coverage, and the pass it came from.

    Primary positive wins; otherwise an enabled repasse decides; otherwise
    the primary diagnosis stands.
    """
    if record.pregnancy_result == DiagnosisResult.POSITIVE:
        return DiagnosisResult.POSITIVE, CoveragePass.PRIMARY
    if _has_repasse(record):
        return record.repasse.diagnosis_result, CoveragePass.REPASSE
    return record.pregnancy_result, CoveragePass.PRIMARY


def is_pregnant(record: CoverageRecord) -> bool:
    return effective_diagnosis(record)[0] == DiagnosisResult.POSITIVE


def effective_calving(record: CoverageRecord) -> CalvingResult:
    """Calving outcome of the pass that produced the pregnancy (pending if none did)."""
    diagnosis, source = effective_diagnosis(record)
    if diagnosis != DiagnosisResult.POSITIVE:
        return CalvingResult.PENDING
    if source == CoveragePass.REPASSE:
        return record.repasse.calving_result
    return record.calving_result


def expected_calving_date(coverage_date: date | None) -> date | None:
    if coverage_date is None:
        return None
    return coverage_date + timedelta(days=GESTATION_DAYS)


def _bulls_label(bulls: list[BullRef]) -> str:
    return " / ".join(b.bull_tag for b in bulls)


def coverage_sire_label(record: CoverageRecord) -> str:
    """
    Sire description for a coverage.

    IVF shows the cross as DONORxSEMEN. A natural coverage shows the confirmed
    sire, its single bull, or both candidate bulls marked as pending.
    """
    if record.type == CoverageType.IVF and record.donor_cow_tag and record.semen_code:
        return f"{record.donor_cow_tag}X{record.semen_code}"
    if record.type == CoverageType.NATURAL and record.confirmed_sire_id:
        return record.confirmed_sire_tag or "Confirmado"
    if record.type == CoverageType.NATURAL and record.bulls:
        if len(record.bulls) == 1:
            return record.bulls[0].bull_tag
        return f"{_bulls_label(record.bulls)} (pendente)"
    if record.bulls:
        return record.bulls[0].bull_tag
    return record.semen_code or "Desconhecido"


def repasse_sire_label(repasse: RepasseData) -> str:
    """Sire description for a repasse; two unconfirmed bulls leave paternity pending."""
    if repasse.confirmed_sire_id:
        for bull in repasse.bulls:
            if bull.bull_id == repasse.confirmed_sire_id:
                return bull.bull_tag
        return "Confirmado"
    if not repasse.bulls:
        return "Sem touro"
    if len(repasse.bulls) > 1:
        return f"{_bulls_label(repasse.bulls)} (paternidade pendente)"
    return repasse.bulls[0].bull_tag


def _repasse_start(record: CoverageRecord, season: BreedingSeason) -> date | None:
    return record.repasse.start_date or season.start_date


def coverage_calving_date(record: CoverageRecord, season: BreedingSeason) -> date | None:
    """Expected calving date for the pass that produced the pregnancy."""
    _, source = effective_diagnosis(record)
    if source == CoveragePass.REPASSE:
        return expected_calving_date(_repasse_start(record, season))
    return record.expected_calving_date or expected_calving_date(record.date)


# -----------------------------------------------------------------------------
# Season metrics
# -----------------------------------------------------------------------------


def _rate(numerator: int, denominator: int) -> float:
    return round(numerator / denominator * 100, 1) if denominator > 0 else 0.0


def _credit_bulls(
    stats: dict[str, BullStats], bulls: list[BullRef], pregnant: bool, confirmed_sire_id: str | None
) -> None:
    """Count a service for every bull; credit the pregnancy only when paternity is unambiguous."""
    for bull in bulls:
        entry = stats.setdefault(
            bull.bull_id, {"bull_id": bull.bull_id, "bull_tag": bull.bull_tag, "count": 0, "pregnancies": 0}
        )
        entry["count"] += 1
        if not pregnant:
            continue
        if confirmed_sire_id:
            if confirmed_sire_id == bull.bull_id:
                entry["pregnancies"] += 1
        elif len(bulls) == 1:
            entry["pregnancies"] += 1


def calculate_breeding_metrics(season: BreedingSeason, today: date | None = None) -> BreedingSeasonMetrics:
    """
    Summarize one breeding season.

    Pregnancy rate counts first-service pregnancies only; the overall rate
    includes cows made pregnant by the repasse.

    Args:
        season: Breeding season
        today: Reference day for overdue pregnancy checks (defaults to today)
    """
    if today is None:
        today = date.today()

    coverages = season.coverage_records
    total_exposed = len(season.exposed_cow_ids)
    covered = {c.cow_id for c in coverages}

    pregnant: set[str] = set()
    first_service: set[str] = set()
    empty: set[str] = set()
    pending: set[str] = set()
    repasse_count = 0
    repasse_pregnant = 0

    for c in coverages:
        if c.pregnancy_result == DiagnosisResult.POSITIVE:
            pregnant.add(c.cow_id)
            first_service.add(c.cow_id)
            continue

        if _has_repasse(c):
            repasse_count += 1
            result = c.repasse.diagnosis_result
        else:
            result = c.pregnancy_result

        if result == DiagnosisResult.POSITIVE:
            repasse_pregnant += 1
            pregnant.add(c.cow_id)
        elif result == DiagnosisResult.NEGATIVE:
            empty.add(c.cow_id)
        else:
            pending.add(c.cow_id)

    type_counts = Counter(c.type for c in coverages)
    coverages_by_type = {t.value: type_counts.get(t, 0) for t in CoverageType}

    bull_stats: dict[str, BullStats] = {}
    for c in coverages:
        primary_pregnant = c.pregnancy_result == DiagnosisResult.POSITIVE
        if c.type == CoverageType.NATURAL and c.bulls:
            _credit_bulls(bull_stats, c.bulls, primary_pregnant, c.confirmed_sire_id)
        else:
            key = (c.bulls[0].bull_id if c.bulls else None) or c.semen_code or "desconhecido"
            label = (c.bulls[0].bull_tag if c.bulls else None) or c.semen_code or "Desconhecido"
            entry = bull_stats.setdefault(key, {"bull_id": key, "bull_tag": label, "count": 0, "pregnancies": 0})
            entry["count"] += 1
            if primary_pregnant:
                entry["pregnancies"] += 1

        if _has_repasse(c):
            _credit_bulls(
                bull_stats,
                c.repasse.bulls,
                c.repasse.diagnosis_result == DiagnosisResult.POSITIVE,
                c.repasse.confirmed_sire_id,
            )

    daily = Counter(c.date for c in coverages if c.date is not None)

    checks_due: list[PregnancyCheckDue] = []
    check_delay = timedelta(days=PREGNANCY_CHECK_DAYS)
    for c in coverages:
        if c.pregnancy_result == DiagnosisResult.PENDING and c.date is not None and c.date + check_delay <= today:
            checks_due.append(
                {
                    "cow_id": c.cow_id,
                    "cow_tag": c.cow_tag,
                    "coverage_id": c.id,
                    "due_date": c.date + check_delay,
                    "is_repasse": False,
                }
            )
        if not _has_repasse(c) or c.repasse.diagnosis_result != DiagnosisResult.PENDING:
            continue
        repasse_start = _repasse_start(c, season)
        if repasse_start is not None and repasse_start + check_delay <= today:
            checks_due.append(
                {
                    "cow_id": c.cow_id,
                    "cow_tag": c.cow_tag,
                    "coverage_id": c.id,
                    "due_date": repasse_start + check_delay,
                    "is_repasse": True,
                }
            )

    return {
        "total_exposed": total_exposed,
        "total_covered": len(covered),
        "total_pregnant": len(pregnant),
        "total_empty": len(empty),
        "total_pending": len(pending),
        "pregnancy_rate": _rate(len(first_service), total_exposed),
        "service_rate": _rate(len(covered), total_exposed),
        "conception_rate": _rate(len(pregnant), len(covered)),
        "overall_pregnancy_rate": _rate(len(pregnant), total_exposed),
        "repasse_count": repasse_count,
        "repasse_pregnant": repasse_pregnant,
        "coverages_by_type": coverages_by_type,
        "coverages_by_bull": sorted(bull_stats.values(), key=lambda b: b["count"], reverse=True),
        "daily_coverages": sorted(daily.items()),
        "pregnancy_checks_due": checks_due,
    }


def expected_calvings(season: BreedingSeason, since: date | None = None) -> list[ExpectedCalving]:
    """
    Calvings still expected from a season's pregnancies, soonest first.

    One entry per pregnant cow, dated from the pass that produced the
    pregnancy: the coverage date for the primary pass, the repasse start (or
    the season start) for the repasse. Pregnancies already calved or aborted
    are left out.

    Args:
        season: Breeding season
        since: Only calvings expected on or after this day
    """
    calvings: list[ExpectedCalving] = []
    for record in season.coverage_records:
        if not is_pregnant(record) or effective_calving(record) != CalvingResult.PENDING:
            continue

        due = coverage_calving_date(record, season)
        if due is None or (since is not None and due < since):
            continue

        _, source = effective_diagnosis(record)
        is_repasse = source == CoveragePass.REPASSE
        calvings.append(
            {
                "cow_id": record.cow_id,
                "cow_tag": record.cow_tag,
                "coverage_id": record.id,
                "expected_date": due,
                "sire_label": repasse_sire_label(record.repasse) if is_repasse else coverage_sire_label(record),
                "is_ivf": not is_repasse and record.type == CoverageType.IVF,
                "donor_cow_tag": None if is_repasse else record.donor_cow_tag,
                "is_repasse": is_repasse,
            }
        )

    return sorted(calvings, key=lambda c: c["expected_date"])


# -----------------------------------------------------------------------------
# Per-female status
# -----------------------------------------------------------------------------


def female_reproductive_status(animal: Animal, seasons: list[BreedingSeason]) -> ReproductiveStatus:
    """
    Current pregnancy status of a female.

    A positive coverage in an active or finished season wins. Otherwise the
    latest manual pregnancy record counts unless it was diagnosed negative or
    an abortion was recorded on or after it.
    """
    if not animal.is_female:
        return ReproductiveStatus()

    for season in seasons:
        if not counts_for_kpis(season):
            continue
        for record in season.coverage_records:
            if record.cow_id == animal.id and is_pregnant(record):
                return ReproductiveStatus(
                    is_pregnant=True,
                    source=PregnancySource.BREEDING_SEASON,
                    expected_calving_date=coverage_calving_date(record, season),
                )

    if not animal.pregnancies:
        return ReproductiveStatus()

    # Latest by date, not by list position; a negative diagnosis never counts
    dated = [p for p in animal.pregnancies if p.date is not None]
    latest = max(dated, key=lambda p: p.date) if dated else animal.pregnancies[-1]

    if latest.result == DiagnosisResult.NEGATIVE:
        return ReproductiveStatus()

    if latest.date is not None and any(a.date is not None and a.date >= latest.date for a in animal.abortions):
        return ReproductiveStatus()

    return ReproductiveStatus(
        is_pregnant=True,
        source=PregnancySource.MANUAL,
        expected_calving_date=expected_calving_date(latest.date),
    )


def calving_intervals(birth_dates: list[date]) -> list[int]:
    """Days between consecutive calvings, keeping only plausible gaps."""
    ordered = sorted(birth_dates)
    gaps = ((later - earlier).days for earlier, later in zip(ordered, ordered[1:]))
    return [g for g in gaps if MIN_CALVING_INTERVAL_DAYS <= g <= MAX_CALVING_INTERVAL_DAYS]


def first_calving_age_months(animal: Animal, progeny: list[Animal]) -> int | None:
    """Age of a dam at her first recorded calving, None if unknown or implausible."""
    if animal.birth_date is None:
        return None
    births = [p.birth_date for p in progeny if p.birth_date is not None]
    if not births:
        return None
    age = age_in_months(animal.birth_date, min(births))
    if not MIN_FIRST_CALVING_MONTHS <= age <= MAX_FIRST_CALVING_MONTHS:
        return None
    return age
