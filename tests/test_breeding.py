"""Tests for breeding seasons and reproductive status."""

from datetime import date, timedelta

import pytest

from conftest import make_animal, make_coverage, make_season
from herdmetrics.data.models import (
    AbortionRecord,
    BullRef,
    CalvingResult,
    CoverageType,
    DiagnosisResult,
    PregnancyRecord,
    RepasseData,
    SeasonStatus,
    Sex,
)
from herdmetrics.reproduction import (
    CoveragePass,
    PregnancySource,
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

POS = DiagnosisResult.POSITIVE
NEG = DiagnosisResult.NEGATIVE
PENDING = DiagnosisResult.PENDING

TODAY = date(2026, 6, 1)


def repasse(result=POS, enabled=True, calving=CalvingResult.PENDING, bulls=None) -> RepasseData:
    return RepasseData(
        enabled=enabled,
        bulls=bulls if bulls is not None else [BullRef("b2", "T-02")],
        diagnosis_result=result,
        calving_result=calving,
    )


class TestEffectiveDiagnosis:
    """Tests for primary/repasse precedence."""

    def test_primary_positive_wins(self):
        record = make_coverage("c1", POS, repasse=repasse(POS))

        assert effective_diagnosis(record) == (POS, CoveragePass.PRIMARY)

    def test_repasse_decides_when_primary_not_positive(self):
        record = make_coverage("c1", NEG, repasse=repasse(POS))

        assert effective_diagnosis(record) == (POS, CoveragePass.REPASSE)
        assert is_pregnant(record)

    def test_disabled_repasse_is_ignored(self):
        record = make_coverage("c1", NEG, repasse=repasse(POS, enabled=False))

        assert effective_diagnosis(record) == (NEG, CoveragePass.PRIMARY)
        assert not is_pregnant(record)

    def test_no_repasse(self):
        assert effective_diagnosis(make_coverage("c1", PENDING)) == (PENDING, CoveragePass.PRIMARY)


class TestEffectiveCalving:
    """Tests for the effective_calving function."""

    def test_uses_pass_that_produced_pregnancy(self):
        record = make_coverage(
            "c1", NEG, calving_result=CalvingResult.ABORTED, repasse=repasse(POS, calving=CalvingResult.REALIZED)
        )

        assert effective_calving(record) == CalvingResult.REALIZED

    def test_primary_calving(self):
        record = make_coverage("c1", POS, calving_result=CalvingResult.REALIZED)

        assert effective_calving(record) == CalvingResult.REALIZED

    def test_not_pregnant_is_pending(self):
        record = make_coverage("c1", NEG, calving_result=CalvingResult.REALIZED)

        assert effective_calving(record) == CalvingResult.PENDING


class TestCoverageSireLabel:
    """Tests for the coverage_sire_label function."""

    def test_ivf_cross(self):
        record = make_coverage("c1", type=CoverageType.IVF, donor_cow_tag="D-7", semen_code="HER123", bulls=[])

        assert coverage_sire_label(record) == "D-7XHER123"

    def test_confirmed_sire(self):
        record = make_coverage(
            "c1",
            bulls=[BullRef("b1", "T-01"), BullRef("b2", "T-02")],
            confirmed_sire_id="b2",
            confirmed_sire_tag="T-02",
        )

        assert coverage_sire_label(record) == "T-02"

    def test_multiple_bulls_pending(self):
        record = make_coverage("c1", bulls=[BullRef("b1", "T-01"), BullRef("b2", "T-02")])

        assert coverage_sire_label(record) == "T-01 / T-02 (pendente)"

    def test_insemination_uses_semen_code(self):
        record = make_coverage("c1", type=CoverageType.AI, semen_code="HER123", bulls=[])

        assert coverage_sire_label(record) == "HER123"

    def test_unknown(self):
        assert coverage_sire_label(make_coverage("c1", type=CoverageType.AI, bulls=[])) == "Desconhecido"


class TestRepasseSireLabel:
    """Tests for the repasse_sire_label function."""

    def test_single_bull(self):
        assert repasse_sire_label(repasse()) == "T-02"

    def test_two_bulls_leave_paternity_pending(self):
        data = repasse(bulls=[BullRef("b2", "T-02"), BullRef("b3", "T-03")])
        assert repasse_sire_label(data) == "T-02 / T-03 (paternidade pendente)"

    def test_confirmed_sire(self):
        data = repasse(bulls=[BullRef("b2", "T-02"), BullRef("b3", "T-03")])
        data.confirmed_sire_id = "b3"
        assert repasse_sire_label(data) == "T-03"

    def test_confirmed_sire_not_among_bulls(self):
        data = repasse()
        data.confirmed_sire_id = "b9"
        assert repasse_sire_label(data) == "Confirmado"

    def test_no_bulls(self):
        assert repasse_sire_label(repasse(bulls=[])) == "Sem touro"


class TestCalculateBreedingMetrics:
    """Tests for the calculate_breeding_metrics function."""

    def _season(self):
        coverages = [
            make_coverage("c1", POS),
            make_coverage("c2", POS),
            make_coverage("c3", POS),
            make_coverage("c4", NEG, repasse=repasse(POS)),
            make_coverage("c5", NEG),
            make_coverage("c6", NEG),
            make_coverage("c7", PENDING),
        ]
        exposed = [f"c{i}" for i in range(1, 11)]
        return make_season(coverages, exposed=exposed)

    def test_rates(self):
        metrics = calculate_breeding_metrics(self._season(), today=TODAY)

        assert metrics["total_exposed"] == 10
        assert metrics["total_covered"] == 7
        assert metrics["total_pregnant"] == 4
        assert metrics["total_empty"] == 2
        assert metrics["total_pending"] == 1
        assert metrics["pregnancy_rate"] == 30.0
        assert metrics["overall_pregnancy_rate"] == 40.0
        assert metrics["service_rate"] == 70.0
        assert metrics["conception_rate"] == 57.1
        assert metrics["repasse_count"] == 1
        assert metrics["repasse_pregnant"] == 1

    def test_coverage_breakdowns(self):
        metrics = calculate_breeding_metrics(self._season(), today=TODAY)

        assert metrics["coverages_by_type"]["natural"] == 7
        assert metrics["coverages_by_type"]["iatf"] == 0
        assert metrics["daily_coverages"] == [(date(2025, 11, 1), 7)]

        bulls = {b["bull_id"]: b for b in metrics["coverages_by_bull"]}
        assert bulls["b1"]["count"] == 7
        assert bulls["b1"]["pregnancies"] == 3
        assert bulls["b2"]["count"] == 1
        assert bulls["b2"]["pregnancies"] == 1

    def test_shared_service_is_not_credited(self):
        shared = [BullRef("b1", "T-01"), BullRef("b2", "T-02")]
        season = make_season([make_coverage("c1", POS, bulls=shared)])

        bulls = {b["bull_id"]: b for b in calculate_breeding_metrics(season, today=TODAY)["coverages_by_bull"]}

        assert bulls["b1"]["count"] == 1
        assert bulls["b1"]["pregnancies"] == 0
        assert bulls["b2"]["pregnancies"] == 0

    def test_confirmed_sire_is_credited(self):
        shared = [BullRef("b1", "T-01"), BullRef("b2", "T-02")]
        season = make_season([make_coverage("c1", POS, bulls=shared, confirmed_sire_id="b2")])

        bulls = {b["bull_id"]: b for b in calculate_breeding_metrics(season, today=TODAY)["coverages_by_bull"]}

        assert bulls["b1"]["pregnancies"] == 0
        assert bulls["b2"]["pregnancies"] == 1

    def test_pregnancy_checks_due(self):
        season = make_season(
            [
                make_coverage("c1", PENDING, coverage_date=date(2026, 3, 1)),
                make_coverage("c2", PENDING, coverage_date=date(2026, 5, 1)),
                make_coverage("c3", NEG, repasse=repasse(PENDING)),
            ],
            start_date=date(2026, 3, 1),
        )

        checks = calculate_breeding_metrics(season, today=TODAY)["pregnancy_checks_due"]

        assert [(c["cow_id"], c["is_repasse"]) for c in checks] == [("c1", False), ("c3", True)]
        assert checks[0]["due_date"] == date(2026, 4, 30)

    def test_repasse_check_counts_from_repasse_start(self):
        late_repasse = RepasseData(enabled=True, bulls=[BullRef("b2", "T-02")], start_date=date(2026, 4, 15))
        season = make_season([make_coverage("c1", NEG, repasse=late_repasse)], start_date=date(2026, 3, 1))

        assert calculate_breeding_metrics(season, today=TODAY)["pregnancy_checks_due"] == []
        checks = calculate_breeding_metrics(season, today=date(2026, 6, 14))["pregnancy_checks_due"]
        assert checks[0]["due_date"] == date(2026, 6, 14)

    def test_empty_season(self):
        metrics = calculate_breeding_metrics(make_season([], exposed=[]), today=TODAY)

        assert metrics["pregnancy_rate"] == 0.0
        assert metrics["coverages_by_bull"] == []


class TestCountsForKpis:
    """Tests for the counts_for_kpis function."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (SeasonStatus.PLANNING, False),
            (SeasonStatus.ACTIVE, True),
            (SeasonStatus.FINISHED, True),
            (SeasonStatus.CANCELLED, False),
        ],
    )
    def test_statuses(self, status, expected):
        assert counts_for_kpis(make_season([], status=status)) is expected


class TestFemaleReproductiveStatus:
    """Tests for the female_reproductive_status function."""

    def test_breeding_season_wins(self):
        cow = make_animal("c1", pregnancies=[PregnancyRecord(date=date(2025, 1, 1), result=NEG)])
        season = make_season([make_coverage("c1", POS)])

        status = female_reproductive_status(cow, [season])

        assert status.is_pregnant
        assert status.source == PregnancySource.BREEDING_SEASON
        assert status.expected_calving_date == date(2025, 11, 1) + timedelta(days=283)

    def test_planning_season_is_ignored(self):
        cow = make_animal("c1")
        season = make_season([make_coverage("c1", POS)], status=SeasonStatus.PLANNING)

        assert not female_reproductive_status(cow, [season]).is_pregnant

    def test_latest_manual_record_counts(self):
        cow = make_animal(
            "c1",
            pregnancies=[
                PregnancyRecord(date=date(2026, 2, 1)),
                PregnancyRecord(date=date(2025, 2, 1), result=NEG),
            ],
        )

        status = female_reproductive_status(cow, [])

        assert status.is_pregnant
        assert status.source == PregnancySource.MANUAL
        assert status.expected_calving_date == expected_calving_date(date(2026, 2, 1))

    def test_negative_latest_record(self):
        cow = make_animal(
            "c1",
            pregnancies=[
                PregnancyRecord(date=date(2025, 2, 1)),
                PregnancyRecord(date=date(2026, 2, 1), result=NEG),
            ],
        )

        assert not female_reproductive_status(cow, []).is_pregnant

    def test_abortion_on_or_after_pregnancy(self):
        cow = make_animal(
            "c1",
            pregnancies=[PregnancyRecord(date=date(2026, 2, 1))],
            abortions=[AbortionRecord(date=date(2026, 2, 1))],
        )

        assert not female_reproductive_status(cow, []).is_pregnant

    def test_earlier_abortion_does_not_count(self):
        cow = make_animal(
            "c1",
            pregnancies=[PregnancyRecord(date=date(2026, 2, 1))],
            abortions=[AbortionRecord(date=date(2025, 6, 1))],
        )

        assert female_reproductive_status(cow, []).is_pregnant

    def test_males_are_never_pregnant(self):
        bull = make_animal("b1", sex=Sex.MALE, pregnancies=[PregnancyRecord(date=date(2026, 2, 1))])

        status = female_reproductive_status(bull, [])

        assert not status.is_pregnant
        assert status.source == PregnancySource.NONE


class TestCalvingIntervals:
    """Tests for the calving_intervals function."""

    def test_implausible_gaps_are_dropped(self):
        first = date(2020, 1, 1)
        births = [
            first,
            first + timedelta(days=150),
            first + timedelta(days=515),
            first + timedelta(days=1315),
        ]

        assert calving_intervals(births) == [365]

    def test_bounds_are_inclusive(self):
        first = date(2020, 1, 1)
        births = [first, first + timedelta(days=200), first + timedelta(days=930)]

        assert calving_intervals(births) == [200, 730]

    def test_order_does_not_matter(self):
        births = [date(2021, 1, 1), date(2020, 1, 1)]

        assert calving_intervals(births) == [366]

    def test_single_calving(self):
        assert calving_intervals([date(2020, 1, 1)]) == []


class TestFirstCalvingAge:
    """Tests for the first_calving_age_months function."""

    def test_age_at_earliest_calf(self):
        cow = make_animal("cow", birth_date=date(2022, 1, 1))
        calves = [make_animal("c2", birth_date=date(2025, 3, 1)), make_animal("c1", birth_date=date(2024, 3, 1))]

        assert first_calving_age_months(cow, calves) == 26

    def test_implausible_age_is_none(self):
        cow = make_animal("cow", birth_date=date(2023, 1, 1))
        calves = [make_animal("c1", birth_date=date(2024, 1, 1))]

        assert first_calving_age_months(cow, calves) is None

    def test_unknown_birth_date(self):
        cow = make_animal("cow", birth_date=None)

        assert first_calving_age_months(cow, [make_animal("c1")]) is None


class TestExpectedCalvings:
    """Tests for the expected_calvings function."""

    def _season(self):
        return make_season(
            [
                make_coverage("late", NEG, repasse=repasse()),
                make_coverage("early", POS, coverage_date=date(2025, 11, 1)),
                make_coverage("calved", POS, CalvingResult.REALIZED),
                make_coverage("open", NEG),
                make_coverage("lost", NEG, repasse=repasse(calving=CalvingResult.ABORTED)),
            ],
            start_date=date(2025, 11, 20),
        )

    def test_pending_pregnancies_soonest_first(self):
        calvings = expected_calvings(self._season())

        assert [c["cow_id"] for c in calvings] == ["early", "late"]
        assert calvings[0]["expected_date"] == date(2025, 11, 1) + timedelta(days=283)
        assert calvings[0]["is_repasse"] is False
        assert calvings[0]["sire_label"] == "T-01"

    def test_repasse_dated_from_season_start(self):
        late = expected_calvings(self._season())[1]

        assert late["is_repasse"] is True
        assert late["expected_date"] == date(2025, 11, 20) + timedelta(days=283)
        assert late["sire_label"] == "T-02"

    def test_since_filter(self):
        calvings = expected_calvings(self._season(), since=date(2026, 8, 20))
        assert [c["cow_id"] for c in calvings] == ["late"]

    def test_repasse_start_date_wins_over_season_start(self):
        data = repasse()
        data.start_date = date(2025, 12, 1)
        record = make_coverage("c1", NEG, repasse=data)

        assert coverage_calving_date(record, make_season([record])) == date(2025, 12, 1) + timedelta(days=283)

    def test_recorded_expected_date_wins_for_primary(self):
        record = make_coverage("c1", POS, expected_calving_date=date(2026, 7, 1))
        assert coverage_calving_date(record, make_season([record])) == date(2026, 7, 1)

    def test_undated_pregnancy_is_skipped(self):
        season = make_season([make_coverage("c1", POS, coverage_date=None)])
        assert expected_calvings(season) == []
