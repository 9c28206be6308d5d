"""Tests for herd record normalization."""

from datetime import date, datetime

import pytest

from herdmetrics.data.models import (
    Animal,
    AnimalStatus,
    Breed,
    BreedingSeason,
    CoverageRecord,
    CoverageType,
    DiagnosisResult,
    SeasonStatus,
    Sex,
    WeighingType,
    WeightEntry,
    parse_date,
    parse_weight,
    unique_animals,
)


class TestParseDate:
    """Tests for the parse_date function."""

    def test_iso_string(self):
        assert parse_date("2025-03-01") == date(2025, 3, 1)

    def test_iso_datetime_string_keeps_date(self):
        assert parse_date("2025-03-01T22:15:00Z") == date(2025, 3, 1)

    def test_epoch_milliseconds(self):
        assert parse_date(1740787200000) == date(2025, 3, 1)

    def test_firestore_timestamp_dict(self):
        assert parse_date({"seconds": 1740787200, "nanoseconds": 0}) == date(2025, 3, 1)

    def test_datetime_object(self):
        assert parse_date(datetime(2025, 3, 1, 10, 30)) == date(2025, 3, 1)

    @pytest.mark.parametrize("value", [None, "", "not a date", True, {"foo": 1}, []])
    def test_unparseable_returns_none(self, value):
        assert parse_date(value) is None


class TestParseWeight:
    """Tests for the parse_weight function."""

    def test_number(self):
        assert parse_weight(182) == 182.0

    def test_decimal_comma_string(self):
        assert parse_weight("182,5") == 182.5

    def test_pounds_dict_converted_to_kg(self):
        assert parse_weight({"value": 100, "unit": "lb"}) == pytest.approx(45.359, abs=0.001)

    def test_arroba_dict_converted_to_kg(self):
        assert parse_weight({"value": 18, "unit": "@"}) == pytest.approx(540.0)

    def test_unknown_unit_returns_none(self):
        assert parse_weight({"value": 10, "unit": "stone-ish"}) is None

    def test_bool_is_not_a_weight(self):
        assert parse_weight(True) is None


class TestLenientEnums:
    """Tests for accent- and case-insensitive enum parsing."""

    def test_sex_without_accent(self):
        assert Sex.parse("femea") == Sex.FEMALE

    def test_status_by_member_name(self):
        assert AnimalStatus.parse("deceased") == AnimalStatus.DECEASED

    def test_weighing_type_case_insensitive(self):
        assert WeighingType.parse("DESMAME") == WeighingType.WEANING

    def test_unknown_breed_uses_default(self):
        assert Breed.parse("Angus", Breed.OTHER) == Breed.OTHER

    def test_missing_value_uses_default(self):
        assert DiagnosisResult.parse(None, DiagnosisResult.PENDING) == DiagnosisResult.PENDING


class TestAnimalFromDict:
    """Tests for Animal.from_dict."""

    def test_maps_exported_fields(self, sample_export):
        animal = Animal.from_dict(sample_export["animals"][0])

        assert animal.id == "cow-1"
        assert animal.tag == "101"
        assert animal.name == "Mimosa"
        assert animal.breed == Breed.HEREFORD
        assert animal.sex == Sex.FEMALE
        assert animal.birth_date == date(2021, 9, 10)
        assert animal.weight_kg == 420.0
        assert animal.weight_of(WeighingType.WEANING) == 190.0
        assert animal.progeny_records[0].offspring_tag == "201"

    def test_parent_references(self, sample_export):
        calf = Animal.from_dict(sample_export["animals"][1])

        assert calf.dam.id == "cow-1"
        assert calf.dam.name is None
        assert calf.sire.id is None
        assert calf.sire.name == "Touro X"

    def test_skips_malformed_weighings(self):
        animal = Animal.from_dict(
            {
                "id": "x",
                "brinco": "1",
                "historicoPesagens": [
                    {"date": "2025-01-01", "weightKg": 30},
                    {"date": "garbage", "weightKg": 40},
                    {"date": "2025-02-01"},
                    "not a dict",
                ],
            }
        )
        assert len(animal.weights) == 1

    def test_defaults_for_missing_fields(self):
        animal = Animal.from_dict({"id": "x"})

        assert animal.tag == ""
        assert animal.breed == Breed.OTHER
        assert animal.status == AnimalStatus.ACTIVE
        assert animal.sex == Sex.UNKNOWN
        assert animal.birth_date is None
        assert animal.sire.is_empty

    def test_id_derived_from_tag_when_missing(self):
        assert Animal.from_dict({"brinco": "A-7"}).id == "brinco:a-7"
        assert Animal.from_dict({"id": "", "brinco": "B"}).id == "brinco:b"

    def test_no_id_and_no_tag_leaves_id_empty(self):
        assert Animal.from_dict({"nome": "Sem brinco"}).id == ""

    def test_unrecognized_sex_is_unknown(self):
        assert Animal.from_dict({"id": "x", "sexo": "?"}).sex == Sex.UNKNOWN

    def test_first_weighing_of_type_wins(self):
        animal = Animal(
            id="x",
            tag="1",
            weights=[
                WeightEntry(date(2025, 9, 1), 180, WeighingType.WEANING),
                WeightEntry(date(2025, 9, 15), 190, WeighingType.WEANING),
            ],
        )
        assert animal.weight_of(WeighingType.WEANING) == 180

    def test_label_includes_distinct_name(self):
        assert Animal(id="x", tag="101", name="Mimosa").label == "101 (Mimosa)"
        assert Animal(id="x", tag="101", name="101").label == "101"


class TestUniqueAnimals:
    """Tests for the unique_animals function."""

    def test_drops_animals_without_id(self):
        animals = [Animal(id="", tag=""), Animal(id="a", tag="1")]
        assert [a.id for a in unique_animals(animals)] == ["a"]

    def test_first_of_repeated_id_wins(self):
        animals = [Animal(id="a", tag="1"), Animal(id="a", tag="2"), Animal(id="b", tag="3")]
        result = unique_animals(animals)

        assert [a.tag for a in result] == ["1", "3"]

    def test_tagged_records_without_id_stay_distinct(self):
        animals = [Animal.from_dict({"brinco": "A"}), Animal.from_dict({"brinco": "B"})]
        assert len(unique_animals(animals)) == 2


class TestBreedingSeasonFromDict:
    """Tests for BreedingSeason.from_dict."""

    def test_parses_coverages_and_repasse(self, sample_export):
        season = BreedingSeason.from_dict(sample_export["breedingSeasons"][0])

        assert season.status == SeasonStatus.ACTIVE
        assert season.start_date == date(2025, 11, 1)
        assert season.exposed_cow_ids == ["cow-1"]

        coverage = season.coverage_records[0]
        assert coverage.type == CoverageType.FTAI
        assert coverage.pregnancy_result == DiagnosisResult.NEGATIVE
        assert coverage.repasse.enabled is True
        assert coverage.repasse.diagnosis_result == DiagnosisResult.POSITIVE
        assert coverage.repasse.bulls[0].bull_tag == "T-01"

    def test_legacy_single_bull_field(self):
        coverage = CoverageRecord.from_dict({"cowId": "c1", "bullId": "b9", "bullBrinco": "T-09"})
        assert [b.bull_id for b in coverage.bulls] == ["b9"]

    def test_coverage_without_cow_is_skipped(self):
        season = BreedingSeason.from_dict({"id": "s", "coverageRecords": [{"type": "ia"}]})
        assert season.coverage_records == []

    def test_repasse_start_date(self):
        coverage = CoverageRecord.from_dict(
            {"cowId": "c1", "repasse": {"enabled": True, "startDate": "2026-01-10", "bulls": []}}
        )
        assert coverage.repasse.start_date == date(2026, 1, 10)
