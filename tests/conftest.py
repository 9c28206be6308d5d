"""Shared test fixtures."""

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest
import respx

# Add src/ to path so tests can import herdmetrics
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from herdmetrics.data.models import (  # noqa: E402
    Animal,
    AnimalStatus,
    Breed,
    BreedingSeason,
    BullRef,
    CalvingResult,
    CoverageRecord,
    DiagnosisResult,
    ParentRef,
    RepasseData,
    SeasonStatus,
    Sex,
    WeighingType,
    WeightEntry,
)

SNAPSHOT_BASE_URL = "https://herd.example.org"

# Reference period used throughout the tests
REF_START = date(2025, 1, 1)
TODAY = date(2026, 6, 1)


def make_weight(day: date, kg: float, weighing_type: WeighingType = WeighingType.NONE) -> WeightEntry:
    return WeightEntry(date=day, weight_kg=kg, type=weighing_type)


def make_animal(
    animal_id: str = "a1",
    tag: str | None = None,
    name: str | None = None,
    breed: Breed = Breed.HEREFORD,
    sex: Sex = Sex.FEMALE,
    status: AnimalStatus = AnimalStatus.ACTIVE,
    birth_date: date | None = date(2025, 3, 1),
    weight_kg: float = 0.0,
    weights: list[WeightEntry] | None = None,
    sire_id: str | None = None,
    sire_name: str | None = None,
    dam_id: str | None = None,
    dam_name: str | None = None,
    **kwargs,
) -> Animal:
    """Create an Animal with sensible defaults (in-period Hereford female)."""
    return Animal(
        id=animal_id,
        tag=tag if tag is not None else animal_id.upper(),
        name=name,
        breed=breed,
        sex=sex,
        status=status,
        birth_date=birth_date,
        weight_kg=weight_kg,
        weights=weights or [],
        sire=ParentRef(id=sire_id, name=sire_name),
        dam=ParentRef(id=dam_id, name=dam_name),
        **kwargs,
    )


def make_weighed_calf(
    animal_id: str,
    birth_kg: float | None = None,
    weaning_kg: float | None = None,
    yearling_kg: float | None = None,
    birth_date: date = date(2025, 3, 1),
    **kwargs,
) -> Animal:
    """Create an animal with tagged birth/weaning/yearling weighings."""
    weights = []
    if birth_kg is not None:
        weights.append(make_weight(birth_date, birth_kg, WeighingType.BIRTH))
    if weaning_kg is not None:
        weights.append(make_weight(birth_date + timedelta(days=182), weaning_kg, WeighingType.WEANING))
    if yearling_kg is not None:
        weights.append(make_weight(birth_date + timedelta(days=365), yearling_kg, WeighingType.YEARLING))
    return make_animal(animal_id, birth_date=birth_date, weights=weights, **kwargs)


def make_coverage(
    cow_id: str,
    pregnancy_result: DiagnosisResult = DiagnosisResult.PENDING,
    calving_result: CalvingResult = CalvingResult.PENDING,
    coverage_date: date | None = date(2025, 11, 1),
    bulls: list[BullRef] | None = None,
    repasse: RepasseData | None = None,
    **kwargs,
) -> CoverageRecord:
    return CoverageRecord(
        id=f"cov-{cow_id}",
        cow_id=cow_id,
        cow_tag=cow_id.upper(),
        date=coverage_date,
        bulls=bulls if bulls is not None else [BullRef("b1", "T-01")],
        pregnancy_result=pregnancy_result,
        calving_result=calving_result,
        repasse=repasse,
        **kwargs,
    )


def make_season(
    coverages: list[CoverageRecord],
    exposed: list[str] | None = None,
    status: SeasonStatus = SeasonStatus.ACTIVE,
    start_date: date | None = date(2025, 11, 1),
) -> BreedingSeason:
    return BreedingSeason(
        id="season-1",
        name="Estação 2025/26",
        status=status,
        start_date=start_date,
        exposed_cow_ids=exposed if exposed is not None else [c.cow_id for c in coverages],
        coverage_records=coverages,
    )


@pytest.fixture
def mock_snapshot_server():
    """Mock the herd export server."""
    with respx.mock(base_url=SNAPSHOT_BASE_URL) as mock:
        yield mock


@pytest.fixture
def sample_export():
    """Sample exported herd with two animals and one breeding season."""
    return {
        "exportedAt": "2026-05-30T12:00:00Z",
        "animals": [
            {
                "id": "cow-1",
                "brinco": "101",
                "nome": "Mimosa",
                "raca": "Hereford",
                "sexo": "Fêmea",
                "status": "Ativo",
                "pesoKg": 420,
                "dataNascimento": "2021-09-10",
                "historicoPesagens": [
                    {"date": "2021-09-10", "weightKg": 32, "type": "Nascimento"},
                    {"date": "2022-04-10", "weightKg": 190, "type": "Desmame"},
                ],
                "historicoProgenie": [{"offspringBrinco": "201", "weaningWeightKg": 205}],
            },
            {
                "id": "calf-1",
                "brinco": "201",
                "raca": "Hereford",
                "sexo": "Macho",
                "dataNascimento": 1740787200000,
                "maeId": "cow-1",
                "paiNome": "Touro X",
                "historicoPesagens": [{"date": "2025-03-01", "weight": {"value": 70, "unit": "lb"}}],
            },
        ],
        "breedingSeasons": [
            {
                "id": "s1",
                "name": "Estação 2025/26",
                "status": "active",
                "startDate": "2025-11-01",
                "exposedCowIds": ["cow-1"],
                "coverageRecords": [
                    {
                        "id": "c1",
                        "cowId": "cow-1",
                        "cowBrinco": "101",
                        "type": "iatf",
                        "date": "2025-11-05",
                        "semenCode": "HER123",
                        "pregnancyResult": "negative",
                        "repasse": {
                            "enabled": True,
                            "bulls": [{"bullId": "bull-1", "bullBrinco": "T-01"}],
                            "diagnosisResult": "positive",
                        },
                    }
                ],
            }
        ],
    }
