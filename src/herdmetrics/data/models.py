"""Herd data model.

Animals and breeding seasons arrive as exported app records (Portuguese
camelCase keys, dates as ISO strings or epoch milliseconds, optional unit
tagged weights). The `from_dict` constructors normalize those records into
the dataclasses below; every analytics module works on these types only.

Normalization never raises for data-quality problems: unparseable dates
become None, malformed history entries are skipped, unknown breeds fall back
to Breed.OTHER.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum

from herdmetrics.core.units import to_kg

logger = logging.getLogger(__name__)


def _fold(text: str) -> str:
    """Lowercase, trim and strip accents ("Fêmea" -> "femea")."""
    decomposed = unicodedata.normalize("NFKD", text.strip().lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


class LenientEnum(str, Enum):
    """String enum that also accepts member names and accent/case variants."""

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            key = _fold(value)
            for member in cls:
                if key in (_fold(member.value), member.name.lower(), member.name.lower().replace("_", " ")):
                    return member
        return None

    @classmethod
    def parse(cls, value, default=None):
        """Parse a raw value, returning `default` when it is missing or unknown."""
        if value is None or value == "":
            return default
        try:
            return cls(value)
        except ValueError:
            return default


# =============================================================================
# Enums
# =============================================================================


class Breed(LenientEnum):
    HEREFORD = "Hereford"
    BRAFORD = "Braford"
    HEREFORD_PO = "Hereford PO"
    OTHER = "Outros"


class Sex(LenientEnum):
    MALE = "Macho"
    FEMALE = "Fêmea"
    UNKNOWN = "Indefinido"


class AnimalStatus(LenientEnum):
    ACTIVE = "Ativo"
    SOLD = "Vendido"
    DECEASED = "Óbito"


class WeighingType(LenientEnum):
    NONE = "Nenhum"
    BIRTH = "Nascimento"
    WEANING = "Desmame"
    YEARLING = "Sobreano"
    TURN = "Peso de Virada"


class PregnancyType(LenientEnum):
    EMBRYO_TRANSFER = "Transferência de Embrião"
    ARTIFICIAL_INSEMINATION = "Inseminação Artificial"
    NATURAL = "Monta Natural"
    IVF = "FIV"


class DiagnosisResult(LenientEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    PENDING = "pending"


class CalvingResult(LenientEnum):
    REALIZED = "realizado"
    ABORTED = "aborto"
    PENDING = "pendente"


class SeasonStatus(LenientEnum):
    PLANNING = "planning"
    ACTIVE = "active"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class CoverageType(LenientEnum):
    NATURAL = "natural"
    AI = "ia"
    FTAI = "iatf"
    IVF = "fiv"


# =============================================================================
# Raw value parsing
# =============================================================================


def parse_date(value) -> date | None:
    """Parse a date from the formats found in exported records.

    Accepts date/datetime objects, ISO strings, epoch milliseconds and
    Firestore timestamp dicts ({"seconds": ...}). Returns None otherwise.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=UTC).date()
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if isinstance(seconds, (int, float)):
            return datetime.fromtimestamp(seconds, tz=UTC).date()
        return None
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def parse_weight(value) -> float | None:
    """Parse a weight in kg from a number or a {"value", "unit"} dict."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", "."))
        except ValueError:
            return None
    if isinstance(value, dict) and value.get("value") is not None:
        try:
            return to_kg(float(value["value"]), value.get("unit"))
        except (TypeError, ValueError) as e:
            logger.warning("Skipping weight %r: %s", value, e)
    return None


def _str_or_none(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# =============================================================================
# Animal records
# =============================================================================


@dataclass
class ParentRef:
    """Parent link by resolved ID and/or legacy free-text name (ID wins)."""

    id: str | None = None
    name: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.id and not self.name


@dataclass
class WeightEntry:
    date: date
    weight_kg: float
    type: WeighingType = WeighingType.NONE

    @classmethod
    def from_dict(cls, raw: dict) -> WeightEntry | None:
        entry_date = parse_date(raw.get("date"))
        weight = parse_weight(raw.get("weightKg", raw.get("weight")))
        if entry_date is None or weight is None:
            return None
        return cls(
            date=entry_date,
            weight_kg=weight,
            type=WeighingType.parse(raw.get("type"), WeighingType.NONE),
        )


@dataclass
class Treatment:
    date: date | None
    medication: str
    dose: float | None = None
    unit: str | None = None
    reason: str | None = None
    responsible: str | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> Treatment:
        dose = raw.get("dose")
        return cls(
            date=parse_date(raw.get("dataAplicacao", raw.get("date"))),
            medication=str(raw.get("medicamento") or raw.get("medication") or ""),
            dose=float(dose) if isinstance(dose, (int, float)) else None,
            unit=_str_or_none(raw.get("unidade")),
            reason=_str_or_none(raw.get("motivo")),
            responsible=_str_or_none(raw.get("responsavel")),
        )


@dataclass
class PregnancyRecord:
    date: date | None
    type: PregnancyType | None = None
    sire_name: str | None = None
    result: DiagnosisResult | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> PregnancyRecord:
        return cls(
            date=parse_date(raw.get("date")),
            type=PregnancyType.parse(raw.get("type")),
            sire_name=_str_or_none(raw.get("sireName")),
            result=DiagnosisResult.parse(raw.get("result", raw.get("diagnosisResult"))),
        )


@dataclass
class AbortionRecord:
    date: date | None

    @classmethod
    def from_dict(cls, raw: dict) -> AbortionRecord:
        return cls(date=parse_date(raw.get("date")))


@dataclass
class ProgenyRecord:
    """Manually entered offspring summary kept on the parent."""

    offspring_tag: str
    birth_weight_kg: float | None = None
    weaning_weight_kg: float | None = None
    yearling_weight_kg: float | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> ProgenyRecord | None:
        tag = _str_or_none(raw.get("offspringBrinco"))
        if tag is None:
            return None
        return cls(
            offspring_tag=tag,
            birth_weight_kg=parse_weight(raw.get("birthWeightKg")),
            weaning_weight_kg=parse_weight(raw.get("weaningWeightKg")),
            yearling_weight_kg=parse_weight(raw.get("yearlingWeightKg")),
        )


def _parse_list(raw_items, parser) -> list:
    items = []
    for raw in raw_items or []:
        if not isinstance(raw, dict):
            continue
        item = parser(raw)
        if item is not None:
            items.append(item)
    return items


# Prefix of IDs derived from the tag for records exported without one
TAG_ID_PREFIX = "brinco:"


def _animal_id(raw: dict) -> str:
    """Record ID, or one derived from the tag; empty when both are missing."""
    animal_id = _str_or_none(raw.get("id"))
    if animal_id is not None:
        return animal_id
    tag = _str_or_none(raw.get("brinco"))
    return f"{TAG_ID_PREFIX}{tag.lower()}" if tag else ""


@dataclass
class Animal:
    id: str
    tag: str
    breed: Breed = Breed.OTHER
    sex: Sex = Sex.UNKNOWN
    status: AnimalStatus = AnimalStatus.ACTIVE
    weight_kg: float = 0.0
    name: str | None = None
    birth_date: date | None = None
    weights: list[WeightEntry] = field(default_factory=list)
    treatments: list[Treatment] = field(default_factory=list)
    pregnancies: list[PregnancyRecord] = field(default_factory=list)
    abortions: list[AbortionRecord] = field(default_factory=list)
    progeny_records: list[ProgenyRecord] = field(default_factory=list)
    sire: ParentRef = field(default_factory=ParentRef)
    dam: ParentRef = field(default_factory=ParentRef)

    @property
    def is_female(self) -> bool:
        return self.sex == Sex.FEMALE

    @property
    def is_male(self) -> bool:
        return self.sex == Sex.MALE

    @property
    def label(self) -> str:
        """Human label: tag, plus name when it differs."""
        if self.name and self.name.strip().lower() != self.tag.strip().lower():
            return f"{self.tag} ({self.name})"
        return self.tag or self.id

    def entry_of(self, weighing_type: WeighingType) -> WeightEntry | None:
        """First weighing of the given type (first match wins on duplicates)."""
        for entry in self.weights:
            if entry.type == weighing_type:
                return entry
        return None

    def weight_of(self, weighing_type: WeighingType) -> float | None:
        entry = self.entry_of(weighing_type)
        return entry.weight_kg if entry else None

    @classmethod
    def from_dict(cls, raw: dict) -> Animal:
        """Normalize an exported animal record."""
        return cls(
            id=_animal_id(raw),
            tag=str(raw.get("brinco") or "").strip(),
            name=_str_or_none(raw.get("nome")),
            breed=Breed.parse(raw.get("raca"), Breed.OTHER),
            sex=Sex.parse(raw.get("sexo"), Sex.UNKNOWN),
            status=AnimalStatus.parse(raw.get("status"), AnimalStatus.ACTIVE),
            weight_kg=parse_weight(raw.get("pesoKg")) or 0.0,
            birth_date=parse_date(raw.get("dataNascimento")),
            weights=_parse_list(raw.get("historicoPesagens"), WeightEntry.from_dict),
            treatments=_parse_list(raw.get("historicoSanitario"), Treatment.from_dict),
            pregnancies=_parse_list(raw.get("historicoPrenhez"), PregnancyRecord.from_dict),
            abortions=_parse_list(raw.get("historicoAborto"), AbortionRecord.from_dict),
            progeny_records=_parse_list(raw.get("historicoProgenie"), ProgenyRecord.from_dict),
            sire=ParentRef(id=_str_or_none(raw.get("paiId")), name=_str_or_none(raw.get("paiNome"))),
            dam=ParentRef(id=_str_or_none(raw.get("maeId")), name=_str_or_none(raw.get("maeNome"))),
        )


def unique_animals(animals: list[Animal]) -> list[Animal]:
    """
    Animals keyed by a usable ID, first occurrence winning.

    Derived metrics are cached by animal ID, so records with no ID (and no
    tag to derive one from) and later records repeating an ID are dropped.
    """
    seen: set[str] = set()
    unkeyed = 0
    duplicates = 0
    result: list[Animal] = []
    for animal in animals:
        if not animal.id:
            unkeyed += 1
        elif animal.id in seen:
            duplicates += 1
        else:
            seen.add(animal.id)
            result.append(animal)

    if unkeyed:
        logger.warning("Skipped %d animals with neither ID nor tag", unkeyed)
    if duplicates:
        logger.warning("Skipped %d animals repeating an earlier ID", duplicates)
    return result


# =============================================================================
# Breeding seasons
# =============================================================================


@dataclass
class BullRef:
    bull_id: str
    bull_tag: str = "Desconhecido"


def _parse_bulls(raw: dict) -> list[BullRef]:
    """Bulls from `bulls[]`, falling back to the legacy single bullId field."""
    bulls = []
    for b in raw.get("bulls") or []:
        if isinstance(b, dict) and b.get("bullId"):
            bulls.append(BullRef(bull_id=str(b["bullId"]), bull_tag=str(b.get("bullBrinco") or "Desconhecido")))
    if not bulls and raw.get("bullId"):
        bulls.append(BullRef(bull_id=str(raw["bullId"]), bull_tag=str(raw.get("bullBrinco") or "Desconhecido")))
    return bulls


@dataclass
class RepasseData:
    """Rebreeding pass for a cow not confirmed pregnant by the primary coverage."""

    enabled: bool = False
    bulls: list[BullRef] = field(default_factory=list)
    diagnosis_result: DiagnosisResult = DiagnosisResult.PENDING
    calving_result: CalvingResult = CalvingResult.PENDING
    calf_id: str | None = None
    confirmed_sire_id: str | None = None
    start_date: date | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> RepasseData:
        return cls(
            enabled=bool(raw.get("enabled", True)),
            start_date=parse_date(raw.get("startDate")),
            bulls=_parse_bulls(raw),
            diagnosis_result=DiagnosisResult.parse(raw.get("diagnosisResult"), DiagnosisResult.PENDING),
            calving_result=CalvingResult.parse(raw.get("calvingResult"), CalvingResult.PENDING),
            calf_id=_str_or_none(raw.get("calfId")),
            confirmed_sire_id=_str_or_none(raw.get("confirmedSireId")),
        )


@dataclass
class CoverageRecord:
    cow_id: str
    id: str = ""
    cow_tag: str | None = None
    type: CoverageType = CoverageType.NATURAL
    date: date | None = None
    bulls: list[BullRef] = field(default_factory=list)
    semen_code: str | None = None
    donor_cow_tag: str | None = None
    confirmed_sire_id: str | None = None
    confirmed_sire_tag: str | None = None
    pregnancy_result: DiagnosisResult = DiagnosisResult.PENDING
    calving_result: CalvingResult = CalvingResult.PENDING
    calf_id: str | None = None
    expected_calving_date: date | None = None
    repasse: RepasseData | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> CoverageRecord | None:
        cow_id = _str_or_none(raw.get("cowId"))
        if cow_id is None:
            return None
        repasse = raw.get("repasse")
        return cls(
            id=str(raw.get("id") or ""),
            cow_id=cow_id,
            cow_tag=_str_or_none(raw.get("cowBrinco")),
            type=CoverageType.parse(raw.get("type"), CoverageType.NATURAL),
            date=parse_date(raw.get("date")),
            bulls=_parse_bulls(raw),
            semen_code=_str_or_none(raw.get("semenCode")),
            donor_cow_tag=_str_or_none(raw.get("donorCowBrinco")),
            confirmed_sire_id=_str_or_none(raw.get("confirmedSireId")),
            confirmed_sire_tag=_str_or_none(raw.get("confirmedSireBrinco")),
            pregnancy_result=DiagnosisResult.parse(raw.get("pregnancyResult"), DiagnosisResult.PENDING),
            calving_result=CalvingResult.parse(raw.get("calvingResult"), CalvingResult.PENDING),
            calf_id=_str_or_none(raw.get("calfId")),
            expected_calving_date=parse_date(raw.get("expectedCalvingDate")),
            repasse=RepasseData.from_dict(repasse) if isinstance(repasse, dict) else None,
        )


@dataclass
class BreedingSeason:
    id: str
    name: str = ""
    status: SeasonStatus = SeasonStatus.PLANNING
    start_date: date | None = None
    end_date: date | None = None
    exposed_cow_ids: list[str] = field(default_factory=list)
    coverage_records: list[CoverageRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict) -> BreedingSeason:
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            status=SeasonStatus.parse(raw.get("status"), SeasonStatus.PLANNING),
            start_date=parse_date(raw.get("startDate")),
            end_date=parse_date(raw.get("endDate")),
            exposed_cow_ids=[str(c) for c in raw.get("exposedCowIds") or [] if c],
            coverage_records=_parse_list(raw.get("coverageRecords"), CoverageRecord.from_dict),
        )
