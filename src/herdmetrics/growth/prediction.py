"""
Future weight projection.

Projects weight forward from the animal's own gain history when it covers at
least a month, otherwise from breed benchmarks adjusted for sex and age. The
projected rate is clamped to a plausible range and never predicts weight loss.
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta

from herdmetrics.core.units import KG_PER_ARROBA, kg_to_arrobas
from herdmetrics.data.models import Animal, Breed, Sex
from herdmetrics.growth.gmd import age_in_months, calculate_gmd

# Expected daily gain by breed (kg/day)
BREED_GMD_BENCHMARKS = {
    Breed.HEREFORD: {"min": 0.8, "avg": 1.1, "max": 1.4},
    Breed.BRAFORD: {"min": 0.9, "avg": 1.2, "max": 1.5},
    Breed.HEREFORD_PO: {"min": 0.85, "avg": 1.15, "max": 1.45},
    Breed.OTHER: {"min": 0.7, "avg": 1.0, "max": 1.3},
}

SEX_FACTORS = {
    Sex.MALE: 1.1,
    Sex.FEMALE: 0.95,
    Sex.UNKNOWN: 1.0,
}

# (max age in months, growth factor), checked in order
AGE_FACTORS = [
    (6, 1.2),
    (12, 1.1),
    (18, 1.0),
    (24, 0.9),
    (36, 0.75),
]
ADULT_AGE_FACTOR = 0.5

MIN_PROJECTED_GMD = 0.3
MAX_PROJECTED_GMD = 2.0
MIN_HISTORY_DAYS = 30
MAX_PREDICTION_DAYS = 730

# Default slaughter target (arrobas of live weight)
DEFAULT_SLAUGHTER_ARROBAS = 18


@dataclass
class WeightPrediction:
    animal_id: str
    current_weight: float
    predicted_weight: float
    target_date: date
    confidence: int
    based_on_days: int
    projected_gmd: float


@dataclass
class WeightTargetPrediction:
    date: date
    confidence: int
    days_needed: int
    current_arrobas: float | None = None


def age_factor(age_months: int) -> float:
    """Growth-curve factor for an age in months."""
    for max_age, factor in AGE_FACTORS:
        if age_months <= max_age:
            return factor
    return ADULT_AGE_FACTOR


def _benchmark_gmd(animal: Animal, age_months: int) -> float:
    benchmark = BREED_GMD_BENCHMARKS.get(animal.breed, BREED_GMD_BENCHMARKS[Breed.OTHER])
    return benchmark["avg"] * SEX_FACTORS[animal.sex] * age_factor(age_months)


def predict_weight(animal: Animal, target_date: date, today: date | None = None) -> WeightPrediction:
    """
    Predict an animal's weight on a future date.

    Confidence (0-100) grows with tracked days when the history is used,
    is fixed at 40 for benchmark projections, and shrinks with the horizon.
    """
    if today is None:
        today = date.today()

    days_ahead = (target_date - today).days
    if days_ahead <= 0:
        return WeightPrediction(
            animal_id=animal.id,
            current_weight=animal.weight_kg,
            predicted_weight=animal.weight_kg,
            target_date=target_date,
            confidence=100,
            based_on_days=0,
            projected_gmd=0.0,
        )

    gain = calculate_gmd(animal, today)
    age = age_in_months(animal.birth_date, today)

    if gain.gmd_total > 0 and gain.tracked_days >= MIN_HISTORY_DAYS:
        future_age = age + days_ahead // 30
        projected = gain.gmd_total * (age_factor(future_age) / age_factor(age))
        confidence = min(90.0, 50 + gain.tracked_days / 3)
    else:
        projected = _benchmark_gmd(animal, age)
        confidence = 40.0

    projected = max(MIN_PROJECTED_GMD, min(MAX_PROJECTED_GMD, projected))

    if days_ahead > 180:
        confidence *= 0.7
    elif days_ahead > 90:
        confidence *= 0.85
    elif days_ahead > 30:
        confidence *= 0.95

    predicted = round(animal.weight_kg + projected * days_ahead)

    return WeightPrediction(
        animal_id=animal.id,
        current_weight=animal.weight_kg,
        predicted_weight=max(animal.weight_kg, predicted),
        target_date=target_date,
        confidence=round(confidence),
        based_on_days=gain.tracked_days,
        projected_gmd=round(projected, 3),
    )


def predict_date_for_weight(
    animal: Animal, target_weight: float, today: date | None = None
) -> WeightTargetPrediction | None:
    """
    Predict when an animal reaches a target weight.

    Returns:
        The prediction, or None when the target is more than two years away
    """
    if today is None:
        today = date.today()

    if target_weight <= animal.weight_kg:
        return WeightTargetPrediction(date=today, confidence=100, days_needed=0)

    gain = calculate_gmd(animal, today)
    age = age_in_months(animal.birth_date, today)

    if gain.gmd_total > 0:
        rate = gain.gmd_total * age_factor(age)
        confidence = min(85.0, 50 + gain.tracked_days / 3)
    else:
        rate = _benchmark_gmd(animal, age)
        confidence = 35.0

    if rate <= 0:
        return None

    days_needed = math.ceil((target_weight - animal.weight_kg) / rate)
    if days_needed > MAX_PREDICTION_DAYS:
        return None

    return WeightTargetPrediction(
        date=today + timedelta(days=days_needed),
        confidence=round(confidence * (1 - days_needed / 1000)),
        days_needed=days_needed,
    )


def predict_slaughter_date(
    animal: Animal, target_arrobas: float = DEFAULT_SLAUGHTER_ARROBAS, today: date | None = None
) -> WeightTargetPrediction | None:
    """Predict when an animal reaches a live-weight target given in arrobas."""
    prediction = predict_date_for_weight(animal, target_arrobas * KG_PER_ARROBA, today=today)
    if prediction is None:
        return None
    prediction.current_arrobas = kg_to_arrobas(animal.weight_kg)
    return prediction
