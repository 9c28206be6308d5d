"""Growth modules - average daily gain and weight projection."""

from herdmetrics.growth.gmd import (
    GainClass,
    GainMetrics,
    age_in_months,
    auto_classify_weight_types,
    calculate_gmd,
    calculate_gmd_from_weights,
    classify_gmd,
    days_between,
    estimate_weight_today,
    gmd_between,
    mean_gmd,
    rank_by_gmd,
)
from herdmetrics.growth.prediction import (
    WeightPrediction,
    WeightTargetPrediction,
    predict_date_for_weight,
    predict_slaughter_date,
    predict_weight,
)

__all__ = [
    "GainClass",
    "GainMetrics",
    "days_between",
    "gmd_between",
    "calculate_gmd",
    "calculate_gmd_from_weights",
    "estimate_weight_today",
    "mean_gmd",
    "rank_by_gmd",
    "classify_gmd",
    "age_in_months",
    "auto_classify_weight_types",
    "WeightPrediction",
    "WeightTargetPrediction",
    "predict_weight",
    "predict_date_for_weight",
    "predict_slaughter_date",
]
