"""Core module - configuration, units and HTTP client."""

from herdmetrics.core import client, units
from herdmetrics.core.client import (
    RetryableError,
    SnapshotFetchError,
    http_get,
    http_get_with_retry,
)
from herdmetrics.core.config import Settings, get_cache_dir, settings
from herdmetrics.core.units import (
    format_gain,
    format_weight,
    get_weight_unit,
    is_imperial,
    kg_to_arrobas,
    kg_to_display,
    to_kg,
)

__all__ = [
    "client",
    "units",
    "Settings",
    "settings",
    "get_cache_dir",
    "http_get",
    "http_get_with_retry",
    "RetryableError",
    "SnapshotFetchError",
    # Unit conversion helpers
    "to_kg",
    "kg_to_display",
    "kg_to_arrobas",
    "format_weight",
    "format_gain",
    "get_weight_unit",
    "is_imperial",
]
