"""Unit conversion utilities using pint.

All internal data is stored in kilograms. Exported herd data sometimes
carries weights entered on imperial scales (pounds) or in the Brazilian
live-weight arroba, so raw weights are converted on load.

Display units are controlled by settings.display_units:
- "metric": Display as stored (kg)
- "imperial": Convert to pounds
"""

import pint

from herdmetrics.core.config import settings

# Live-weight arroba used on the farm scale sheets
KG_PER_ARROBA = 30.0

# Create a unit registry (lazily initialized)
_ureg: pint.UnitRegistry | None = None


def get_ureg() -> pint.UnitRegistry:
    """Get the pint unit registry (lazily initialized)."""
    global _ureg
    if _ureg is None:
        _ureg = pint.UnitRegistry()
        _ureg.define(f"arroba = {KG_PER_ARROBA} * kilogram")
    return _ureg


# =============================================================================
# Mass Conversions
# =============================================================================

_UNIT_ALIASES = {
    "kg": "kilogram",
    "kgs": "kilogram",
    "kilogram": "kilogram",
    "kilograms": "kilogram",
    "lb": "pound",
    "lbs": "pound",
    "pound": "pound",
    "pounds": "pound",
    "@": "arroba",
    "arroba": "arroba",
    "arrobas": "arroba",
}


def to_kg(value: float, unit: str | None = None) -> float:
    """Convert a weight to kilograms.

    Args:
        value: Weight magnitude
        unit: Unit name or symbol ("kg", "lb", "arroba", "@"); None means kg

    Returns:
        Weight in kilograms

    Raises:
        ValueError: If the unit is not a known mass unit
    """
    if unit is None:
        return float(value)
    key = _UNIT_ALIASES.get(unit.strip().lower())
    if key is None:
        raise ValueError(f"Unknown weight unit: {unit!r}")
    if key == "kilogram":
        return float(value)
    ureg = get_ureg()
    return float(ureg.Quantity(value, key).to(ureg.kilogram).magnitude)


def kg_to_display(kg: float) -> tuple[float, str]:
    """Convert kilograms to display units.

    Args:
        kg: Weight in kilograms

    Returns:
        Tuple of (value, unit_symbol) in display units
    """
    ureg = get_ureg()

    if settings.display_units == "imperial":
        pounds = (kg * ureg.kilogram).to(ureg.pound).magnitude
        return (pounds, "lb")
    return (kg, "kg")


def format_weight(kg: float | None, decimals: int = 1) -> str:
    """Format a weight for display.

    Args:
        kg: Weight in kilograms (None renders as a dash)
        decimals: Number of decimal places

    Returns:
        Formatted string like "182.5kg" or "402.3lb"
    """
    if kg is None:
        return "-"
    value, unit = kg_to_display(kg)
    return f"{value:.{decimals}f}{unit}"


def format_gain(kg_per_day: float | None) -> str:
    """Format an average daily gain like "0.824 kg/day"."""
    if kg_per_day is None:
        return "N/A"
    value, unit = kg_to_display(kg_per_day)
    return f"{value:.3f} {unit}/day"


def kg_to_arrobas(kg: float) -> float:
    """Convert live weight in kilograms to arrobas (1 decimal)."""
    ureg = get_ureg()
    return round((kg * ureg.kilogram).to(ureg.arroba).magnitude, 1)


def get_weight_unit() -> str:
    """Get the weight unit symbol for current display settings."""
    return "lb" if settings.display_units == "imperial" else "kg"


def is_imperial() -> bool:
    """Check if display units are imperial."""
    return settings.display_units == "imperial"
