"""Display metadata for the hourly metric fields."""

import math
from typing import Optional

FIELD_LABELS = {
    'temperature_2m': 'Temperature (°C)',
    'relative_humidity_2m': 'Humidity (%)',
    'precipitation': 'Precipitation (mm)',
}

FIELD_UNITS = {
    'temperature_2m': '°C',
    'relative_humidity_2m': '%',
    'precipitation': 'mm',
}


def field_label(field: str) -> str:
    return FIELD_LABELS.get(field, field)


def field_unit(field: str) -> str:
    return FIELD_UNITS.get(field, '')


def format_value(value: Optional[float], field: str) -> str:
    """One decimal plus unit, e.g. ``16.7°C``; ``n/a`` when undefined."""
    if value is None or math.isnan(value):
        return "n/a"
    return f"{value:.1f}{field_unit(field)}"
