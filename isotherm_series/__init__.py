"""
Isotherm Series
===============

Bounded Context: Metric acquisition.

Architecture:
- series.py: TimeSeries (immutable aligned arrays)
- sources.py: ArchiveSource / ForecastSource (HTTP via requests)
- merge.py: SeriesMergeService (split at today, concatenate)
- fields.py: Field labels and units

Example:
    >>> from datetime import date
    >>> from isotherm_series import ArchiveSource, ForecastSource, SeriesMergeService, date_range
    >>> merge = SeriesMergeService(ArchiveSource(), ForecastSource())
    >>> start, end = date_range(date.today())
    >>> series = await merge.acquire(22.57, 88.36, start, end, ["temperature_2m"])
"""

from isotherm_series.series import TimeSeries
from isotherm_series.sources import (
    ARCHIVE_URL,
    FORECAST_URL,
    ArchiveSource,
    ForecastSource,
    MetricSource,
    SourceError,
    SourceRequest,
)
from isotherm_series.merge import (
    AcquisitionError,
    SeriesMergeService,
    SplitPlan,
    date_range,
    split_range,
)
from isotherm_series.fields import field_label, field_unit, format_value

__all__ = [
    "TimeSeries",
    "ARCHIVE_URL",
    "FORECAST_URL",
    "ArchiveSource",
    "ForecastSource",
    "MetricSource",
    "SourceError",
    "SourceRequest",
    "AcquisitionError",
    "SeriesMergeService",
    "SplitPlan",
    "date_range",
    "split_range",
    "field_label",
    "field_unit",
    "format_value",
]
