"""
Temporal Window Aggregator
==========================

Reduces a slice of a numeric series to one scalar.

Design:
- TemporalWindow: immutable index range, validated against a fixed horizon
- Aggregation is a pure function (no state)
- Missing samples are skipped; empty or all-missing slice -> NaN ("no value")
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

DEFAULT_HORIZON = 720  # 30 days of hourly samples, 15 before and 15 after the reference date


@dataclass(frozen=True)
class TemporalWindow:
    """
    Inclusive index range [start, end] into an hourly series.

    Invariants:
        - 0 <= start <= end <= horizon
    """

    start: int = 0
    end: int = 24
    horizon: int = DEFAULT_HORIZON

    def __post_init__(self):
        for name in ('start', 'end', 'horizon'):
            value = getattr(self, name)
            if isinstance(value, bool) or int(value) != value:
                raise ValueError(f"{name} must be an integer, got {value!r}")
            object.__setattr__(self, name, int(value))

        if self.horizon <= 0:
            raise ValueError(f"horizon must be > 0, got {self.horizon}")
        if not 0 <= self.start <= self.end <= self.horizon:
            raise ValueError(
                f"Window must satisfy 0 <= start <= end <= {self.horizon}, "
                f"got [{self.start}, {self.end}]"
            )

    @property
    def length(self) -> int:
        """Number of hourly samples covered (inclusive)."""
        return self.end - self.start + 1

    def to_dict(self) -> Dict[str, int]:
        return {'start': self.start, 'end': self.end}


def window_mean(
    values: Sequence[float],
    window: Union[TemporalWindow, int],
    end: Optional[int] = None,
) -> float:
    """
    Arithmetic mean of values[start..end], end clamped to the last index.

    Args:
        values: Numeric samples
        window: TemporalWindow, or the first index (inclusive) when end is given
        end: Last index (inclusive), clamped to len(values) - 1

    Returns:
        Mean of the defined samples in the slice, or NaN when the clamped
        slice is empty or every sample in it is missing

    Example:
        >>> window_mean([0, 10, 20, 30], 1, 2)
        15.0
        >>> window_mean([0, 10, 20, 30], TemporalWindow(0, 10))
        15.0
    """
    if isinstance(window, TemporalWindow):
        start, end = window.start, window.end
    else:
        if end is None:
            raise TypeError("end is required when window is given as a start index")
        start = window

    data = np.asarray(values, dtype=float)
    end = min(end, len(data) - 1)
    if start < 0 or start > end:
        return math.nan

    window_data = data[start:end + 1]
    defined = window_data[~np.isnan(window_data)]
    if defined.size == 0:
        return math.nan
    return float(defined.mean())


def is_defined(value: Optional[float]) -> bool:
    """True when an aggregate can be classified."""
    return value is not None and not math.isnan(value)


class TemporalWindowAggregator:
    """
    Stateless aggregator applying a TemporalWindow to one field of a series.

    Usage:
        value = TemporalWindowAggregator.aggregate(series, "temperature_2m", window)
        if not is_defined(value):
            ...  # no classification possible
    """

    @staticmethod
    def aggregate(series: Optional[Any], field: str, window: TemporalWindow) -> float:
        """
        Mean of series[field] over the window.

        Args:
            series: Object exposing get(field) -> array or None (e.g. TimeSeries)
            field: Field name to aggregate
            window: Current temporal window

        Returns:
            Mean, or NaN when the series or field is missing or the slice is empty
        """
        if series is None:
            return math.nan

        values = series.get(field)
        if values is None:
            return math.nan
        return window_mean(values, window)
