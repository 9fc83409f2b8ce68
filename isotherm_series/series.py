"""
Time Series Model
=================

Aligned hourly timestamps and one numeric array per tracked field.

Design Principles:
- Immutability: frozen dataclass, read-only numpy arrays
- Validation: every array shares the timestamp length
- Missing samples (JSON null) become NaN
- Concatenation returns a new instance (never mutates)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True, eq=False)
class TimeSeries:
    """
    Hourly series for one location.

    Attributes:
        timestamps: ISO 8601 timestamps (chronological)
        values: field name -> float array aligned with timestamps
        units: field name -> unit descriptor (e.g. "°C")
        latitude: Latitude reported by the source
        longitude: Longitude reported by the source

    Example:
        >>> series = TimeSeries(
        ...     timestamps=("2025-01-01T00:00", "2025-01-01T01:00"),
        ...     values={"temperature_2m": [8.0, 9.5]},
        ... )
        >>> len(series)
        2
    """

    timestamps: Tuple[str, ...]
    values: Mapping[str, np.ndarray]
    units: Mapping[str, str] = field(default_factory=dict)
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def __post_init__(self):
        timestamps = tuple(str(ts) for ts in self.timestamps)
        arrays: Dict[str, np.ndarray] = {}

        for name, data in self.values.items():
            array = np.array(
                [np.nan if v is None else v for v in data],
                dtype=float,
            )
            if array.ndim != 1:
                raise ValueError(f"Field '{name}' must be one-dimensional, got shape {array.shape}")
            if len(array) != len(timestamps):
                raise ValueError(
                    f"Field '{name}' has {len(array)} samples but series has "
                    f"{len(timestamps)} timestamps"
                )
            array.flags.writeable = False
            arrays[name] = array

        object.__setattr__(self, 'timestamps', timestamps)
        object.__setattr__(self, 'values', arrays)
        object.__setattr__(self, 'units', dict(self.units))

    def __len__(self) -> int:
        return len(self.timestamps)

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(self.values.keys())

    def get(self, field_name: str) -> Optional[np.ndarray]:
        """Array for a field, or None when the field is not present."""
        return self.values.get(field_name)

    def concat(self, later: 'TimeSeries') -> 'TimeSeries':
        """
        Append a later, contiguous series.

        Only fields present in both series are kept. Coordinates and units
        come from this (earlier) series, falling back to the later one.
        """
        shared = [name for name in self.values if name in later.values]
        units = {**later.units, **self.units}
        return TimeSeries(
            timestamps=self.timestamps + later.timestamps,
            values={
                name: np.concatenate([self.values[name], later.values[name]])
                for name in shared
            },
            units={name: units[name] for name in shared if name in units},
            latitude=self.latitude if self.latitude is not None else later.latitude,
            longitude=self.longitude if self.longitude is not None else later.longitude,
        )

    @classmethod
    def from_record(cls, record: Dict[str, Any], fields: Sequence[str]) -> 'TimeSeries':
        """
        Parse a metric-source record.

        Expected shape:
            {
                "latitude": 22.5,
                "longitude": 88.25,
                "hourly_units": {"time": "iso8601", "temperature_2m": "°C"},
                "hourly": {"time": [...], "temperature_2m": [...]}
            }

        Fields missing from the record are skipped.

        Raises:
            ValueError: If "hourly" or its "time" array is missing or malformed
        """
        try:
            hourly = record['hourly']
            timestamps = hourly['time']
        except (KeyError, TypeError) as e:
            raise ValueError(f"Missing hourly time table in record: {e}")

        units = record.get('hourly_units') or {}
        values = {name: hourly[name] for name in fields if name in hourly}

        try:
            return cls(
                timestamps=tuple(timestamps),
                values=values,
                units={name: units[name] for name in values if name in units},
                latitude=record.get('latitude'),
                longitude=record.get('longitude'),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid hourly table: {e}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'hourly_units': dict(self.units),
            'hourly': {
                'time': list(self.timestamps),
                **{
                    name: [None if np.isnan(v) else float(v) for v in array]
                    for name, array in self.values.items()
                },
            },
        }
