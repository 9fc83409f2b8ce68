"""
Value types shared by the published messages.

Both are frozen and validate themselves on construction, so a message that
exists is a message that can be sent.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict


@dataclass(frozen=True)
class Timestamp:
    """
    ISO 8601 timestamp, kept as the string that goes on the wire.

    Example:
        >>> Timestamp("2025-06-15T09:00:00+00:00").to_datetime().hour
        9
    """
    value: str

    def __post_init__(self):
        self.to_datetime()

    @classmethod
    def now(cls) -> 'Timestamp':
        """Current time in UTC."""
        return cls(value=datetime.now(timezone.utc).isoformat())

    def to_datetime(self) -> datetime:
        """
        Raises:
            ValueError: If value is not an ISO 8601 timestamp
        """
        try:
            return datetime.fromisoformat(str(self.value))
        except ValueError as e:
            raise ValueError(f"Invalid ISO timestamp: {self.value!r}") from e


@dataclass(frozen=True)
class WindowRange:
    """
    Published temporal window: inclusive hourly indices [start, end].

    Invariants:
        - 0 <= start <= end
    """
    start: int
    end: int

    def __post_init__(self):
        if not 0 <= self.start <= self.end:
            raise ValueError(
                f"Window must satisfy 0 <= start <= end, got [{self.start}, {self.end}]"
            )

    def to_dict(self) -> Dict[str, int]:
        return {'start': self.start, 'end': self.end}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WindowRange':
        """
        Raises:
            ValueError: If a key is missing or not an integer
        """
        try:
            return cls(start=int(data['start']), end=int(data['end']))
        except KeyError as e:
            raise ValueError(f"Missing required WindowRange field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid WindowRange data: {e}")
