"""
Metric Sources
==============

HTTP clients for the two hourly metric endpoints.

Design:
- MetricSource: request building + payload parsing + error mapping
- ArchiveSource: retrospective data (before today)
- ForecastSource: current/forecast data (today onward)
- Blocking requests run in the loop's default executor, so fetch() never
  blocks the event loop
- Every failure surfaces as SourceError (HTTP status, timeout, bad JSON)
"""

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional, Tuple

import requests

from isotherm_mqtt.logging import LogEvent, StructuredLogger, create_logger
from isotherm_series.series import TimeSeries

ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_TIMEOUT_S = 10.0


class SourceError(Exception):
    """Raised when a single metric source call fails."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


@dataclass(frozen=True)
class SourceRequest:
    """
    Logical fetch request addressed to one source.

    Invariants:
        - start_date <= end_date
        - at least one field
    """

    latitude: float
    longitude: float
    start_date: date
    end_date: date
    fields: Tuple[str, ...]
    timezone: str = "auto"

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValueError(
                f"start_date ({self.start_date}) must be <= end_date ({self.end_date})"
            )
        object.__setattr__(self, 'fields', tuple(self.fields))
        if not self.fields:
            raise ValueError("At least one field must be requested")

    def to_params(self) -> Dict[str, str]:
        """Query parameters understood by both endpoints."""
        return {
            'latitude': f"{self.latitude:.4f}",
            'longitude': f"{self.longitude:.4f}",
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'hourly': ",".join(self.fields),
            'timezone': self.timezone,
        }


class MetricSource:
    """
    Base HTTP metric source.

    Attributes:
        name: Source identifier used in logs and errors
        base_url: Endpoint URL
        timeout_s: Per-request timeout
        session: requests.Session (injectable for tests)
    """

    name = "metric"

    def __init__(
        self,
        base_url: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        session: Optional[requests.Session] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        if timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {timeout_s}")
        self.base_url = base_url
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.logger = logger or create_logger("sources")

    async def fetch(self, request: SourceRequest) -> TimeSeries:
        """
        Fetch and parse one sub-range without blocking the event loop.

        Raises:
            SourceError: On transport, HTTP or payload errors
        """
        loop = asyncio.get_running_loop()
        try:
            record = await loop.run_in_executor(None, self._get_record, request)
            try:
                return TimeSeries.from_record(record, request.fields)
            except ValueError as e:
                raise SourceError(self.name, f"malformed payload: {e}") from e
        except SourceError as e:
            self.logger.warning(
                event=LogEvent.SOURCE_ERROR,
                message=str(e),
                metadata={
                    'url': self.base_url,
                    'start': request.start_date.isoformat(),
                    'end': request.end_date.isoformat(),
                }
            )
            raise

    def _get_record(self, request: SourceRequest) -> Dict[str, Any]:
        params = request.to_params()
        self.logger.info(
            event=LogEvent.SERIES_REQUESTED,
            message=f"Requesting {self.name} data",
            metadata={'url': self.base_url, **params}
        )

        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout_s)
            response.raise_for_status()
        except requests.Timeout as e:
            raise SourceError(self.name, f"timeout after {self.timeout_s}s") from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise SourceError(self.name, f"HTTP {status}") from e
        except requests.RequestException as e:
            raise SourceError(self.name, f"request failed: {e}") from e

        try:
            record = response.json()
        except ValueError as e:
            raise SourceError(self.name, f"invalid JSON: {e}") from e

        if not isinstance(record, dict):
            raise SourceError(self.name, f"expected JSON object, got {type(record).__name__}")
        return record

    def close(self) -> None:
        self.session.close()


class ArchiveSource(MetricSource):
    """Retrospective source: historical data up to yesterday."""

    name = "archive"

    def __init__(self, base_url: str = ARCHIVE_URL, **kwargs):
        super().__init__(base_url=base_url, **kwargs)


class ForecastSource(MetricSource):
    """Forward-looking source: current and forecast data from today onward."""

    name = "forecast"

    def __init__(self, base_url: str = FORECAST_URL, **kwargs):
        super().__init__(base_url=base_url, **kwargs)
