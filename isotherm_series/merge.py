"""
Series Merge Service
====================

Splits a requested date range between a retrospective and a forward-looking
source and concatenates their results.

Split rule (boundary = today, the caller's current date):
    retrospective: [start, min(end, today - 1 day)]   only if start < today
    forward:       [max(start, today), end]           only if end >= today

The two sub-ranges are disjoint and contiguous, so concatenating
retrospective-then-forward keeps chronological order without sorting.
Any sub-range failure aborts the acquisition (no partial merge).
"""

import asyncio
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from isotherm_mqtt.logging import LogEvent, StructuredLogger, create_logger
from isotherm_series.series import TimeSeries
from isotherm_series.sources import SourceRequest

DateRange = Tuple[date, date]

DEFAULT_SPAN_DAYS = 15


class AcquisitionError(Exception):
    """Raised when series acquisition aborts; the cause is chained."""
    pass


class SeriesSource(Protocol):
    name: str

    async def fetch(self, request: SourceRequest) -> TimeSeries:
        ...


@dataclass(frozen=True)
class SplitPlan:
    """Sub-ranges to request; None means the source is not needed."""

    retrospective: Optional[DateRange]
    forward: Optional[DateRange]


def date_range(center: date, span_days: int = DEFAULT_SPAN_DAYS) -> DateRange:
    """Symmetric range [center - span_days, center + span_days]."""
    span = timedelta(days=span_days)
    return center - span, center + span


def split_range(start: date, end: date, today: date) -> SplitPlan:
    """
    Split [start, end] at today.

    Raises:
        ValueError: If start > end
    """
    if start > end:
        raise ValueError(f"start ({start}) must be <= end ({end})")

    retrospective = None
    if start < today:
        retrospective = (start, min(end, today - timedelta(days=1)))

    forward = None
    if end >= today:
        forward = (max(start, today), end)

    return SplitPlan(retrospective=retrospective, forward=forward)


class SeriesMergeService:
    """
    Two-source acquisition for one location.

    Example:
        merge = SeriesMergeService(ArchiveSource(), ForecastSource())
        start, end = date_range(date.today())
        series = await merge.acquire(22.57, 88.36, start, end, ["temperature_2m"])
    """

    def __init__(
        self,
        retrospective: SeriesSource,
        forward: SeriesSource,
        timezone: str = "auto",
        today: Callable[[], date] = date.today,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            retrospective: Source serving data before today
            forward: Source serving data from today onward
            timezone: Timezone parameter passed to both sources
            today: Clock returning the caller's current date
            logger: Structured logger (default: "merge" component)
        """
        self.retrospective = retrospective
        self.forward = forward
        self.timezone = timezone
        self.today = today
        self.logger = logger or create_logger("merge")

    async def acquire(
        self,
        latitude: float,
        longitude: float,
        start: date,
        end: date,
        fields: Sequence[str],
        today: Optional[date] = None,
    ) -> TimeSeries:
        """
        Acquire the merged series for [start, end].

        Args:
            latitude: Point latitude
            longitude: Point longitude
            start: First calendar date (inclusive)
            end: Last calendar date (inclusive)
            fields: Hourly field names
            today: Split boundary (default: self.today())

        Returns:
            Single-source result unmodified, or retrospective.concat(forward)

        Raises:
            ValueError: If start > end or no fields are requested
            AcquisitionError: If any source call fails
        """
        if not fields:
            raise ValueError("At least one field must be requested")

        plan = split_range(start, end, today or self.today())
        jobs: List[Tuple[SeriesSource, DateRange]] = []
        if plan.retrospective is not None:
            jobs.append((self.retrospective, plan.retrospective))
        if plan.forward is not None:
            jobs.append((self.forward, plan.forward))

        results = await asyncio.gather(
            *(
                source.fetch(SourceRequest(
                    latitude=latitude,
                    longitude=longitude,
                    start_date=sub_start,
                    end_date=sub_end,
                    fields=tuple(fields),
                    timezone=self.timezone,
                ))
                for source, (sub_start, sub_end) in jobs
            ),
            return_exceptions=True,
        )

        for (source, sub_range), result in zip(jobs, results):
            if isinstance(result, BaseException):
                self.logger.error(
                    event=LogEvent.ACQUISITION_ERROR,
                    message=f"{source.name} source failed, acquisition aborted",
                    exc_info=result,
                    metadata={
                        'lat': latitude,
                        'lon': longitude,
                        'start': sub_range[0].isoformat(),
                        'end': sub_range[1].isoformat(),
                    }
                )
                if not isinstance(result, Exception):
                    raise result
                raise AcquisitionError(
                    f"Failed to acquire series from {source.name}: {result}"
                ) from result

        series = results[0]
        for later in results[1:]:
            series = series.concat(later)

        self.logger.info(
            event=LogEvent.SERIES_ACQUIRED,
            message="Series acquired",
            metadata={
                'lat': latitude,
                'lon': longitude,
                'sources': [source.name for source, _ in jobs],
                'samples': len(series),
            }
        )
        return series
