"""
Region Store - authoritative region collection and series cache.

This module provides the RegionStore class which owns every region, its
color rules, its fetched series, the process-wide temporal window and the
current selection. Every state change is announced to subscribed observers.

Recompute pipeline (per region):
    series[field] --TemporalWindowAggregator(window)--> value
    value --ColorRuleEngine(rules)--> color

Concurrency:
- Not thread-safe; every call must happen on the event-loop thread
- Series acquisition is the only suspension point
- Each acquisition takes a per-region token; a result whose token is no
  longer current (region deleted, field changed, newer fetch started) is
  discarded instead of applied
"""

import asyncio
import uuid
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from isotherm_mqtt.logging import LogEvent, StructuredLogger, create_logger
from isotherm_series.merge import AcquisitionError, SeriesMergeService, date_range
from isotherm_series.series import TimeSeries
from isotherm_store.drafts import RuleDraft
from isotherm_zone.analytics import (
    DEFAULT_COLOR,
    ColorRule,
    ColorRuleEngine,
    TemporalWindow,
    TemporalWindowAggregator,
    default_rules,
    is_defined,
    parse_rules,
    rules_to_dicts,
)
from isotherm_zone.geometry import RegionGeometry


class RegionValidationError(ValueError):
    """Raised when a region command is rejected before any state change."""
    pass


@dataclass(frozen=True)
class Region:
    """
    Committed region state.

    Attributes:
        region_id: Opaque identifier (region_<hex>)
        name: Display name (non-empty)
        geometry: Validated polygon with derived centroid and bounding box
        field: Tracked metric field (e.g. "temperature_2m")
        source: Metric source identifier
        rules: Ordered color rules (first match wins)
        color: Current display color
        value: Current window aggregate, None when undefined
    """

    region_id: str
    name: str
    geometry: RegionGeometry
    field: str
    source: str
    rules: Tuple[ColorRule, ...]
    color: str = DEFAULT_COLOR
    value: Optional[float] = None

    @property
    def centroid(self) -> Tuple[float, float]:
        return self.geometry.centroid

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.region_id,
            'name': self.name,
            'field': self.field,
            'source': self.source,
            'color': self.color,
            'value': self.value,
            'centroid': list(self.geometry.centroid),
            'bounding_box': self.geometry.bounding_box.to_dict(),
            'vertices': [list(point) for point in self.geometry.to_points()],
            'rules': rules_to_dicts(self.rules),
        }


class StoreEventKind(str, Enum):
    REGION_CREATED = "region_created"
    REGION_UPDATED = "region_updated"
    REGION_DELETED = "region_deleted"
    REGION_RECOLORED = "region_recolored"
    SELECTION_CHANGED = "selection_changed"
    WINDOW_CHANGED = "window_changed"
    SERIES_INGESTED = "series_ingested"
    ACQUISITION_FAILED = "acquisition_failed"


@dataclass(frozen=True)
class StoreEvent:
    """Change notification delivered to store observers."""

    kind: StoreEventKind
    region_id: Optional[str] = None
    region: Optional[Region] = None


StoreObserver = Callable[[StoreEvent], None]

UPDATABLE_FIELDS = frozenset({'name', 'rules', 'field', 'source'})


class RegionStore:
    """
    Session-scoped owner of regions, series and window.

    Usage:
        store = RegionStore(merge_service=merge)
        unsubscribe = store.subscribe(publisher.on_store_event)

        region = store.create_region("R1", [(22.5, 88.3), (22.6, 88.3), (22.6, 88.4)])
        await store.pending_acquisition(region.region_id)

        store.set_window(0, 48)
        store.select(region.region_id)
    """

    def __init__(
        self,
        merge_service: Optional[SeriesMergeService] = None,
        fields: Sequence[str] = ("temperature_2m",),
        default_field: str = "temperature_2m",
        default_source: str = "open-meteo",
        rules: Optional[Iterable[ColorRule]] = None,
        window: Optional[TemporalWindow] = None,
        span_days: int = 15,
        today: Callable[[], date] = date.today,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            merge_service: Series acquisition (None disables automatic fetches)
            fields: Hourly fields requested for every region
            default_field: Field assigned to new regions
            default_source: Source identifier assigned to new regions
            rules: Rule set assigned to new regions (default: default_rules())
            window: Initial temporal window (default: [0, 24])
            span_days: Days requested on each side of today
            today: Clock returning the current calendar date
            logger: Structured logger (default: "store" component)
        """
        self.merge_service = merge_service
        self.fields = tuple(fields)
        self.default_field = default_field
        self.default_source = default_source
        self.default_rules = tuple(rules) if rules is not None else default_rules()
        self.span_days = span_days
        self.today = today
        self.logger = logger or create_logger("store")

        self._window = window or TemporalWindow()
        self._regions: Dict[str, Region] = {}
        self._series: Dict[str, TimeSeries] = {}
        self._drafts: Dict[str, RuleDraft] = {}
        self._tokens: Dict[str, object] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._selected_id: Optional[str] = None
        self._observers: List[StoreObserver] = []

    # ========== Observers ==========

    def subscribe(self, callback: StoreObserver) -> Callable[[], None]:
        """
        Register an observer.

        Returns:
            Function removing the observer (safe to call twice)
        """
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _notify(
        self,
        kind: StoreEventKind,
        region_id: Optional[str] = None,
        region: Optional[Region] = None
    ) -> None:
        event = StoreEvent(kind=kind, region_id=region_id, region=region)
        for callback in list(self._observers):
            try:
                callback(event)
            except Exception as e:
                self.logger.error(
                    event=LogEvent.OBSERVER_ERROR,
                    message=f"Observer failed handling {kind.value}",
                    exc_info=e,
                    metadata={'region_id': region_id}
                )

    # ========== Region lifecycle ==========

    def create_region(
        self,
        name: str,
        vertices: Optional[Sequence[Sequence[float]]] = None,
        geometry: Optional[RegionGeometry] = None,
        field: Optional[str] = None,
        source: Optional[str] = None,
    ) -> Region:
        """
        Create a region with the default rule set and neutral color.

        Args:
            name: Display name (non-empty)
            vertices: (lat, lon) pairs, 3..12 entries (ignored if geometry given)
            geometry: Already validated geometry (e.g. from the drawing controller)
            field: Tracked field (default: self.default_field)
            source: Source identifier (default: self.default_source)

        Returns:
            Created region

        Raises:
            RegionValidationError: If name or vertices are invalid (no state change)
        """
        name = self._validate_name(name)

        if geometry is None:
            if vertices is None:
                raise RegionValidationError("Region requires vertices or a geometry")
            try:
                geometry = RegionGeometry.from_points(vertices)
            except (TypeError, ValueError) as e:
                self.logger.warning(
                    event=LogEvent.VALIDATION_ERROR,
                    message=f"Region '{name}' rejected: {e}",
                    metadata={'name': name}
                )
                raise RegionValidationError(f"Invalid region vertices: {e}") from e

        region = Region(
            region_id=f"region_{uuid.uuid4().hex}",
            name=name,
            geometry=geometry,
            field=self._validate_field(field or self.default_field),
            source=source or self.default_source,
            rules=self.default_rules,
        )
        self._regions[region.region_id] = region

        self.logger.info(
            event=LogEvent.REGION_CREATED,
            message=f"Region '{name}' created",
            metadata={
                'region_id': region.region_id,
                'vertex_count': geometry.vertex_count,
                'centroid': list(geometry.centroid),
                'field': region.field,
            }
        )
        self._notify(StoreEventKind.REGION_CREATED, region.region_id, region)

        self._spawn_acquisition(region.region_id)
        return region

    def update_region(self, region_id: str, **changes: Any) -> Region:
        """
        Partially update a region.

        Accepted keys: name, rules, field, source. Replacing rules recomputes
        the color; changing field or source drops the cached series and
        starts a new acquisition.

        Raises:
            KeyError: If region_id does not exist
            RegionValidationError: If a key is unknown or a value is invalid
        """
        region = self.get(region_id)

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise RegionValidationError(
                f"Unknown region fields: {sorted(unknown)}. "
                f"Updatable: {sorted(UPDATABLE_FIELDS)}"
            )

        updates: Dict[str, Any] = {}
        if 'name' in changes:
            updates['name'] = self._validate_name(changes['name'])
        if 'rules' in changes:
            updates['rules'] = self._validate_rules(changes['rules'])
        if 'field' in changes:
            updates['field'] = self._validate_field(changes['field'])
        if 'source' in changes:
            if not changes['source']:
                raise RegionValidationError("source cannot be empty")
            updates['source'] = str(changes['source'])

        updated = replace(region, **updates)
        self._regions[region_id] = updated

        self.logger.info(
            event=LogEvent.REGION_UPDATED,
            message=f"Region '{updated.name}' updated",
            metadata={'region_id': region_id, 'changed': sorted(updates)}
        )
        self._notify(StoreEventKind.REGION_UPDATED, region_id, updated)

        if updated.field != region.field or updated.source != region.source:
            self._series.pop(region_id, None)
            self._tokens.pop(region_id, None)
            updated = self.recompute(region_id)
            self._spawn_acquisition(region_id)
        elif 'rules' in updates:
            updated = self.recompute(region_id)

        return updated

    def delete_region(self, region_id: str) -> Region:
        """
        Remove a region with its series, draft and in-flight token.

        Clears the selection when the region was selected.

        Raises:
            KeyError: If region_id does not exist
        """
        region = self.get(region_id)
        del self._regions[region_id]
        self._series.pop(region_id, None)
        self._drafts.pop(region_id, None)
        self._tokens.pop(region_id, None)
        self._tasks.pop(region_id, None)

        self.logger.info(
            event=LogEvent.REGION_DELETED,
            message=f"Region '{region.name}' deleted",
            metadata={'region_id': region_id}
        )
        self._notify(StoreEventKind.REGION_DELETED, region_id, region)

        if self._selected_id == region_id:
            self._selected_id = None
            self._notify(StoreEventKind.SELECTION_CHANGED)

        return region

    # ========== Selection ==========

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    def select(self, region_id: Optional[str]) -> None:
        """
        Select a region (None deselects).

        Raises:
            KeyError: If region_id does not exist
        """
        if region_id is None:
            self.deselect()
            return

        region = self.get(region_id)
        if self._selected_id == region_id:
            return

        self._selected_id = region_id
        self.logger.info(
            event=LogEvent.REGION_SELECTED,
            message=f"Region '{region.name}' selected",
            metadata={'region_id': region_id}
        )
        self._notify(StoreEventKind.SELECTION_CHANGED, region_id, region)

    def deselect(self) -> None:
        if self._selected_id is None:
            return
        self._selected_id = None
        self._notify(StoreEventKind.SELECTION_CHANGED)

    # ========== Window ==========

    @property
    def window(self) -> TemporalWindow:
        return self._window

    def set_window(self, start: int, end: int) -> TemporalWindow:
        """
        Replace the process-wide window and recompute every region with series.

        Raises:
            ValueError: If the window violates 0 <= start <= end <= horizon
        """
        window = TemporalWindow(start=start, end=end, horizon=self._window.horizon)
        self._window = window

        self.logger.info(
            event=LogEvent.WINDOW_CHANGED,
            message=f"Window set to [{window.start}, {window.end}]",
            metadata=window.to_dict()
        )

        for region_id in list(self._regions):
            if region_id in self._series:
                self.recompute(region_id)

        self._notify(StoreEventKind.WINDOW_CHANGED)
        return window

    # ========== Series ==========

    def series_for(self, region_id: str) -> Optional[TimeSeries]:
        return self._series.get(region_id)

    def ingest_series(self, region_id: str, series: TimeSeries) -> Region:
        """
        Store a fetched series (overwriting any previous one) and recompute.

        Raises:
            KeyError: If region_id does not exist
        """
        region = self.get(region_id)
        self._series[region_id] = series

        self.logger.info(
            event=LogEvent.SERIES_INGESTED,
            message=f"Series stored for region '{region.name}'",
            metadata={
                'region_id': region_id,
                'samples': len(series),
                'fields': list(series.fields),
            }
        )
        self._notify(StoreEventKind.SERIES_INGESTED, region_id, region)
        return self.recompute(region_id)

    def recompute(self, region_id: str) -> Region:
        """
        Re-derive value and color from series, window and rules.

        Only the value and color of the region change. Observers are
        notified when either differs from the stored state.

        Raises:
            KeyError: If region_id does not exist
        """
        region = self.get(region_id)

        value = TemporalWindowAggregator.aggregate(
            self._series.get(region_id), region.field, self._window
        )
        color = ColorRuleEngine.classify(value, region.rules)
        value = value if is_defined(value) else None

        if color == region.color and value == region.value:
            return region

        recolored = replace(region, color=color, value=value)
        self._regions[region_id] = recolored

        self.logger.debug(
            event=LogEvent.REGION_RECOLORED,
            message=f"Region '{region.name}' recolored",
            metadata={
                'region_id': region_id,
                'value': value,
                'color': color,
                'previous_color': region.color,
            }
        )
        self._notify(StoreEventKind.REGION_RECOLORED, region_id, recolored)
        return recolored

    async def acquire_series(self, region_id: str) -> Optional[TimeSeries]:
        """
        Fetch and ingest the series for a region.

        Returns:
            Ingested series, or None when the result was stale and discarded

        Raises:
            KeyError: If region_id does not exist
            RuntimeError: If no merge service is configured
            AcquisitionError: If the fetch failed (previous series kept)
        """
        if self.merge_service is None:
            raise RuntimeError("RegionStore has no merge service configured")

        region = self.get(region_id)
        token = object()
        self._tokens[region_id] = token

        today = self.today()
        start, end = date_range(today, self.span_days)
        latitude, longitude = region.geometry.centroid
        fields = tuple(dict.fromkeys(self.fields + (region.field,)))

        self.logger.info(
            event=LogEvent.SERIES_REQUESTED,
            message=f"Acquiring series for region '{region.name}'",
            metadata={
                'region_id': region_id,
                'start': start.isoformat(),
                'end': end.isoformat(),
                'fields': list(fields),
            }
        )

        try:
            series = await self.merge_service.acquire(
                latitude, longitude, start, end, fields, today=today
            )
        except AcquisitionError as e:
            if self._tokens.get(region_id) is not token:
                self._log_stale(region_id, "failed")
                return None
            del self._tokens[region_id]

            self.logger.error(
                event=LogEvent.ACQUISITION_ERROR,
                message=f"Series acquisition failed for region '{region.name}'",
                exc_info=e,
                metadata={'region_id': region_id}
            )
            self._notify(StoreEventKind.ACQUISITION_FAILED, region_id, self._regions[region_id])
            raise

        if self._tokens.get(region_id) is not token:
            self._log_stale(region_id, "succeeded")
            return None
        del self._tokens[region_id]

        self.ingest_series(region_id, series)
        return series

    def pending_acquisition(self, region_id: str) -> Optional[asyncio.Task]:
        """In-flight acquisition task for a region, if any."""
        return self._tasks.get(region_id)

    def _spawn_acquisition(self, region_id: str) -> Optional[asyncio.Task]:
        if self.merge_service is None:
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.debug(
                event=LogEvent.SERIES_REQUESTED,
                message="No running event loop, acquisition skipped",
                metadata={'region_id': region_id}
            )
            return None

        task = loop.create_task(self._acquire_in_background(region_id))
        self._tasks[region_id] = task

        def _forget(done: asyncio.Task, region_id: str = region_id) -> None:
            if self._tasks.get(region_id) is done:
                del self._tasks[region_id]

        task.add_done_callback(_forget)
        return task

    async def _acquire_in_background(self, region_id: str) -> Optional[TimeSeries]:
        # Failures are already logged and announced as ACQUISITION_FAILED
        try:
            return await self.acquire_series(region_id)
        except (AcquisitionError, KeyError):
            return None

    def _log_stale(self, region_id: str, outcome: str) -> None:
        self.logger.info(
            event=LogEvent.SERIES_STALE_DISCARDED,
            message=f"Discarding stale acquisition result ({outcome})",
            metadata={'region_id': region_id, 'region_exists': region_id in self._regions}
        )

    # ========== Rule drafts ==========

    def begin_rule_edit(self, region_id: str) -> RuleDraft:
        """
        Start editing a copy of the region's rules (replaces an open draft).

        Raises:
            KeyError: If region_id does not exist
        """
        region = self.get(region_id)
        draft = RuleDraft(region_id, region.rules)
        self._drafts[region_id] = draft
        return draft

    def draft_for(self, region_id: str) -> Optional[RuleDraft]:
        return self._drafts.get(region_id)

    def commit_rule_edit(self, region_id: str) -> Region:
        """
        Replace the region's rules with its draft and recompute.

        Raises:
            KeyError: If region or draft does not exist
        """
        if region_id not in self._drafts:
            raise KeyError(f"No rule edit in progress for region '{region_id}'")

        draft = self._drafts.pop(region_id)
        return self.update_region(region_id, rules=draft.snapshot())

    def discard_rule_edit(self, region_id: str) -> bool:
        return self._drafts.pop(region_id, None) is not None

    # ========== Queries ==========

    def get(self, region_id: str) -> Region:
        """
        Raises:
            KeyError: If region_id does not exist
        """
        if region_id not in self._regions:
            raise KeyError(f"Region '{region_id}' not found")
        return self._regions[region_id]

    def regions(self) -> List[Region]:
        """Regions in creation order."""
        return list(self._regions.values())

    def snapshot(self) -> Dict[str, Any]:
        """Plain-dict view of the whole store (window, selection, regions)."""
        return {
            'window': self._window.to_dict(),
            'selected_id': self._selected_id,
            'regions': [region.to_dict() for region in self._regions.values()],
        }

    def close(self) -> None:
        """Cancel in-flight acquisitions and drop their tokens."""
        for task in list(self._tasks.values()):
            task.cancel()
        self._tasks.clear()
        self._tokens.clear()

    def __len__(self) -> int:
        return len(self._regions)

    def __contains__(self, region_id: object) -> bool:
        return region_id in self._regions

    # ========== Validation ==========

    @staticmethod
    def _validate_name(name: Any) -> str:
        if not isinstance(name, str) or not name.strip():
            raise RegionValidationError("Region name cannot be empty")
        return name.strip()

    @staticmethod
    def _validate_field(field: Any) -> str:
        if not isinstance(field, str) or not field:
            raise RegionValidationError(f"Invalid field: {field!r}")
        return field

    @staticmethod
    def _validate_rules(rules: Any) -> Tuple[ColorRule, ...]:
        try:
            items = list(rules)
            if all(isinstance(rule, ColorRule) for rule in items):
                return tuple(items)
            return parse_rules(items)
        except (TypeError, ValueError) as e:
            raise RegionValidationError(f"Invalid rules: {e}") from e
