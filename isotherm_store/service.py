"""
Dashboard Service - region dashboard orchestrator.

This module provides the DashboardService class which wires the complete
dashboard: metric sources, series merge, region store, drawing controller,
region state publishing and the MQTT control plane.

Architecture:
    control plane (commands) ─┐
                              ├─> event loop ─> drawing controller ─> pending shape
                              │                 region store ─> state publisher
    metric sources <─ merge service <─ region store (acquisitions)

Threading Model:
- Event loop thread: store, controller, timers, acquisitions, command handlers
- paho-mqtt client threads (control plane, publisher): network I/O only;
  commands are handed over to the loop with call_soon_threadsafe
- Default executor: blocking HTTP requests issued by the metric sources
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from isotherm_series.fields import field_label, format_value
from isotherm_series.merge import AcquisitionError, SeriesMergeService
from isotherm_series.sources import ArchiveSource, ForecastSource, MetricSource
from isotherm_store.config import DashboardConfig
from isotherm_store.store import (
    RegionStore,
    RegionValidationError,
    StoreEvent,
    StoreEventKind,
)
from isotherm_zone.analytics import TemporalWindow
from isotherm_zone.drawing import RegionDrawingController, Scheduler
from isotherm_zone.geometry import RegionGeometry

logger = logging.getLogger(__name__)

CommandResult = Union[None, Dict[str, Any], Awaitable[Any]]

COMMAND_ERRORS = (KeyError, ValueError, TypeError, RuntimeError, AcquisitionError)


def _window_index(command: Dict[str, Any], key: str) -> int:
    """Window bound from a command payload; "24" and 24.0 pass, 1.7 and True do not."""
    value = command[key]
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = None
    if number is None or isinstance(value, bool) or not number.is_integer():
        raise RegionValidationError(f"Window {key} must be an integer, got {value!r}")
    return int(number)


class DashboardService:
    """
    Main dashboard service.

    Usage:
        config = DashboardConfig.from_yaml("config/isotherm/dashboard.yaml")
        control_plane = MQTTControlPlane(...)
        state_publisher = RegionStatePublisher(...)

        service = DashboardService(config, control_plane, state_publisher)
        asyncio.run(service.run())  # Blocks until stop()
    """

    def __init__(
        self,
        config: DashboardConfig,
        control_plane,  # MQTTControlPlane
        state_publisher,  # RegionStatePublisher
        merge_service: Optional[SeriesMergeService] = None,
        store: Optional[RegionStore] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        """
        Args:
            config: Dashboard configuration
            control_plane: MQTT control plane for commands and status
            state_publisher: Publisher for retained region state
            merge_service: Series acquisition (default: built from source_config)
            store: Region store (default: built from config)
            scheduler: Drawing timer scheduler (default: running event loop)
        """
        self.config = config
        self.control_plane = control_plane
        self.state_publisher = state_publisher

        self._sources: List[MetricSource] = []
        if merge_service is None:
            merge_service = self._build_merge_service(config)
        self.merge_service = merge_service

        window_config = config.window_config
        self.store = store or RegionStore(
            merge_service=merge_service,
            fields=config.fields,
            default_field=config.default_field,
            default_source=config.source_config.source_id,
            rules=config.rules,
            window=TemporalWindow(
                start=window_config.default_start,
                end=window_config.default_end,
                horizon=window_config.horizon,
            ),
            span_days=window_config.span_days,
        )

        drawing_config = config.drawing_config
        self.controller = RegionDrawingController(
            on_finalize=self._on_shape_finalized,
            scheduler=scheduler,
            finalize_delay_s=drawing_config.finalize_delay_s,
            min_vertices=drawing_config.min_vertices,
            max_vertices=drawing_config.max_vertices,
        )

        self._pending_shape: Optional[RegionGeometry] = None
        self._handlers: Dict[str, Callable[[Dict[str, Any]], CommandResult]] = {}
        self._command_tasks: Set[asyncio.Task] = set()
        self._publish_scheduled = False
        self._unsubscribe = self.store.subscribe(self._on_store_event)

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

        self._setup_control_handlers()

        logger.info(f"DashboardService initialized for service_id={config.service_id}")

    def _build_merge_service(self, config: DashboardConfig) -> SeriesMergeService:
        source_config = config.source_config
        archive = ArchiveSource(
            base_url=source_config.archive_url,
            timeout_s=source_config.timeout_s,
        )
        forecast = ForecastSource(
            base_url=source_config.forecast_url,
            timeout_s=source_config.timeout_s,
        )
        self._sources = [archive, forecast]
        return SeriesMergeService(archive, forecast, timezone=source_config.timezone)

    # ========== Control handlers ==========

    def _setup_control_handlers(self):
        """
        Register command handlers with the control plane.

        Registered callables run on the MQTT thread and only forward the
        payload to the event loop.
        """
        commands = [
            ("start_drawing", self._handle_start_drawing, "Start drawing a region"),
            ("add_point", self._handle_add_point, "Add a vertex {lat, lon}"),
            ("commit_drawing", self._handle_commit_drawing, "Finalize the current drawing"),
            ("cancel_drawing", self._handle_cancel_drawing, "Cancel the current drawing"),
            ("name_region", self._handle_name_region, "Create a region from the pending shape {name}"),
            ("discard_shape", self._handle_discard_shape, "Drop the shape waiting for a name"),
            ("create_region", self._handle_create_region, "Create a region {name, coordinates, field?}"),
            ("update_region", self._handle_update_region, "Update a region {region_id, name?, field?, rules?}"),
            ("delete_region", self._handle_delete_region, "Delete a region {region_id}"),
            ("select_region", self._handle_select_region, "Select a region {region_id|null}"),
            ("set_window", self._handle_set_window, "Set the temporal window {start, end}"),
            ("refresh_region", self._handle_refresh_region, "Re-acquire a region's series {region_id}"),
            ("list_regions", self._handle_list_regions, "List all regions"),
        ]

        registry = self.control_plane.command_registry
        for name, handler, description in commands:
            self._handlers[name] = handler
            registry.register(name, self._forwarder(name), description)

        logger.info(f"Control handlers registered: {len(commands)}")

    def _forwarder(self, command: str) -> Callable[[Dict[str, Any]], None]:
        def forward(payload: Dict[str, Any]) -> None:
            self.submit(command, payload)
        return forward

    def submit(self, command: str, payload: Optional[Dict[str, Any]] = None) -> bool:
        """
        Schedule a command on the event loop (safe from any thread).

        Returns:
            False if the service loop is not running
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning(f"Command '{command}' dropped: service loop not running")
            self.control_plane.publish_status("error", {
                "command": command,
                "error": "service not running",
            })
            return False

        loop.call_soon_threadsafe(self._spawn_command, command, dict(payload or {}))
        return True

    def _spawn_command(self, command: str, payload: Dict[str, Any]) -> None:
        task = asyncio.get_running_loop().create_task(self.handle_command(command, payload))
        self._command_tasks.add(task)
        task.add_done_callback(self._command_tasks.discard)

    async def handle_command(self, command: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run a command handler on the event loop.

        Errors are logged and reported through publish_status("error", ...);
        they are never raised to the caller.

        Returns:
            Handler result, or None when the command failed
        """
        handler = self._handlers.get(command)
        if handler is None:
            self._report_error(command, KeyError(f"Unknown command '{command}'"))
            return None

        try:
            result = handler(payload or {})
            if asyncio.iscoroutine(result):
                result = await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._report_error(command, e)
            return None

        return result

    def _report_error(self, command: str, error: Exception) -> None:
        message = error.args[0] if isinstance(error, KeyError) and error.args else str(error)
        if isinstance(error, COMMAND_ERRORS):
            logger.warning(f"Command '{command}' failed: {message}")
        else:
            logger.error(f"Command '{command}' failed: {message}", exc_info=error)

        self.control_plane.publish_status("error", {
            "command": command,
            "error": message,
            "error_type": error.__class__.__name__,
        })

    def _handle_start_drawing(self, command: Dict) -> Dict[str, Any]:
        started = self.controller.start_drawing()
        self.control_plane.publish_status("drawing_started", {"started": started})
        return {"started": started}

    def _handle_add_point(self, command: Dict) -> Dict[str, Any]:
        latitude = float(command["lat"])
        longitude = float(command["lon"])
        accepted = self.controller.accept_point(latitude, longitude)
        if not accepted:
            raise RegionValidationError(
                f"Point ({latitude}, {longitude}) rejected "
                f"(state={self.controller.state.value})"
            )
        return {"accepted": accepted, "point_count": len(self.controller.points)}

    def _handle_commit_drawing(self, command: Dict) -> Dict[str, Any]:
        if not self.controller.finalize_by_double_commit():
            raise RegionValidationError(
                f"Cannot finalize drawing with {len(self.controller.points)} points "
                f"(minimum {self.controller.min_vertices})"
            )
        return {"finalized": True}

    def _handle_cancel_drawing(self, command: Dict) -> Dict[str, Any]:
        cancelled = self.controller.cancel()
        self.control_plane.publish_status("drawing_cancelled", {"cancelled": cancelled})
        return {"cancelled": cancelled}

    def _handle_name_region(self, command: Dict) -> Dict[str, Any]:
        region = self.name_pending_shape(command["name"], field=command.get("field"))
        self.control_plane.publish_status("region_created", {"region_id": region.region_id})
        return {"region_id": region.region_id}

    def _handle_discard_shape(self, command: Dict) -> Dict[str, Any]:
        discarded = self.discard_pending_shape()
        self.control_plane.publish_status("shape_discarded", {"discarded": discarded})
        return {"discarded": discarded}

    def _handle_create_region(self, command: Dict) -> Dict[str, Any]:
        region = self.store.create_region(
            command["name"],
            vertices=command["coordinates"],
            field=command.get("field"),
        )
        self.control_plane.publish_status("region_created", {"region_id": region.region_id})
        return {"region_id": region.region_id}

    def _handle_update_region(self, command: Dict) -> Dict[str, Any]:
        region_id = command["region_id"]
        changes = {
            key: command[key]
            for key in ("name", "field", "source", "rules")
            if key in command
        }
        if not changes:
            raise RegionValidationError("update_region requires at least one of name, field, source, rules")

        region = self.store.update_region(region_id, **changes)
        self.control_plane.publish_status("region_updated", {
            "region_id": region_id,
            "changed": sorted(changes),
            "color": region.color,
        })
        return {"region_id": region_id}

    def _handle_delete_region(self, command: Dict) -> Dict[str, Any]:
        region_id = command["region_id"]
        self.store.delete_region(region_id)
        self.control_plane.publish_status("region_deleted", {"region_id": region_id})
        return {"region_id": region_id}

    def _handle_select_region(self, command: Dict) -> Dict[str, Any]:
        self.store.select(command.get("region_id"))
        return {"selected_id": self.store.selected_id}

    def _handle_set_window(self, command: Dict) -> Dict[str, Any]:
        window = self.store.set_window(
            _window_index(command, "start"),
            _window_index(command, "end"),
        )
        return window.to_dict()

    async def _handle_refresh_region(self, command: Dict) -> Dict[str, Any]:
        region_id = command["region_id"]
        series = await self.store.acquire_series(region_id)
        result = {
            "region_id": region_id,
            "samples": len(series) if series is not None else 0,
            "stale": series is None,
        }
        self.control_plane.publish_status("region_refreshed", result)
        return result

    def _handle_list_regions(self, command: Dict) -> Dict[str, Any]:
        result = {
            "selected_id": self.store.selected_id,
            "window": self.store.window.to_dict(),
            "regions": [
                {
                    "id": region.region_id,
                    "name": region.name,
                    "field": region.field,
                    "color": region.color,
                    "value": region.value,
                    "label": field_label(region.field),
                    "display": format_value(region.value, region.field),
                }
                for region in self.store.regions()
            ],
        }
        self.control_plane.publish_status("regions_list", result)
        return result

    # ========== Pending shape ==========

    @property
    def pending_shape(self) -> Optional[RegionGeometry]:
        return self._pending_shape

    def _on_shape_finalized(self, geometry: RegionGeometry) -> None:
        if self._pending_shape is not None:
            logger.info("Replacing unnamed pending shape with a newly finalized one")
        self._pending_shape = geometry
        self.control_plane.publish_status("shape_pending", {
            "vertex_count": geometry.vertex_count,
            "vertices": [list(point) for point in geometry.to_points()],
        })

    def name_pending_shape(self, name: str, field: Optional[str] = None):
        """
        Create a region from the pending shape.

        The shape is kept when creation fails (e.g. empty name).

        Raises:
            RegionValidationError: If there is no pending shape or name is invalid
        """
        if self._pending_shape is None:
            raise RegionValidationError("No finalized shape is waiting for a name")

        region = self.store.create_region(name, geometry=self._pending_shape, field=field)
        self._pending_shape = None
        return region

    def discard_pending_shape(self) -> bool:
        discarded = self._pending_shape is not None
        self._pending_shape = None
        return discarded

    # ========== State publishing ==========

    def _on_store_event(self, event: StoreEvent) -> None:
        if event.kind is StoreEventKind.ACQUISITION_FAILED:
            self.control_plane.publish_status("acquisition_failed", {"region_id": event.region_id})

        if self._publish_scheduled:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.publish_state()
            return

        # Coalesce bursts (a window change recolors every region)
        self._publish_scheduled = True
        loop.call_soon(self.publish_state)

    def publish_state(self) -> bool:
        self._publish_scheduled = False
        return self.state_publisher.publish_state(self.store.snapshot())

    # ========== Lifecycle ==========

    async def run(self) -> None:
        """
        Run the dashboard service until stop() is called.

        Lifecycle:
        1. Connect control plane (fails fast)
        2. Connect state publisher
        3. Publish initial state and "running" status
        4. Wait for stop(), then tear everything down
        """
        if self._running:
            logger.warning("Service already running")
            return

        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()

        logger.info("Starting dashboard service")
        if not await self._loop.run_in_executor(None, self.control_plane.connect, 5.0):
            self._loop = None
            raise RuntimeError("Failed to connect to MQTT broker (control plane)")

        if not await self._loop.run_in_executor(None, self.state_publisher.connect):
            logger.warning("State publisher not connected, region state will not be published")

        self._running = True
        self.publish_state()
        self.control_plane.publish_status("running")
        logger.info("Dashboard service started")

        try:
            await self._stop_event.wait()
        finally:
            self._shutdown()

    def stop(self) -> None:
        """Request shutdown (safe from any thread)."""
        if self._loop is None or self._stop_event is None:
            logger.warning("Service not running")
            return
        self._loop.call_soon_threadsafe(self._stop_event.set)

    def _shutdown(self) -> None:
        logger.info("Stopping dashboard service")

        self.controller.teardown()
        self.store.close()
        for task in list(self._command_tasks):
            task.cancel()
        self._unsubscribe()

        self.state_publisher.disconnect()
        self.control_plane.publish_status("stopped")
        self.control_plane.disconnect()

        for source in self._sources:
            source.close()

        self._running = False
        self._loop = None
        logger.info("Dashboard service stopped")
