"""
Region Drawing Controller
=========================

State machine turning pointer input into a finalized region geometry.

States:
    IDLE --start_drawing()--> COLLECTING
    COLLECTING --accept_point() x12--> IDLE (finalize)
    COLLECTING --timer (>= 3 points, no new point)--> IDLE (finalize)
    COLLECTING --finalize_by_double_commit() (>= 3 points)--> IDLE (finalize)
    COLLECTING --cancel()--> IDLE

Output contract:
    on_finalize receives a RegionGeometry with 3..12 vertices, exactly once
    per drawing session.

Timer discipline:
    The auto-finalize timer is disarmed on every transition away from
    COLLECTING. Each timer callback also carries the session number that
    armed it and is ignored if the session has changed.
"""

from enum import Enum
from typing import Callable, List, Optional, Tuple

from isotherm_mqtt.logging import LogEvent, StructuredLogger, create_logger
from isotherm_zone.drawing.timer import CancelableTimer, LoopScheduler, Scheduler
from isotherm_zone.geometry.shapes import MAX_VERTICES, MIN_VERTICES, RegionGeometry

DEFAULT_FINALIZE_DELAY_S = 1.5


class DrawingState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"


class RegionDrawingController:
    """
    Pointer-event state machine for drawing one region at a time.

    Not thread-safe: call from the event loop thread only.

    Usage:
        controller = RegionDrawingController(on_finalize=service.on_shape_drawn)
        controller.start_drawing()
        controller.accept_point(22.57, 88.36)
        ...
        controller.finalize_by_double_commit()
        controller.teardown()  # when discarded
    """

    def __init__(
        self,
        on_finalize: Callable[[RegionGeometry], None],
        scheduler: Optional[Scheduler] = None,
        finalize_delay_s: float = DEFAULT_FINALIZE_DELAY_S,
        min_vertices: int = MIN_VERTICES,
        max_vertices: int = MAX_VERTICES,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            on_finalize: Callback receiving the finalized geometry
            scheduler: Timer source (default: running asyncio loop)
            finalize_delay_s: Idle delay before auto-finalize
            min_vertices: Minimum vertices to finalize (>= 3)
            max_vertices: Vertex count that finalizes immediately (<= 12)
            logger: Structured logger (default: "drawing" component)
        """
        if not MIN_VERTICES <= min_vertices <= max_vertices <= MAX_VERTICES:
            raise ValueError(
                f"Vertex limits must satisfy {MIN_VERTICES} <= min <= max <= {MAX_VERTICES}, "
                f"got min={min_vertices}, max={max_vertices}"
            )

        self.on_finalize = on_finalize
        self.min_vertices = min_vertices
        self.max_vertices = max_vertices
        self.logger = logger or create_logger("drawing")

        self._timer = CancelableTimer(scheduler or LoopScheduler(), finalize_delay_s)
        self._state = DrawingState.IDLE
        self._points: List[Tuple[float, float]] = []
        self._session = 0
        self._torn_down = False

    # ----- queries -----

    @property
    def state(self) -> DrawingState:
        return self._state

    @property
    def is_collecting(self) -> bool:
        return self._state is DrawingState.COLLECTING

    @property
    def points(self) -> Tuple[Tuple[float, float], ...]:
        """Snapshot of points collected in the current session."""
        return tuple(self._points)

    @property
    def timer_armed(self) -> bool:
        return self._timer.is_armed

    # ----- transitions -----

    def start_drawing(self) -> bool:
        """
        IDLE -> COLLECTING with no points. No-op if already collecting.

        Returns:
            True if a new session started
        """
        if self._torn_down:
            raise RuntimeError("Drawing controller has been torn down")
        if self.is_collecting:
            return False

        self._session += 1
        self._points = []
        self._state = DrawingState.COLLECTING
        self.logger.info(
            event=LogEvent.DRAWING_STARTED,
            message="Drawing session started",
            metadata={'session': self._session}
        )
        return True

    def accept_point(self, latitude: float, longitude: float) -> bool:
        """
        Append a vertex to the current session.

        Arms (or re-arms) the auto-finalize timer while the count is in
        [min_vertices, max_vertices); finalizes immediately at max_vertices.

        Returns:
            True if the point was accepted
        """
        if not self.is_collecting:
            self.logger.warning(
                event=LogEvent.DRAWING_POINT_REJECTED,
                message="Point ignored: not drawing",
                metadata={'lat': latitude, 'lon': longitude}
            )
            return False

        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            self.logger.warning(
                event=LogEvent.DRAWING_POINT_REJECTED,
                message="Point ignored: coordinates out of range",
                metadata={'lat': latitude, 'lon': longitude}
            )
            return False

        self._points.append((float(latitude), float(longitude)))
        count = len(self._points)
        self.logger.debug(
            event=LogEvent.DRAWING_POINT_ACCEPTED,
            message="Point accepted",
            metadata={'session': self._session, 'count': count}
        )

        if count >= self.max_vertices:
            self._finalize("max_vertices")
        elif count >= self.min_vertices:
            session = self._session
            self._timer.arm(lambda: self._on_timer(session))
        return True

    def finalize_by_timeout(self) -> bool:
        """
        Finalize after the idle delay.

        Sessions with fewer than min_vertices points keep collecting.

        Returns:
            True if a geometry was emitted
        """
        if not self.is_collecting or len(self._points) < self.min_vertices:
            return False
        self._finalize("timeout")
        return True

    def finalize_by_double_commit(self) -> bool:
        """
        Explicit confirmation (double click). Valid only with >= min_vertices.

        Returns:
            True if a geometry was emitted; False is a no-op
        """
        if not self.is_collecting or len(self._points) < self.min_vertices:
            self.logger.warning(
                event=LogEvent.DRAWING_POINT_REJECTED,
                message="Commit ignored: not enough points",
                metadata={'count': len(self._points), 'min_vertices': self.min_vertices}
            )
            return False
        self._finalize("double_commit")
        return True

    def cancel(self) -> bool:
        """
        Clear points and pending timer, return to IDLE.

        Returns:
            True if a session was cancelled
        """
        self._timer.disarm()
        if not self.is_collecting:
            return False

        discarded = len(self._points)
        self._reset()
        self.logger.info(
            event=LogEvent.DRAWING_CANCELLED,
            message="Drawing session cancelled",
            metadata={'session': self._session, 'discarded_points': discarded}
        )
        return True

    def teardown(self) -> None:
        """Discard the controller: cancel any session and refuse further input."""
        self.cancel()
        self._torn_down = True

    # ----- internals -----

    def _on_timer(self, session: int) -> None:
        if session != self._session:
            return
        self.finalize_by_timeout()

    def _reset(self) -> None:
        self._timer.disarm()
        self._points = []
        self._state = DrawingState.IDLE

    def _finalize(self, trigger: str) -> None:
        geometry = RegionGeometry.from_points(self._points)
        self._reset()

        self.logger.info(
            event=LogEvent.DRAWING_FINALIZED,
            message="Drawing finalized",
            metadata={
                'session': self._session,
                'trigger': trigger,
                'vertex_count': geometry.vertex_count
            }
        )
        self.on_finalize(geometry)
