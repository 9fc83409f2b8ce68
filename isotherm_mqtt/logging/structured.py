"""
Structured JSON Logger
======================

One JSON object per line, on top of the standard logging module.

Every line carries the component that wrote it and a typed LogEvent, so
logs can be filtered by event name instead of by message text:

    {"timestamp": "2025-06-15T09:12:03.481220+00:00", "level": "INFO",
     "component": "store", "event": "region.recolored",
     "message": "Region 'R1' recolored",
     "metadata": {"region_id": "region_1a2b", "color": "#00cc66"}}

Exceptions are summarized (type, message, and the chained cause when there
is one), never dumped as multi-line tracebacks.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .events import LogEvent


def _describe(error: BaseException) -> Dict[str, Any]:
    described = {'type': type(error).__name__, 'message': str(error)}
    cause = error.__cause__
    if cause is not None:
        described['cause'] = {'type': type(cause).__name__, 'message': str(cause)}
    return described


class StructuredLogger:
    """
    JSON logger bound to one component.

    Attributes:
        component: Component name written on every line ("store", "drawing", ...)
        logger: Underlying logging.Logger ("isotherm.<component>")
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None
    ):
        self.component = component
        self.logger_name = logger_name or f"isotherm.{component}"
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def _log(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return

        entry: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': logging.getLevelName(level),
            'component': self.component,
            'event': event.value,
            'message': message,
        }
        if metadata:
            entry['metadata'] = metadata
        if exc_info is not None:
            entry['exception'] = _describe(exc_info)

        self.logger.log(level, json.dumps(entry, default=str))

    def debug(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        self._log(logging.DEBUG, event, message, metadata)

    def info(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        self._log(logging.INFO, event, message, metadata)

    def warning(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        self._log(logging.WARNING, event, message, metadata)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """
        Log an ERROR line, optionally summarizing an exception.

        Example:
            >>> try:
            ...     await merge.acquire(...)
            ... except AcquisitionError as e:
            ...     logger.error(
            ...         event=LogEvent.ACQUISITION_ERROR,
            ...         message="Series acquisition failed",
            ...         exc_info=e,
            ...         metadata={'region_id': region_id}
            ...     )
        """
        self._log(logging.ERROR, event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


class JSONFormatter(logging.Formatter):
    """Emits the record message as is (StructuredLogger already wrote JSON)."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


def create_logger(component: str, level: int = logging.INFO) -> StructuredLogger:
    """
    Build a StructuredLogger for a component.

    Example:
        >>> logger = create_logger("merge", level=logging.DEBUG)
    """
    return StructuredLogger(component=component, level=level)
