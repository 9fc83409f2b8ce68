"""
Isotherm MQTT
=============

Wire format and broker plumbing for the region dashboard, plus the
structured logging every other isotherm package writes through.

- schemas/: frozen message types (RegionStateMessage and its parts)
- publishers/: BasePublisher and the retained RegionStatePublisher
- logging/: LogEvent, StructuredLogger, create_logger

This package never imports the store or the zone packages; the service
hands it plain snapshot dicts.
"""

__version__ = "1.0.0"

from .schemas import (
    SCHEMA_VERSION,
    RegionState,
    RegionStateMessage,
    Timestamp,
    WindowRange,
)
from .publishers import BasePublisher, RegionStatePublisher
from .logging import LogEvent, StructuredLogger, create_logger

__all__ = [
    '__version__',
    'SCHEMA_VERSION',
    'RegionState',
    'RegionStateMessage',
    'Timestamp',
    'WindowRange',
    'BasePublisher',
    'RegionStatePublisher',
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
