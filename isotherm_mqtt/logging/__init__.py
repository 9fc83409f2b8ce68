"""
JSON structured logging shared by the isotherm packages.

    LogEvent: typed event names ("region.recolored", "error.acquisition", ...)
    StructuredLogger: per-component JSON logger
    create_logger: factory used as the default by core components
"""

from .events import LogEvent
from .structured import StructuredLogger, create_logger

__all__ = [
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
