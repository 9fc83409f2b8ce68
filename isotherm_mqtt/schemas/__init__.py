"""
Isotherm MQTT Schemas
=====================

Bounded Context: Data Structures

Immutable, typed data structures for MQTT messages.

Design:
- Frozen dataclasses (immutability)
- to_dict() for JSON serialization
- from_dict() for deserialization
- Schema versioning for evolution

Public API
----------
Common Types:
    Timestamp: ISO 8601 timestamp wrapper
    WindowRange: Published temporal window

Region State Types:
    RegionState: Single region
    RegionStateMessage: Complete store snapshot
"""

from .common import Timestamp, WindowRange
from .region_state import SCHEMA_VERSION, RegionState, RegionStateMessage

__all__ = [
    'Timestamp',
    'WindowRange',
    'SCHEMA_VERSION',
    'RegionState',
    'RegionStateMessage',
]
