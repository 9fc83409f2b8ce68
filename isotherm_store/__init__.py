"""
Isotherm Store
==============

Bounded Context: Dashboard state and orchestration.

Architecture:
- config.py: DashboardConfig (YAML, frozen dataclasses)
- store.py: RegionStore (regions, series cache, window, selection, observers)
- drafts.py: RuleDraft (uncommitted rule edits)
- service.py: DashboardService (wires store, controller, MQTT)

Example:
    >>> from isotherm_store import RegionStore
    >>> store = RegionStore()
    >>> region = store.create_region("R1", [(22.5, 88.3), (22.6, 88.3), (22.6, 88.4)])
    >>> region.color
    '#808080'
"""

from isotherm_store.config import (
    DashboardConfig,
    DrawingConfig,
    MQTTConfig,
    SourceConfig,
    WindowConfig,
)
from isotherm_store.drafts import RuleDraft
from isotherm_store.store import (
    Region,
    RegionStore,
    RegionValidationError,
    StoreEvent,
    StoreEventKind,
)
from isotherm_store.service import DashboardService

__all__ = [
    "DashboardConfig",
    "DrawingConfig",
    "MQTTConfig",
    "SourceConfig",
    "WindowConfig",
    "RuleDraft",
    "Region",
    "RegionStore",
    "RegionValidationError",
    "StoreEvent",
    "StoreEventKind",
    "DashboardService",
]
