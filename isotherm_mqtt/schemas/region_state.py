"""
Region State Message Schema
===========================

Bounded Context: Region State Data Structures

This module defines the schema for the region state published via MQTT.

Design:
- RegionState: One region's committed state (geometry, rules, color, value)
- RegionStateMessage: Full store snapshot (window, selection, all regions)

The message is published retained, so a late subscriber immediately gets
the current state of every region.

Message Flow:
    RegionStore → snapshot() → RegionStateMessage → RegionStatePublisher → MQTT
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .common import Timestamp, WindowRange

SCHEMA_VERSION = "1.0"


@dataclass(frozen=True)
class RegionState:
    """
    Single region as published.

    Attributes:
        region_id: Region identifier
        name: Display name
        field: Tracked metric field
        source: Metric source identifier
        color: Current display color (#rrggbb)
        value: Window aggregate (None when undefined)
        centroid: (lat, lon)
        bounding_box: {north, south, east, west}
        vertices: Ordered (lat, lon) pairs
        rules: Ordered rule dicts (rule_id, operator, threshold, color)

    Invariants:
        - 3 <= len(vertices)
    """
    region_id: str
    name: str
    field: str
    source: str
    color: str
    value: Optional[float]
    centroid: Tuple[float, float]
    bounding_box: Dict[str, float]
    vertices: List[Tuple[float, float]]
    rules: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        if len(self.vertices) < 3:
            raise ValueError(
                f"Region '{self.region_id}' needs >= 3 vertices, got {len(self.vertices)}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.region_id,
            'name': self.name,
            'field': self.field,
            'source': self.source,
            'color': self.color,
            'value': self.value,
            'centroid': list(self.centroid),
            'bounding_box': dict(self.bounding_box),
            'vertices': [list(vertex) for vertex in self.vertices],
            'rules': [dict(rule) for rule in self.rules],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegionState':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            value = data.get('value')
            return cls(
                region_id=str(data['id']),
                name=str(data['name']),
                field=str(data['field']),
                source=str(data['source']),
                color=str(data['color']),
                value=float(value) if value is not None else None,
                centroid=(float(data['centroid'][0]), float(data['centroid'][1])),
                bounding_box={k: float(v) for k, v in data['bounding_box'].items()},
                vertices=[(float(lat), float(lon)) for lat, lon in data['vertices']],
                rules=list(data.get('rules', [])),
            )
        except KeyError as e:
            raise ValueError(f"Missing required RegionState field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid RegionState data: {e}")


@dataclass(frozen=True)
class RegionStateMessage:
    """
    Complete region state message for MQTT publication.

    Attributes:
        schema_version: Message schema version (for evolution)
        timestamp: ISO 8601 timestamp of message creation
        service_id: Publishing dashboard service
        window: Current temporal window
        selected_id: Selected region (None when nothing is selected)
        regions: All regions in creation order

    Example:
        >>> msg = RegionStateMessage.from_snapshot("dashboard_01", store.snapshot())
        >>> msg.region_count
        2
    """
    schema_version: str
    timestamp: Timestamp
    service_id: str
    window: WindowRange
    selected_id: Optional[str] = None
    regions: List[RegionState] = field(default_factory=list)

    def __post_init__(self):
        if not self.service_id:
            raise ValueError("service_id cannot be empty")
        if self.selected_id is not None and self.get_region(self.selected_id) is None:
            raise ValueError(f"Selected region '{self.selected_id}' is not in the message")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.value,
            'service_id': self.service_id,
            'window': self.window.to_dict(),
            'selected_id': self.selected_id,
            'regions': [region.to_dict() for region in self.regions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegionStateMessage':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                schema_version=str(data['schema_version']),
                timestamp=Timestamp(value=data['timestamp']),
                service_id=str(data['service_id']),
                window=WindowRange.from_dict(data['window']),
                selected_id=data.get('selected_id'),
                regions=[RegionState.from_dict(r) for r in data.get('regions', [])],
            )
        except KeyError as e:
            raise ValueError(f"Missing required RegionStateMessage field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid RegionStateMessage data: {e}")

    @classmethod
    def from_snapshot(
        cls,
        service_id: str,
        snapshot: Dict[str, Any],
        timestamp: Optional[Timestamp] = None
    ) -> 'RegionStateMessage':
        """Build a message from a RegionStore.snapshot() dict."""
        return cls.from_dict({
            'schema_version': SCHEMA_VERSION,
            'timestamp': (timestamp or Timestamp.now()).value,
            'service_id': service_id,
            'window': snapshot['window'],
            'selected_id': snapshot.get('selected_id'),
            'regions': snapshot.get('regions', []),
        })

    @property
    def region_count(self) -> int:
        return len(self.regions)

    def get_region(self, region_id: str) -> Optional[RegionState]:
        for region in self.regions:
            if region.region_id == region_id:
                return region
        return None
