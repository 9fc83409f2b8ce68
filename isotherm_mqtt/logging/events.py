"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

This module defines typed event names for structured logging.

Design:
- Enum-based (prevents typos, enables autocomplete)
- Hierarchical naming (namespace.category.action)
- Searchable in log aggregators (Elasticsearch, CloudWatch Insights)

Event Naming Convention:
    <component>.<category>.<action>

    component: drawing, region, series, window, mqtt, error
    category: started, acquired, recolored
    action: success, failed, discarded

Example Log Query (CloudWatch Insights):
    fields @timestamp, event, message, metadata.region_id
    | filter event = "error.acquisition"
    | stats count() by bin(5m)
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - drawing.*: Region drawing state machine
    - region.*: Region lifecycle and classification
    - series.*: Metric acquisition
    - mqtt.*: MQTT broker interactions
    - error.*: Error conditions
    """

    # ========== Drawing Events ==========
    DRAWING_STARTED = "drawing.started"
    """Drawing session entered the collecting state."""

    DRAWING_POINT_ACCEPTED = "drawing.point.accepted"
    """Vertex appended to the current drawing session."""

    DRAWING_POINT_REJECTED = "drawing.point.rejected"
    """Vertex arrived while no drawing session was active."""

    DRAWING_FINALIZED = "drawing.finalized"
    """Drawing session produced a region geometry."""

    DRAWING_CANCELLED = "drawing.cancelled"
    """Drawing session cancelled, points discarded."""

    # ========== Region Events ==========
    REGION_CREATED = "region.created"
    REGION_UPDATED = "region.updated"
    REGION_DELETED = "region.deleted"
    REGION_RECOLORED = "region.recolored"
    REGION_SELECTED = "region.selected"

    WINDOW_CHANGED = "window.changed"
    """Process-wide temporal window changed."""

    # ========== Series Events ==========
    SERIES_REQUESTED = "series.requested"
    """Sub-range requested from a metric source."""

    SERIES_ACQUIRED = "series.acquired"
    """Merged series acquired for a region."""

    SERIES_INGESTED = "series.ingested"
    """Series stored for a region."""

    SERIES_STALE_DISCARDED = "series.stale.discarded"
    """Fetch result arrived after its region was deleted or superseded."""

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    MQTT_DISCONNECTED = "mqtt.disconnected"
    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"

    REGION_STATE_SERIALIZED = "region.state.serialized"
    """Region state message serialized to JSON."""

    # ========== Error Events ==========
    VALIDATION_ERROR = "error.validation"
    """Command rejected before any state change."""

    ACQUISITION_ERROR = "error.acquisition"
    """Series acquisition aborted."""

    SOURCE_ERROR = "error.source"
    """A single metric source call failed."""

    OBSERVER_ERROR = "error.observer"
    """Store observer raised while being notified."""

    SERIALIZATION_ERROR = "error.serialization"
    MQTT_CONNECTION_ERROR = "error.mqtt_connection"


# Event categories for filtering
DRAWING_EVENTS = {
    LogEvent.DRAWING_STARTED,
    LogEvent.DRAWING_POINT_ACCEPTED,
    LogEvent.DRAWING_POINT_REJECTED,
    LogEvent.DRAWING_FINALIZED,
    LogEvent.DRAWING_CANCELLED,
}

SERIES_EVENTS = {
    LogEvent.SERIES_REQUESTED,
    LogEvent.SERIES_ACQUIRED,
    LogEvent.SERIES_INGESTED,
    LogEvent.SERIES_STALE_DISCARDED,
}

ERROR_EVENTS = {
    LogEvent.VALIDATION_ERROR,
    LogEvent.ACQUISITION_ERROR,
    LogEvent.SOURCE_ERROR,
    LogEvent.OBSERVER_ERROR,
    LogEvent.SERIALIZATION_ERROR,
    LogEvent.MQTT_CONNECTION_ERROR,
}
