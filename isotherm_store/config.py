"""
Configuration schema for the dashboard service.

This module defines the configuration structure for the dashboard,
including metric source endpoints, drawing behavior, the temporal window,
default color rules and MQTT settings.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from isotherm_series.sources import ARCHIVE_URL, FORECAST_URL
from isotherm_zone.analytics.rules import ColorRule, default_rules, parse_rules
from isotherm_zone.geometry.shapes import MAX_VERTICES, MIN_VERTICES


@dataclass(frozen=True)
class SourceConfig:
    """Metric source endpoints."""

    archive_url: str = ARCHIVE_URL
    forecast_url: str = FORECAST_URL
    timeout_s: float = 10.0
    timezone: str = "auto"
    source_id: str = "open-meteo"

    def __post_init__(self):
        """Validate source configuration."""
        if not self.archive_url or not self.forecast_url:
            raise ValueError("archive_url and forecast_url cannot be empty")

        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")


@dataclass(frozen=True)
class DrawingConfig:
    """Region drawing behavior."""

    finalize_delay_s: float = 1.5
    min_vertices: int = MIN_VERTICES
    max_vertices: int = MAX_VERTICES

    def __post_init__(self):
        """Validate drawing configuration."""
        if self.finalize_delay_s <= 0:
            raise ValueError(
                f"finalize_delay_s must be > 0, got {self.finalize_delay_s}"
            )

        if not MIN_VERTICES <= self.min_vertices <= self.max_vertices <= MAX_VERTICES:
            raise ValueError(
                f"Vertex limits must satisfy {MIN_VERTICES} <= min_vertices <= "
                f"max_vertices <= {MAX_VERTICES}, got "
                f"[{self.min_vertices}, {self.max_vertices}]"
            )


@dataclass(frozen=True)
class WindowConfig:
    """
    Temporal window bounds.

    horizon counts hourly steps across the whole range, so it must equal
    2 * span_days * 24.
    """

    horizon: int = 720
    span_days: int = 15
    default_start: int = 0
    default_end: int = 24

    def __post_init__(self):
        """Validate window configuration."""
        if self.span_days <= 0:
            raise ValueError(f"span_days must be > 0, got {self.span_days}")

        if self.horizon != 2 * self.span_days * 24:
            raise ValueError(
                f"horizon must equal 2 * span_days * 24 "
                f"({2 * self.span_days * 24}), got {self.horizon}"
            )

        if not 0 <= self.default_start <= self.default_end <= self.horizon:
            raise ValueError(
                f"Default window must satisfy 0 <= start <= end <= {self.horizon}, "
                f"got [{self.default_start}, {self.default_end}]"
            )


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 1

    region_topic: str = "isotherm/data/regions/{service_id}"
    command_topic: str = "isotherm/control/{service_id}/commands"
    status_topic: str = "isotherm/control/{service_id}/status"

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not self.broker:
            raise ValueError("MQTT broker cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

    def topics_for(self, service_id: str) -> Dict[str, str]:
        """Resolve topic templates for a service."""
        return {
            'region': self.region_topic.format(service_id=service_id),
            'command': self.command_topic.format(service_id=service_id),
            'status': self.status_topic.format(service_id=service_id),
        }


@dataclass(frozen=True)
class DashboardConfig:
    """
    Main configuration for the dashboard service.

    Loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    service_id: str
    default_field: str = "temperature_2m"
    fields: Tuple[str, ...] = ("temperature_2m",)
    rules: Tuple[ColorRule, ...] = field(default_factory=default_rules)

    source_config: SourceConfig = field(default_factory=SourceConfig)
    drawing_config: DrawingConfig = field(default_factory=DrawingConfig)
    window_config: WindowConfig = field(default_factory=WindowConfig)
    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)

    def __post_init__(self):
        """Validate dashboard configuration."""
        if not self.service_id:
            raise ValueError("service_id cannot be empty")

        object.__setattr__(self, 'fields', tuple(self.fields))
        if not self.default_field:
            raise ValueError("default_field cannot be empty")
        if self.default_field not in self.fields:
            raise ValueError(
                f"default_field '{self.default_field}' must be one of the "
                f"requested fields {list(self.fields)}"
            )

        object.__setattr__(self, 'rules', tuple(self.rules) or default_rules())

    @property
    def topics(self) -> Dict[str, str]:
        return self.mqtt_config.topics_for(self.service_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DashboardConfig":
        """Build configuration from a parsed YAML mapping."""
        default_field = data.get("default_field", "temperature_2m")
        fields = data.get("fields") or [default_field]

        return cls(
            service_id=data["service_id"],
            default_field=default_field,
            fields=tuple(fields),
            rules=parse_rules(data.get("rules") or []),
            source_config=SourceConfig(**data.get("source_config", {})),
            drawing_config=DrawingConfig(**data.get("drawing_config", {})),
            window_config=WindowConfig(**data.get("window_config", {})),
            mqtt_config=MQTTConfig(**data.get("mqtt_config", {})),
        )

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "DashboardConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            service_id: "dashboard_01"
            default_field: "temperature_2m"
            fields: ["temperature_2m", "relative_humidity_2m"]

            rules:
              - {operator: "<", threshold: 10, color: "#0066cc"}
              - {operator: ">=", threshold: 10, color: "#00cc66"}

            source_config:
              timeout_s: 10

            drawing_config:
              finalize_delay_s: 1.5

            window_config:
              default_start: 0
              default_end: 24

            mqtt_config:
              broker: "localhost"
              port: 1883
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)
