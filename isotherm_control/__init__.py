"""
isotherm_control - MQTT command intake for the dashboard service

- CommandRegistry: explicit name -> handler table
- MQTTControlPlane: subscribes to the command topic, decodes JSON payloads,
  dispatches through the registry and publishes retained status messages
"""

from .registry import CommandNotAvailableError, CommandRegistry
from .plane import MQTTControlPlane

__all__ = [
    "CommandRegistry",
    "CommandNotAvailableError",
    "MQTTControlPlane",
]
