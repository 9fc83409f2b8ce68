"""
MQTT Publishers
===============

Bounded Context: Message Production

Design:
- BasePublisher: Abstract base with connection management
- RegionStatePublisher: Publishes retained region state snapshots
- Separation of concerns: Publishers format, broker publishes
"""

from .base import BasePublisher
from .region_state import RegionStatePublisher

__all__ = [
    'BasePublisher',
    'RegionStatePublisher',
]
