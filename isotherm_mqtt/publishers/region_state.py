"""
Region State Publisher
======================

Bounded Context: Region State Message Production

Publishes the whole store snapshot as a retained RegionStateMessage every
time the store announces a change.

Message Flow:
    RegionStore → StoreEvent → RegionStatePublisher → MQTT Broker (retained)

Example:
    >>> from isotherm_mqtt.publishers import RegionStatePublisher
    >>> from isotherm_mqtt.logging import create_logger
    >>>
    >>> publisher = RegionStatePublisher(
    ...     broker_host="localhost",
    ...     topic="isotherm/data/regions/dashboard_01",
    ...     service_id="dashboard_01",
    ...     logger=create_logger("publisher")
    ... )
    >>> publisher.connect()
    >>> publisher.publish_state(store.snapshot())
"""

from typing import Any, Dict, Optional

from .base import BasePublisher
from ..logging import LogEvent, StructuredLogger
from ..schemas import RegionStateMessage, Timestamp


class RegionStatePublisher(BasePublisher):
    """Publisher for retained region state snapshots."""

    def __init__(
        self,
        broker_host: str,
        topic: str,
        service_id: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1
    ):
        """
        Args:
            broker_host: MQTT broker hostname
            topic: Topic to publish region state to
            service_id: Dashboard service identifier stamped on every message
            logger: Structured logger instance
            broker_port: MQTT broker port (default: 1883)
            client_id: MQTT client ID (default: isotherm_<service_id>_state)
            username: MQTT auth username (optional)
            password: MQTT auth password (optional)
            qos: Quality of Service (default: 1)
        """
        super().__init__(
            broker_host=broker_host,
            broker_port=broker_port,
            topic=topic,
            client_id=client_id or f"isotherm_{service_id}_state",
            logger=logger,
            username=username,
            password=password,
            qos=qos
        )
        self.service_id = service_id

    def format_message(
        self,
        snapshot: Dict[str, Any],
        timestamp: Optional[Timestamp] = None
    ) -> Dict[str, Any]:
        """
        Validate a store snapshot through RegionStateMessage and serialize it.

        Raises:
            ValueError: If the snapshot does not form a valid message
        """
        try:
            message = RegionStateMessage.from_snapshot(
                self.service_id, snapshot, timestamp=timestamp
            )
        except (KeyError, ValueError) as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to build region state message",
                exc_info=e,
                metadata={'service_id': self.service_id}
            )
            raise ValueError(f"Failed to format region state message: {e}") from e

        self.logger.debug(
            event=LogEvent.REGION_STATE_SERIALIZED,
            message="Serialized region state message",
            metadata={
                'region_count': message.region_count,
                'selected_id': message.selected_id,
            }
        )
        return message.to_dict()

    def publish_state(self, snapshot: Dict[str, Any]) -> bool:
        """
        Publish the snapshot as a retained message.

        Returns:
            True if published successfully, False otherwise
        """
        try:
            message_data = self.format_message(snapshot)
        except ValueError:
            return False

        return self.publish(message_data, retain=True)
