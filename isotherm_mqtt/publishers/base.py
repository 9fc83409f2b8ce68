"""
MQTT Publisher Base
===================

Shared broker plumbing for outbound JSON messages.

A publisher owns one paho-mqtt client whose network loop runs on a
background thread. Subclasses decide what a message looks like
(format_message); this class only connects, serializes and sends.

    BasePublisher
        └── RegionStatePublisher   retained store snapshots

QoS defaults to 1: state messages are infrequent and must not be lost.
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from ..logging import LogEvent, StructuredLogger


class BasePublisher(ABC):
    """
    One topic, one paho client.

    Attributes:
        topic: Destination topic
        client_id: paho client identifier
        qos: QoS used for every publish
        client: Underlying paho client (replaceable in tests)
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        topic: str,
        client_id: str,
        logger: StructuredLogger,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.client_id = client_id
        self.qos = qos
        self.logger = logger

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self._connected = threading.Event()
        self._sent = 0
        self._lock = threading.Lock()

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    # ----- paho callbacks (network thread) -----

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Broker refused connection: {reason_code}",
                metadata={'broker': self.broker, 'client_id': self.client_id}
            )
            return

        self._connected.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message=f"Publisher connected to {self.broker}",
            metadata={'client_id': self.client_id, 'topic': self.topic}
        )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message=f"Publisher lost connection to {self.broker}",
            metadata={'reason_code': str(reason_code)}
        )

    # ----- lifecycle -----

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Start the network loop and wait for the broker handshake.

        Returns:
            False on socket errors or when no CONNACK arrives within timeout
        """
        try:
            self.client.connect(self.broker_host, self.broker_port)
        except (OSError, ValueError) as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Cannot reach broker {self.broker}",
                exc_info=e
            )
            return False

        self.client.loop_start()
        if not self._connected.wait(timeout=timeout):
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"No answer from {self.broker} within {timeout}s",
                metadata={'timeout': timeout}
            )
            return False
        return True

    def disconnect(self) -> None:
        self.client.loop_stop()
        self.client.disconnect()
        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message=f"Publisher closed ({self._sent} messages sent)",
            metadata={'topic': self.topic}
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    # ----- publishing -----

    @abstractmethod
    def format_message(self, *args, **kwargs) -> Dict[str, Any]:
        """Build the JSON-ready payload for one message."""
        raise NotImplementedError

    def publish(self, message_data: Dict[str, Any], retain: bool = False) -> bool:
        """
        Serialize and send an already formatted message.

        Returns:
            True once paho accepted the message, False when offline,
            unserializable or rejected by the client
        """
        if not self.is_connected():
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Publisher offline, message dropped",
                metadata={'topic': self.topic}
            )
            return False

        try:
            payload = json.dumps(message_data)
        except (TypeError, ValueError) as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Payload cannot be encoded as JSON",
                exc_info=e,
                metadata={'topic': self.topic}
            )
            return False

        info = self.client.publish(self.topic, payload=payload, qos=self.qos, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"paho rejected publish (rc={info.rc})",
                metadata={'topic': self.topic}
            )
            return False

        with self._lock:
            self._sent += 1
            sent = self._sent

        self.logger.debug(
            event=LogEvent.MQTT_PUBLISH_SUCCESS,
            message=f"Message {sent} sent",
            metadata={'topic': self.topic, 'retain': retain, 'bytes': len(payload)}
        )
        return True

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            sent = self._sent
        return {
            'message_count': sent,
            'connected': self.is_connected(),
            'topic': self.topic,
            'broker': self.broker,
        }
