"""
MQTT control plane for the dashboard service.

Listens on the command topic, turns each JSON payload into a registry call
and reports outcomes on a retained status topic.

    {"command": "set_window", "start": 0, "end": 48}   -> command topic
    {"status": "error", "timestamp": ..., "client_id": ..., "data": {...}}
                                                        <- status topic

paho runs its network loop on a background thread, so _on_message and the
registered handlers execute there. DashboardService registers forwarders
that only hand the payload to the asyncio loop.
"""

import json
import logging
from datetime import datetime, timezone
from threading import Event
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .registry import CommandNotAvailableError, CommandRegistry

logger = logging.getLogger(__name__)


class MQTTControlPlane:
    """
    Command intake and status output over one paho client.

    Example:
        plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            command_topic="isotherm/control/dashboard_01/commands",
            status_topic="isotherm/control/dashboard_01/status",
            client_id="isotherm_dashboard_01_control",
        )
        plane.command_registry.register('list_regions', on_list, "List regions")
        if not plane.connect(timeout=5.0):
            raise SystemExit("broker unreachable")
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        command_topic: str,
        status_topic: str,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
    ):
        """
        Args:
            broker_host: Broker hostname
            broker_port: Broker port
            command_topic: Subscribed for incoming commands
            status_topic: Retained status messages are published here
            client_id: paho client identifier (also stamped on status messages)
            username: Optional broker username
            password: Optional broker password
            qos: QoS for the subscription and status messages
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.command_topic = command_topic
        self.status_topic = status_topic
        self.client_id = client_id
        self.qos = qos

        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv311,
        )
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self.command_registry = CommandRegistry()

        self._connected = Event()
        self._loop_started = False

    # ===== Lifecycle =====

    def connect(self, timeout: float = 5.0) -> bool:
        """
        Connect and block until the command subscription is in place.

        Returns:
            False when the broker is unreachable or silent for timeout seconds
        """
        logger.info(f"Control plane connecting to {self.broker_host}:{self.broker_port}")
        try:
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
        except OSError as e:
            logger.error(f"Control plane cannot reach broker: {e}")
            return False

        self.client.loop_start()
        self._loop_started = True

        if not self._connected.wait(timeout=timeout):
            logger.error(f"Control plane got no CONNACK within {timeout}s")
            return False
        return True

    def disconnect(self) -> None:
        """Publish a final "disconnected" status and stop (idempotent)."""
        if not self._loop_started:
            return

        self.publish_status("disconnected")
        self.client.loop_stop()
        self.client.disconnect()
        self._loop_started = False
        self._connected.clear()
        logger.info("Control plane disconnected")

    # ===== Status =====

    def build_status(self, status: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        message: Dict[str, Any] = {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "client_id": self.client_id,
        }
        if data:
            message["data"] = data
        return message

    def publish_status(self, status: str, data: Optional[Dict[str, Any]] = None) -> None:
        """
        Publish a retained status message (any thread).

        Args:
            status: "connected", "running", "region_created", "error", ...
            data: Optional details (command result or error description)
        """
        payload = json.dumps(self.build_status(status, data), default=str)
        info = self.client.publish(self.status_topic, payload, qos=self.qos, retain=True)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(f"Status '{status}' dropped by client (rc={info.rc})")
            return
        logger.debug(f"Status '{status}' published")

    # ===== paho callbacks (network thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error(f"Broker refused control plane: {reason_code}")
            self._connected.clear()
            return

        client.subscribe(self.command_topic, qos=self.qos)
        logger.info(f"Listening for commands on {self.command_topic} (QoS {self.qos})")
        self.publish_status("connected")
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        self._connected.clear()
        if reason_code.is_failure:
            logger.warning(f"Control plane connection lost: {reason_code}")

    def _on_message(self, client, userdata, msg):
        self.handle_payload(msg.payload)

    # ===== Dispatch =====

    def handle_payload(self, payload: bytes) -> bool:
        """
        Decode one command payload and run it through the registry.

        The command name is matched case-insensitively. Undecodable payloads
        and unknown commands are answered with an "error" status.

        Returns:
            True if a registered handler was called
        """
        try:
            command_data = json.loads(payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Undecodable command payload {payload!r}: {e}")
            self.publish_status("error", {"error": f"Invalid JSON: {e}"})
            return False

        if not isinstance(command_data, dict):
            logger.warning(f"Ignoring non-object command payload: {command_data!r}")
            return False

        command = str(command_data.get('command', '')).lower()
        if not command:
            logger.warning("Ignoring payload without a command name")
            return False

        logger.info(f"Command received: {command}")
        try:
            self.command_registry.execute(command, command_data)
        except CommandNotAvailableError as e:
            logger.warning(str(e))
            self.publish_status("error", {
                "command": command,
                "error": str(e),
                "available": sorted(self.command_registry.available_commands),
            })
            return False
        return True
