"""
One-shot command sender used by isotherm-cli.

Opens a connection, publishes a single JSON command at QoS 1, waits for the
broker acknowledgement and closes again.
"""

import json
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt


class MQTTCommandClient:
    """Short-lived paho client for dashboard commands."""

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None
    ):
        self.broker = broker
        self.port = port

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
        if username and password:
            self.client.username_pw_set(username, password)

    def send_command(
        self,
        topic: str,
        command: Dict[str, Any],
        qos: int = 1,
        timeout: float = 5.0
    ) -> None:
        """
        Publish one command and wait up to timeout seconds for the PUBACK.

        Raises:
            ValueError: If the command cannot be encoded as JSON
            ConnectionError: If the broker is unreachable
        """
        try:
            payload = json.dumps(command)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Command is not JSON serializable: {e}") from e

        try:
            self.client.connect(self.broker, self.port, keepalive=30)
        except OSError as e:
            raise ConnectionError(
                f"No MQTT broker reachable at {self.broker}:{self.port}"
            ) from e

        self.client.loop_start()
        try:
            info = self.client.publish(topic, payload, qos=qos)
            info.wait_for_publish(timeout=timeout)
        finally:
            self.client.disconnect()
            self.client.loop_stop()

        print(f"Sent '{command.get('command', '?')}' to {topic}")
