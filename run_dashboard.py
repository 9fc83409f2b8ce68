#!/usr/bin/env python3
"""
Dashboard Service - Entry Point
===============================

This script starts the Isotherm dashboard service, which:
- Accepts region drawing and editing commands via the MQTT control plane
- Acquires hourly metric series for every region (archive + forecast)
- Recolors regions from their rules whenever the window or series change
- Publishes the retained region state to MQTT

Usage:
    python run_dashboard.py --config config/isotherm/dashboard.yaml

Lifecycle:
    1. Load configuration from YAML
    2. Setup logging (console + file)
    3. Create control plane and region state publisher
    4. Create DashboardService
    5. Run the event loop until SIGINT/SIGTERM
    6. Graceful shutdown

Logs:
    - Console: INFO level
    - File: logs/dashboard.log (INFO level)
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from isotherm_control import MQTTControlPlane
from isotherm_mqtt import RegionStatePublisher, create_logger
from isotherm_store import DashboardConfig, DashboardService


def setup_logging(log_file: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging for the dashboard service.

    Replaces any handlers already on the root logger; the isotherm.*
    component loggers propagate here, so their JSON lines reach the file too.

    Args:
        log_file: Optional path to log file
    """
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            *(
                [logging.FileHandler(log_file)]
                if log_file
                else []
            )
        ],
        force=True,
    )

    return logging.getLogger(__name__)


class DashboardApp:
    """
    Application wrapper for DashboardService.

    Handles configuration loading, component creation and signal handling.
    """

    def __init__(self, config_path: Path, log_file: Optional[Path] = None):
        self.config_path = config_path
        self.logger = setup_logging(log_file)

        self.config: Optional[DashboardConfig] = None
        self.control_plane: Optional[MQTTControlPlane] = None
        self.state_publisher: Optional[RegionStatePublisher] = None
        self.service: Optional[DashboardService] = None

    def setup(self):
        """
        Steps:
        1. Load configuration from YAML
        2. Create control plane
        3. Create region state publisher
        4. Create DashboardService
        """
        self.logger.info("=" * 80)
        self.logger.info("Isotherm Dashboard - Starting")
        self.logger.info("=" * 80)

        self.logger.info(f"Loading configuration: {self.config_path}")
        self.config = DashboardConfig.from_yaml(self.config_path)
        self.logger.info(f"Configuration loaded (service_id={self.config.service_id})")

        mqtt_config = self.config.mqtt_config
        topics = self.config.topics

        self.control_plane = MQTTControlPlane(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            command_topic=topics['command'],
            status_topic=topics['status'],
            client_id=f"isotherm_{self.config.service_id}_control",
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )

        self.state_publisher = RegionStatePublisher(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            topic=topics['region'],
            service_id=self.config.service_id,
            logger=create_logger(component="publisher"),
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )

        self.logger.info(f"  - Command topic: {topics['command']}")
        self.logger.info(f"  - Status topic: {topics['status']}")
        self.logger.info(f"  - Region topic: {topics['region']}")

        self.service = DashboardService(
            config=self.config,
            control_plane=self.control_plane,
            state_publisher=self.state_publisher,
        )
        self.logger.info("=" * 80)

    async def run(self):
        """Run the service until SIGINT/SIGTERM."""
        if not self.service:
            raise RuntimeError("Service not initialized. Call setup() first.")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._signal_handler, sig)

        self.logger.info("Press Ctrl+C to stop")
        await self.service.run()
        self.logger.info("Shutdown complete")

    def _signal_handler(self, signum: signal.Signals):
        self.logger.info(f"Received signal {signum.name}, stopping")
        self.service.stop()


def parse_args():
    parser = argparse.ArgumentParser(
        description="Isotherm Dashboard - region metric coloring over MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_dashboard.py --config config/isotherm/dashboard.yaml
  python run_dashboard.py --config config/isotherm/dashboard.yaml --no-log-file
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        required=True,
        help='Path to dashboard configuration YAML file'
    )
    parser.add_argument(
        '--log-file',
        type=Path,
        default=Path('logs/dashboard.log'),
        help='Path to log file (default: logs/dashboard.log)'
    )
    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Disable file logging (console only)'
    )

    return parser.parse_args()


def main():
    args = parse_args()
    log_file = None if args.no_log_file else args.log_file

    if not args.config.exists():
        print(f"Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    app = DashboardApp(config_path=args.config, log_file=log_file)

    try:
        app.setup()
        asyncio.run(app.run())
    except (RuntimeError, ValueError, OSError) as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
