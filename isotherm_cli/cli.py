"""
Isotherm CLI - Main entry point.

Provides command-line interface for sending MQTT commands to the dashboard
service.
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .mqtt_client import MQTTCommandClient

COMMAND_TOPIC = "isotherm/control/{service_id}/commands"

SIMPLE_COMMANDS = {
    'start-drawing': 'start_drawing',
    'commit-drawing': 'commit_drawing',
    'cancel-drawing': 'cancel_drawing',
    'discard-shape': 'discard_shape',
    'list-regions': 'list_regions',
}


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load a YAML command file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML is invalid or not a mapping
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")

    if not isinstance(config, dict):
        raise ValueError(f"Command file {config_path} must contain a mapping")
    return config


def build_command(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate parsed CLI arguments into a command payload.

    Raises:
        ValueError: If the subcommand is unknown
    """
    if args.command in SIMPLE_COMMANDS:
        return {'command': SIMPLE_COMMANDS[args.command]}

    if args.command == 'add-point':
        return {'command': 'add_point', 'lat': args.lat, 'lon': args.lon}

    if args.command == 'name-region':
        command = {'command': 'name_region', 'name': args.name}
        if args.field:
            command['field'] = args.field
        return command

    if args.command in ('create-region', 'update-region'):
        command = load_yaml_config(args.config)
        command['command'] = args.command.replace('-', '_')
        return command

    if args.command in ('delete-region', 'refresh-region'):
        return {'command': args.command.replace('-', '_'), 'region_id': args.region_id}

    if args.command == 'select-region':
        return {'command': 'select_region', 'region_id': args.region_id}

    if args.command == 'set-window':
        return {'command': 'set_window', 'start': args.start, 'end': args.end}

    raise ValueError(f"Unknown command: {args.command}")


def send_command(
    command: Dict[str, Any],
    service_id: str = "dashboard_01",
    broker: str = "localhost",
    port: int = 1883
) -> None:
    topic = COMMAND_TOPIC.format(service_id=service_id)

    client = MQTTCommandClient(broker=broker, port=port)
    client.send_command(topic, command, qos=1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="isotherm-cli",
        description="Isotherm CLI - Send MQTT commands to the dashboard service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Draw a region point by point, then name it
  isotherm-cli start-drawing
  isotherm-cli add-point 22.57 88.36
  isotherm-cli add-point 22.60 88.36
  isotherm-cli add-point 22.60 88.40
  isotherm-cli commit-drawing
  isotherm-cli name-region "Kolkata north"

  # Create / update regions from YAML
  isotherm-cli create-region config/commands/create_region_kolkata.yaml
  isotherm-cli update-region config/commands/update_region_rules.yaml

  # Window and selection
  isotherm-cli set-window 24 47
  isotherm-cli select-region region_3f2a...
  isotherm-cli select-region          # deselect
"""
    )

    parser.add_argument(
        "--service-id",
        default="dashboard_01",
        help="Target service ID (default: dashboard_01)"
    )
    parser.add_argument(
        "--broker",
        default="localhost",
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=1883,
        help="MQTT broker port (default: 1883)"
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('start-drawing', help='Start drawing a region')
    add_point = subparsers.add_parser('add-point', help='Add a vertex to the drawing')
    add_point.add_argument('lat', type=float, help='Latitude')
    add_point.add_argument('lon', type=float, help='Longitude')
    subparsers.add_parser('commit-drawing', help='Finalize the drawing (double commit)')
    subparsers.add_parser('cancel-drawing', help='Cancel the drawing')
    subparsers.add_parser('discard-shape', help='Drop the shape waiting for a name')

    name_region = subparsers.add_parser('name-region', help='Name the pending shape')
    name_region.add_argument('name', help='Region name')
    name_region.add_argument('--field', help='Tracked field (default: service default)')

    create_region = subparsers.add_parser('create-region', help='Create region from YAML')
    create_region.add_argument('config', help='Path to region YAML (name, coordinates, field)')

    update_region = subparsers.add_parser('update-region', help='Update region from YAML')
    update_region.add_argument('config', help='Path to update YAML (region_id, name/field/rules)')

    delete_region = subparsers.add_parser('delete-region', help='Delete region by ID')
    delete_region.add_argument('region_id', help='Region ID to delete')

    refresh_region = subparsers.add_parser('refresh-region', help='Re-acquire region series')
    refresh_region.add_argument('region_id', help='Region ID to refresh')

    select_region = subparsers.add_parser('select-region', help='Select (or clear) region')
    select_region.add_argument('region_id', nargs='?', default=None, help='Region ID (omit to deselect)')

    set_window = subparsers.add_parser('set-window', help='Set temporal window (hour indices)')
    set_window.add_argument('start', type=int, help='First hour index (inclusive)')
    set_window.add_argument('end', type=int, help='Last hour index (inclusive)')

    subparsers.add_parser('list-regions', help='List regions (answer on status topic)')

    return parser


def main(argv: Optional[list] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        command = build_command(args)
        send_command(command, args.service_id, args.broker, args.port)
    except (ConnectionError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
