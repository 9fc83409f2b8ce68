"""
Isotherm CLI - Command-line interface for the dashboard service.

Sends MQTT commands to the dashboard without manually writing JSON.

Usage:
    isotherm-cli start-drawing
    isotherm-cli add-point 22.57 88.36
    isotherm-cli set-window 0 23
    isotherm-cli list-regions
"""

__version__ = "1.0.0"
