"""
Test Logging Setup
==================

Component JSON lines written by the store and the drawing controller must
reach the log file configured by run_dashboard.setup_logging.

Usage:
    python test_logging.py
"""

import logging
import tempfile
from pathlib import Path

from isotherm_store import RegionStore
from isotherm_zone.drawing import RegionDrawingController
from run_dashboard import setup_logging

SQUARE = [(22.50, 88.30), (22.60, 88.30), (22.60, 88.40), (22.50, 88.40)]


class IdleScheduler:
    class _Handle:
        def cancel(self):
            pass

    def call_later(self, delay, callback):
        return self._Handle()


def _reset_root_handlers():
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()


def test_component_events_reach_log_file():
    with tempfile.TemporaryDirectory() as tmp:
        log_file = Path(tmp) / "logs" / "dashboard.log"
        setup_logging(log_file)
        try:
            RegionStore().create_region("R1", SQUARE)

            controller = RegionDrawingController(on_finalize=lambda geometry: None,
                                                 scheduler=IdleScheduler())
            controller.start_drawing()

            text = log_file.read_text()
        finally:
            _reset_root_handlers()

    assert '"event": "region.created"' in text
    assert '"component": "store"' in text
    assert '"event": "drawing.started"' in text


def main():
    """Run all tests."""
    print("\nisotherm - Logging Setup Tests")
    print("=" * 60)

    test_component_events_reach_log_file()

    print("✅ ALL TESTS PASSED!")


if __name__ == "__main__":
    main()
