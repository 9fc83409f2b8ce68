"""
Test Dashboard Service (Without Real Broker)
============================================

Command handling, pending-shape flow, state publishing and lifecycle with
a recording control plane and publisher.

Usage:
    python test_dashboard_service.py
"""

import asyncio

from isotherm_control import CommandRegistry
from isotherm_series import TimeSeries
from isotherm_store import DashboardConfig, DashboardService

SQUARE = [[22.50, 88.30], [22.60, 88.30], [22.60, 88.40], [22.50, 88.40]]


class FakeControlPlane:
    def __init__(self, connect_ok=True):
        self.command_registry = CommandRegistry()
        self.statuses = []
        self.connect_ok = connect_ok
        self.disconnected = False

    def connect(self, timeout=5.0):
        return self.connect_ok

    def disconnect(self):
        self.disconnected = True

    def publish_status(self, status, data=None):
        self.statuses.append((status, data))

    def last(self, status):
        matches = [data for name, data in self.statuses if name == status]
        return matches[-1] if matches else None


class FakePublisher:
    def __init__(self):
        self.snapshots = []
        self.disconnected = False

    def connect(self, timeout=5.0):
        return True

    def disconnect(self):
        self.disconnected = True

    def publish_state(self, snapshot):
        self.snapshots.append(snapshot)
        return True


class FakeMerge:
    async def acquire(self, latitude, longitude, start, end, fields, today=None):
        return TimeSeries(
            timestamps=["2025-06-01T00:00", "2025-06-01T01:00", "2025-06-01T02:00"],
            values={name: [8, 12, 30] for name in fields},
        )


class IdleScheduler:
    """Never fires: drawing tests finalize by commit only."""

    class _Handle:
        def cancel(self):
            pass

    def call_later(self, delay, callback):
        return self._Handle()


def _service(connect_ok=True):
    config = DashboardConfig.from_dict({'service_id': "dashboard_test"})
    plane = FakeControlPlane(connect_ok=connect_ok)
    publisher = FakePublisher()
    service = DashboardService(
        config,
        plane,
        publisher,
        merge_service=FakeMerge(),
        scheduler=IdleScheduler(),
    )
    return service, plane, publisher


def test_commands_registered():
    _, plane, _ = _service()
    commands = plane.command_registry.available_commands

    assert plane.command_registry.count() == 13
    for name in ("start_drawing", "add_point", "commit_drawing", "name_region",
                 "discard_shape", "create_region", "set_window", "refresh_region", "list_regions"):
        assert name in commands


def test_create_region_and_publish_state():
    service, plane, publisher = _service()

    async def scenario():
        result = await service.handle_command("create_region", {
            'name': "R1",
            'coordinates': SQUARE,
        })
        await service.store.pending_acquisition(result['region_id'])
        await asyncio.sleep(0)
        return result['region_id']

    region_id = asyncio.run(scenario())

    assert plane.last("region_created") == {'region_id': region_id}
    region = publisher.snapshots[-1]['regions'][0]
    assert region['id'] == region_id
    assert region['color'] == "#00cc66"
    assert abs(region['value'] - 16.6667) < 1e-3


def test_state_publishes_are_coalesced():
    service, _, publisher = _service()

    async def scenario():
        for name in ("R1", "R2", "R3"):
            service.store.create_region(name, SQUARE)
        assert publisher.snapshots == []
        await asyncio.sleep(0)
        return len(publisher.snapshots)

    # Acquisitions are still pending on the first flush
    assert asyncio.run(scenario()) == 1
    assert len(publisher.snapshots[0]['regions']) == 3


def test_set_window_and_select():
    service, plane, _ = _service()

    async def scenario():
        created = await service.handle_command("create_region", {'name': "R1", 'coordinates': SQUARE})
        await service.store.pending_acquisition(created['region_id'])

        window = await service.handle_command("set_window", {'start': "0", 'end': 0})
        selected = await service.handle_command("select_region", {'region_id': created['region_id']})
        cleared = await service.handle_command("select_region", {})
        listed = await service.handle_command("list_regions", {})
        return created['region_id'], window, selected, cleared, listed

    region_id, window, selected, cleared, listed = asyncio.run(scenario())

    assert window == {'start': 0, 'end': 0}
    assert selected == {'selected_id': region_id}
    assert cleared == {'selected_id': None}
    assert service.store.get(region_id).color == "#0066cc"

    entry = listed['regions'][0]
    assert entry['display'] == "8.0°C"
    assert entry['label'] == "Temperature (°C)"
    assert plane.last("regions_list") == listed


def test_set_window_rejects_fractional_bounds():
    service, plane, _ = _service()

    async def scenario():
        return [
            await service.handle_command("set_window", {'start': 1.7, 'end': 10}),
            await service.handle_command("set_window", {'start': 0, 'end': "abc"}),
            await service.handle_command("set_window", {'start': 2.0, 'end': "12"}),
        ]

    fractional, garbage, integral = asyncio.run(scenario())

    assert fractional is None and garbage is None
    assert integral == {'start': 2, 'end': 12}
    errors = [data for name, data in plane.statuses if name == "error"]
    assert [e['error_type'] for e in errors] == ["RegionValidationError"] * 2
    assert "1.7" in errors[0]['error']


def test_errors_reported_as_status():
    service, plane, _ = _service()

    async def scenario():
        return [
            await service.handle_command("delete_region", {'region_id': "region_missing"}),
            await service.handle_command("set_window", {'start': 5, 'end': 1}),
            await service.handle_command("set_window", {'end': 1}),
            await service.handle_command("update_region", {'region_id': "region_missing"}),
            await service.handle_command("pause", {}),
        ]

    results = asyncio.run(scenario())
    assert results == [None] * 5

    errors = [data for name, data in plane.statuses if name == "error"]
    assert len(errors) == 5
    assert errors[0] == {
        'command': "delete_region",
        'error': "Region 'region_missing' not found",
        'error_type': "KeyError",
    }
    assert errors[1]['error_type'] == "ValueError"
    assert errors[2]['error'] == "start"
    assert errors[3]['error_type'] == "RegionValidationError"
    assert errors[4]['command'] == "pause"


def test_pending_shape_flow():
    service, plane, _ = _service()

    async def scenario():
        await service.handle_command("start_drawing", {})
        for lat, lon in SQUARE[:3]:
            await service.handle_command("add_point", {'lat': lat, 'lon': lon})
        await service.handle_command("commit_drawing", {})

        shape = plane.last("shape_pending")
        assert shape['vertex_count'] == 3
        assert service.pending_shape is not None

        # Invalid name keeps the shape
        assert await service.handle_command("name_region", {'name': "  "}) is None
        assert service.pending_shape is not None

        named = await service.handle_command("name_region", {'name': "Drawn"})
        await service.store.pending_acquisition(named['region_id'])
        return named['region_id']

    region_id = asyncio.run(scenario())

    assert service.pending_shape is None
    assert service.store.get(region_id).name == "Drawn"
    assert service.store.get(region_id).geometry.vertex_count == 3


def test_discard_pending_shape():
    service, plane, _ = _service()

    async def scenario():
        await service.handle_command("start_drawing", {})
        for lat, lon in SQUARE[:3]:
            await service.handle_command("add_point", {'lat': lat, 'lon': lon})
        await service.handle_command("commit_drawing", {})
        first = await service.handle_command("discard_shape", {})
        second = await service.handle_command("discard_shape", {})
        unnamed = await service.handle_command("name_region", {'name': "Drawn"})
        return first, second, unnamed

    first, second, unnamed = asyncio.run(scenario())

    assert first == {'discarded': True}
    assert second == {'discarded': False}
    assert unnamed is None
    assert service.pending_shape is None
    assert len(service.store) == 0
    assert plane.last("shape_discarded") == {'discarded': False}


def test_drawing_commands_rejected_out_of_order():
    service, plane, _ = _service()

    async def scenario():
        rejected_point = await service.handle_command("add_point", {'lat': 22.5, 'lon': 88.3})
        await service.handle_command("start_drawing", {})
        await service.handle_command("add_point", {'lat': 22.5, 'lon': 88.3})
        early_commit = await service.handle_command("commit_drawing", {})
        no_shape = await service.handle_command("name_region", {'name': "R1"})
        cancelled = await service.handle_command("cancel_drawing", {})
        return rejected_point, early_commit, no_shape, cancelled

    rejected_point, early_commit, no_shape, cancelled = asyncio.run(scenario())

    assert rejected_point is None
    assert early_commit is None
    assert no_shape is None
    assert cancelled == {'cancelled': True}
    assert len([name for name, _ in plane.statuses if name == "error"]) == 3
    assert service.controller.points == ()


def test_submit_requires_running_loop():
    service, plane, _ = _service()

    assert service.submit("list_regions", {}) is False
    assert plane.last("error") == {'command': "list_regions", 'error': "service not running"}


def test_run_until_stopped():
    service, plane, publisher = _service()

    async def scenario():
        task = asyncio.ensure_future(service.run())
        for _ in range(50):
            if ("running", None) in plane.statuses:
                break
            await asyncio.sleep(0.01)

        # Registered handlers forward into the loop
        plane.command_registry.execute("set_window", {'start': 2, 'end': 10})
        await asyncio.sleep(0.01)

        service.stop()
        await asyncio.wait_for(task, timeout=1.0)

    asyncio.run(scenario())

    names = [name for name, _ in plane.statuses]
    assert names[0] == "running"
    assert names[-1] == "stopped"
    assert service.store.window.to_dict() == {'start': 2, 'end': 10}
    assert publisher.snapshots[0]['regions'] == []
    assert plane.disconnected and publisher.disconnected


def test_run_fails_without_broker():
    service, _, _ = _service(connect_ok=False)

    try:
        asyncio.run(service.run())
        assert False, "Expected RuntimeError"
    except RuntimeError as e:
        assert "control plane" in str(e)


def main():
    """Run all tests."""
    print("\nisotherm_store - Dashboard Service Tests (no broker)")
    print("=" * 60)

    test_commands_registered()
    test_create_region_and_publish_state()
    test_state_publishes_are_coalesced()
    test_set_window_and_select()
    test_set_window_rejects_fractional_bounds()
    test_errors_reported_as_status()
    test_pending_shape_flow()
    test_discard_pending_shape()
    test_drawing_commands_rejected_out_of_order()
    test_submit_requires_running_loop()
    test_run_until_stopped()
    test_run_fails_without_broker()

    print("✅ ALL TESTS PASSED!")


if __name__ == "__main__":
    main()
