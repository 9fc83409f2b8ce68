"""
Test Region Store
=================

Region lifecycle, recompute pipeline, rule drafts and series acquisition
against an in-memory merge service.

Usage:
    python test_region_store.py
"""

import asyncio
from datetime import date

from isotherm_series import AcquisitionError, SourceError, TimeSeries
from isotherm_store import RegionStore, RegionValidationError, StoreEventKind
from isotherm_zone.analytics import DEFAULT_COLOR, TemporalWindow

SQUARE = [(22.50, 88.30), (22.60, 88.30), (22.60, 88.40), (22.50, 88.40)]
TODAY = date(2025, 6, 15)


def _series(values, field="temperature_2m"):
    return TimeSeries(
        timestamps=[f"2025-06-01T{h:02d}:00" for h in range(len(values))],
        values={field: values},
    )


class FakeMerge:
    """Returns canned series in call order; optionally held behind a gate."""

    def __init__(self, results=None, error=None):
        self.results = list(results or [])
        self.error = error
        self.gate = None
        self.calls = []

    async def acquire(self, latitude, longitude, start, end, fields, today=None):
        index = len(self.calls)
        self.calls.append({
            'latitude': latitude,
            'longitude': longitude,
            'start': start,
            'end': end,
            'fields': tuple(fields),
            'today': today,
        })
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.results[min(index, len(self.results) - 1)]


def _store(merge=None, window=None):
    store = RegionStore(
        merge_service=merge,
        window=window or TemporalWindow(0, 2),
        today=lambda: TODAY,
    )
    events = []
    store.subscribe(events.append)
    return store, events


def _kinds(events):
    return [event.kind for event in events]


# ----- lifecycle -----

def test_create_region_defaults():
    store, events = _store()
    region = store.create_region("  R1 ", SQUARE)

    assert region.name == "R1"
    assert region.region_id.startswith("region_")
    assert region.color == DEFAULT_COLOR
    assert region.value is None
    assert region.field == "temperature_2m"
    assert len(region.rules) == 4
    assert region.region_id in store
    assert _kinds(events) == [StoreEventKind.REGION_CREATED]
    assert events[0].region == region


def test_create_region_rejects_invalid_input():
    store, events = _store()

    for name, vertices in (
        ("", SQUARE),
        ("R1", SQUARE[:2]),
        ("R1", [(10.0 + i * 0.01, 20.0) for i in range(13)]),
        ("R1", [(95.0, 88.3), (22.6, 88.3), (22.6, 88.4)]),
        ("R1", None),
    ):
        try:
            store.create_region(name, vertices)
            assert False, f"Expected RegionValidationError for {name!r}, {vertices}"
        except RegionValidationError:
            pass

    assert len(store) == 0
    assert events == []


def test_scenario_ingest_and_classify():
    """R1 with [8, 12, 30] over window [0, 2] -> 16.67 -> green."""
    store, events = _store()
    region = store.create_region("R1", SQUARE)

    updated = store.ingest_series(region.region_id, _series([8, 12, 30]))

    assert abs(updated.value - 16.6667) < 1e-3
    assert updated.color == "#00cc66"
    assert store.get(region.region_id).color == "#00cc66"
    assert _kinds(events)[-2:] == [StoreEventKind.SERIES_INGESTED, StoreEventKind.REGION_RECOLORED]


def test_missing_samples_do_not_clear_color():
    """A null hour inside the window is skipped, not treated as no data."""
    store, _ = _store()
    region = store.create_region("R1", SQUARE)
    store.set_window(0, 48)

    updated = store.ingest_series(region.region_id, _series([8] * 24 + [None] + [12] * 24))

    assert updated.value == 10.0
    assert updated.color == "#00cc66"


def test_set_window_recomputes_all_regions():
    store, events = _store()
    r1 = store.create_region("R1", SQUARE)
    r2 = store.create_region("R2", SQUARE)
    store.ingest_series(r1.region_id, _series([8, 12, 30]))
    events.clear()

    window = store.set_window(0, 0)

    assert window.to_dict() == {'start': 0, 'end': 0}
    assert store.get(r1.region_id).value == 8.0
    assert store.get(r1.region_id).color == "#0066cc"
    # No series: untouched
    assert store.get(r2.region_id).color == DEFAULT_COLOR
    assert _kinds(events) == [StoreEventKind.REGION_RECOLORED, StoreEventKind.WINDOW_CHANGED]


def test_set_window_rejects_invalid_range():
    store, events = _store()

    for start, end in ((5, 2), (-1, 3), (0, 10_000)):
        try:
            store.set_window(start, end)
            assert False, f"Expected ValueError for [{start}, {end}]"
        except ValueError:
            pass

    assert store.window.to_dict() == {'start': 0, 'end': 2}
    assert events == []


def test_window_past_series_end_is_undefined():
    store, _ = _store()
    region = store.create_region("R1", SQUARE)
    store.ingest_series(region.region_id, _series([8, 12, 30]))

    store.set_window(10, 20)
    updated = store.get(region.region_id)
    assert updated.value is None
    assert updated.color == DEFAULT_COLOR


def test_update_region():
    store, events = _store()
    region = store.create_region("R1", SQUARE)
    store.ingest_series(region.region_id, _series([8, 12, 30]))

    updated = store.update_region(
        region.region_id,
        name="Kolkata",
        rules=[{'operator': '>', 'threshold': 15, 'color': '#FF0000'}],
    )
    assert updated.name == "Kolkata"
    assert updated.color == "#ff0000"

    try:
        store.update_region(region.region_id, geometry=None)
        assert False, "Expected RegionValidationError"
    except RegionValidationError:
        pass

    try:
        store.update_region(region.region_id, rules=[{'operator': '!', 'threshold': 1, 'color': '#fff'}])
        assert False, "Expected RegionValidationError"
    except RegionValidationError:
        pass

    try:
        store.update_region("region_missing", name="x")
        assert False, "Expected KeyError"
    except KeyError:
        pass

    assert store.get(region.region_id).name == "Kolkata"
    assert StoreEventKind.REGION_UPDATED in _kinds(events)


def test_field_change_drops_series():
    store, _ = _store()
    region = store.create_region("R1", SQUARE)
    store.ingest_series(region.region_id, _series([8, 12, 30]))

    updated = store.update_region(region.region_id, field="precipitation")

    assert updated.field == "precipitation"
    assert store.series_for(region.region_id) is None
    assert updated.value is None
    assert updated.color == DEFAULT_COLOR


def test_delete_clears_selection():
    store, events = _store()
    region = store.create_region("R1", SQUARE)
    store.ingest_series(region.region_id, _series([8, 12, 30]))
    store.select(region.region_id)
    events.clear()

    store.delete_region(region.region_id)

    assert region.region_id not in store
    assert store.selected_id is None
    assert store.series_for(region.region_id) is None
    assert _kinds(events) == [StoreEventKind.REGION_DELETED, StoreEventKind.SELECTION_CHANGED]

    try:
        store.delete_region(region.region_id)
        assert False, "Expected KeyError"
    except KeyError:
        pass


def test_selection():
    store, events = _store()
    r1 = store.create_region("R1", SQUARE)
    r2 = store.create_region("R2", SQUARE)
    events.clear()

    store.select(r1.region_id)
    store.select(r1.region_id)
    assert store.selected_id == r1.region_id
    assert _kinds(events) == [StoreEventKind.SELECTION_CHANGED]

    store.select(r2.region_id)
    assert store.selected_id == r2.region_id

    try:
        store.select("region_missing")
        assert False, "Expected KeyError"
    except KeyError:
        pass
    assert store.selected_id == r2.region_id

    store.select(None)
    store.deselect()
    assert store.selected_id is None
    assert len(events) == 3


def test_rule_draft_commit_and_discard():
    store, _ = _store()
    region = store.create_region("R1", SQUARE)
    store.ingest_series(region.region_id, _series([8, 12, 30]))

    draft = store.begin_rule_edit(region.region_id)
    added = draft.add_rule()
    assert added.operator.value == ">=" and added.threshold == 0.0 and added.color == DEFAULT_COLOR

    draft.update_rule(4, threshold=15, color="#ff00ff")
    draft.move_rule(4, 0)
    assert len(draft) == 5

    # Committed rules untouched until commit
    assert len(store.get(region.region_id).rules) == 4
    assert store.get(region.region_id).color == "#00cc66"

    committed = store.commit_rule_edit(region.region_id)
    assert len(committed.rules) == 5
    assert committed.rules[0].threshold == 15.0
    assert committed.color == "#ff00ff"
    assert store.draft_for(region.region_id) is None

    draft = store.begin_rule_edit(region.region_id)
    draft.remove_rule(0)
    assert store.discard_rule_edit(region.region_id) is True
    assert store.discard_rule_edit(region.region_id) is False
    assert len(store.get(region.region_id).rules) == 5

    try:
        store.commit_rule_edit(region.region_id)
        assert False, "Expected KeyError"
    except KeyError:
        pass


def test_rule_draft_index_errors():
    store, _ = _store()
    region = store.create_region("R1", SQUARE)
    draft = store.begin_rule_edit(region.region_id)

    for action in (
        lambda: draft.remove_rule(4),
        lambda: draft.update_rule(-1, threshold=1),
        lambda: draft.move_rule(9, 0),
    ):
        try:
            action()
            assert False, "Expected IndexError"
        except IndexError:
            pass

    try:
        draft.update_rule(0, color="nope")
        assert False, "Expected ValueError"
    except ValueError:
        pass
    assert len(draft) == 4


def test_failing_observer_does_not_block_others():
    store, events = _store()

    def broken(event):
        raise RuntimeError("observer bug")

    store.subscribe(broken)
    late = []
    unsubscribe = store.subscribe(late.append)

    store.create_region("R1", SQUARE)
    assert len(events) == 1 and len(late) == 1

    unsubscribe()
    unsubscribe()
    store.create_region("R2", SQUARE)
    assert len(events) == 2 and len(late) == 1


def test_snapshot_shape():
    store, _ = _store()
    region = store.create_region("R1", SQUARE)
    store.select(region.region_id)

    snapshot = store.snapshot()
    assert snapshot['window'] == {'start': 0, 'end': 2}
    assert snapshot['selected_id'] == region.region_id

    entry = snapshot['regions'][0]
    assert entry['id'] == region.region_id
    assert entry['name'] == "R1"
    assert entry['color'] == DEFAULT_COLOR
    assert entry['value'] is None
    assert len(entry['vertices']) == 4
    assert len(entry['rules']) == 4


# ----- acquisition -----

def test_acquire_uses_centroid_and_symmetric_range():
    merge = FakeMerge(results=[_series([8, 12, 30])])
    store, _ = _store(merge)
    region = store.create_region("R1", SQUARE)

    series = asyncio.run(store.acquire_series(region.region_id))

    assert series is store.series_for(region.region_id)
    call = merge.calls[0]
    assert abs(call['latitude'] - 22.55) < 1e-9
    assert abs(call['longitude'] - 88.35) < 1e-9
    assert call['start'] == date(2025, 5, 31)
    assert call['end'] == date(2025, 6, 30)
    assert call['today'] == TODAY
    assert call['fields'] == ("temperature_2m",)
    assert store.get(region.region_id).color == "#00cc66"


def test_create_in_loop_spawns_acquisition():
    merge = FakeMerge(results=[_series([8, 12, 30])])
    store, events = _store(merge)

    async def scenario():
        region = store.create_region("R1", SQUARE)
        task = store.pending_acquisition(region.region_id)
        assert task is not None
        await task
        return region.region_id

    region_id = asyncio.run(scenario())

    assert store.pending_acquisition(region_id) is None
    assert store.get(region_id).color == "#00cc66"
    assert StoreEventKind.SERIES_INGESTED in _kinds(events)


def test_result_for_deleted_region_is_discarded():
    merge = FakeMerge(results=[_series([8, 12, 30])])
    store, events = _store(merge)
    region = store.create_region("R1", SQUARE)

    async def scenario():
        merge.gate = asyncio.Event()
        task = asyncio.ensure_future(store.acquire_series(region.region_id))
        await asyncio.sleep(0)
        store.delete_region(region.region_id)
        merge.gate.set()
        return await task

    assert asyncio.run(scenario()) is None
    assert len(store) == 0
    assert store.series_for(region.region_id) is None
    assert StoreEventKind.SERIES_INGESTED not in _kinds(events)


def test_newer_acquisition_supersedes_older():
    old, new = _series([0, 0, 0]), _series([30, 30, 30])
    merge = FakeMerge(results=[old, new])
    store, _ = _store(merge)
    region = store.create_region("R1", SQUARE)

    async def scenario():
        merge.gate = asyncio.Event()
        first = asyncio.ensure_future(store.acquire_series(region.region_id))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(store.acquire_series(region.region_id))
        await asyncio.sleep(0)
        merge.gate.set()
        return await first, await second

    first, second = asyncio.run(scenario())

    assert first is None
    assert second is new
    assert store.series_for(region.region_id) is new
    assert store.get(region.region_id).value == 30.0


def test_failed_acquisition_keeps_previous_series():
    error = AcquisitionError("forecast down")
    error.__cause__ = SourceError("forecast", "HTTP 503")
    merge = FakeMerge(error=error)
    store, events = _store(merge)
    region = store.create_region("R1", SQUARE)
    previous = _series([8, 12, 30])
    store.ingest_series(region.region_id, previous)

    try:
        asyncio.run(store.acquire_series(region.region_id))
        assert False, "Expected AcquisitionError"
    except AcquisitionError:
        pass

    assert store.series_for(region.region_id) is previous
    assert store.get(region.region_id).color == "#00cc66"
    assert _kinds(events)[-1] == StoreEventKind.ACQUISITION_FAILED


def test_background_failure_is_reported_not_raised():
    merge = FakeMerge(error=AcquisitionError("archive down"))
    store, events = _store(merge)

    async def scenario():
        region = store.create_region("R1", SQUARE)
        return await store.pending_acquisition(region.region_id)

    assert asyncio.run(scenario()) is None
    assert _kinds(events)[-1] == StoreEventKind.ACQUISITION_FAILED


def test_acquire_without_merge_service():
    store, _ = _store()
    region = store.create_region("R1", SQUARE)

    try:
        asyncio.run(store.acquire_series(region.region_id))
        assert False, "Expected RuntimeError"
    except RuntimeError:
        pass


def test_close_cancels_in_flight_acquisitions():
    merge = FakeMerge(results=[_series([8, 12, 30])])
    store, _ = _store(merge)

    async def scenario():
        merge.gate = asyncio.Event()
        region = store.create_region("R1", SQUARE)
        task = store.pending_acquisition(region.region_id)
        await asyncio.sleep(0)

        store.close()
        await asyncio.gather(task, return_exceptions=True)
        return region.region_id, task

    region_id, task = asyncio.run(scenario())

    assert task.cancelled()
    assert store.series_for(region_id) is None
    assert store.pending_acquisition(region_id) is None


def main():
    """Run all tests."""
    print("\nisotherm_store - Region Store Tests")
    print("=" * 60)

    test_create_region_defaults()
    test_create_region_rejects_invalid_input()
    test_scenario_ingest_and_classify()
    test_missing_samples_do_not_clear_color()
    test_set_window_recomputes_all_regions()
    test_set_window_rejects_invalid_range()
    test_window_past_series_end_is_undefined()
    test_update_region()
    test_field_change_drops_series()
    test_delete_clears_selection()
    test_selection()
    test_rule_draft_commit_and_discard()
    test_rule_draft_index_errors()
    test_failing_observer_does_not_block_others()
    test_snapshot_shape()
    test_acquire_uses_centroid_and_symmetric_range()
    test_create_in_loop_spawns_acquisition()
    test_result_for_deleted_region_is_discarded()
    test_newer_acquisition_supersedes_older()
    test_failed_acquisition_keeps_previous_series()
    test_background_failure_is_reported_not_raised()
    test_acquire_without_merge_service()
    test_close_cancels_in_flight_acquisitions()

    print("✅ ALL TESTS PASSED!")


if __name__ == "__main__":
    main()
