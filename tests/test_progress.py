"""
tests/test_progress.py

Purpose:
    Snapshots, tallies, broadcaster fan-out, and the snapshot queue.
"""

from __future__ import annotations

import asyncio

import pytest

from matchenricher.core.progress import (
    ProgressBroadcaster,
    ProgressSnapshot,
    SnapshotQueue,
    UnitTally,
)
from matchenricher.core.records import Found, NotFound, NotFoundTransient


def _snap(completed: int, total: int = 3, **kwargs) -> ProgressSnapshot:
    return ProgressSnapshot(completed=completed, total=total, **kwargs)


def test_tally_records_functionally() -> None:
    empty = UnitTally()

    tally = empty.record(Found({"x": 1})).record(NotFound()).record(NotFoundTransient()).record(None)

    assert empty == UnitTally()
    assert (tally.attempted, tally.found, tally.not_found, tally.erroneous) == (4, 1, 2, 1)
    assert tally.found_percentage == 25.0
    assert tally.not_found_percentage == 50.0
    assert tally.to_dict()["erroneousPercentage"] == 25.0


def test_snapshot_wire_form() -> None:
    snapshot = ProgressSnapshot(
        completed=1,
        total=3,
        current_unit_id="England-Premier_League-1",
        unit_identifier="Premier League (England)",
        unit_counter=1,
        total_units=2,
        unit_completed=1,
        unit_total=2,
        tally=UnitTally().record(Found({})),
    )

    event = snapshot.to_event()

    assert event["percent"] == 33.33
    assert event["currentProcessedUnitCounter"] == 1
    assert event["totalUnits"] == 2
    assert event["isCompleted"] is False
    assert event["currentUnit"] == {
        "unitIdentifier": "Premier League (England)",
        "percentage": 50.0,
        "progression": "1/2",
    }
    assert event["tally"]["found"] == 1


def test_empty_run_completes_at_hundred_percent() -> None:
    assert _snap(0, 0).percent == 0.0
    assert _snap(0, 0).as_completed().percent == 100.0


def test_late_subscriber_receives_exactly_the_final_snapshot() -> None:
    broadcaster = ProgressBroadcaster()
    broadcaster.publish(_snap(1))
    final = _snap(3).as_completed()
    broadcaster.publish(final)

    received: list[ProgressSnapshot] = []
    broadcaster.subscribe(received.append)

    assert received == [final]


def test_mid_run_subscriber_only_sees_later_snapshots() -> None:
    broadcaster = ProgressBroadcaster()
    broadcaster.publish(_snap(1))

    received: list[ProgressSnapshot] = []
    broadcaster.subscribe(received.append)
    later = [_snap(2), _snap(3).as_completed()]
    for snapshot in later:
        broadcaster.publish(snapshot)

    assert received == later


def test_unsubscribe_stops_delivery() -> None:
    broadcaster = ProgressBroadcaster()
    received: list[ProgressSnapshot] = []
    unsubscribe = broadcaster.subscribe(received.append)

    broadcaster.publish(_snap(1))
    unsubscribe()
    unsubscribe()
    broadcaster.publish(_snap(2))

    assert received == [_snap(1)]
    assert broadcaster.observer_count == 0


def test_failing_observer_is_dropped() -> None:
    broadcaster = ProgressBroadcaster()
    received: list[ProgressSnapshot] = []

    def broken(snapshot: ProgressSnapshot) -> None:
        raise RuntimeError("client went away")

    broadcaster.subscribe(broken)
    broadcaster.subscribe(received.append)

    broadcaster.publish(_snap(1))
    broadcaster.publish(_snap(2))

    assert received == [_snap(1), _snap(2)]
    assert broadcaster.observer_count == 1


def test_observer_unsubscribing_during_publish() -> None:
    broadcaster = ProgressBroadcaster()
    received: list[ProgressSnapshot] = []
    handle: dict[str, object] = {}

    def once(snapshot: ProgressSnapshot) -> None:
        handle["unsubscribe"]()

    handle["unsubscribe"] = broadcaster.subscribe(once)
    broadcaster.subscribe(received.append)

    broadcaster.publish(_snap(1))

    assert received == [_snap(1)]
    assert broadcaster.observer_count == 1


@pytest.mark.asyncio
async def test_snapshot_queue_iterates_until_completed() -> None:
    broadcaster = ProgressBroadcaster()
    queue = SnapshotQueue()
    broadcaster.subscribe(queue)

    snapshots = [_snap(1), _snap(2), _snap(3).as_completed()]
    for snapshot in snapshots:
        broadcaster.publish(snapshot)

    received = [s async for s in queue]

    assert received == snapshots


@pytest.mark.asyncio
async def test_snapshot_queue_drops_oldest_when_full() -> None:
    queue = SnapshotQueue(maxsize=2)

    for completed in (1, 2, 3):
        queue(_snap(completed))

    assert queue.dropped == 1
    assert (await queue.get()).completed == 2
    assert (await queue.get()).completed == 3


@pytest.mark.asyncio
async def test_snapshot_queue_skips_repeats() -> None:
    queue = SnapshotQueue()
    snapshot = _snap(1)

    queue(snapshot)
    queue(snapshot)
    queue(_snap(2))

    assert (await queue.get()).completed == 1
    assert (await asyncio.wait_for(queue.get(), timeout=1)).completed == 2
