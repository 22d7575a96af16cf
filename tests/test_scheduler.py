"""Tests for deferred tasks and the score event bus."""

import json

import pytest

from ifengine.core.scheduler import DeferredTaskScheduler
from ifengine.core.score import ScoreEventBus, load_score_table


@pytest.fixture
def scheduler(clock):
    return DeferredTaskScheduler(clock=clock)


def test_tasks_come_out_in_due_order(scheduler, clock):
    late = scheduler.schedule(10, lambda s: None, label="late")
    early = scheduler.schedule(2, lambda s: None, label="early")
    assert scheduler.pop_due() == []
    clock.advance(10)
    assert [t.id for t in scheduler.pop_due()] == [early.id, late.id]
    assert not scheduler.has_pending()


def test_cancel(scheduler, clock):
    task = scheduler.schedule(1, lambda s: None)
    assert scheduler.is_pending(task.id)
    assert scheduler.cancel(task.id)
    assert not scheduler.cancel(task.id)
    clock.advance(5)
    assert scheduler.pop_due() == []


def test_cancel_scope(scheduler, clock):
    scheduler.schedule(1, lambda s: None, scope="room")
    scheduler.schedule(1, lambda s: None, scope="room")
    modal = scheduler.schedule(1, lambda s: None, scope="modal")
    assert scheduler.cancel_scope("room") == 2
    clock.advance(1)
    assert [t.id for t in scheduler.pop_due()] == [modal.id]


def test_cancel_all_and_bad_scope(scheduler):
    scheduler.schedule(1, lambda s: None, scope="session")
    assert scheduler.cancel_all() == 1
    assert scheduler.pending == []
    with pytest.raises(ValueError):
        scheduler.schedule(1, lambda s: None, scope="forever")


def test_bus_delivers_and_isolates_listeners():
    bus = ScoreEventBus(history_limit=2)
    received = []

    def broken(event_id):
        raise RuntimeError("bad listener")

    bus.subscribe(broken)
    unsubscribe = bus.subscribe(received.append)
    bus.emit("room.new.explored")
    bus.emit("trap.triggered")
    unsubscribe()
    bus.emit("trap.disarmed")
    assert received == ["room.new.explored", "trap.triggered"]
    assert bus.history == ["trap.triggered", "trap.disarmed"]


def test_load_score_table(tmp_path):
    assert load_score_table(str(tmp_path / "missing.json")) == {}

    nested = tmp_path / "nested.json"
    nested.write_text(json.dumps({"events": {"trap.disarmed": 10}}), encoding="utf-8")
    assert load_score_table(str(nested)) == {"trap.disarmed": 10}

    flat = tmp_path / "flat.json"
    flat.write_text(json.dumps({"room.new.explored": "5"}), encoding="utf-8")
    assert load_score_table(str(flat)) == {"room.new.explored": 5}
