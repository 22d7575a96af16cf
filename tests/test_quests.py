"""Tests for the miniquest loader and QuestSubsystem."""

import sys
import os
import json
import tempfile
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from ifengine.core.flags import FlagGraph
from ifengine.core.rng import make_rng
from ifengine.core.state import PlayerState
from ifengine.quest import Miniquest, QuestSubsystem, build_miniquests, load_miniquests


def _quest(**overrides):
    data = dict(id="riddle", room_id="glade", title="Riddle", trigger_action="solve riddle",
                type="puzzle", difficulty="medium", reward_points=20, hint="Think.")
    data.update(overrides)
    return Miniquest(**data)


@pytest.fixture
def flags(clock):
    return FlagGraph(clock=clock)


@pytest.fixture
def quests(flags, rng):
    subsystem = QuestSubsystem(flags, rng)
    subsystem.register(_quest())
    return subsystem


def test_load_miniquests_from_file():
    data = {"miniquests": [
        {"id": "q1", "room_id": "glade", "title": "Q1", "trigger_action": "  Decipher Glyphs "},
    ]}
    with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False, encoding="utf-8") as f:
        json.dump(data, f)
        path = f.name
    try:
        loaded = load_miniquests(path)
    finally:
        os.unlink(path)
    assert len(loaded) == 1
    assert loaded[0].trigger_action == "decipher glyphs"
    assert loaded[0].difficulty == "medium"
    assert loaded[0].completion_flag == "miniquest_q1_completed"


def test_loader_rejects_bad_entries():
    with pytest.raises(ValueError):
        build_miniquests([{"id": "q1", "room_id": "glade", "title": "Q1"}])
    entry = {"id": "q1", "room_id": "glade", "title": "Q1", "trigger_action": "x"}
    with pytest.raises(ValueError, match="Duplicate"):
        build_miniquests([entry, dict(entry)])
    with pytest.raises(FileNotFoundError):
        load_miniquests("/nonexistent/miniquests.json")


def test_availability_depends_on_items_and_flags(flags, rng):
    subsystem = QuestSubsystem(flags, rng)
    subsystem.register_room_quests("glade", [
        _quest(id="scroll", required_items=["scroll"], room_id="elsewhere"),
        _quest(id="song", required_flags=["heard_song"]),
    ])
    assert subsystem.get_quest("glade", "scroll").room_id == "glade"
    assert subsystem.available_quests("glade", PlayerState()) == []
    held = PlayerState(inventory=("scroll",))
    assert [q.id for q in subsystem.available_quests("glade", held)] == ["scroll"]
    flags.set_flag("heard_song")
    assert [q.id for q in subsystem.available_quests("glade", held)] == ["scroll", "song"]


def test_success_chance_bonuses(flags, rng):
    subsystem = QuestSubsystem(flags, rng)
    player = PlayerState()
    assert subsystem.success_chance(_quest(difficulty="hard"), player) == pytest.approx(0.5)
    scholar = PlayerState(traits=frozenset({"scholar"}))
    assert subsystem.success_chance(_quest(), scholar) == pytest.approx(0.85)
    assert subsystem.success_chance(_quest(type="dynamic"), player) == pytest.approx(0.8)
    companion = PlayerState(inventory=("dominic",))
    assert subsystem.success_chance(_quest(type="social"), companion) == pytest.approx(0.8)
    assert subsystem.success_chance(_quest(type="social", difficulty="trivial"), companion) == 1.0


def test_successful_attempt(quests, flags, rng):
    rng.push(0.1)
    attempt = quests.attempt("riddle", "glade", PlayerState(), "solve riddle")
    assert attempt.success
    assert attempt.message == "Miniquest completed: Riddle!"
    assert attempt.score_awarded == 20
    assert attempt.event == "solve.puzzle.simple"
    assert flags.has_flag("miniquest_riddle_completed")
    assert flags.metadata("miniquest_riddle_completed").category == "quest"
    assert quests.is_completed("glade", "riddle")
    # Non-repeatable quests disappear once completed
    assert quests.available_quests("glade", PlayerState()) == []


def test_failed_attempt_gives_hint(quests):
    attempt = quests.attempt("riddle", "glade", PlayerState())
    assert not attempt.success
    assert attempt.consumed
    assert attempt.message == 'You attempt "Riddle" but don\'t succeed this time. Hint: Think.'


def test_wrong_trigger_is_not_an_attempt(quests):
    attempt = quests.attempt("riddle", "glade", PlayerState(), "solve puzzle")
    assert not attempt.consumed
    assert attempt.message == "Try: solve riddle"


def test_unknown_and_unavailable_quests(quests):
    missing = quests.attempt("nope", "glade", PlayerState())
    assert missing.message == "Quest nope not found in glade."
    assert not missing.consumed
    quests.exhaust("glade", "riddle")
    blocked = quests.attempt("riddle", "glade", PlayerState())
    assert blocked.message == "You cannot attempt this quest right now."


def test_score_events_by_type():
    assert QuestSubsystem.score_event_for(_quest(difficulty="hard")) == "solve.puzzle.hard"
    assert QuestSubsystem.score_event_for(_quest(type="exploration")) == "discover.location"
    assert QuestSubsystem.score_event_for(_quest(type="social")) == "conversation.meaningful"
    assert QuestSubsystem.score_event_for(_quest(type="general")) == "miniquest.completed"


def test_repeatable_quest_status(flags, rng):
    subsystem = QuestSubsystem(flags, rng)
    subsystem.register(_quest(repeatable=True))
    rng.push(0.0)
    subsystem.attempt("riddle", "glade", PlayerState())
    assert subsystem.list_room_quests("glade", PlayerState())[0][1] == "REPEATABLE"
    rng.push(0.0)
    assert subsystem.attempt("riddle", "glade", PlayerState()).success


def test_quest_status_labels(quests, flags, rng):
    quests.register(_quest(id="locked", required_flags=["never"]))
    statuses = dict((q.id, s) for q, s in quests.list_room_quests("glade", PlayerState()))
    assert statuses == {"riddle": "AVAILABLE", "locked": "LOCKED"}
    rng.push(0.0)
    quests.attempt("riddle", "glade", PlayerState())
    quests.exhaust("glade", "locked")
    statuses = dict((q.id, s) for q, s in quests.list_room_quests("glade", PlayerState()))
    assert statuses == {"riddle": "COMPLETED", "locked": "EXHAUSTED"}


def test_find_by_trigger(quests):
    quest, exact = quests.find_by_trigger("glade", "Solve  Riddle")
    assert quest.id == "riddle" and exact
    quest, exact = quests.find_by_trigger("glade", "solve the crossword")
    assert quest.id == "riddle" and not exact
    assert quests.find_by_trigger("glade", "dance") is None
    assert quests.find_by_trigger("hall", "solve riddle") is None


def test_snapshot_round_trip(quests, flags, rng):
    rng.push(0.0)
    quests.attempt("riddle", "glade", PlayerState())
    data = quests.to_snapshot()
    assert data == {"glade": {"completed": ["riddle"], "completion_counts": {"riddle": 1}, "exhausted": []}}

    restored = QuestSubsystem(flags, rng)
    restored.register(_quest())
    restored.from_snapshot(data)
    assert restored.is_completed("glade", "riddle")
    restored.reset()
    assert not restored.is_completed("glade", "riddle")


def test_available_quests_is_pure(quests):
    player = PlayerState()
    first = quests.available_quests("glade", player)
    second = quests.available_quests("glade", player)
    assert first == second == [quests.get_quest("glade", "riddle")]
    assert quests.to_snapshot() == {}


def test_same_seed_same_quest_rolls(clock):
    def play(seed):
        subsystem = QuestSubsystem(FlagGraph(clock=clock), make_rng(seed))
        subsystem.register(_quest(repeatable=True, difficulty="hard"))
        return [subsystem.attempt("riddle", "glade", PlayerState()).success for _ in range(12)]

    assert play(42) == play(42)
