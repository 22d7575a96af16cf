"""Tests for GameSession lifecycle and the bootstrap against shipped assets."""

import pytest

from game.bootstrap import ASSETS_DIR, create_session, initial_state, load_content
from ifengine.core.errors import PersistenceError
from ifengine.core.interpreter import default_registry
from ifengine.core.parser import parse
from ifengine.core.persistence import MemoryStore
from ifengine.core.score import load_score_table
from ifengine.core.session import GameSession
from ifengine.core.state import WorldState
from ifengine.core.traps import TrapSeedConfig

from conftest import make_content


def test_save_and_load_round_trip(session, rng):
    session.submit_command("go north")
    session.submit_command("take lamp")
    session.submit_command("ring bell")
    assert session.save("slot1")

    session.submit_command("drop lamp")
    session.submit_command("go south")
    assert session.load("slot1")

    state = session.state
    assert state.current_room_id == "hall"
    assert state.player.inventory == ("lamp",)
    assert state.items_in("hall") == ()
    assert "heard_song" in state.flags
    assert session.flags.has_flag("heard_song")


def test_load_missing_slot(session):
    assert not session.load("nothing-here")


def test_restore_preserves_quest_and_trap_progress(session, rng):
    session.submit_command("go north")
    session.submit_command("go east")  # springs the vault trap
    session.submit_command("go west")
    session.submit_command("go west")
    rng.push(0.0)
    session.submit_command("solve riddle")
    data = session.snapshot()

    session.reset()
    assert session.traps.active_trap("vault") is not None
    assert not session.quests.is_completed("glade", "riddle")

    session.restore(data)
    assert session.state.current_room_id == "glade"
    assert session.traps.active_trap("vault") is None
    assert session.quests.is_completed("glade", "riddle")
    assert session.state.player.score == 15


def test_restore_rejects_unknown_room(session):
    data = session.snapshot()
    data["world"]["current_room_id"] = "atlantis"
    with pytest.raises(PersistenceError):
        session.restore(data)
    assert session.state.current_room_id == "start"


def test_restore_rejects_bad_trap_snapshot(session):
    data = session.snapshot()
    data["traps"][0]["severity"] = "catastrophic"
    with pytest.raises(PersistenceError):
        session.restore(data)


def test_reset_returns_to_initial_state(session):
    session.submit_command("go north")
    session.submit_command("ring bell")
    session.submit_command("take lamp")
    session.submit_command("go west")
    assert session.scheduler.has_pending("room")
    state = session.reset()
    assert state.current_room_id == "start"
    assert state.player.inventory == ()
    assert state.flags == ("game_started",)
    assert session.quest_attempts == {}
    assert not session.scheduler.has_pending()


def test_sessions_are_isolated(make_session):
    first = make_session()
    second = make_session()
    first.submit_command("go north")
    first.submit_command("ring bell")
    assert second.state.current_room_id == "start"
    assert not second.flags.has_flag("heard_song")


def test_state_subscribers(session):
    seen = []
    session.subscribe(lambda state: seen.append(state.current_room_id))
    session.submit_command("go north")
    assert seen == ["hall"]


def test_seed_traps_skips_safe_rooms(make_session):
    session = make_session()
    seeded = session.seed_traps(TrapSeedConfig(probability=1.0, max_traps=10, exclude_rooms=()))
    rooms = {t.room_id for t in seeded}
    assert "start" not in rooms
    # Rooms with an authored trap keep it
    assert rooms == {"hall", "glade"}


def test_content_issues_are_collected(rng, clock):
    content = make_content(
        traps=[{"id": "bad", "room_id": "hall", "type": "psychic", "severity": "light"}],
        flags={"initial": ["game_started"], "dependencies": {"a": ["b"], "b": ["a"]}},
    )
    session = GameSession(content, WorldState(current_room_id="start"), rng=rng, flag_clock=clock, task_clock=clock)
    assert len(session.content_issues) == 2
    assert session.traps.trap_for_room("hall") is None


# --- shipped content ---

def test_shipped_content_loads():
    content = load_content(ASSETS_DIR)
    assert content.has_room("crossing")
    assert len(content.quests) == 4
    assert len(content.trap_definitions) == 4
    assert content.flag_declarations["initial"] == ["game_started"]
    assert load_score_table(str(ASSETS_DIR / "score_events.json"))["room.new.explored"] == 5


def test_initial_state_falls_back_to_first_room():
    content = load_content(ASSETS_DIR)
    state = initial_state(content, start_room="nowhere", player_name="Ada")
    assert state.current_room_id == content.room_ids()[0]
    assert state.player.name == "Ada"


def test_create_session_plays_the_intro():
    session = create_session(seed=7, persistence=MemoryStore(), seed_traps=False)
    result = session.start()
    assert result.lines[0] == "--- A Quiet Street Corner ---"
    result = session.submit_command("press blue button")
    assert result.lines == ["The button clicks. Somewhere, something very large wakes up."]
    result = session.submit_command("n")
    assert "--- The Infinite Crossing ---" in result.lines
    assert session.state.current_room_id == "crossing"


def test_go_north_from_crossing():
    session = create_session(seed=3, persistence=MemoryStore(), seed_traps=False)
    session.start()
    session.submit_command("go north")
    result = session.submit_command("go north")
    assert result.lines[0] == "You go north."
    assert result.updates["current_room_id"] == "dalesapartment"
    assert session.state.current_room_id == "dalesapartment"
    assert "The smell of burnt toast lingers in the air." in result.lines


def test_bad_flag_snapshot_leaves_session_untouched(session):
    session.submit_command("go north")
    traps_before = session.traps.to_snapshot()
    data = session.snapshot()
    data["traps"] = []
    data["world"]["current_room_id"] = "start"
    data["flags"]["metadata"] = {"game_started": {"category": "general"}}
    with pytest.raises(PersistenceError):
        session.restore(data)
    assert session.traps.to_snapshot() == traps_before
    assert session.traps.active_trap("vault") is not None
    assert session.state.current_room_id == "hall"
    assert session.flags.has_flag("game_started")


def test_saved_trap_without_id_is_refused(session):
    data = session.snapshot()
    data["traps"] = [{"room_id": "vault", "type": "mechanical", "severity": "light"}]
    with pytest.raises(PersistenceError):
        session.restore(data)
    assert session.traps.active_trap("vault") is not None


def test_same_seed_same_session():
    def play(seed):
        session = create_session(seed=seed, persistence=MemoryStore())
        lines = list(session.start().lines)
        for command in ("n", "e", "search for traps", "n", "e", "w", "s", "w", "s", "w", "commune with oaks"):
            lines.extend(session.submit_command(command).lines)
        return session.traps.to_snapshot(), lines, session.state.player

    assert play(42) == play(42)


def test_shipped_triggers_reach_the_fall_through():
    content = load_content(ASSETS_DIR)
    commands = default_registry()
    for quest in content.quests:
        verb = parse(quest.trigger_action).verb
        assert commands.get_command(verb) is None, quest.id
    for room in content.rooms.values():
        for phrase in room.interactions:
            if phrase.startswith("use "):
                continue
            assert commands.get_command(parse(phrase).verb) is None, (room.id, phrase)
