"""Tests for snapshots, patch merging and the state store."""

from ifengine.core.state import Message, PlayerState, WorldState, WorldStateStore, merge_patch

ROOMS = {"start": object(), "hall": object()}


def _store(**player):
    initial = WorldState(current_room_id="start", player=PlayerState(**player))
    return WorldStateStore(initial, ROOMS, stackable=frozenset({"coin"}))


def test_apply_returns_new_snapshot():
    store = _store()
    before = store.snapshot
    after = store.apply({"current_room_id": "hall", "player": {"score": 5}})
    assert before.current_room_id == "start"
    assert before.player.score == 0
    assert after.current_room_id == "hall"
    assert after.player.score == 5
    assert store.snapshot is after


def test_health_is_clamped():
    store = _store()
    assert store.apply({"player": {"health": 150}}).player.health == 100
    assert store.apply({"player": {"health": -5}}).player.health == 0


def test_inventory_dedupes_unless_stackable():
    store = _store()
    state = store.apply({"player": {"inventory": ["lamp", "lamp", "coin", "coin"]}})
    assert state.player.inventory == ("lamp", "coin", "coin")


def test_unknown_room_keeps_player_in_place():
    store = _store()
    state = store.apply({"current_room_id": "nowhere"})
    assert state.current_room_id == "start"
    assert state.missing_room == "nowhere"
    assert state.log[-1].text == "Room 'nowhere' not found. You stay where you are."

    state = store.apply({"current_room_id": "hall"})
    assert state.missing_room is None


def test_unknown_keys_and_difficulty_are_ignored():
    store = _store()
    state = store.apply({"weather": "rain", "player": {"difficulty": "nightmare"}})
    assert state.player.difficulty == "normal"


def test_log_accepts_strings_and_messages():
    store = _store()
    state = store.apply({"log": ["plain", Message("typed", "warning")]})
    assert [m.type for m in state.log] == ["info", "warning"]


def test_preview_does_not_commit():
    store = _store()
    preview = store.preview({"player": {"score": 9}})
    assert preview.player.score == 9
    assert store.snapshot.player.score == 0


def test_merge_patch_is_pure():
    state = WorldState(current_room_id="start", room_items={"hall": ("lamp",)})
    merged = merge_patch(state, {"room_items": {"hall": []}}, ROOMS)
    assert state.items_in("hall") == ("lamp",)
    assert merged.items_in("hall") == ()


def test_subscribers_are_notified_and_isolated():
    store = _store()
    seen = []

    def broken(state):
        raise RuntimeError("listener bug")

    store.subscribe(broken)
    unsubscribe = store.subscribe(lambda state: seen.append(state.turn))
    store.apply({"turn": 1})
    unsubscribe()
    store.apply({"turn": 2})
    assert seen == [1]


def test_player_round_trip():
    player = PlayerState(name="Ada", health=70, inventory=("lamp",), traits=frozenset({"agile"}))
    assert PlayerState.from_dict(player.to_dict()) == player
