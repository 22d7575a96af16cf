"""Authoritative world state: immutable snapshots plus the store that owns them.

Separated from static world definition (see ``model/base.py``). A snapshot
is never mutated in place; ``WorldStateStore.apply`` merges a patch into a
new snapshot and hands it to subscribers.

Patch keys understood by ``merge_patch``:
- ``current_room_id``: str
- ``player``: dict of PlayerState fields (partial)
- ``room_items``: dict room id -> list of item ids (replaces that room's list)
- ``flags``: iterable of currently set flag names (mirror of the FlagGraph)
- ``quest_offers``: iterable of quest ids available in the current room
- ``log``: list of Message (or plain strings) appended to the message log
- ``turn``: int, the command counter
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

MAX_HEALTH = 100
MIN_HEALTH = 0
DIFFICULTIES = ("easy", "normal", "hard")

PATCH_KEYS = frozenset({"current_room_id", "player", "room_items", "flags", "quest_offers", "log", "turn"})


@dataclass(frozen=True)
class Message:
    text: str
    type: str = "info"  # info | success | warning | error | system | room


@dataclass(frozen=True)
class PlayerState:
    name: str = "Player"
    health: int = MAX_HEALTH
    score: int = 0
    inventory: Tuple[str, ...] = ()
    traits: FrozenSet[str] = frozenset()
    visited_rooms: Tuple[str, ...] = ()
    difficulty: str = "normal"

    def has_item(self, item_id: str) -> bool:
        return item_id in self.inventory

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "health": self.health,
            "score": self.score,
            "inventory": list(self.inventory),
            "traits": sorted(self.traits),
            "visited_rooms": list(self.visited_rooms),
            "difficulty": self.difficulty,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlayerState":
        return cls(
            name=data.get("name", "Player"),
            health=int(data.get("health", MAX_HEALTH)),
            score=int(data.get("score", 0)),
            inventory=tuple(data.get("inventory", ())),
            traits=frozenset(data.get("traits", ())),
            visited_rooms=tuple(data.get("visited_rooms", ())),
            difficulty=data.get("difficulty", "normal"),
        )


@dataclass(frozen=True)
class WorldState:
    current_room_id: str
    player: PlayerState = field(default_factory=PlayerState)
    room_items: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    flags: Tuple[str, ...] = ()
    log: Tuple[Message, ...] = ()
    quest_offers: Tuple[str, ...] = ()
    missing_room: Optional[str] = None
    turn: int = 0

    def items_in(self, room_id: str) -> Tuple[str, ...]:
        return tuple(self.room_items.get(room_id, ()))

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view used by session saves (the log is not persisted)."""
        return {
            "current_room_id": self.current_room_id,
            "player": self.player.to_dict(),
            "room_items": {k: list(v) for k, v in self.room_items.items()},
            "turn": self.turn,
        }


def _clamp_health(value: int) -> int:
    return max(MIN_HEALTH, min(MAX_HEALTH, int(value)))


def _dedupe_inventory(items: Iterable[str], stackable: FrozenSet[str]) -> Tuple[str, ...]:
    seen = set()
    result: List[str] = []
    for item in items:
        if item in seen and item not in stackable:
            continue
        seen.add(item)
        result.append(item)
    return tuple(result)


def _as_message(entry: Any) -> Message:
    if isinstance(entry, Message):
        return entry
    return Message(str(entry))


def merge_patch(
    state: WorldState,
    patch: Mapping[str, Any],
    rooms: Mapping[str, Any],
    stackable: FrozenSet[str] = frozenset(),
) -> WorldState:
    """Pure merge of ``patch`` into ``state``; returns a new snapshot."""
    changes: Dict[str, Any] = {}
    log_entries: List[Message] = [_as_message(m) for m in patch.get("log", ())]

    unknown = set(patch) - PATCH_KEYS
    if unknown:
        logger.error("Ignoring unknown patch keys: %s", ", ".join(sorted(unknown)))

    if "player" in patch:
        fields = dict(patch["player"])
        if "health" in fields:
            fields["health"] = _clamp_health(fields["health"])
        if "inventory" in fields:
            fields["inventory"] = _dedupe_inventory(fields["inventory"], stackable)
        if "traits" in fields:
            fields["traits"] = frozenset(fields["traits"])
        if "visited_rooms" in fields:
            fields["visited_rooms"] = tuple(fields["visited_rooms"])
        if "difficulty" in fields and fields["difficulty"] not in DIFFICULTIES:
            logger.error("Ignoring unknown difficulty %r", fields["difficulty"])
            del fields["difficulty"]
        changes["player"] = replace(state.player, **fields)

    if "room_items" in patch:
        merged = dict(state.room_items)
        for room_id, items in patch["room_items"].items():
            merged[room_id] = tuple(items)
        changes["room_items"] = merged

    if "flags" in patch:
        changes["flags"] = tuple(sorted(patch["flags"]))

    if "quest_offers" in patch:
        changes["quest_offers"] = tuple(patch["quest_offers"])

    if "turn" in patch:
        changes["turn"] = int(patch["turn"])

    if "current_room_id" in patch:
        target = patch["current_room_id"]
        if target in rooms:
            changes["current_room_id"] = target
            changes["missing_room"] = None
        else:
            # Degraded mode: the player stays put and the UI is told why
            logger.warning("Patch targets unknown room '%s'", target)
            changes["missing_room"] = target
            log_entries.append(Message(f"Room '{target}' not found. You stay where you are.", "error"))

    if log_entries:
        changes["log"] = state.log + tuple(log_entries)

    return replace(state, **changes)


StateListener = Callable[[WorldState], None]


class WorldStateStore:
    """Holds the current snapshot and applies patches to it."""

    def __init__(self, initial: WorldState, rooms: Mapping[str, Any], stackable: FrozenSet[str] = frozenset()):
        self._state = initial
        self._rooms = rooms
        self._stackable = stackable
        self._listeners: List[StateListener] = []

    @property
    def snapshot(self) -> WorldState:
        return self._state

    def apply(self, patch: Mapping[str, Any]) -> WorldState:
        new_state = merge_patch(self._state, patch, self._rooms, self._stackable)
        self._state = new_state
        self._notify()
        return new_state

    def preview(self, patch: Mapping[str, Any]) -> WorldState:
        return merge_patch(self._state, patch, self._rooms, self._stackable)

    def reset(self, state: WorldState) -> WorldState:
        self._state = state
        self._notify()
        return state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("State listener %r failed", listener)
