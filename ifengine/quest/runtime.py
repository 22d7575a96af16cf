"""Miniquest runtime: the session-scoped QuestSubsystem.

This module registers room-bound miniquests, filters the ones currently
available to the player and resolves attempts against them.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core.flags import FlagGraph
from ..core.rng import RandomSource
from .model import Miniquest, QuestAttempt, QuestStatus, RoomProgress

logger = logging.getLogger(__name__)

DIFFICULTY_BASE_RATES = {"trivial": 0.95, "easy": 0.85, "medium": 0.7, "hard": 0.5}
DEFAULT_BASE_RATE = 0.7
DYNAMIC_BONUS = 0.1
PUZZLE_BONUS = 0.15
PUZZLE_TRAITS = frozenset({"analytical", "scholar"})
SOCIAL_BONUS = 0.1
DEFAULT_COMPANION_ITEM = "dominic"

_TYPE_EVENTS = {
    "exploration": "discover.location",
    "social": "conversation.meaningful",
}


def _player_of(state: Any):
    """Accept either a WorldState snapshot or a bare PlayerState."""
    return getattr(state, "player", state)


def _normalize_action(action: str) -> str:
    return " ".join(action.strip().lower().split())


class QuestSubsystem:
    """Registers and resolves optional room-bound challenges."""

    def __init__(self, flags: FlagGraph, rng: RandomSource):
        """Initialize the subsystem.

        Args:
            flags: FlagGraph used for required flags and completion flags
            rng: Session random source for success rolls
        """
        self.flags = flags
        self._rng = rng
        self._room_quests: Dict[str, Dict[str, Miniquest]] = {}
        self._progress: Dict[str, RoomProgress] = {}

    def register(self, quest: Miniquest) -> None:
        """Register a quest under its own room.

        Args:
            quest: Miniquest to register
        """
        self._room_quests.setdefault(quest.room_id, {})[quest.id] = quest

    def register_room_quests(self, room_id: str, quests: Iterable[Miniquest]) -> None:
        """Register a batch of quests for one room.

        Args:
            room_id: Room the quests belong to (overrides quest.room_id)
            quests: Quests to register
        """
        for quest in quests:
            if quest.room_id != room_id:
                quest = replace(quest, room_id=room_id)
            self.register(quest)

    def quests_for_room(self, room_id: str) -> List[Miniquest]:
        return list(self._room_quests.get(room_id, {}).values())

    def get_quest(self, room_id: str, quest_id: str) -> Optional[Miniquest]:
        return self._room_quests.get(room_id, {}).get(quest_id)

    def is_completed(self, room_id: str, quest_id: str) -> bool:
        progress = self._progress.get(room_id)
        return bool(progress and quest_id in progress.completed)

    def _progress_for(self, room_id: str) -> RoomProgress:
        return self._progress.setdefault(room_id, RoomProgress())

    def _is_available(self, quest: Miniquest, inventory: Iterable[str]) -> bool:
        progress = self._progress.get(quest.room_id)
        if progress is not None:
            if quest.id in progress.exhausted:
                return False
            if not quest.repeatable and quest.id in progress.completed:
                return False
        held = set(inventory)
        if any(item not in held for item in quest.required_items):
            return False
        return all(self.flags.has_flag(flag) for flag in quest.required_flags)

    def available_quests(self, room_id: str, state: Any) -> List[Miniquest]:
        """List the quests the player can attempt in a room right now.

        Args:
            room_id: Room to inspect
            state: WorldState (or PlayerState) providing the inventory

        Returns:
            Available quests in registration order
        """
        inventory = _player_of(state).inventory
        return [q for q in self.quests_for_room(room_id) if self._is_available(q, inventory)]

    def success_chance(self, quest: Miniquest, state: Any) -> float:
        """Success probability for an attempt by this player.

        Args:
            quest: Quest being attempted
            state: WorldState or PlayerState (traits and inventory)

        Returns:
            Probability in [0, 1]
        """
        player = _player_of(state)
        chance = DIFFICULTY_BASE_RATES.get(quest.difficulty, DEFAULT_BASE_RATE)
        if quest.type == "dynamic":
            chance += DYNAMIC_BONUS
        elif quest.type == "puzzle" and PUZZLE_TRAITS & set(player.traits):
            chance += PUZZLE_BONUS
        elif quest.type == "social" and (quest.companion_item or DEFAULT_COMPANION_ITEM) in player.inventory:
            chance += SOCIAL_BONUS
        return min(chance, 1.0)

    def attempt(self, quest_id: str, room_id: str, state: Any,
                trigger_action: Optional[str] = None) -> QuestAttempt:
        """Attempt a quest.

        Args:
            quest_id: Quest to attempt
            room_id: Room the player is in
            state: WorldState or PlayerState of the player
            trigger_action: What the player typed; None skips the trigger check

        Returns:
            QuestAttempt describing the outcome
        """
        quest = self.get_quest(room_id, quest_id)
        if quest is None:
            return QuestAttempt(False, f"Quest {quest_id} not found in {room_id}.", consumed=False)
        player = _player_of(state)
        if not self._is_available(quest, player.inventory):
            return QuestAttempt(False, "You cannot attempt this quest right now.", consumed=False)
        if trigger_action is not None and _normalize_action(trigger_action) != quest.trigger_action:
            hint = quest.trigger_text or f"Try: {quest.trigger_action}"
            return QuestAttempt(False, hint, hint=hint, consumed=False)

        chance = self.success_chance(quest, player)
        if self._rng.random() < chance:
            return self._complete(quest, room_id)

        text = f'You attempt "{quest.title}" but don\'t succeed this time.'
        if quest.hint:
            text += f" Hint: {quest.hint}"
        logger.debug("Quest %s failed (chance %.2f)", quest.id, chance)
        return QuestAttempt(False, text, hint=quest.hint or None)

    def _complete(self, quest: Miniquest, room_id: str) -> QuestAttempt:
        progress = self._progress_for(room_id)
        progress.completed.add(quest.id)
        progress.completion_counts[quest.id] = progress.completion_counts.get(quest.id, 0) + 1
        flags_set: List[str] = []
        flag = quest.completion_flag
        if self.flags.set_flag(flag, category="quest", description=f"Completed miniquest: {quest.title}"):
            flags_set.append(flag)
        event = self.score_event_for(quest)
        logger.info("Miniquest %s completed in %s", quest.id, room_id)
        return QuestAttempt(
            True,
            f"Miniquest completed: {quest.title}!",
            score_awarded=quest.reward_points,
            completed=True,
            flags_set=flags_set,
            event=event,
        )

    @staticmethod
    def score_event_for(quest: Miniquest) -> str:
        if quest.type == "puzzle":
            return "solve.puzzle.hard" if quest.difficulty == "hard" else "solve.puzzle.simple"
        return _TYPE_EVENTS.get(quest.type, "miniquest.completed")

    def exhaust(self, room_id: str, quest_id: str) -> bool:
        """Remove a quest from availability once the caller's attempt cap is spent.

        Args:
            room_id: Room holding the quest
            quest_id: Quest to exhaust

        Returns:
            True if the quest exists
        """
        if self.get_quest(room_id, quest_id) is None:
            return False
        self._progress_for(room_id).exhausted.add(quest_id)
        return True

    def quest_status(self, quest: Miniquest, state: Any) -> QuestStatus:
        progress = self._progress.get(quest.room_id) or RoomProgress()
        if quest.id in progress.exhausted:
            return "EXHAUSTED"
        if quest.id in progress.completed and not quest.repeatable:
            return "COMPLETED"
        if not self._is_available(quest, _player_of(state).inventory):
            return "LOCKED"
        if quest.repeatable and progress.completion_counts.get(quest.id, 0) > 0:
            return "REPEATABLE"
        return "AVAILABLE"

    def list_room_quests(self, room_id: str, state: Any) -> List[Tuple[Miniquest, QuestStatus]]:
        return [(q, self.quest_status(q, state)) for q in self.quests_for_room(room_id)]

    def find_by_trigger(self, room_id: str, action: str) -> Optional[Tuple[Miniquest, bool]]:
        """Find a quest whose trigger matches typed input.

        Args:
            room_id: Room to search
            action: Normalized player input

        Returns:
            (quest, exact) where exact is False when only the verb matched,
            or None if nothing in the room reacts to the input
        """
        action = _normalize_action(action)
        verb = action.split(" ", 1)[0] if action else ""
        partial: Optional[Miniquest] = None
        for quest in self.quests_for_room(room_id):
            if quest.trigger_action == action:
                return quest, True
            if partial is None and verb and quest.trigger_verb == verb:
                partial = quest
        if partial is not None:
            return partial, False
        return None

    def reset(self) -> None:
        self._progress.clear()

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            room_id: {
                "completed": sorted(p.completed),
                "completion_counts": dict(p.completion_counts),
                "exhausted": sorted(p.exhausted),
            }
            for room_id, p in self._progress.items()
        }

    def from_snapshot(self, data: Dict[str, Any]) -> None:
        self._progress = {
            room_id: RoomProgress(
                completed=set(raw.get("completed", [])),
                completion_counts={k: int(v) for k, v in raw.get("completion_counts", {}).items()},
                exhausted=set(raw.get("exhausted", [])),
            )
            for room_id, raw in data.items()
        }
