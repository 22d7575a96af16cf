"""Miniquest data models.

This module defines the data structures for room-bound miniquests:
the static Miniquest definition, the QuestAttempt result and the
per-room progress record.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Set

QuestType = Literal["puzzle", "exploration", "social", "dynamic", "general"]
Difficulty = Literal["trivial", "easy", "medium", "hard"]

# Status labels shown by the quest listing
QuestStatus = Literal["LOCKED", "AVAILABLE", "REPEATABLE", "COMPLETED", "EXHAUSTED"]


@dataclass(frozen=True)
class Miniquest:
    """An optional challenge bound to a single room.

    Examples:
        Miniquest(id="decipher_fae_glyphs", room_id="faeglade",
                  title="Decipher the Fae Glyphs", trigger_action="decipher glyphs",
                  required_items=["ancient_scroll"], difficulty="medium",
                  reward_points=25)
    """
    id: str
    room_id: str
    title: str
    trigger_action: str
    description: str = ""
    type: QuestType = "general"
    trigger_text: Optional[str] = None  # shown when the player gets the action wrong
    required_items: List[str] = field(default_factory=list)
    required_flags: List[str] = field(default_factory=list)
    difficulty: Difficulty = "medium"
    reward_points: int = 0
    flag_on_completion: Optional[str] = None
    repeatable: bool = False
    hint: str = ""
    companion_item: Optional[str] = None  # social quests: held companion grants a bonus
    max_attempts: Optional[int] = None

    @property
    def completion_flag(self) -> str:
        return self.flag_on_completion or f"miniquest_{self.id}_completed"

    @property
    def trigger_verb(self) -> str:
        return self.trigger_action.split(" ", 1)[0]


@dataclass
class QuestAttempt:
    """Outcome of QuestSubsystem.attempt()."""
    success: bool
    message: str
    score_awarded: Optional[int] = None
    completed: bool = False
    flags_set: List[str] = field(default_factory=list)
    event: Optional[str] = None
    hint: Optional[str] = None
    consumed: bool = True  # False when nothing was rolled (trigger mismatch, unavailable)


@dataclass
class RoomProgress:
    """Completion state of the quests of one room."""
    completed: Set[str] = field(default_factory=set)
    completion_counts: Dict[str, int] = field(default_factory=dict)
    exhausted: Set[str] = field(default_factory=set)
