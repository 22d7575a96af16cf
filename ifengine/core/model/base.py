"""Data model definitions for static world content.

This module only contains pure dataclasses without loading or validation logic.
They are intended to be immutable structural representations of content:
the engine never mutates them during a session.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Optional

__all__ = [
    "RoomScript",
    "Room",
    "Item",
    "Npc",
    "TrapEffect",
    "TRAP_TYPES",
    "TRAP_SEVERITIES",
    "EFFECT_KINDS",
]

TRAP_TYPES = ("mechanical", "magical", "environmental")
TRAP_SEVERITIES = ("light", "moderate", "severe", "lethal")
EFFECT_KINDS = ("damage", "teleport", "item_loss")


@dataclass(frozen=True)
class RoomScript:
    """A small declarative reaction (on_enter/on_exit/interaction)."""
    message: str = ""
    message_type: str = "info"
    set_flag: Optional[str] = None
    give_item: Optional[str] = None
    requires_flag: Optional[str] = None
    delay: Optional[float] = None  # seconds; delayed scripts run as deferred tasks


@dataclass(frozen=True)
class Room:
    id: str
    title: str
    description: str
    exits: Dict[str, str] = field(default_factory=dict)  # direction -> room id
    items: List[str] = field(default_factory=list)
    npcs: List[str] = field(default_factory=list)
    trap: Optional[str] = None
    flags: List[str] = field(default_factory=list)
    zone: Optional[str] = None
    on_enter: List[RoomScript] = field(default_factory=list)
    on_exit: List[RoomScript] = field(default_factory=list)
    interactions: Dict[str, RoomScript] = field(default_factory=dict)

    @property
    def is_safe(self) -> bool:
        return "safe" in self.flags


@dataclass(frozen=True)
class Item:
    id: str
    name: str
    description: str = ""
    stackable: bool = False
    cursed: bool = False
    use_message: Optional[str] = None


@dataclass(frozen=True)
class Npc:
    id: str
    name: str
    description: str = ""


@dataclass(frozen=True)
class TrapEffect:
    kind: str = "damage"
    teleport_to: Optional[str] = None
    items_lost: List[str] = field(default_factory=list)
