"""Facade for world model & loader.

Re-exports dataclasses and utility build/validate functions from the
internal modules to provide a stable import surface.
"""
from .model.base import (
    Room,
    RoomScript,
    Item,
    Npc,
    TrapEffect,
)
from .loader.world_loader import (
    build_room_map_from_dict,
    build_items_from_list,
    build_npcs_from_list,
    validate_room_map,
)

__all__ = [
    "Room",
    "RoomScript",
    "Item",
    "Npc",
    "TrapEffect",
    "build_room_map_from_dict",
    "build_items_from_list",
    "build_npcs_from_list",
    "validate_room_map",
]
