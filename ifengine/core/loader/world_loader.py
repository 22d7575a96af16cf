"""World loading and validation utilities.

Separates construction logic from raw JSON (dict) into model dataclasses.
No I/O performed here; caller is responsible for reading JSON from disk.
"""
from __future__ import annotations
import logging
from typing import Dict, Any, List, Mapping

import jsonschema

from ..model.base import Room, RoomScript, Item, Npc
from ..schema import ROOM_FILE_SCHEMA, ITEM_SCHEMA, NPC_SCHEMA

__all__ = [
    "build_script",
    "build_room_map_from_dict",
    "build_items_from_list",
    "build_npcs_from_list",
    "validate_room_map",
    "schema_issues",
]

logger = logging.getLogger(__name__)


def schema_issues(payload: Any, schema: Dict[str, Any], label: str) -> List[str]:
    """Collect every jsonschema error for ``payload`` as readable strings."""
    validator = jsonschema.Draft7Validator(schema)
    issues: List[str] = []
    for err in sorted(validator.iter_errors(payload), key=lambda e: list(e.path)):
        where = "/".join(str(p) for p in err.path) or "<root>"
        issues.append(f"{label}: {where}: {err.message}")
    return issues


def build_script(data: Mapping[str, Any]) -> RoomScript:
    return RoomScript(
        message=data.get("message", ""),
        message_type=data.get("message_type", "info"),
        set_flag=data.get("set_flag"),
        give_item=data.get("give_item"),
        requires_flag=data.get("requires_flag"),
        delay=data.get("delay"),
    )


def build_room_map_from_dict(data: Dict[str, Any]) -> Dict[str, Room]:
    """Build the room map from ``{"rooms": [...]}``.

    Raises:
        jsonschema.ValidationError: if the payload does not match the room schema
    """
    jsonschema.validate(data, ROOM_FILE_SCHEMA)
    rooms: Dict[str, Room] = {}
    for r in data.get("rooms", []):
        room = Room(
            id=r["id"],
            title=r["title"],
            description=r["description"],
            exits=dict(r.get("exits", {})),
            items=list(r.get("items", [])),
            npcs=list(r.get("npcs", [])),
            trap=r.get("trap"),
            flags=list(r.get("flags", [])),
            zone=r.get("zone"),
            on_enter=[build_script(s) for s in r.get("on_enter", [])],
            on_exit=[build_script(s) for s in r.get("on_exit", [])],
            interactions={
                phrase.strip().lower(): build_script(s)
                for phrase, s in r.get("interactions", {}).items()
            },
        )
        if room.id in rooms:
            # L'ultima definizione vince; validate_room_map segnala il duplicato
            logger.warning("Duplicate room id '%s' in room data", room.id)
        rooms[room.id] = room
    return rooms


def build_items_from_list(data: List[Dict[str, Any]]) -> Dict[str, Item]:
    items: Dict[str, Item] = {}
    for raw in data:
        jsonschema.validate(raw, ITEM_SCHEMA)
        item = Item(
            id=raw["id"],
            name=raw["name"],
            description=raw.get("description", ""),
            stackable=raw.get("stackable", False),
            cursed=raw.get("cursed", False),
            use_message=raw.get("use_message"),
        )
        items[item.id] = item
    return items


def build_npcs_from_list(data: List[Dict[str, Any]]) -> Dict[str, Npc]:
    npcs: Dict[str, Npc] = {}
    for raw in data:
        jsonschema.validate(raw, NPC_SCHEMA)
        npcs[raw["id"]] = Npc(id=raw["id"], name=raw["name"], description=raw.get("description", ""))
    return npcs


def validate_room_map(
    rooms: Mapping[str, Room],
    items: Mapping[str, Item] | None = None,
    npcs: Mapping[str, Npc] | None = None,
) -> List[str]:
    """Cheap referential checks run at bootstrap.

    Deep graph analysis (orphans, cycles, hubs) is left to the offline
    room graph validator.
    """
    issues: List[str] = []
    for room in rooms.values():
        for direction, target in room.exits.items():
            if not direction:
                issues.append(f"Room '{room.id}' has exit with empty direction")
            if target not in rooms:
                issues.append(f"Exit '{direction}' from '{room.id}' points to missing room '{target}'")
        if items is not None:
            for item_id in room.items:
                if item_id not in items:
                    issues.append(f"Room '{room.id}' lists unknown item '{item_id}'")
        if npcs is not None:
            for npc_id in room.npcs:
                if npc_id not in npcs:
                    issues.append(f"Room '{room.id}' lists unknown npc '{npc_id}'")
        for script in list(room.on_enter) + list(room.interactions.values()):
            if items is not None and script.give_item and script.give_item not in items:
                issues.append(f"Room '{room.id}' script gives unknown item '{script.give_item}'")
    return issues
