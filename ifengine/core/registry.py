"""Runtime registry for loaded content.

Static, read-only tables (rooms, items, NPCs, miniquests, authored traps,
flag declarations) loaded once at session start. Acts as an in-memory
index for quick lookup; the engine never mutates it.
"""
from __future__ import annotations
from typing import Any, Dict, FrozenSet, Iterable, List, Optional
from .model.base import Room, Item, Npc


def _norm(text: str) -> str:
    return text.strip().lower().replace(" ", "_")


class ContentRegistry:
    def __init__(
        self,
        rooms: Dict[str, Room],
        items: Optional[Dict[str, Item]] = None,
        npcs: Optional[Dict[str, Npc]] = None,
        quests: Optional[List[Any]] = None,
        trap_definitions: Optional[List[Dict[str, Any]]] = None,
        flag_declarations: Optional[Dict[str, Any]] = None,
    ):
        self.rooms: Dict[str, Room] = dict(rooms)
        self.items: Dict[str, Item] = dict(items or {})
        self.npcs: Dict[str, Npc] = dict(npcs or {})
        self.quests: List[Any] = list(quests or [])
        self.trap_definitions: List[Dict[str, Any]] = list(trap_definitions or [])
        self.flag_declarations: Dict[str, Any] = dict(flag_declarations or {})
        self._item_names: Dict[str, str] = {}
        for item in self.items.values():
            self._item_names[_norm(item.name)] = item.id
            self._item_names[_norm(item.id)] = item.id
        self._npc_names: Dict[str, str] = {}
        for npc in self.npcs.values():
            self._npc_names[_norm(npc.name)] = npc.id
            self._npc_names[_norm(npc.id)] = npc.id

    def get_room(self, room_id: str) -> Optional[Room]:
        return self.rooms.get(room_id)

    def has_room(self, room_id: str) -> bool:
        return room_id in self.rooms

    def room_ids(self) -> List[str]:
        return list(self.rooms.keys())

    def get_item(self, item_id: str) -> Optional[Item]:
        return self.items.get(item_id)

    def item_name(self, item_id: str) -> str:
        item = self.items.get(item_id)
        return item.name if item else item_id.replace("_", " ")

    def resolve_item(self, name: str, candidates: Iterable[str]) -> Optional[str]:
        """Map a typed noun onto one of ``candidates`` (item ids).

        Matches the id, the display name, or the display name without its
        article, case-insensitively.
        """
        wanted = _norm(name)
        for prefix in ("the_", "a_", "an_"):
            if wanted.startswith(prefix):
                wanted = wanted[len(prefix):]
                break
        pool = list(candidates)
        for item_id in pool:
            if _norm(item_id) == wanted or _norm(self.item_name(item_id)) == wanted:
                return item_id
        return None

    def lookup_item_id(self, name: str) -> Optional[str]:
        return self._item_names.get(_norm(name))

    def stackable_items(self) -> FrozenSet[str]:
        return frozenset(i.id for i in self.items.values() if i.stackable)

    def get_npc(self, npc_id: str) -> Optional[Npc]:
        return self.npcs.get(npc_id)

    def npc_name(self, npc_id: str) -> str:
        npc = self.npcs.get(npc_id)
        return npc.name if npc else npc_id

    def resolve_npc(self, name: str, candidates: Iterable[str]) -> Optional[str]:
        wanted = _norm(name)
        for npc_id in candidates:
            if _norm(npc_id) == wanted or _norm(self.npc_name(npc_id)) == wanted:
                return npc_id
        return None
