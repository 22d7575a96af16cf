"""Bootstrap utilities: load content from assets/ and create a GameSession."""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import (
    DEBUG_MODE,
    DEFAULT_PLAYER_NAME,
    FLAG_SWEEP_INTERVAL_SECONDS,
    MAX_EVENT_TRIGGERS,
    QUEST_ATTEMPT_CAP,
    SAVE_MAX_BACKUPS,
    SAVE_RETRY_LIMIT,
    SAVES_DIR,
    START_ROOM,
    TRAP_AUTO_DISARM_CHANCE,
    TRAP_DENSITY,
    TRAP_MAX_COUNT,
    TRAP_PROBABILITY,
    TRAP_SAFE_ROOMS,
    get_rng_seed,
)
from ifengine.core.loader.world_loader import schema_issues
from ifengine.core.persistence import JsonFileStore, PersistenceStore
from ifengine.core.registry import ContentRegistry
from ifengine.core.rng import make_rng
from ifengine.core.schema import FLAG_DECLARATIONS_SCHEMA, TRAP_SCHEMA
from ifengine.core.session import GameSession
from ifengine.core.state import PlayerState, WorldState
from ifengine.core.traps import TrapSeedConfig
from ifengine.core.world import build_items_from_list, build_npcs_from_list, build_room_map_from_dict, validate_room_map
from ifengine.quest.loader import load_miniquests

logger = logging.getLogger(__name__)

ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets"


def _read_json(path: Path, default: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if not path.exists():
        if default is None:
            raise FileNotFoundError(f"Content file not found: {path}")
        logger.info("Optional content file missing: %s", path)
        return default
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _load_trap_definitions(path: Path) -> List[Dict[str, Any]]:
    definitions: List[Dict[str, Any]] = []
    for raw in _read_json(path, {"traps": []}).get("traps", []):
        issues = schema_issues(raw, TRAP_SCHEMA, f"trap {raw.get('id', '?')}")
        if issues:
            for issue in issues:
                logger.error("Skipping trap definition: %s", issue)
            continue
        definitions.append(raw)
    return definitions


def _load_flag_declarations(path: Path) -> Dict[str, Any]:
    data = _read_json(path, {})
    issues = schema_issues(data, FLAG_DECLARATIONS_SCHEMA, "flags")
    if issues:
        for issue in issues:
            logger.error("Ignoring flag declarations: %s", issue)
        return {}
    return data


def load_content(assets_dir: Path = ASSETS_DIR) -> ContentRegistry:
    """Read and validate every content file under ``assets_dir``.

    Rooms, items and NPCs are mandatory; traps, miniquests and flag
    declarations are optional. Defective optional entries are logged and
    skipped.
    """
    world_dir = assets_dir / "world"
    rooms = build_room_map_from_dict(_read_json(world_dir / "rooms.json"))
    items = build_items_from_list(_read_json(world_dir / "items.json", {"items": []}).get("items", []))
    npcs = build_npcs_from_list(_read_json(world_dir / "npcs.json", {"npcs": []}).get("npcs", []))

    issues = validate_room_map(rooms, items, npcs)
    for issue in issues:
        logger.warning("World issue: %s", issue)

    quest_path = assets_dir / "quests" / "miniquests.json"
    quests = load_miniquests(str(quest_path)) if quest_path.exists() else []
    known = [q for q in quests if q.room_id in rooms]
    for quest in quests:
        if quest.room_id not in rooms:
            logger.error("Miniquest '%s' references unknown room '%s'", quest.id, quest.room_id)

    traps = [t for t in _load_trap_definitions(assets_dir / "traps.json") if t["room_id"] in rooms]
    flags = _load_flag_declarations(assets_dir / "flags.json")
    logger.info("Loaded %d rooms, %d items, %d npcs, %d miniquests, %d traps",
                len(rooms), len(items), len(npcs), len(known), len(traps))
    return ContentRegistry(rooms, items, npcs, quests=known, trap_definitions=traps, flag_declarations=flags)


def initial_state(content: ContentRegistry, start_room: str = START_ROOM,
                  player_name: str = DEFAULT_PLAYER_NAME) -> WorldState:
    if not content.has_room(start_room):
        fallback = content.room_ids()[0]
        logger.warning("Start room '%s' not found, starting in '%s'", start_room, fallback)
        start_room = fallback
    return WorldState(
        current_room_id=start_room,
        player=PlayerState(name=player_name),
        room_items={room.id: tuple(room.items) for room in content.rooms.values()},
    )


def trap_seed_config() -> TrapSeedConfig:
    return TrapSeedConfig(
        probability=TRAP_PROBABILITY,
        density=TRAP_DENSITY,
        max_traps=TRAP_MAX_COUNT,
        exclude_rooms=tuple(TRAP_SAFE_ROOMS),
        auto_disarm_chance=TRAP_AUTO_DISARM_CHANCE,
    )


def create_session(
    content: Optional[ContentRegistry] = None,
    seed: Optional[int] = None,
    persistence: Optional[PersistenceStore] = None,
    seed_traps: bool = True,
) -> GameSession:
    """Build a ready-to-play session from config and content."""
    content = content or load_content()
    rng = make_rng(seed if seed is not None else get_rng_seed())
    session = GameSession(
        content,
        initial_state(content),
        rng=rng,
        persistence=persistence or JsonFileStore(SAVES_DIR, SAVE_MAX_BACKUPS),
        debug_mode=DEBUG_MODE,
        quest_attempt_cap=QUEST_ATTEMPT_CAP,
        flag_sweep_interval=FLAG_SWEEP_INTERVAL_SECONDS,
        max_event_triggers=MAX_EVENT_TRIGGERS,
        save_retries=SAVE_RETRY_LIMIT,
    )
    if seed_traps:
        session.seed_traps(trap_seed_config())
    return session
