"""Miniquest loader from structured JSON files.

This module loads room miniquests from JSON content files, converting
them into Miniquest objects for the QuestSubsystem.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import jsonschema

from ..core.schema import MINIQUEST_SCHEMA
from .model import Miniquest

logger = logging.getLogger(__name__)


def load_miniquests(quest_file_path: str) -> List[Miniquest]:
    """Load miniquests from a JSON file.

    The file holds ``{"miniquests": [...]}``; each entry is validated
    against MINIQUEST_SCHEMA.

    Args:
        quest_file_path: Path to the miniquest JSON file

    Returns:
        List of Miniquest objects loaded from the file

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the JSON is invalid or an entry breaks the schema
    """
    quest_path = Path(quest_file_path)
    if not quest_path.exists():
        raise FileNotFoundError(f"Miniquest file not found: {quest_file_path}")

    try:
        with open(quest_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in miniquest file: {e}")

    return build_miniquests(data.get('miniquests', []))


def build_miniquests(entries: List[Dict[str, Any]]) -> List[Miniquest]:
    """Validate and convert raw miniquest dicts.

    Args:
        entries: Raw miniquest dictionaries

    Returns:
        Parsed Miniquest objects, in file order

    Raises:
        ValueError: If an entry breaks the schema or an id is duplicated
    """
    quests: List[Miniquest] = []
    seen = set()
    for entry in entries:
        try:
            jsonschema.validate(entry, MINIQUEST_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ValueError(f"Invalid miniquest '{entry.get('id', '?')}': {e.message}")
        if entry['id'] in seen:
            raise ValueError(f"Duplicate miniquest id: {entry['id']}")
        seen.add(entry['id'])
        quests.append(_parse_miniquest(entry))
    logger.debug("Loaded %d miniquest(s)", len(quests))
    return quests


def _parse_miniquest(data: Dict[str, Any]) -> Miniquest:
    """Parse a single miniquest from validated JSON data.

    Args:
        data: Miniquest data dictionary

    Returns:
        Parsed Miniquest object
    """
    return Miniquest(
        id=data['id'],
        room_id=data['room_id'],
        title=data['title'],
        trigger_action=data['trigger_action'].strip().lower(),
        description=data.get('description', ''),
        type=data.get('type', 'general'),
        trigger_text=data.get('trigger_text'),
        required_items=list(data.get('required_items', [])),
        required_flags=list(data.get('required_flags', [])),
        difficulty=data.get('difficulty', 'medium'),
        reward_points=data.get('reward_points', 0),
        flag_on_completion=data.get('flag_on_completion'),
        repeatable=data.get('repeatable', False),
        hint=data.get('hint', ''),
        companion_item=data.get('companion_item'),
        max_attempts=data.get('max_attempts'),
    )
