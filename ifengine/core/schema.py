"""JSON schema definitions for content files and saved snapshots.

Content is validated once at load time; snapshots are validated before a
saved session is trusted.
"""

_SCRIPT = {
    "type": "object",
    "properties": {
        "message": {"type": "string"},
        "message_type": {"type": "string", "enum": ["info", "success", "warning", "error", "system", "room"]},
        "set_flag": {"type": ["string", "null"]},
        "give_item": {"type": ["string", "null"]},
        "requires_flag": {"type": ["string", "null"]},
        "delay": {"type": ["number", "null"], "minimum": 0},
    },
    "additionalProperties": False,
}

ROOM_SCHEMA = {
    "type": "object",
    "required": ["id", "title", "description"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "title": {"type": "string"},
        "description": {"type": "string"},
        "exits": {"type": "object", "additionalProperties": {"type": "string"}},
        "items": {"type": "array", "items": {"type": "string"}},
        "npcs": {"type": "array", "items": {"type": "string"}},
        "trap": {"type": ["string", "null"]},
        "flags": {"type": "array", "items": {"type": "string"}},
        "zone": {"type": ["string", "null"]},
        "on_enter": {"type": "array", "items": _SCRIPT},
        "on_exit": {"type": "array", "items": _SCRIPT},
        "interactions": {"type": "object", "additionalProperties": _SCRIPT},
    },
    "additionalProperties": False,
}

ROOM_FILE_SCHEMA = {
    "type": "object",
    "required": ["rooms"],
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
        "rooms": {"type": "array", "items": ROOM_SCHEMA},
    },
}

ITEM_SCHEMA = {
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "name": {"type": "string"},
        "description": {"type": "string"},
        "stackable": {"type": "boolean"},
        "cursed": {"type": "boolean"},
        "use_message": {"type": ["string", "null"]},
    },
    "additionalProperties": False,
}

NPC_SCHEMA = {
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "name": {"type": "string"},
        "description": {"type": "string"},
    },
    "additionalProperties": False,
}

TRAP_SCHEMA = {
    "type": "object",
    "required": ["id", "room_id", "type", "severity"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "room_id": {"type": "string", "minLength": 1},
        # type/severity are checked by the trap subsystem (InvariantViolation)
        "type": {"type": "string"},
        "severity": {"type": "string"},
        "description": {"type": "string"},
        "disarmable": {"type": "boolean"},
        "hidden": {"type": "boolean"},
        "auto_disarm": {"type": "boolean"},
        "damage": {"type": "integer", "minimum": 0},
        "fuse": {"type": "number", "minimum": 0},
        "effect": {
            "type": "object",
            "properties": {
                "kind": {"type": "string", "enum": ["damage", "teleport", "item_loss"]},
                "teleport_to": {"type": ["string", "null"]},
                "items_lost": {"type": "array", "items": {"type": "string"}},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}

# Saved traps also carry their runtime state
TRAP_SNAPSHOT_SCHEMA = dict(TRAP_SCHEMA, properties=dict(
    TRAP_SCHEMA["properties"],
    triggered={"type": "boolean"},
    detected={"type": "boolean"},
    disarmed={"type": "boolean"},
))

MINIQUEST_SCHEMA = {
    "type": "object",
    "required": ["id", "room_id", "title", "trigger_action"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "room_id": {"type": "string", "minLength": 1},
        "title": {"type": "string"},
        "description": {"type": "string"},
        "type": {"type": "string", "enum": ["puzzle", "exploration", "social", "dynamic", "general"]},
        "trigger_action": {"type": "string", "minLength": 1},
        "trigger_text": {"type": ["string", "null"]},
        "required_items": {"type": "array", "items": {"type": "string"}},
        "required_flags": {"type": "array", "items": {"type": "string"}},
        "difficulty": {"type": "string", "enum": ["trivial", "easy", "medium", "hard"]},
        "reward_points": {"type": "integer"},
        "flag_on_completion": {"type": ["string", "null"]},
        "repeatable": {"type": "boolean"},
        "hint": {"type": "string"},
        "companion_item": {"type": ["string", "null"]},
        "max_attempts": {"type": ["integer", "null"], "minimum": 1},
    },
    "additionalProperties": False,
}

FLAG_DECLARATIONS_SCHEMA = {
    "type": "object",
    "properties": {
        "initial": {"type": "array", "items": {"type": "string"}},
        "dependencies": {
            "type": "object",
            "additionalProperties": {"type": "array", "items": {"type": "string"}},
        },
        "categories": {"type": "object", "additionalProperties": {"type": "string"}},
    },
    "additionalProperties": False,
}

FLAG_SNAPSHOT_SCHEMA = {
    "type": "object",
    "required": ["flags", "timestamps", "dependencies", "categories", "metadata", "version"],
    "properties": {
        "flags": {"type": "array", "items": {"type": "string"}},
        "timestamps": {"type": "object", "additionalProperties": {"type": "number"}},
        "dependencies": {
            "type": "object",
            "additionalProperties": {"type": "array", "items": {"type": "string"}},
        },
        "categories": {
            "type": "object",
            "additionalProperties": {"type": "array", "items": {"type": "string"}},
        },
        "metadata": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "required": ["set_time", "category"],
                "properties": {
                    "set_time": {"type": "number"},
                    "category": {"type": "string"},
                    "description": {"type": "string"},
                    "priority": {"type": "integer"},
                    "triggered_events": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
        "version": {"type": "integer"},
    },
}

SESSION_SNAPSHOT_SCHEMA = {
    "type": "object",
    "required": ["_save_metadata", "world", "flags", "traps", "quests"],
    "properties": {
        "_save_metadata": {
            "type": "object",
            "required": ["version"],
            "properties": {
                "version": {"type": "integer"},
                "timestamp": {"type": "number"},
                "date_saved": {"type": "string"},
            },
        },
        "world": {
            "type": "object",
            "required": ["current_room_id", "player", "room_items", "turn"],
            "properties": {
                "current_room_id": {"type": "string"},
                "player": {
                    "type": "object",
                    "required": ["name", "health", "score", "inventory", "traits", "visited_rooms"],
                    "properties": {
                        "name": {"type": "string"},
                        "health": {"type": "integer", "minimum": 0, "maximum": 100},
                        "score": {"type": "integer"},
                        "inventory": {"type": "array", "items": {"type": "string"}},
                        "traits": {"type": "array", "items": {"type": "string"}},
                        "visited_rooms": {"type": "array", "items": {"type": "string"}},
                        "difficulty": {"type": "string", "enum": ["easy", "normal", "hard"]},
                    },
                },
                "room_items": {
                    "type": "object",
                    "additionalProperties": {"type": "array", "items": {"type": "string"}},
                },
                "turn": {"type": "integer", "minimum": 0},
            },
        },
        "flags": {"type": "object"},
        "traps": {"type": "array", "items": TRAP_SNAPSHOT_SCHEMA},
        "quests": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "completed": {"type": "array", "items": {"type": "string"}},
                    "completion_counts": {"type": "object", "additionalProperties": {"type": "integer"}},
                    "exhausted": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
        "quest_attempts": {"type": "object", "additionalProperties": {"type": "integer"}},
    },
}
