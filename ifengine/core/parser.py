"""Input normalization: raw text to (verb, noun).

No randomness here; the same text always parses the same way.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict

from .errors import InputError

DIRECTIONS: Dict[str, str] = {
    "n": "north", "s": "south", "e": "east", "w": "west",
    "u": "up", "d": "down",
    "ne": "northeast", "nw": "northwest", "se": "southeast", "sw": "southwest",
}
for _full in list(DIRECTIONS.values()) + ["in", "out"]:
    DIRECTIONS[_full] = _full

SYNONYMS: Dict[str, str] = {
    "pick up": "take",
    "look at": "inspect",
    "search for": "search",
    "grab": "take",
    "get": "take",
    "examine": "inspect",
    "read": "inspect",
    "x": "inspect",
    "toss": "drop",
    "throw": "drop",
    "discard": "drop",
    "move": "go",
    "walk": "go",
    "travel": "go",
    "inv": "inventory",
    "i": "inventory",
    "items": "inventory",
    "talk": "speak",
    "chat": "speak",
    "ask": "speak",
    "hint": "help",
    "?": "help",
    "detect": "search",
    "find": "search",
    "l": "look",
    "miniquests": "quests",
    "challenges": "quests",
    "try": "attempt",
}

# Longest phrases first so "look at" wins over "look"
_MULTI_WORD = sorted((p for p in SYNONYMS if " " in p), key=len, reverse=True)


@dataclass(frozen=True)
class ParsedCommand:
    verb: str
    noun: str
    text: str  # normalized input before synonym resolution
    raw: str


def normalize(raw: object) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise InputError("Invalid command input.")
    return " ".join(raw.strip().lower().split())


def parse(raw: object) -> ParsedCommand:
    """Split input into a canonical verb and the remaining noun phrase.

    Raises:
        InputError: if the input is not a non-empty string
    """
    text = normalize(raw)
    verb = ""
    noun = ""
    for phrase in _MULTI_WORD:
        if text == phrase or text.startswith(phrase + " "):
            verb = SYNONYMS[phrase]
            noun = text[len(phrase):].strip()
            # "search for traps" keeps its object phrase
            if phrase == "search for":
                noun = ("for " + noun).strip()
            break
    else:
        head, _, noun = text.partition(" ")
        verb = SYNONYMS.get(head, head)

    if verb in DIRECTIONS and not noun:
        return ParsedCommand("go", DIRECTIONS[verb], text, raw)
    if verb == "go":
        if noun.startswith("to "):
            noun = noun[3:]
        noun = DIRECTIONS.get(noun, noun)
    return ParsedCommand(verb, noun, text, raw)
