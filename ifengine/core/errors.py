"""Exception taxonomy shared by the engine.

Every error below is locally recoverable: none of them should terminate a
session. ``ActionError`` and its subclasses are shown to the player;
``InvariantViolation`` is a content/code defect meant for developers.
"""
from __future__ import annotations


class EngineError(Exception):
    """Base class for all engine errors."""
    pass


class ActionError(EngineError):
    """A command could not be carried out; the message is player-facing."""
    pass


class InputError(ActionError):
    """Empty or malformed command input."""
    pass


class ContentReferenceError(ActionError):
    """A command or patch referenced a room/item/NPC that does not exist."""

    def __init__(self, message: str, ref: str | None = None):
        super().__init__(message)
        self.ref = ref


class DependencyViolation(EngineError):
    """A flag was set without its prerequisites, or an edge would form a cycle."""

    def __init__(self, message: str, flag: str | None = None, missing: list[str] | None = None):
        super().__init__(message)
        self.flag = flag
        self.missing = list(missing or [])


class PersistenceError(EngineError):
    """Save/load failure."""
    pass


class StorageQuotaExceeded(PersistenceError):
    """The persistence store ran out of space for a snapshot."""
    pass


class InvariantViolation(EngineError):
    """Internal defect (e.g. a trap defined with an unknown severity)."""
    pass


__all__ = [
    "EngineError",
    "ActionError",
    "InputError",
    "ContentReferenceError",
    "DependencyViolation",
    "PersistenceError",
    "StorageQuotaExceeded",
    "InvariantViolation",
]
