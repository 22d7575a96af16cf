"""Verb registry, handler context and command results.

Handlers are plain functions ``handler(ctx) -> CommandResult`` registered
on a ``CommandRegistry`` with the ``command`` decorator. A handler reads
the snapshot in ``ctx`` and returns messages plus a partial patch; it never
mutates the snapshot itself. Capabilities (flags, traps, quests, scheduler,
content, rng) are injected through the context so handlers can be unit
tested with fakes.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .state import Message, WorldState

__all__ = [
    "CommandResult",
    "CommandContext",
    "CommandMetadata",
    "CommandRegistry",
    "merge_updates",
]

# Keys whose values are merged field by field instead of replaced
_NESTED_KEYS = ("player", "room_items")


def merge_updates(base: Mapping[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    """Combine two partial patches; ``extra`` wins on conflicts."""
    merged: Dict[str, Any] = dict(base)
    for key, value in extra.items():
        if key in _NESTED_KEYS and key in merged:
            combined = dict(merged[key])
            combined.update(value)
            merged[key] = combined
        elif key == "log" and key in merged:
            merged[key] = list(merged[key]) + list(value)
        else:
            merged[key] = value
    return merged


@dataclass
class CommandResult:
    messages: List[Message] = field(default_factory=list)
    updates: Dict[str, Any] = field(default_factory=dict)
    events: List[str] = field(default_factory=list)

    def say(self, text: str, type: str = "info") -> "CommandResult":
        self.messages.append(Message(text, type))
        return self

    def extend(self, other: "CommandResult") -> "CommandResult":
        self.messages.extend(other.messages)
        self.updates = merge_updates(self.updates, other.updates)
        self.events.extend(other.events)
        return self

    @property
    def lines(self) -> List[str]:
        return [m.text for m in self.messages]

    @classmethod
    def failure(cls, text: str) -> "CommandResult":
        return cls(messages=[Message(text, "error")])


@dataclass
class CommandContext:
    # Input
    snapshot: WorldState
    verb: str
    noun: str
    raw: str

    # Static content and registries
    content: Any  # ContentRegistry
    commands: "CommandRegistry"

    # Session capabilities
    flags: Any  # FlagGraph
    traps: Any  # TrapSubsystem
    quests: Any  # QuestSubsystem
    scheduler: Any  # DeferredTaskScheduler
    rng: Any

    # Session bookkeeping
    quest_attempts: Dict[str, int] = field(default_factory=dict)
    quest_attempt_cap: int = 0
    debug: bool = False
    npc_interceptors: Sequence[Callable[["CommandContext"], Optional[CommandResult]]] = ()
    schedule_fuse: Optional[Callable[[Any], None]] = None

    @property
    def room(self):
        return self.content.get_room(self.snapshot.current_room_id)

    @property
    def player(self):
        return self.snapshot.player

    @property
    def room_items(self):
        return self.snapshot.items_in(self.snapshot.current_room_id)


Handler = Callable[[CommandContext], CommandResult]


@dataclass
class CommandMetadata:
    name: str
    handler: Handler
    description: str = ""
    usage: str = ""
    aliases: List[str] = field(default_factory=list)
    debug_only: bool = False

    def help_text(self) -> str:
        lines = [f"{self.name} - {self.description}".rstrip(" -")]
        lines.append(f"Usage: {self.usage or self.name}")
        if self.aliases:
            lines.append(f"Aliases: {', '.join(self.aliases)}")
        return "\n".join(lines)


class CommandRegistry:
    """Maps verbs (and their aliases) to handlers."""

    def __init__(self):
        self._commands: Dict[str, CommandMetadata] = {}
        self._aliases: Dict[str, str] = {}

    def register(self, metadata: CommandMetadata) -> None:
        self._commands[metadata.name] = metadata
        for alias in metadata.aliases:
            self._aliases[alias] = metadata.name

    def command(
        self,
        name: str,
        description: str = "",
        usage: str = "",
        aliases: Optional[List[str]] = None,
        debug_only: bool = False,
    ):
        """Decorator for registering a verb handler."""
        def decorator(handler: Handler) -> Handler:
            self.register(CommandMetadata(
                name=name,
                handler=handler,
                description=description,
                usage=usage,
                aliases=aliases or [],
                debug_only=debug_only,
            ))
            return handler
        return decorator

    def get_command(self, name: str, debug: bool = True) -> Optional[CommandMetadata]:
        metadata = self._commands.get(self._aliases.get(name, name))
        if metadata is None or (metadata.debug_only and not debug):
            return None
        return metadata

    def get_all_commands(self, debug: bool = False) -> List[CommandMetadata]:
        return [m for m in self._commands.values() if debug or not m.debug_only]

    def names(self, debug: bool = False) -> List[str]:
        return [m.name for m in self.get_all_commands(debug)]

    def copy(self) -> "CommandRegistry":
        clone = CommandRegistry()
        for metadata in self._commands.values():
            clone.register(metadata)
        return clone
