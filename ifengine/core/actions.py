"""Core player verbs.

Each handler takes a ``CommandContext`` and returns a ``CommandResult``
(messages, a partial state patch and score events). Recoverable failures
are raised as ``ActionError`` and shown to the player as a single error
line by the interpreter.
"""
from __future__ import annotations
import difflib
from collections import Counter
from typing import List, Optional

from .commands import CommandContext, CommandMetadata, CommandRegistry, CommandResult
from .errors import ActionError, ContentReferenceError
from .model.base import Room, RoomScript
from .parser import SYNONYMS
from .state import Message, WorldState
from .traps import TrapDetection, TrapOutcome

__all__ = [
    "describe_room",
    "run_script",
    "trap_outcome_result",
    "detection_result",
    "register_core_commands",
]


def describe_room(content, room: Room, state: WorldState) -> List[Message]:
    lines = [Message(f"--- {room.title} ---", "room"), Message(room.description, "room")]
    items = state.items_in(room.id)
    if items:
        lines.append(Message(f"You see: {', '.join(content.item_name(i) for i in items)}"))
    if room.npcs:
        lines.append(Message(f"People here: {', '.join(content.npc_name(n) for n in room.npcs)}"))
    exits = ", ".join(room.exits) if room.exits else "none"
    lines.append(Message(f"Exits: {exits}"))
    return lines


def run_script(script: RoomScript, state: WorldState, flags) -> Optional[CommandResult]:
    """Apply a declarative room script; None when its flag gate is closed."""
    if script.requires_flag and not flags.has_flag(script.requires_flag):
        return None
    result = CommandResult()
    if script.message:
        result.say(script.message, script.message_type)
    if script.set_flag:
        flags.set_flag(script.set_flag, category="story_event")
    if script.give_item and script.give_item not in state.player.inventory:
        result.updates["player"] = {"inventory": list(state.player.inventory) + [script.give_item]}
    return result


def trap_outcome_result(outcome: TrapOutcome) -> CommandResult:
    return CommandResult(
        messages=list(outcome.messages),
        updates=dict(outcome.updates),
        events=list(outcome.events),
    )


def detection_result(detection: TrapDetection) -> CommandResult:
    result = CommandResult()
    if not detection.detected:
        return result
    result.say(detection.warning, "warning")
    if detection.can_disarm:
        result.say("Type 'disarm' to try to disarm it before it springs.", "system")
    else:
        result.say("This trap cannot be disarmed. Leave before it springs!", "warning")
    return result


def _current_room(ctx: CommandContext) -> Room:
    room = ctx.room
    if room is None:
        raise ContentReferenceError(
            f"Location not found: {ctx.snapshot.current_room_id}", ref=ctx.snapshot.current_room_id
        )
    return room


# --- movement & perception ---

def go(ctx: CommandContext) -> CommandResult:
    direction = ctx.noun
    if not direction:
        raise ActionError("Go where?")
    room = _current_room(ctx)
    target = room.exits.get(direction)
    if target is None:
        raise ActionError("You can't go that way.")
    result = CommandResult()
    trap = ctx.traps.active_trap(room.id)
    if trap is not None and trap.detected:
        outcome = ctx.traps.attempt_escape(trap, ctx.player)
        result.extend(trap_outcome_result(outcome))
        if "current_room_id" in outcome.updates:
            return result
    result.say(f"You go {direction}.")
    result.updates["current_room_id"] = target
    return result


def look(ctx: CommandContext) -> CommandResult:
    room = _current_room(ctx)
    return CommandResult(messages=describe_room(ctx.content, room, ctx.snapshot))


def inspect(ctx: CommandContext) -> CommandResult:
    target = ctx.noun
    if not target or target in ("room", "around"):
        return look(ctx)
    room = _current_room(ctx)
    content = ctx.content
    item_id = content.resolve_item(target, list(ctx.player.inventory) + list(ctx.room_items))
    if item_id is not None:
        item = content.get_item(item_id)
        name = content.item_name(item_id)
        if item is None or not item.description:
            return CommandResult().say(f"You see nothing special about the {name}.")
        return CommandResult().say(item.description)
    npc_id = content.resolve_npc(target, room.npcs)
    if npc_id is not None:
        npc = content.get_npc(npc_id)
        text = npc.description if npc and npc.description else f"{content.npc_name(npc_id)} looks back at you."
        return CommandResult().say(text)
    raise ContentReferenceError(f"You don't see a {target} here.", ref=target)


# --- items ---

def take(ctx: CommandContext) -> CommandResult:
    if not ctx.noun:
        raise ActionError("Take what?")
    room = _current_room(ctx)
    content = ctx.content
    inventory = list(ctx.player.inventory)
    stackable = content.stackable_items()
    item_id = content.resolve_item(ctx.noun, ctx.room_items)
    if item_id is None:
        held = content.resolve_item(ctx.noun, inventory)
        if held is not None and held not in stackable:
            raise ActionError(f"You already have the {content.item_name(held)}.")
        raise ContentReferenceError(f"You don't see a {ctx.noun} here.", ref=ctx.noun)
    name = content.item_name(item_id)
    if item_id in inventory and item_id not in stackable:
        raise ActionError(f"You already have the {name}.")
    remaining = list(ctx.room_items)
    remaining.remove(item_id)
    result = CommandResult(updates={
        "player": {"inventory": inventory + [item_id]},
        "room_items": {room.id: remaining},
    })
    result.say(f"You take the {name}.", "success")
    item = content.get_item(item_id)
    if item is not None and item.cursed:
        result.say(f"A chill runs up your arm as you touch the {name}.", "warning")
    return result


def drop(ctx: CommandContext) -> CommandResult:
    if not ctx.noun:
        raise ActionError("Drop what?")
    room = _current_room(ctx)
    inventory = list(ctx.player.inventory)
    item_id = ctx.content.resolve_item(ctx.noun, inventory)
    if item_id is None:
        raise ActionError(f"You don't have a {ctx.noun} to drop.")
    inventory.remove(item_id)
    result = CommandResult(updates={
        "player": {"inventory": inventory},
        "room_items": {room.id: list(ctx.room_items) + [item_id]},
    })
    return result.say(f"You drop the {ctx.content.item_name(item_id)}.")


def inventory(ctx: CommandContext) -> CommandResult:
    held = ctx.player.inventory
    if not held:
        return CommandResult().say("You are not carrying anything.")
    result = CommandResult().say("You are carrying:")
    for item_id, count in Counter(held).items():
        name = ctx.content.item_name(item_id)
        result.say(f"  - {name} (x{count})" if count > 1 else f"  - {name}")
    return result


def use(ctx: CommandContext) -> CommandResult:
    if not ctx.noun:
        raise ActionError("Use what?")
    room = _current_room(ctx)
    script = room.interactions.get(ctx.raw)
    if script is not None:
        scripted = run_script(script, ctx.snapshot, ctx.flags)
        if scripted is not None:
            return scripted
    item_id = ctx.content.resolve_item(ctx.noun, ctx.player.inventory)
    if item_id is None:
        raise ActionError(f"You don't have a {ctx.noun}.")
    item = ctx.content.get_item(item_id)
    name = ctx.content.item_name(item_id)
    if item is not None and item.use_message:
        return CommandResult().say(item.use_message)
    return CommandResult().say(f"You use the {name}. Nothing obvious happens.")


# --- player info ---

def status(ctx: CommandContext) -> CommandResult:
    player = ctx.player
    room = ctx.room
    result = CommandResult()
    result.say(f"Name: {player.name}")
    result.say(f"Health: {player.health}/100")
    result.say(f"Score: {player.score}")
    result.say(f"Location: {room.title if room else ctx.snapshot.current_room_id}")
    result.say(f"Difficulty: {player.difficulty}")
    if player.traits:
        result.say(f"Traits: {', '.join(sorted(player.traits))}")
    return result


def score(ctx: CommandContext) -> CommandResult:
    result = CommandResult().say(f"Score: {ctx.player.score}")
    return result.say(f"Rooms explored: {len(ctx.player.visited_rooms)}")


def help_command(ctx: CommandContext) -> CommandResult:
    topic = ctx.noun
    commands = ctx.commands
    if not topic:
        result = CommandResult().say("Available commands:", "system")
        for metadata in commands.get_all_commands(ctx.debug):
            result.say(f"  {metadata.usage or metadata.name} - {metadata.description}", "system")
        return result.say("Type 'help <command>' for details.", "system")
    metadata = commands.get_command(SYNONYMS.get(topic, topic), ctx.debug)
    if metadata is not None:
        result = CommandResult()
        for line in metadata.help_text().splitlines():
            result.say(line, "system")
        return result
    close = difflib.get_close_matches(topic, commands.names(ctx.debug), n=1)
    if close:
        return CommandResult().say(f"Unknown command: {topic}. Did you mean '{close[0]}'?", "system")
    return CommandResult().say(f"Unknown command: {topic}.", "system")


# --- traps ---

def search(ctx: CommandContext) -> CommandResult:
    if "trap" not in ctx.noun:
        raise ActionError('What do you want to search for? Try "search for traps".')
    room = _current_room(ctx)
    detection = ctx.traps.search(room.id, ctx.player.traits, ctx.player.inventory)
    if not detection.detected:
        return CommandResult().say("You search carefully but find no traps.")
    if ctx.schedule_fuse is not None:
        ctx.schedule_fuse(ctx.traps.active_trap(room.id))
    return detection_result(detection)


def disarm(ctx: CommandContext) -> CommandResult:
    room = _current_room(ctx)
    trap = ctx.traps.trap_for_room(room.id)
    return trap_outcome_result(ctx.traps.attempt_disarm(trap, ctx.player))


# --- npcs ---

def speak(ctx: CommandContext) -> CommandResult:
    target = ctx.noun
    for prefix in ("to ", "with "):
        if target.startswith(prefix):
            target = target[len(prefix):]
    if not target:
        raise ActionError("Speak to whom?")
    room = _current_room(ctx)
    npc_id = ctx.content.resolve_npc(target, room.npcs)
    if npc_id is None:
        raise ContentReferenceError(f"There is no {target} here.", ref=target)
    for interceptor in ctx.npc_interceptors:
        handled = interceptor(ctx)
        if handled is not None:
            return handled
    return CommandResult().say(f"{ctx.content.npc_name(npc_id)} has nothing to say right now.")


# --- debug ---

def debug(ctx: CommandContext) -> CommandResult:
    sub, _, arg = ctx.noun.partition(" ")
    traps = ctx.traps
    result = CommandResult()
    if sub in ("", "traps"):
        active = traps.list_active_traps()
        if not active:
            return result.say("No active traps.", "system")
        for trap in active:
            state = "detected" if trap.detected else "hidden"
            result.say(f"{trap.room_id}: {trap.severity} {trap.type} ({state}, damage {trap.damage})", "system")
        return result
    if sub == "stats":
        for key, value in traps.statistics().items():
            result.say(f"{key}: {value}", "system")
        return result
    if sub == "flags":
        flags = ctx.flags.active_flags()
        return result.say(f"Flags: {', '.join(flags) if flags else '(none)'}", "system")
    if sub == "toggle":
        enabled = traps.toggle_debug()
        return result.say(f"Trap debug mode {'enabled' if enabled else 'disabled'}.", "system")
    if sub == "reset":
        room_id = arg or ctx.snapshot.current_room_id
        if traps.reset_trap(room_id):
            return result.say(f"Trap in {room_id} reset.", "system")
        return result.say(f"No trap in {room_id}.", "system")
    raise ActionError("Usage: debug [traps|stats|flags|toggle|reset <room>]")


def _aliases(verb: str) -> List[str]:
    return [k for k, v in SYNONYMS.items() if v == verb]


def register_core_commands(registry: CommandRegistry) -> CommandRegistry:
    table = [
        ("go", go, "Move through an exit", "go <direction>"),
        ("look", look, "Describe the current room", "look"),
        ("inspect", inspect, "Look closely at an item or person", "inspect <thing>"),
        ("take", take, "Pick up an item", "take <item>"),
        ("drop", drop, "Drop an item you carry", "drop <item>"),
        ("inventory", inventory, "List what you carry", "inventory"),
        ("use", use, "Use an item", "use <item>"),
        ("status", status, "Show health, score and location", "status"),
        ("score", score, "Show your score", "score"),
        ("help", help_command, "List commands or explain one", "help [command]"),
        ("search", search, "Search the room for traps", "search for traps"),
        ("disarm", disarm, "Try to disarm a detected trap", "disarm"),
        ("speak", speak, "Talk to someone here", "speak <person>"),
    ]
    for name, handler, description, usage in table:
        registry.register(CommandMetadata(
            name=name, handler=handler, description=description, usage=usage, aliases=_aliases(name),
        ))
    registry.register(CommandMetadata(
        name="debug", handler=debug, description="Inspect and manipulate traps and flags",
        usage="debug [traps|stats|flags|toggle|reset <room>]", debug_only=True,
    ))
    return registry
