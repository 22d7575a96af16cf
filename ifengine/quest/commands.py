"""Quest command handlers.

This module provides the ``quests`` and ``attempt`` verbs plus the
fall-through interceptor that lets typed trigger phrases (for example
"decipher glyphs") start a miniquest attempt.
"""

from typing import Optional

from ..core.commands import CommandContext, CommandMetadata, CommandRegistry, CommandResult
from ..core.errors import ActionError
from .model import Miniquest, QuestAttempt


def _attempt_key(room_id: str, quest_id: str) -> str:
    return f"{room_id}:{quest_id}"


def _find_room_quest(ctx: CommandContext, name: str) -> Optional[Miniquest]:
    """Resolve a quest in the current room by id or title.

    Args:
        ctx: Command context
        name: Quest id or title as typed

    Returns:
        The matching quest or None
    """
    wanted = name.strip().lower()
    room_id = ctx.snapshot.current_room_id
    for quest in ctx.quests.quests_for_room(room_id):
        if wanted in (quest.id.lower(), quest.title.lower(), quest.id.lower().replace("_", " ")):
            return quest
    return None


def _offers(ctx: CommandContext):
    room_id = ctx.snapshot.current_room_id
    return [q.id for q in ctx.quests.available_quests(room_id, ctx.snapshot)]


def resolve_attempt(ctx: CommandContext, quest_id: str, typed: Optional[str]) -> CommandResult:
    """Run one attempt and translate it into a command result.

    Counts consumed attempts against the session cap and exhausts the
    quest once the cap is reached without success.

    Args:
        ctx: Command context
        quest_id: Quest to attempt
        typed: Trigger phrase as typed, or None for an explicit attempt

    Returns:
        CommandResult with messages, score patch and score event
    """
    room_id = ctx.snapshot.current_room_id
    attempt: QuestAttempt = ctx.quests.attempt(quest_id, room_id, ctx.snapshot, typed)
    result = CommandResult()
    if attempt.success:
        result.say(attempt.message, "success")
        if attempt.score_awarded:
            result.updates["player"] = {"score": ctx.player.score + attempt.score_awarded}
        if attempt.event:
            result.events.append(attempt.event)
        result.updates["quest_offers"] = _offers(ctx)
        return result

    result.say(attempt.message, "warning" if attempt.consumed else "info")
    if not attempt.consumed:
        return result

    key = _attempt_key(room_id, quest_id)
    ctx.quest_attempts[key] = ctx.quest_attempts.get(key, 0) + 1
    quest = ctx.quests.get_quest(room_id, quest_id)
    cap = quest.max_attempts if quest is not None and quest.max_attempts else ctx.quest_attempt_cap
    if cap and ctx.quest_attempts[key] >= cap:
        ctx.quests.exhaust(room_id, quest_id)
        result.say(f'You have run out of attempts for "{quest.title}".', "warning")
        result.updates["quest_offers"] = _offers(ctx)
    return result


def quests_command(ctx: CommandContext) -> CommandResult:
    """Handle 'quests': list the challenges of the current room with their status."""
    room_id = ctx.snapshot.current_room_id
    listing = ctx.quests.list_room_quests(room_id, ctx.snapshot)
    if not listing:
        return CommandResult().say("There are no challenges here.")
    result = CommandResult().say("=== Challenges ===", "system")
    for quest, status in listing:
        line = f"[{status}] {quest.title}"
        if quest.description:
            line += f" - {quest.description}"
        result.say(line)
        if status in ("AVAILABLE", "REPEATABLE"):
            result.say(f'    Try: "{quest.trigger_action}" ({quest.difficulty})')
    return result


def attempt_command(ctx: CommandContext) -> CommandResult:
    """Handle 'attempt <quest>': acts as if the quest's own trigger was typed."""
    if not ctx.noun:
        raise ActionError("Attempt what? Type 'quests' to see the challenges here.")
    quest = _find_room_quest(ctx, ctx.noun)
    if quest is None:
        return CommandResult.failure(f"Quest {ctx.noun} not found in {ctx.snapshot.current_room_id}.")
    return resolve_attempt(ctx, quest.id, None)


def intercept_quest_trigger(ctx: CommandContext) -> Optional[CommandResult]:
    """Fall-through hook: typed text matching a quest trigger in the room.

    An exact match attempts the quest; a matching verb with a different
    phrase returns the trigger hint without spending an attempt.
    """
    match = ctx.quests.find_by_trigger(ctx.snapshot.current_room_id, ctx.raw)
    if match is None:
        return None
    quest, _exact = match
    return resolve_attempt(ctx, quest.id, ctx.raw)


def register_quest_commands(registry: CommandRegistry) -> CommandRegistry:
    """Register the quest verbs.

    Args:
        registry: Registry to extend

    Returns:
        The same registry
    """
    registry.register(CommandMetadata(
        name="quests", handler=quests_command,
        description="List the challenges in this room", usage="quests",
        aliases=["miniquests", "challenges"],
    ))
    registry.register(CommandMetadata(
        name="attempt", handler=attempt_command,
        description="Attempt a challenge in this room", usage="attempt <quest>",
        aliases=["try"],
    ))
    return registry
