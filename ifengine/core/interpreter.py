"""Command interpreter: text in, ``CommandResult`` out.

``submit`` parses the input, dispatches it through the verb registry and,
for verbs nobody registered, walks the fall-through chain:

    room interactions -> room handlers -> NPC interceptors -> quest triggers

When a result moves the player, ``finalize`` runs the room-entry pipeline
over a preview of the resulting state. The interpreter never touches the
store; the session applies the final patch.
"""
from __future__ import annotations
import logging
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence

from .actions import describe_room, detection_result, register_core_commands, run_script, trap_outcome_result
from .commands import CommandContext, CommandRegistry, CommandResult
from .errors import ActionError, InputError
from .model.base import RoomScript
from .parser import parse
from .state import WorldState, merge_patch
from ..quest.commands import intercept_quest_trigger, register_quest_commands

logger = logging.getLogger(__name__)

UNKNOWN_COMMAND = "I don't understand that command."
MAX_ENTRY_DEPTH = 3

Interceptor = Callable[[CommandContext], Optional[CommandResult]]


def default_registry() -> CommandRegistry:
    return register_quest_commands(register_core_commands(CommandRegistry()))


class CommandInterpreter:
    def __init__(
        self,
        content,
        flags,
        traps,
        quests,
        scheduler,
        rng,
        commands: Optional[CommandRegistry] = None,
        npc_interceptors: Sequence[Interceptor] = (),
        quest_attempts: Optional[Dict[str, int]] = None,
        quest_attempt_cap: int = 0,
        debug: bool = False,
    ):
        self.content = content
        self.flags = flags
        self.traps = traps
        self.quests = quests
        self.scheduler = scheduler
        self.rng = rng
        self.commands = commands or default_registry()
        self.npc_interceptors: List[Interceptor] = list(npc_interceptors)
        self.room_handlers: Dict[str, List[Interceptor]] = {}
        self.quest_attempts = quest_attempts if quest_attempts is not None else {}
        self.quest_attempt_cap = quest_attempt_cap
        self.debug = debug
        self._fuses: Dict[str, int] = {}

    # --- extension points ---

    def register_room_handler(self, room_id: str, handler: Interceptor) -> None:
        self.room_handlers.setdefault(room_id, []).append(handler)

    def add_npc_interceptor(self, interceptor: Interceptor) -> None:
        self.npc_interceptors.append(interceptor)

    # --- dispatch ---

    def _context(self, snapshot: WorldState, verb: str, noun: str, text: str) -> CommandContext:
        return CommandContext(
            snapshot=snapshot,
            verb=verb,
            noun=noun,
            raw=text,
            content=self.content,
            commands=self.commands,
            flags=self.flags,
            traps=self.traps,
            quests=self.quests,
            scheduler=self.scheduler,
            rng=self.rng,
            quest_attempts=self.quest_attempts,
            quest_attempt_cap=self.quest_attempt_cap,
            debug=self.debug,
            npc_interceptors=tuple(self.npc_interceptors),
            schedule_fuse=self.schedule_fuse,
        )

    def submit(self, raw_input, snapshot: WorldState) -> CommandResult:
        try:
            parsed = parse(raw_input)
        except InputError as e:
            return CommandResult.failure(str(e))
        ctx = self._context(snapshot, parsed.verb, parsed.noun, parsed.text)
        try:
            result = self._dispatch(ctx)
        except ActionError as e:
            logger.debug("Command %r failed: %s", parsed.text, e)
            return CommandResult.failure(str(e))
        return self.finalize(result, snapshot)

    def _dispatch(self, ctx: CommandContext) -> CommandResult:
        metadata = self.commands.get_command(ctx.verb, self.debug)
        if metadata is not None:
            return metadata.handler(ctx)
        handled = self._fall_through(ctx)
        if handled is not None:
            return handled
        return CommandResult.failure(UNKNOWN_COMMAND)

    def _fall_through(self, ctx: CommandContext) -> Optional[CommandResult]:
        room = ctx.room
        if room is not None:
            script = room.interactions.get(ctx.raw)
            if script is not None:
                scripted = run_script(script, ctx.snapshot, self.flags)
                return scripted if scripted is not None else CommandResult().say("Nothing happens.")
            for handler in self.room_handlers.get(room.id, ()):
                handled = handler(ctx)
                if handled is not None:
                    return handled
        for interceptor in self.npc_interceptors:
            handled = interceptor(ctx)
            if handled is not None:
                return handled
        return intercept_quest_trigger(ctx)

    # --- room entry ---

    def finalize(self, result: CommandResult, snapshot: WorldState) -> CommandResult:
        """Run the room-entry pipeline if ``result`` moves the player to a known room."""
        target = result.updates.get("current_room_id")
        if not target or target == snapshot.current_room_id:
            return result
        if not self.content.has_room(target):
            # The store keeps the player in place and reports the missing room
            return result
        return self.enter_room(result, snapshot, target)

    def _absorb(self, result: CommandResult, state: WorldState, stage: Optional[CommandResult]) -> WorldState:
        if stage is None:
            return state
        result.extend(stage)
        return merge_patch(state, stage.updates, self.content.rooms, self.content.stackable_items())

    def enter_room(self, result: CommandResult, origin: WorldState, target: str) -> CommandResult:
        """Entry pipeline: leave the old room, then trap, on_enter scripts and quest offers."""
        content = self.content
        state = merge_patch(origin, result.updates, content.rooms, content.stackable_items())

        if target != origin.current_room_id:
            self.scheduler.cancel_scope("room")
            self._fuses.clear()
            old_room = content.get_room(origin.current_room_id)
            if old_room is not None:
                for script in old_room.on_exit:
                    state = self._absorb(result, state, run_script(script, state, self.flags))

        depth = 0
        while True:
            room = content.get_room(target)
            state = self._absorb(result, state, CommandResult(messages=describe_room(content, room, state)))
            visited = state.player.visited_rooms
            if target not in visited:
                state = self._absorb(result, state, CommandResult(
                    updates={"player": {"visited_rooms": list(visited) + [target]}},
                    events=["room.new.explored"],
                ))
            teleport = self._resolve_trap(result, state, target)
            if teleport is None:
                break
            state, destination = teleport
            if depth >= MAX_ENTRY_DEPTH:
                logger.warning("Teleport chain too deep; stopping in '%s'", target)
                result.updates["current_room_id"] = target
                state = replace(state, current_room_id=target)
                break
            depth += 1
            target = destination

        room = content.get_room(target)
        for script in room.on_enter:
            if script.delay:
                self.scheduler.schedule(script.delay, self._delayed_script(script), label=f"script:{room.id}", scope="room")
            else:
                state = self._absorb(result, state, run_script(script, state, self.flags))

        offers = [q.id for q in self.quests.available_quests(target, state)]
        self._absorb(result, state, CommandResult(updates={"quest_offers": offers}))
        return result

    def _resolve_trap(self, result: CommandResult, state: WorldState, room_id: str):
        """Detect or spring the trap of the room being entered.

        Returns (state, destination) when the trap teleported the player to
        another known room, otherwise None (after absorbing the outcome).
        """
        trap = self.traps.active_trap(room_id)
        if trap is None:
            return None
        player = state.player
        detection = self.traps.detect(room_id, player.traits, player.inventory)
        if detection.detected:
            self._absorb(result, state, detection_result(detection))
            self.schedule_fuse(trap)
            return None
        outcome = self.traps.spring(trap, player)
        state = self._absorb(result, state, trap_outcome_result(outcome))
        destination = outcome.updates.get("current_room_id")
        if destination and destination != room_id and self.content.has_room(destination):
            return state, destination
        return None

    # --- deferred tasks ---

    def schedule_fuse(self, trap) -> None:
        """Arm the countdown of a detected trap (once per room visit)."""
        if trap is None or trap.triggered:
            return
        task_id = self._fuses.get(trap.room_id)
        if task_id is not None and self.scheduler.is_pending(task_id):
            return
        task = self.scheduler.schedule(trap.fuse, self._fuse_callback(trap.room_id), label=f"fuse:{trap.id}", scope="room")
        self._fuses[trap.room_id] = task.id

    def _fuse_callback(self, room_id: str):
        def fire(snapshot: WorldState) -> CommandResult:
            self._fuses.pop(room_id, None)
            trap = self.traps.active_trap(room_id)
            if trap is None or snapshot.current_room_id != room_id:
                return CommandResult()
            result = CommandResult().say("Time runs out: the trap springs!", "warning")
            return result.extend(trap_outcome_result(self.traps.spring(trap, snapshot.player)))
        return fire

    def _delayed_script(self, script: RoomScript):
        def fire(snapshot: WorldState) -> CommandResult:
            return run_script(script, snapshot, self.flags) or CommandResult()
        return fire
