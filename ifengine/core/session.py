"""Game session: owner of every session-scoped engine component.

A ``GameSession`` wires the content registry to a fresh FlagGraph,
TrapSubsystem, QuestSubsystem, scheduler, score bus and state store, and
is the only thing a UI talks to:

    session.submit_command("go north") -> CommandResult
    session.subscribe(on_state_change)
    session.tick()                      # run due deferred tasks

Nothing here is module-global; two sessions never share state.
"""
from __future__ import annotations
import logging
import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from .commands import CommandResult
from .errors import ActionError, InvariantViolation, PersistenceError
from .flags import FlagGraph
from .interpreter import CommandInterpreter
from .persistence import MemoryStore, PersistenceStore, add_save_metadata, save_with_retry, validate_session_snapshot
from .rng import RandomSource, make_rng
from .scheduler import DeferredTaskScheduler
from .score import ScoreEventBus
from .state import PlayerState, WorldState, WorldStateStore
from .traps import TrapSeedConfig, TrapSubsystem, build_trap_table
from ..quest.runtime import QuestSubsystem

logger = logging.getLogger(__name__)


class GameSession:
    def __init__(
        self,
        content,
        initial: WorldState,
        rng: Optional[RandomSource] = None,
        persistence: Optional[PersistenceStore] = None,
        debug_mode: bool = False,
        quest_attempt_cap: int = 0,
        flag_sweep_interval: float = 60.0,
        max_event_triggers: int = 50,
        save_retries: int = 1,
        flag_clock: Callable[[], float] = time.time,
        task_clock: Callable[[], float] = time.monotonic,
    ):
        self.content = content
        self.rng = rng or make_rng()
        self.debug_mode = debug_mode
        self.save_retries = save_retries
        self.flags = FlagGraph(clock=flag_clock, sweep_interval=flag_sweep_interval,
                               max_event_triggers=max_event_triggers)
        self.traps = TrapSubsystem(self.rng, item_name=content.item_name, debug_mode=debug_mode)
        self.quests = QuestSubsystem(self.flags, self.rng)
        self.scheduler = DeferredTaskScheduler(clock=task_clock)
        self.bus = ScoreEventBus()
        self.store = WorldStateStore(initial, content.rooms, content.stackable_items())
        self.persistence: PersistenceStore = persistence or MemoryStore()
        self.quest_attempts: Dict[str, int] = {}
        self.interpreter = CommandInterpreter(
            content,
            self.flags,
            self.traps,
            self.quests,
            self.scheduler,
            self.rng,
            quest_attempts=self.quest_attempts,
            quest_attempt_cap=quest_attempt_cap,
            debug=debug_mode,
        )
        self._initial = initial
        self._seed_config: Optional[TrapSeedConfig] = None
        self.content_issues: List[str] = []
        self._load_content()

    # --- setup ---

    def _load_content(self) -> None:
        declarations = self.content.flag_declarations
        for name, deps in (declarations.get("dependencies") or {}).items():
            if not self.flags.set_flag_dependencies(name, deps):
                self.content_issues.append(f"Rejected dependencies for flag '{name}'")
        categories = declarations.get("categories") or {}
        for name in declarations.get("initial") or []:
            self.flags.set_flag(name, category=categories.get(name, "general"))
        self.content_issues.extend(self.traps.load_definitions(self.content.trap_definitions))
        for quest in self.content.quests:
            self.quests.register(quest)
        for issue in self.content_issues:
            logger.error("Content issue: %s", issue)

    def seed_traps(self, config: Optional[TrapSeedConfig] = None):
        """Seed random traps over every room not tagged ``safe``."""
        self._seed_config = config or TrapSeedConfig()
        room_ids = [r.id for r in self.content.rooms.values() if not r.is_safe]
        return self.traps.seed(room_ids, self._seed_config)

    def start(self) -> CommandResult:
        """Enter the starting room (description, trap, scripts, quest offers)."""
        snapshot = self.store.snapshot
        result = self.interpreter.enter_room(CommandResult(), snapshot, snapshot.current_room_id)
        self._commit(result)
        return result

    # --- UI boundary ---

    @property
    def state(self) -> WorldState:
        return self.store.snapshot

    def subscribe(self, on_state_change: Callable[[WorldState], None]) -> Callable[[], None]:
        return self.store.subscribe(on_state_change)

    def on_score_event(self, listener: Callable[[str], None]) -> Callable[[], None]:
        return self.bus.subscribe(listener)

    def submit_command(self, text: Any) -> CommandResult:
        self.flags.maybe_sweep()
        self.tick()
        snapshot = self.store.snapshot
        result = self.interpreter.submit(text, snapshot)
        self._commit(result, advance_turn=True)
        return result

    def _commit(self, result: CommandResult, advance_turn: bool = False) -> WorldState:
        patch = dict(result.updates)
        patch["log"] = list(patch.get("log", ())) + list(result.messages)
        patch["flags"] = self.flags.active_flags()
        if advance_turn:
            patch["turn"] = self.store.snapshot.turn + 1
        state = self.store.apply(patch)
        for event in result.events:
            self.bus.emit(event)
        return state

    # --- deferred tasks ---

    def tick(self, now: Optional[float] = None) -> List[CommandResult]:
        """Run every deferred task that is due and apply its result."""
        results: List[CommandResult] = []
        for task in self.scheduler.pop_due(now):
            snapshot = self.store.snapshot
            try:
                result = task.callback(snapshot)
            except ActionError as e:
                result = CommandResult.failure(str(e))
            except Exception:
                logger.exception("Deferred task %d (%s) failed", task.id, task.label)
                continue
            if result is None:
                continue
            result = self.interpreter.finalize(result, snapshot)
            if result.messages or result.updates or result.events:
                self._commit(result)
                results.append(result)
        return results

    def dismiss_modal(self) -> int:
        return self.scheduler.cancel_scope("modal")

    def reset(self) -> WorldState:
        """Back to the initial state: cancel tasks, clear subsystems, reload content."""
        self.scheduler.cancel_all()
        self.flags.clear_all(confirm=True)
        self.traps.clear_all(confirm=True)
        self.quests.reset()
        self.quest_attempts.clear()
        self.content_issues = []
        self._load_content()
        if self._seed_config is not None:
            self.traps.seed([r.id for r in self.content.rooms.values() if not r.is_safe], self._seed_config)
        return self.store.reset(replace(self._initial, flags=tuple(self.flags.active_flags())))

    # --- persistence ---

    def snapshot(self) -> Dict[str, Any]:
        state = self.store.snapshot
        return add_save_metadata({
            "world": state.to_dict(),
            "flags": self.flags.to_snapshot(),
            "traps": self.traps.to_snapshot(),
            "quests": self.quests.to_snapshot(),
            "quest_attempts": dict(self.quest_attempts),
        })

    def save(self, key: str = "quicksave") -> bool:
        return save_with_retry(self.persistence, key, self.snapshot(), self.save_retries)

    def load(self, key: str = "quicksave") -> bool:
        data = self.persistence.load(key)
        if data is None:
            return False
        self.restore(data)
        return True

    def restore(self, data: Dict[str, Any]) -> WorldState:
        """Replace the session state with a saved snapshot.

        Raises:
            PersistenceError: unsupported version, schema mismatch or unknown room.
                Nothing in the running session changes in that case.
        """
        validate_session_snapshot(data)
        world = data["world"]
        room_id = world["current_room_id"]
        if not self.content.has_room(room_id):
            raise PersistenceError(f"Saved room '{room_id}' does not exist")
        try:
            traps = build_trap_table(data["traps"])
        except InvariantViolation as e:
            raise PersistenceError(f"Invalid trap snapshot: {e}") from e
        flag_payload = self.flags.check_snapshot(data["flags"])
        player = PlayerState.from_dict(world["player"])

        self.traps.replace_all(traps)
        self.flags.from_snapshot(flag_payload)
        self.quests.from_snapshot(data["quests"])
        self.quest_attempts.clear()
        self.quest_attempts.update(data.get("quest_attempts") or {})
        self.scheduler.cancel_all()
        state = WorldState(
            current_room_id=room_id,
            player=player,
            room_items={k: tuple(v) for k, v in world["room_items"].items()},
            flags=tuple(self.flags.active_flags()),
            turn=world["turn"],
        )
        offers = [q.id for q in self.quests.available_quests(room_id, state)]
        logger.info("Session restored in '%s' (turn %d)", room_id, state.turn)
        return self.store.reset(replace(state, quest_offers=tuple(offers)))
