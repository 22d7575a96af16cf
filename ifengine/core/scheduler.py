"""Cancellable deferred tasks.

Deferred effects (trap fuses, delayed room scripts) are scheduled here
instead of on a UI framework timer. A task's callback runs when the
session ticks past its due time; it receives the snapshot current *at
that moment* and returns a result whose patch the session applies.

Every task carries a scope so the session can cancel whole groups:
``room`` tasks die on room exit, ``modal`` tasks on modal dismissal, and
everything dies on session reset.
"""
from __future__ import annotations
import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

SCOPES = ("room", "modal", "session")

TaskCallback = Callable[[Any], Any]


@dataclass
class ScheduledTask:
    id: int
    due: float
    callback: TaskCallback = field(repr=False)
    label: str = ""
    scope: str = "room"
    cancelled: bool = False


class DeferredTaskScheduler:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._ids = itertools.count(1)
        self._heap: List[Tuple[float, int]] = []
        self._tasks: Dict[int, ScheduledTask] = {}

    def now(self) -> float:
        return self._clock()

    def schedule(self, delay: float, callback: TaskCallback, label: str = "", scope: str = "room") -> ScheduledTask:
        if scope not in SCOPES:
            raise ValueError(f"Unknown task scope: {scope}")
        task = ScheduledTask(
            id=next(self._ids),
            due=self._clock() + max(0.0, float(delay)),
            callback=callback,
            label=label,
            scope=scope,
        )
        self._tasks[task.id] = task
        heapq.heappush(self._heap, (task.due, task.id))
        logger.debug("Scheduled task %d (%s) in %.1fs [%s]", task.id, label, delay, scope)
        return task

    def cancel(self, task_id: int) -> bool:
        task = self._tasks.pop(task_id, None)
        if task is None:
            return False
        task.cancelled = True
        return True

    def cancel_scope(self, scope: str) -> int:
        doomed = [t.id for t in self._tasks.values() if t.scope == scope]
        for task_id in doomed:
            self.cancel(task_id)
        if doomed:
            logger.debug("Cancelled %d %s-scoped task(s)", len(doomed), scope)
        return len(doomed)

    def cancel_all(self) -> int:
        count = len(self._tasks)
        for task in self._tasks.values():
            task.cancelled = True
        self._tasks.clear()
        self._heap.clear()
        return count

    def pop_due(self, now: Optional[float] = None) -> List[ScheduledTask]:
        """Remove and return tasks due at ``now``, earliest first."""
        if now is None:
            now = self._clock()
        due: List[ScheduledTask] = []
        while self._heap and self._heap[0][0] <= now:
            _, task_id = heapq.heappop(self._heap)
            task = self._tasks.pop(task_id, None)
            if task is not None and not task.cancelled:
                due.append(task)
        return due

    @property
    def pending(self) -> List[ScheduledTask]:
        return sorted(self._tasks.values(), key=lambda t: (t.due, t.id))

    def is_pending(self, task_id: int) -> bool:
        return task_id in self._tasks

    def has_pending(self, scope: Optional[str] = None) -> bool:
        if scope is None:
            return bool(self._tasks)
        return any(t.scope == scope for t in self._tasks.values())
