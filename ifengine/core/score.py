"""Score event bus.

The engine only emits opaque event ids ("room.new.explored",
"trap.triggered", ...). Turning them into points is up to listeners, for
example the CLI, which reads ``assets/score_events.json``.
"""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

ScoreListener = Callable[[str], None]


class ScoreEventBus:
    def __init__(self, history_limit: int = 200):
        self._listeners: List[ScoreListener] = []
        self._history: List[str] = []
        self._history_limit = history_limit

    def subscribe(self, listener: ScoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event_id: str) -> None:
        self._history.append(event_id)
        if len(self._history) > self._history_limit:
            del self._history[: len(self._history) - self._history_limit]
        logger.debug("Score event: %s", event_id)
        for listener in list(self._listeners):
            try:
                listener(event_id)
            except Exception:
                logger.exception("Score listener %r failed on %s", listener, event_id)

    @property
    def history(self) -> List[str]:
        return list(self._history)


def load_score_table(path: str) -> Dict[str, int]:
    """Read an event id -> points table; a missing file yields an empty table."""
    table_path = Path(path)
    if not table_path.exists():
        logger.warning("Score table not found: %s", path)
        return {}
    with open(table_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return {str(k): int(v) for k, v in data.get("events", data).items()}
