"""Story flag graph.

A flag is a named fact: present means true. Flags may carry an expiry,
a category, a priority and a list of prerequisite flags. The prerequisite
edges form a directed graph that must stay acyclic; an edge that would
close a cycle is rejected when it is declared.

The graph is session-scoped: every GameSession owns its own instance.
"""
from __future__ import annotations
import logging
import re
import time
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

import jsonschema

from .errors import DependencyViolation, PersistenceError
from .schema import FLAG_SNAPSHOT_SCHEMA

logger = logging.getLogger(__name__)

FLAG_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
MAX_FLAG_NAME_LENGTH = 100
FLAG_CATEGORIES = (
    "quest",
    "story_event",
    "chapter_progress",
    "general",
    "achievement",
    "relationship",
    "exploration",
)
DEFAULT_CATEGORY = "general"
SNAPSHOT_VERSION = 2


@dataclass
class FlagMetadata:
    set_time: float
    category: str = DEFAULT_CATEGORY
    description: str = ""
    priority: int = 0
    triggered_events: List[str] = field(default_factory=list)


FlagCallback = Callable[[str, FlagMetadata], None]


def is_valid_flag_name(name: Any) -> bool:
    return (
        isinstance(name, str)
        and 0 < len(name) <= MAX_FLAG_NAME_LENGTH
        and FLAG_NAME_PATTERN.match(name) is not None
    )


def _find_cycle(graph: Dict[str, List[str]], start: str) -> Optional[List[str]]:
    """DFS with an explicit recursion stack; returns the first cycle found."""
    visited: Set[str] = set()
    stack: List[str] = []
    on_stack: Set[str] = set()

    def visit(node: str) -> Optional[List[str]]:
        visited.add(node)
        stack.append(node)
        on_stack.add(node)
        for nxt in graph.get(node, ()):
            if nxt in on_stack:
                return stack[stack.index(nxt):] + [nxt]
            if nxt not in visited:
                found = visit(nxt)
                if found:
                    return found
        stack.pop()
        on_stack.discard(node)
        return None

    return visit(start)


def migrate_flag_snapshot(data: Dict[str, Any], now: float) -> Dict[str, Any]:
    """Bring an older flag snapshot up to SNAPSHOT_VERSION.

    Version 1 saves only carried the set of flags (as a list or as a
    name -> bool mapping) plus optional expiry timestamps and dependencies.
    """
    version = data.get("version", 1)
    if version > SNAPSHOT_VERSION:
        raise PersistenceError(
            f"Flag snapshot version {version} is newer than supported version {SNAPSHOT_VERSION}"
        )
    raw_flags = data.get("flags", [])
    if isinstance(raw_flags, dict):
        names = [k for k, v in raw_flags.items() if v]
    else:
        names = list(raw_flags)
    names = [n for n in names if is_valid_flag_name(n)]
    metadata = data.get("metadata") or {}
    categories: Dict[str, List[str]] = {}
    migrated_meta: Dict[str, Dict[str, Any]] = {}
    for name in names:
        meta = dict(metadata.get(name) or {})
        category = meta.get("category", DEFAULT_CATEGORY)
        if category not in FLAG_CATEGORIES:
            category = DEFAULT_CATEGORY
        migrated_meta[name] = {
            "set_time": float(meta.get("set_time", now)),
            "category": category,
            "description": meta.get("description", ""),
            "priority": int(meta.get("priority", 0)),
            "triggered_events": list(meta.get("triggered_events", [])),
        }
        categories.setdefault(category, []).append(name)
    logger.info("Migrated flag snapshot from version %s to %s", version, SNAPSHOT_VERSION)
    return {
        "flags": names,
        "timestamps": {k: float(v) for k, v in (data.get("timestamps") or {}).items() if k in names},
        "dependencies": {k: list(v) for k, v in (data.get("dependencies") or {}).items()},
        "categories": categories,
        "metadata": migrated_meta,
        "version": SNAPSHOT_VERSION,
    }


class FlagGraph:
    """Dependency-gated flag store with expiry, categories and event triggers."""

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        sweep_interval: float = 60.0,
        max_event_triggers: int = 50,
    ):
        self._clock = clock
        self.sweep_interval = sweep_interval
        self.max_event_triggers = max_event_triggers
        self._flags: Set[str] = set()
        self._expiry: Dict[str, float] = {}
        self._deps: Dict[str, List[str]] = {}
        self._categories: Dict[str, Set[str]] = {}
        self._metadata: Dict[str, FlagMetadata] = {}
        self._triggers: Dict[str, List[FlagCallback]] = {}
        self._last_sweep = clock()

    # --- core operations ---

    def set_flag(
        self,
        name: str,
        expiry: Optional[float] = None,
        category: str = DEFAULT_CATEGORY,
        deps: Optional[Iterable[str]] = None,
        description: str = "",
        priority: int = 0,
        strict: bool = False,
    ) -> bool:
        """Set a flag if all of its prerequisites are currently set.

        Args:
            name: flag name (``[a-zA-Z0-9_-]``, at most 100 chars)
            expiry: optional lifetime in seconds from now
            category: one of FLAG_CATEGORIES, anything else becomes "general"
            deps: prerequisite flags, merged with previously declared ones
            description: free text kept in the metadata
            priority: ordering key for category listings (higher first)
            strict: re-raise DependencyViolation instead of returning False

        Returns:
            True if the flag is now set, False if the call was a no-op.
        """
        if not is_valid_flag_name(name):
            logger.warning("Rejected invalid flag name %r", name)
            if strict:
                raise ValueError(f"Invalid flag name: {name!r}")
            return False
        try:
            self._set(name, expiry, category, list(deps or []), description, priority)
        except DependencyViolation as exc:
            logger.warning("Flag '%s' rejected: %s", name, exc)
            if strict:
                raise
            return False
        return True

    def _set(self, name: str, expiry: Optional[float], category: str,
             deps: List[str], description: str, priority: int) -> None:
        deps = list(dict.fromkeys(deps))
        for dep in deps:
            if not is_valid_flag_name(dep):
                raise DependencyViolation(f"invalid dependency name {dep!r}", flag=name)
        merged = list(dict.fromkeys(self._deps.get(name, []) + deps))
        if deps:
            self._ensure_acyclic(name, merged)
        missing = [d for d in merged if not self.has_flag(d)]
        if missing:
            raise DependencyViolation(
                f"unmet dependencies: {', '.join(missing)}", flag=name, missing=missing
            )
        if merged:
            self._deps[name] = merged

        if category not in FLAG_CATEGORIES:
            logger.debug("Unknown category %r for flag '%s', using '%s'", category, name, DEFAULT_CATEGORY)
            category = DEFAULT_CATEGORY
        previous = self._metadata.get(name)
        if previous is not None and previous.category != category:
            self._categories.get(previous.category, set()).discard(name)

        now = self._clock()
        self._flags.add(name)
        if expiry is not None:
            self._expiry[name] = now + expiry
        else:
            self._expiry.pop(name, None)
        self._metadata[name] = FlagMetadata(
            set_time=now, category=category, description=description, priority=priority
        )
        self._categories.setdefault(category, set()).add(name)
        logger.debug("Flag set: %s (category=%s)", name, category)
        self._fire_triggers(name)

    def has_flag(self, name: str) -> bool:
        if name not in self._flags:
            return False
        expires_at = self._expiry.get(name)
        if expires_at is not None and self._clock() >= expires_at:
            logger.debug("Flag '%s' expired", name)
            self.remove_flag(name)
            return False
        return True

    def remove_flag(self, name: str) -> bool:
        existed = name in self._flags or name in self._deps
        self._flags.discard(name)
        self._expiry.pop(name, None)
        meta = self._metadata.pop(name, None)
        if meta is not None:
            self._categories.get(meta.category, set()).discard(name)
        self._triggers.pop(name, None)
        self._deps.pop(name, None)
        for other, deps in list(self._deps.items()):
            if name in deps:
                remaining = [d for d in deps if d != name]
                if remaining:
                    self._deps[other] = remaining
                else:
                    del self._deps[other]
        return existed

    def set_flag_dependencies(self, name: str, deps: Iterable[str]) -> bool:
        """Declare prerequisites for ``name`` without setting it."""
        deps = list(dict.fromkeys(deps))
        if not is_valid_flag_name(name) or not all(is_valid_flag_name(d) for d in deps):
            logger.warning("Rejected dependency declaration for %r: invalid name", name)
            return False
        try:
            self._ensure_acyclic(name, deps)
        except DependencyViolation as exc:
            logger.warning("Dependency declaration for '%s' rejected: %s", name, exc)
            return False
        if deps:
            self._deps[name] = deps
        else:
            self._deps.pop(name, None)
        return True

    def dependencies_of(self, name: str) -> List[str]:
        return list(self._deps.get(name, []))

    def _ensure_acyclic(self, name: str, deps: List[str]) -> None:
        if name in deps:
            raise DependencyViolation(f"flag '{name}' cannot depend on itself", flag=name)
        graph = {k: list(v) for k, v in self._deps.items()}
        graph[name] = list(deps)
        cycle = _find_cycle(graph, name)
        if cycle:
            raise DependencyViolation(
                f"dependency cycle: {' -> '.join(cycle)}", flag=name
            )

    # --- event triggers ---

    def register_event_trigger(self, name: str, callback: FlagCallback) -> bool:
        callbacks = self._triggers.setdefault(name, [])
        if len(callbacks) >= self.max_event_triggers:
            logger.warning("Trigger limit (%d) reached for flag '%s'", self.max_event_triggers, name)
            return False
        callbacks.append(callback)
        return True

    def _fire_triggers(self, name: str) -> None:
        meta = self._metadata[name]
        for callback in list(self._triggers.get(name, [])):
            try:
                callback(name, meta)
            except Exception:
                logger.exception("Event trigger for flag '%s' failed", name)
                continue
            meta.triggered_events.append(getattr(callback, "__name__", repr(callback)))

    # --- expiry sweep ---

    def sweep_expired(self) -> List[str]:
        now = self._clock()
        self._last_sweep = now
        expired = [n for n, ts in self._expiry.items() if now >= ts]
        for name in expired:
            self.remove_flag(name)
        if expired:
            logger.debug("Swept %d expired flags", len(expired))
        return expired

    def maybe_sweep(self) -> List[str]:
        if self._clock() - self._last_sweep >= self.sweep_interval:
            return self.sweep_expired()
        return []

    # --- queries ---

    def active_flags(self) -> List[str]:
        return sorted(n for n in list(self._flags) if self.has_flag(n))

    def metadata(self, name: str) -> Optional[FlagMetadata]:
        if not self.has_flag(name):
            return None
        return self._metadata.get(name)

    def flags_by_category(self, category: str) -> List[str]:
        names = [n for n in list(self._categories.get(category, ())) if self.has_flag(n)]
        return sorted(names, key=lambda n: (-self._metadata[n].priority, n))

    def set_many(self, names: Iterable[str], **kwargs: Any) -> Dict[str, bool]:
        return {name: self.set_flag(name, **kwargs) for name in names}

    def statistics(self) -> Dict[str, Any]:
        active = self.active_flags()
        return {
            "total": len(active),
            "by_category": {c: len(self.flags_by_category(c)) for c in FLAG_CATEGORIES},
            "with_dependencies": len(self._deps),
            "expiring": sum(1 for n in active if n in self._expiry),
            "triggers": sum(len(v) for v in self._triggers.values()),
        }

    def clear_all(self, confirm: bool = False) -> bool:
        if not confirm:
            logger.warning("clear_all called without confirmation; nothing removed")
            return False
        self._flags.clear()
        self._expiry.clear()
        self._deps.clear()
        self._categories.clear()
        self._metadata.clear()
        self._triggers.clear()
        return True

    # --- persistence ---

    def to_snapshot(self) -> Dict[str, Any]:
        self.sweep_expired()
        return {
            "flags": sorted(self._flags),
            "timestamps": dict(self._expiry),
            "dependencies": {k: list(v) for k, v in self._deps.items()},
            "categories": {k: sorted(v) for k, v in self._categories.items() if v},
            "metadata": {k: asdict(v) for k, v in self._metadata.items()},
            "version": SNAPSHOT_VERSION,
        }

    def check_snapshot(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Migrate and validate a snapshot without touching the graph."""
        payload = dict(data)
        try:
            if payload.get("version") != SNAPSHOT_VERSION:
                payload = migrate_flag_snapshot(payload, self._clock())
            jsonschema.validate(payload, FLAG_SNAPSHOT_SCHEMA)
        except jsonschema.ValidationError as exc:
            raise PersistenceError(f"Invalid flag snapshot: {exc.message}") from exc
        except (AttributeError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Invalid flag snapshot: {exc}") from exc
        return payload

    def from_snapshot(self, data: Dict[str, Any]) -> None:
        """Replace the graph contents with a saved snapshot.

        Registered event triggers survive (they are code, not data).

        Raises:
            PersistenceError: if the snapshot is newer than supported or malformed
        """
        payload = self.check_snapshot(data)
        self._flags = set(payload["flags"])
        self._expiry = {k: float(v) for k, v in payload["timestamps"].items()}
        self._deps = {k: list(v) for k, v in payload["dependencies"].items()}
        self._metadata = {}
        self._categories = {}
        now = self._clock()
        for name in self._flags:
            raw = payload["metadata"].get(name) or {"set_time": now, "category": DEFAULT_CATEGORY}
            meta = FlagMetadata(
                set_time=float(raw["set_time"]),
                category=raw.get("category", DEFAULT_CATEGORY),
                description=raw.get("description", ""),
                priority=int(raw.get("priority", 0)),
                triggered_events=list(raw.get("triggered_events", [])),
            )
            self._metadata[name] = meta
            self._categories.setdefault(meta.category, set()).add(name)
