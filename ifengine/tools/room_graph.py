"""Offline analysis of the static room graph.

Usage:
    python -m ifengine.tools.room_graph [rooms.json] [--start ROOM ...] [--hub-threshold N]

Prints a markdown report and exits with status 1 when the graph has
invalid exits, orphan rooms or rooms unreachable from the start rooms.
"""
from __future__ import annotations

import argparse
import json
import sys
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import jsonschema

from config import GRAPH_HUB_THRESHOLD, GRAPH_MAX_CYCLES, GRAPH_START_ROOMS
from ifengine.core.loader.world_loader import build_room_map_from_dict
from ifengine.core.model.base import Room

DEFAULT_ROOMS_PATH = Path(__file__).resolve().parents[2] / "assets" / "world" / "rooms.json"
MAX_CYCLES_SHOWN = 5
NO_ZONE = "(none)"


@dataclass(frozen=True)
class InvalidExit:
    room_id: str
    direction: str
    target: str


@dataclass(frozen=True)
class Cycle:
    rooms: Tuple[str, ...]

    def __str__(self) -> str:
        return " -> ".join(self.rooms + (self.rooms[0],))


@dataclass(frozen=True)
class Hub:
    room_id: str
    in_degree: int
    out_degree: int

    @property
    def degree(self) -> int:
        return self.in_degree + self.out_degree


@dataclass
class GraphReport:
    room_count: int = 0
    start_rooms: List[str] = field(default_factory=list)
    missing_starts: List[str] = field(default_factory=list)
    invalid_exits: List[InvalidExit] = field(default_factory=list)
    orphans: List[str] = field(default_factory=list)
    dead_ends: List[str] = field(default_factory=list)
    unreachable: List[str] = field(default_factory=list)
    cycles: List[Cycle] = field(default_factory=list)
    cycles_truncated: bool = False
    hubs: List[Hub] = field(default_factory=list)
    zones: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not (self.invalid_exits or self.orphans or self.unreachable)


def _edges(room_map: Mapping[str, Room]) -> Dict[str, List[str]]:
    return {
        room_id: [t for t in room.exits.values() if t in room_map]
        for room_id, room in room_map.items()
    }


def _reachable(graph: Mapping[str, List[str]], starts: Iterable[str]) -> Set[str]:
    seen: Set[str] = set()
    queue = deque(s for s in starts if s in graph)
    while queue:
        current = queue.popleft()
        if current in seen:
            continue
        seen.add(current)
        queue.extend(n for n in graph[current] if n not in seen)
    return seen


def _canonical(cycle: Sequence[str]) -> Tuple[str, ...]:
    pivot = cycle.index(min(cycle))
    return tuple(cycle[pivot:]) + tuple(cycle[:pivot])


def find_cycles(graph: Mapping[str, List[str]], limit: int = GRAPH_MAX_CYCLES) -> Tuple[List[Cycle], bool]:
    """Every simple cycle of the exit graph, each reported once.

    A cycle is walked only from its smallest room id, so the path-local
    search never reports the same loop twice. Returns the cycles (at most
    ``limit``) and whether the search was cut short.
    """
    found: Dict[Tuple[str, ...], Cycle] = {}
    for root in sorted(graph):
        path: List[str] = [root]
        on_path: Set[str] = {root}
        stack = [iter(dict.fromkeys(graph[root]))]
        while stack:
            nxt = next(stack[-1], None)
            if nxt is None:
                stack.pop()
                on_path.discard(path.pop())
                continue
            if nxt == root:
                key = _canonical(path)
                if key not in found:
                    found[key] = Cycle(key)
                    if len(found) >= limit:
                        return list(found.values()), True
            elif nxt > root and nxt not in on_path and nxt in graph:
                path.append(nxt)
                on_path.add(nxt)
                stack.append(iter(dict.fromkeys(graph[nxt])))
    return list(found.values()), False


def validate(
    room_map: Mapping[str, Room],
    start_rooms: Optional[Sequence[str]] = None,
    hub_threshold: int = GRAPH_HUB_THRESHOLD,
    max_cycles: int = GRAPH_MAX_CYCLES,
) -> GraphReport:
    """Analyze a room map without touching any runtime state."""
    starts = list(start_rooms if start_rooms is not None else GRAPH_START_ROOMS)
    report = GraphReport(room_count=len(room_map))
    report.start_rooms = [s for s in starts if s in room_map]
    report.missing_starts = [s for s in starts if s not in room_map]

    incoming: Dict[str, int] = {room_id: 0 for room_id in room_map}
    for room_id, room in room_map.items():
        if not room.exits:
            report.dead_ends.append(room_id)
        for direction, target in room.exits.items():
            if target not in room_map:
                report.invalid_exits.append(InvalidExit(room_id, direction, target))
            else:
                incoming[target] += 1
        report.zones.setdefault(room.zone or NO_ZONE, []).append(room_id)

    start_set = set(report.start_rooms)
    report.orphans = [r for r, count in incoming.items() if count == 0 and r not in start_set]

    graph = _edges(room_map)
    reached = _reachable(graph, report.start_rooms)
    report.unreachable = [r for r in room_map if r not in reached]

    report.cycles, report.cycles_truncated = find_cycles(graph, max_cycles)

    for room_id in room_map:
        hub = Hub(room_id, incoming[room_id], len(room_map[room_id].exits))
        if hub.degree >= hub_threshold:
            report.hubs.append(hub)
    report.hubs.sort(key=lambda h: (-h.degree, h.room_id))
    return report


validate_room_graph = validate


def validate_room_path(room_map: Mapping[str, Room], path: Sequence[str]) -> List[str]:
    """Check that ``path`` is a walkable route; returns the problems found."""
    issues: List[str] = []
    if not path:
        return ["Path is empty"]
    for room_id in path:
        if room_id not in room_map:
            issues.append(f"Room '{room_id}' does not exist")
    if issues:
        return issues
    for current, nxt in zip(path, path[1:]):
        if nxt not in room_map[current].exits.values():
            issues.append(f"No exit from '{current}' to '{nxt}'")
    return issues


def render_report(report: GraphReport) -> str:
    lines = ["# Room graph report", ""]
    lines.append(f"Rooms: {report.room_count}")
    lines.append(f"Start rooms: {', '.join(report.start_rooms) or '(none)'}")
    if report.missing_starts:
        lines.append(f"Missing start rooms: {', '.join(report.missing_starts)}")

    def section(title: str, entries: List[str], count: Optional[int] = None) -> None:
        lines.append("")
        lines.append(f"## {title} ({len(entries) if count is None else count})")
        lines.extend(f"- {e}" for e in entries)

    section("Invalid exits", [f"{e.room_id} --{e.direction}--> {e.target} (missing)" for e in report.invalid_exits])
    section("Orphan rooms", report.orphans)
    section("Dead ends", report.dead_ends)
    section("Unreachable rooms", report.unreachable)

    cycle_lines = [str(c) for c in report.cycles[:MAX_CYCLES_SHOWN]]
    if len(report.cycles) > MAX_CYCLES_SHOWN:
        cycle_lines.append(f"... and {len(report.cycles) - MAX_CYCLES_SHOWN} more")
    section("Cycles", cycle_lines, len(report.cycles))
    if report.cycles_truncated:
        lines.append("(cycle search stopped at the configured limit)")

    section("Hubs", [f"{h.room_id} (in {h.in_degree}, out {h.out_degree})" for h in report.hubs])
    section("Zones", [f"{zone}: {len(rooms)} room(s)" for zone, rooms in sorted(report.zones.items())])
    lines.append("")
    lines.append("Result: OK" if report.is_valid else "Result: FAILED")
    return "\n".join(lines)


def load_room_map(path: Path) -> Dict[str, Room]:
    with path.open("r", encoding="utf-8") as f:
        return build_room_map_from_dict(json.load(f))


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate the room graph of a world file.")
    parser.add_argument("rooms", nargs="?", default=str(DEFAULT_ROOMS_PATH), help="Path to rooms JSON file")
    parser.add_argument("--start", nargs="+", default=None, help="Start room ids (default from config)")
    parser.add_argument("--hub-threshold", type=int, default=GRAPH_HUB_THRESHOLD,
                        help="Minimum in+out degree for a hub")
    args = parser.parse_args(argv)

    path = Path(args.rooms)
    try:
        room_map = load_room_map(path)
    except FileNotFoundError:
        print(f"Rooms file not found: {path}", file=sys.stderr)
        return 2
    except (json.JSONDecodeError, jsonschema.ValidationError) as e:
        print(f"Invalid rooms file {path}: {getattr(e, 'message', e)}", file=sys.stderr)
        return 2

    report = validate(room_map, args.start, args.hub_threshold)
    print(render_report(report))
    return 0 if report.is_valid else 1


if __name__ == "__main__":
    sys.exit(main())
