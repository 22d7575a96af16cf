"""Shared fixtures: a small test world, a scripted RNG and fake clocks."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from ifengine.core.persistence import MemoryStore
from ifengine.core.registry import ContentRegistry
from ifengine.core.session import GameSession
from ifengine.core.state import PlayerState, WorldState
from ifengine.core.world import build_items_from_list, build_npcs_from_list, build_room_map_from_dict
from ifengine.quest.loader import build_miniquests


class ScriptedRandom:
    """RandomSource replaying queued values; falls back to ``default`` (a miss)."""

    def __init__(self, values=(), default=0.99):
        self.values = list(values)
        self.default = default

    def push(self, *values):
        self.values.extend(values)

    def random(self):
        return self.values.pop(0) if self.values else self.default

    def uniform(self, a, b):
        return a + (b - a) * self.random()

    def randint(self, a, b):
        return a

    def shuffle(self, x):
        pass

    def choice(self, seq):
        return seq[0]


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


ROOMS = {
    "rooms": [
        {
            "id": "start",
            "title": "Start",
            "description": "A quiet starting point.",
            "flags": ["safe"],
            "exits": {"north": "hall"},
        },
        {
            "id": "hall",
            "title": "Hall",
            "description": "A long hall with a bell.",
            "items": ["lamp"],
            "npcs": ["keeper"],
            "exits": {"south": "start", "east": "vault", "west": "glade", "down": "pit"},
            "interactions": {
                "ring bell": {"message": "The bell tolls.", "set_flag": "heard_song"},
            },
        },
        {
            "id": "vault",
            "title": "Vault",
            "description": "Cold stone walls.",
            "items": ["coin", "coin"],
            "exits": {"west": "hall"},
        },
        {
            "id": "glade",
            "title": "Glade",
            "description": "Echoes bounce between the trees.",
            "exits": {"east": "hall"},
            "on_enter": [{"message": "Birdsong.", "delay": 5}],
            "on_exit": [{"message": "The trees rustle behind you.", "set_flag": "left_glade"}],
        },
        {
            "id": "pit",
            "title": "Pit",
            "description": "A dark hole.",
            "exits": {"up": "hall"},
        },
    ]
}

ITEMS = [
    {"id": "lamp", "name": "lamp", "description": "A brass lamp.", "use_message": "The lamp flickers on."},
    {"id": "coin", "name": "coin", "stackable": True},
    {"id": "trap_detector", "name": "trap detector"},
    {"id": "thieves_tools", "name": "thieves tools"},
]

NPCS = [{"id": "keeper", "name": "Keeper", "description": "An old keeper of the hall."}]

TRAPS = [
    {
        "id": "vault_blades",
        "room_id": "vault",
        "type": "mechanical",
        "severity": "moderate",
        "description": "Blades swing from the walls!",
        "damage": 10,
        "fuse": 5,
    },
    {
        "id": "pit_drop",
        "room_id": "pit",
        "type": "environmental",
        "severity": "severe",
        "description": "The floor vanishes!",
        "disarmable": False,
        "effect": {"kind": "teleport", "teleport_to": "start"},
    },
]

QUESTS = [
    {
        "id": "riddle",
        "room_id": "glade",
        "title": "Riddle of Echoes",
        "description": "The trees ask a riddle.",
        "type": "puzzle",
        "trigger_action": "solve riddle",
        "difficulty": "medium",
        "reward_points": 20,
        "hint": "Think of echoes.",
    },
    {
        "id": "chant",
        "room_id": "glade",
        "title": "Chant with the Trees",
        "type": "exploration",
        "trigger_action": "chant softly",
        "required_flags": ["heard_song"],
        "difficulty": "easy",
        "reward_points": 5,
    },
]


def make_content(traps=None, quests=None, flags=None) -> ContentRegistry:
    rooms = build_room_map_from_dict(ROOMS)
    return ContentRegistry(
        rooms,
        build_items_from_list(ITEMS),
        build_npcs_from_list(NPCS),
        quests=build_miniquests(QUESTS if quests is None else quests),
        trap_definitions=TRAPS if traps is None else traps,
        flag_declarations=flags if flags is not None else {"initial": ["game_started"]},
    )


@pytest.fixture
def rng():
    return ScriptedRandom()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def content():
    return make_content()


@pytest.fixture
def make_session(rng, clock, content):
    """Factory for a started session in the test world."""

    def _make(inventory=(), traits=(), start="start", **kwargs):
        initial = WorldState(
            current_room_id=start,
            player=PlayerState(name="Tester", inventory=tuple(inventory), traits=frozenset(traits)),
            room_items={room.id: tuple(room.items) for room in content.rooms.values()},
        )
        session = GameSession(
            content,
            initial,
            rng=rng,
            persistence=kwargs.pop("persistence", MemoryStore()),
            flag_clock=clock,
            task_clock=clock,
            **kwargs,
        )
        session.start()
        return session

    return _make


@pytest.fixture
def session(make_session):
    return make_session()
