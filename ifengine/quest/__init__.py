"""Miniquest package for ifengine."""

from .model import Miniquest, QuestAttempt, RoomProgress, QuestStatus
from .loader import load_miniquests, build_miniquests
from .runtime import QuestSubsystem
from .commands import register_quest_commands, intercept_quest_trigger

__all__ = [
    'Miniquest', 'QuestAttempt', 'RoomProgress', 'QuestStatus',
    'load_miniquests', 'build_miniquests',
    'QuestSubsystem',
    'register_quest_commands', 'intercept_quest_trigger',
]
