"""
Run module - run state, difficulties, arena roster and flow control.
"""

from tower.run.context import (
    RunContext,
    RunSettings,
    RadarSize,
    new_player,
    RELATIVE,
    ABSOLUTE,
)
from tower.run.difficulty import Difficulty, difficulty_list, find_difficulty
from tower.run.arena import ArenaEntry, arena_entries, arena_entry_at
from tower.run.controller import RunController, RunEvent, RunResult, RunScreen

__all__ = [
    "RunContext",
    "RunSettings",
    "RadarSize",
    "new_player",
    "RELATIVE",
    "ABSOLUTE",
    "Difficulty",
    "difficulty_list",
    "find_difficulty",
    "ArenaEntry",
    "arena_entries",
    "arena_entry_at",
    "RunController",
    "RunEvent",
    "RunResult",
    "RunScreen",
]
