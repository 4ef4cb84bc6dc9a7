"""
Progression module - leveling and scores.
"""

from tower.progression.leveling import ProgressionSystem, ProgressionEvent
from tower.progression.score import (
    ScoreEntry,
    ScoreTable,
    calculate_score,
    normalize_mode,
    QUEST,
    ARENA,
)

__all__ = [
    "ProgressionSystem",
    "ProgressionEvent",
    "ScoreEntry",
    "ScoreTable",
    "calculate_score",
    "normalize_mode",
    "QUEST",
    "ARENA",
]
