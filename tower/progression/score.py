"""
Clear scores and the per-floor score table.

score = base_clear_bonus
      + time_weight * elapsed_seconds
      + kill_weight * total_kills
      + floor_weight * (floor_index + 1)

time_weight is negative, so slower clears score lower. The result is
floored and never below 0.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import Field

from tower.config import ScoreConfig
from tower_engine.core.component import Component

QUEST = "quest"
ARENA = "arena"


def normalize_mode(mode: Any) -> str:
    """Anything other than "arena" is a quest run."""
    return ARENA if mode == ARENA else QUEST


def calculate_score(
    elapsed_seconds: float,
    total_kills: int,
    floor_index: int,
    config: Optional[ScoreConfig] = None,
) -> int:
    config = config or ScoreConfig()
    raw = (
        config.base_clear_bonus
        + config.time_weight * elapsed_seconds
        + config.kill_weight * total_kills
        + config.floor_weight * (floor_index + 1)
    )
    return max(0, math.floor(raw))


class ScoreEntry(Component):
    """One recorded clear."""
    ts: int = 0
    floor_index: int = 0
    score: int = 0
    elapsed_seconds: int = 0
    total_kills: int = 0
    deaths: int = 0
    mode: str = QUEST

    def sort_key(self) -> tuple[int, int, int, int]:
        """Score desc, time asc, kills desc, deaths asc."""
        return (-self.score, self.elapsed_seconds, -self.total_kills, self.deaths)

    @property
    def stamp(self) -> str:
        """Identity of a result, used to avoid recording it twice."""
        return (
            f"{self.floor_index}-{self.elapsed_seconds}-{self.total_kills}"
            f"-{self.deaths}-{self.score}"
        )


class ScoreTable(Component):
    """Top scores per (floor, mode)."""
    size: int = 30
    tables: dict[str, list[ScoreEntry]] = Field(default_factory=dict)

    @staticmethod
    def key(floor_index: int, mode: str) -> str:
        return f"{floor_index}-{normalize_mode(mode)}"

    def record(self, entry: ScoreEntry) -> int:
        """
        Insert an entry and trim its table.

        Returns:
            1-based rank of the entry, or 0 if it fell off the table
        """
        key = self.key(entry.floor_index, entry.mode)
        entries = list(self.tables.get(key, []))
        entries.append(entry)
        entries.sort(key=ScoreEntry.sort_key)
        entries = entries[:self.size]
        self.tables[key] = entries
        for rank, kept in enumerate(entries, start=1):
            if kept is entry:
                return rank
        return 0

    def list_by_floor(self, floor_index: int, mode: str) -> list[ScoreEntry]:
        return list(self.tables.get(self.key(floor_index, mode), []))[:self.size]
