"""
Arena roster - every enemy of every stage, fought one at a time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from tower_engine.resources.database import Database


@dataclass(frozen=True)
class ArenaEntry:
    """One arena bout: a single enemy taken from a stage roster."""
    floor_index: int
    stage_id: Any
    enemy_index: int
    enemy: dict[str, Any]


def arena_entries(database: Database) -> list[ArenaEntry]:
    """Flat list in floor, stage and roster order."""
    entries: list[ArenaEntry] = []
    for position, roster in enumerate(database.stage_floor_list()):
        floor_index = int(roster.get('index', position))
        for stage in roster.get('stages', []):
            for enemy_index, enemy in enumerate(stage.get('enemies', [])):
                entries.append(ArenaEntry(
                    floor_index=floor_index,
                    stage_id=stage.get('id'),
                    enemy_index=enemy_index,
                    enemy=dict(enemy),
                ))
    return entries


def arena_entry_at(database: Database, index: int) -> Optional[ArenaEntry]:
    entries = arena_entries(database)
    if 0 <= index < len(entries):
        return entries[index]
    return None
