"""
Encounter components - respawn records and per-floor state.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator

from tower.components.transform import GridPosition
from tower_engine.core.component import Component


class EncounterRecord(Component):
    """
    Defeat record for one encounter cell.

    Attributes:
        defeated_at: Run clock time of the last victory (ms)
        respawn_delay_ms: Cooldown before the encounter can return
        respawn_limit: How many times it may return
        respawn_count: Returns consumed so far
    """
    defeated_at: int = 0
    respawn_delay_ms: int = 30000
    respawn_limit: int = Field(default=3, ge=0)
    respawn_count: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _clamp_count(self) -> EncounterRecord:
        if self.respawn_count > self.respawn_limit:
            # Bypass validate_assignment recursion
            object.__setattr__(self, "respawn_count", self.respawn_limit)
        return self

    @property
    def exhausted(self) -> bool:
        return self.respawn_count >= self.respawn_limit


class FloorState(Component):
    """
    Persisted state of one floor.

    Attributes:
        steps: Cells walked on the floor
        position: Last player cell (None = start marker)
        defeated: event_id -> defeat record
        cleared: Event ids gone for good (beaten bosses)
    """
    steps: int = Field(default=0, ge=0)
    position: Optional[GridPosition] = None
    defeated: dict[str, EncounterRecord] = Field(default_factory=dict)
    cleared: list[str] = Field(default_factory=list)
