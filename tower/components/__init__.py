"""
Tower Components - Data-only component definitions.

All components are Pydantic models containing only data.
Logic lives in the owning systems, not in components.
"""

from tower.components.transform import (
    Facing,
    RelativeMove,
    GridPosition,
    NavigatorState,
    SavedFloorPosition,
)
from tower.components.character import (
    STAT_KEYS,
    StatBlock,
    ProgressionState,
)
from tower.components.encounter import (
    EncounterRecord,
    FloorState,
)

__all__ = [
    # Transform
    "Facing",
    "RelativeMove",
    "GridPosition",
    "NavigatorState",
    "SavedFloorPosition",
    # Character
    "STAT_KEYS",
    "StatBlock",
    "ProgressionState",
    # Encounter
    "EncounterRecord",
    "FloorState",
]
