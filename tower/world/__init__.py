"""
World module - floor layout, navigation and encounters.
"""

from tower.world.grid import (
    GridLayout,
    Cell,
    CellKind,
    EventId,
    normalize_event_id,
)
from tower.world.navigator import (
    Navigator,
    NavigatorEvent,
    MovePhase,
    RadarCell,
)
from tower.world.respawn import (
    RespawnLedger,
    Eligibility,
    EligibilityStatus,
)
from tower.world.encounter import (
    EncounterGate,
    Encounter,
    EncounterEvent,
)

__all__ = [
    "GridLayout",
    "Cell",
    "CellKind",
    "EventId",
    "normalize_event_id",
    "Navigator",
    "NavigatorEvent",
    "MovePhase",
    "RadarCell",
    "RespawnLedger",
    "Eligibility",
    "EligibilityStatus",
    "EncounterGate",
    "Encounter",
    "EncounterEvent",
]
