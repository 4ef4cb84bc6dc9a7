"""
Respawn ledger - tracks defeated encounters per floor.

A non-boss encounter that has been beaten goes quiet for a cooldown,
then may return a limited number of times before it is gone for good.
Boss encounters are never recorded.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from tower.components.encounter import EncounterRecord, FloorState
from tower.config import RespawnConfig
from tower.world.grid import EventId

logger = logging.getLogger(__name__)


class EligibilityStatus(Enum):
    """Outcome of an encounter eligibility check."""
    FRESH = auto()      # never beaten
    COOLING = auto()    # beaten recently
    EXHAUSTED = auto()  # no respawns left
    ELIGIBLE = auto()   # cooldown over; one respawn consumed


@dataclass(frozen=True)
class Eligibility:
    status: EligibilityStatus
    remaining_ms: int = 0

    @property
    def can_encounter(self) -> bool:
        return self.status in (EligibilityStatus.FRESH, EligibilityStatus.ELIGIBLE)

    @property
    def remaining_seconds(self) -> int:
        """Remaining cooldown rounded up to whole seconds."""
        return math.ceil(self.remaining_ms / 1000)


class RespawnLedger:
    """
    Defeat records keyed by floor index and event id.

    The ledger writes into the run's floor states, so the records are
    saved with the rest of the run.
    """

    def __init__(
        self,
        floor_states: dict[int, FloorState],
        config: Optional[RespawnConfig] = None,
    ):
        self._floors = floor_states
        self.config = config or RespawnConfig()

    def floor(self, floor_index: int) -> FloorState:
        """Floor state for an index, created on first use."""
        if floor_index not in self._floors:
            self._floors[floor_index] = FloorState()
        return self._floors[floor_index]

    def get_record(self, floor_index: int, event_id: EventId) -> Optional[EncounterRecord]:
        state = self._floors.get(floor_index)
        if state is None:
            return None
        return state.defeated.get(str(event_id))

    def check_eligibility(self, floor_index: int, event_id: EventId, now_ms: int) -> Eligibility:
        """
        Decide whether an encounter can happen now.

        An ELIGIBLE result consumes one respawn.
        """
        record = self.get_record(floor_index, event_id)
        if record is None:
            return Eligibility(EligibilityStatus.FRESH)

        if record.exhausted:
            return Eligibility(EligibilityStatus.EXHAUSTED)

        elapsed = now_ms - record.defeated_at
        if elapsed < record.respawn_delay_ms:
            return Eligibility(
                EligibilityStatus.COOLING,
                remaining_ms=record.respawn_delay_ms - elapsed,
            )

        record.respawn_count = min(record.respawn_count + 1, record.respawn_limit)
        logger.debug(
            f"Encounter {event_id} on floor {floor_index} respawned "
            f"({record.respawn_count}/{record.respawn_limit})"
        )
        return Eligibility(EligibilityStatus.ELIGIBLE)

    def record_defeat(
        self,
        floor_index: int,
        event_id: EventId,
        now_ms: int,
        config: Optional[RespawnConfig] = None,
    ) -> EncounterRecord:
        """Create or overwrite the defeat record for an encounter."""
        config = config or self.config
        record = EncounterRecord(
            defeated_at=now_ms,
            respawn_delay_ms=config.delay_ms,
            respawn_limit=max(0, config.limit),
            respawn_count=0,
        )
        self.floor(floor_index).defeated[str(event_id)] = record
        logger.debug(f"Recorded defeat of {event_id} on floor {floor_index}")
        return record
