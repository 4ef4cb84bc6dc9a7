"""
Encounter gate - the fight/flee decision point between map and battle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional

from tower.config import BattleConfig
from tower.world.grid import EventId
from tower.world.respawn import EligibilityStatus, RespawnLedger
from tower_engine.core.clock import RunClock
from tower_engine.core.events import EventBus
from tower_engine.resources.database import Database

logger = logging.getLogger(__name__)


class EncounterEvent(Enum):
    """Events published by the EncounterGate."""
    DECISION_REQUIRED = auto()  # encounter
    COOLING = auto()            # event_id, remaining_ms
    EXHAUSTED = auto()          # event_id
    FIGHT = auto()              # encounter
    FLED = auto()               # encounter
    FLEE_REJECTED = auto()      # encounter
    MESSAGE = auto()            # text


@dataclass
class Encounter:
    """An encounter waiting for the player's decision."""
    floor_index: int
    event_id: EventId
    title: str
    enemy_name: str
    enemy_count: int
    is_boss: bool
    stage: dict[str, Any] = field(default_factory=dict)

    @property
    def can_flee(self) -> bool:
        return not self.is_boss


class EncounterGate:
    """
    Turns ENTER_EVENT cells into fight/flee decisions.

    The respawn ledger is consulted first; cooling or exhausted
    encounters only produce a message.
    """

    def __init__(
        self,
        database: Database,
        ledger: RespawnLedger,
        events: EventBus,
        clock: Optional[RunClock] = None,
        battle_config: Optional[BattleConfig] = None,
    ):
        self.database = database
        self.ledger = ledger
        self.events = events
        self.clock = clock or RunClock()
        self.battle_config = battle_config or BattleConfig()
        self.pending: Optional[Encounter] = None

    def enter(self, floor_index: int, event_id: EventId) -> Optional[Encounter]:
        """
        Handle the player stepping onto an event cell.

        Returns:
            The pending Encounter, or None when nothing appears
        """
        eligibility = self.ledger.check_eligibility(
            floor_index, event_id, self.clock.now_ms()
        )
        if eligibility.status == EligibilityStatus.COOLING:
            self._message(
                f"A dark haze lingers. Nothing will appear for "
                f"{eligibility.remaining_seconds} more seconds."
            )
            self.events.publish(
                EncounterEvent.COOLING,
                event_id=event_id,
                remaining_ms=eligibility.remaining_ms,
            )
            return None
        if eligibility.status == EligibilityStatus.EXHAUSTED:
            self._message("Nothing remains here. It is gone for good.")
            self.events.publish(EncounterEvent.EXHAUSTED, event_id=event_id)
            return None

        encounter = self.build_encounter(floor_index, event_id)
        self.pending = encounter
        self.events.publish(EncounterEvent.DECISION_REQUIRED, encounter=encounter)
        return encounter

    def build_encounter(self, floor_index: int, event_id: EventId) -> Encounter:
        if self.database.stages:
            roster = self.database.get_stage_floor(floor_index)
            stage = self.database.find_stage(floor_index, event_id) or {}
        else:
            roster, stage = {}, {}
        enemies = stage.get('enemies', [])
        enemy_name = enemies[0].get('name', '???') if enemies else '???'
        title = stage.get('title') or roster.get('floor') or f"Stage {event_id}"
        return Encounter(
            floor_index=floor_index,
            event_id=event_id,
            title=title,
            enemy_name=enemy_name,
            enemy_count=len(enemies),
            is_boss=self.battle_config.is_boss(enemy_name),
            stage=stage,
        )

    def fight(self) -> Optional[Encounter]:
        """Accept the pending encounter."""
        encounter = self.pending
        if encounter is None:
            return None
        self.pending = None
        self.events.publish(EncounterEvent.FIGHT, encounter=encounter)
        return encounter

    def flee(self) -> bool:
        """
        Decline the pending encounter.

        Returns:
            False when there is nothing pending or the enemy is a boss
        """
        encounter = self.pending
        if encounter is None:
            return False
        if encounter.is_boss:
            self._message(
                f"{encounter.enemy_name}'s overwhelming aura holds you in place!"
            )
            self.events.publish(EncounterEvent.FLEE_REJECTED, encounter=encounter)
            return False

        self.pending = None
        self._message(f"Escaped from {encounter.enemy_name}.")
        self.events.publish(EncounterEvent.FLED, encounter=encounter)
        return True

    def _message(self, text: str) -> None:
        logger.info(text)
        self.events.publish(EncounterEvent.MESSAGE, text=text)
