"""
Leveling - experience, level-ups and battle point allocation.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Any, Optional

from tower.components.character import STAT_KEYS, ProgressionState, StatBlock
from tower.config import ProgressionConfig
from tower_engine.core.events import EventBus

logger = logging.getLogger(__name__)


class ProgressionEvent(Enum):
    """Events published by the ProgressionSystem."""
    EXPERIENCE_GAINED = auto()   # amount, experience
    LEVEL_UP = auto()            # level, battle_points
    ALLOCATION_OPENED = auto()   # battle_points, increments
    STAT_ALLOCATED = auto()      # stat, value, battle_points
    STAT_REFUNDED = auto()       # stat, value, battle_points
    ALLOCATION_CLOSED = auto()   # stats


class ProgressionSystem:
    """
    Applies experience to a ProgressionState and runs the allocation step.

    Each level-up grants battle points and opens an allocation step. A
    point buys one application of the grade's increment for a stat, and
    can be refunded down to the stats the step was opened with.
    """

    def __init__(
        self,
        state: ProgressionState,
        events: EventBus,
        config: Optional[ProgressionConfig] = None,
        grade_name: str = "",
    ):
        self.state = state
        self.events = events
        self.config = config or ProgressionConfig()
        self.increment: StatBlock = self.config.increment_for(grade_name)
        self._baseline: Optional[StatBlock] = None

    @property
    def allocation_open(self) -> bool:
        return self._baseline is not None

    @property
    def baseline(self) -> Optional[StatBlock]:
        return self._baseline

    def gain_experience(self, amount: int) -> int:
        """
        Add experience and apply every level-up it pays for.

        Args:
            amount: XP to add (negative amounts are ignored)

        Returns:
            Number of levels gained
        """
        state = self.state
        state.experience += max(0, int(amount))
        self.events.publish(
            ProgressionEvent.EXPERIENCE_GAINED,
            amount=amount,
            experience=state.experience,
        )

        levels_gained = 0
        while state.experience >= state.next_level_threshold:
            if state.next_level_threshold <= 0:
                # A non-positive curve would loop forever
                logger.warning(f"Invalid level threshold {state.next_level_threshold}")
                break
            state.level += 1
            state.battle_points += self.config.points_per_level
            state.experience -= state.next_level_threshold
            state.next_level_threshold = self.config.threshold_for(state.level)
            state.restore_hp()
            levels_gained += 1

            logger.info(f"Level up! Now level {state.level}")
            self.events.publish(
                ProgressionEvent.LEVEL_UP,
                level=state.level,
                battle_points=state.battle_points,
            )
            self.open_allocation()

        return levels_gained

    def open_allocation(self) -> None:
        """Open an allocation step anchored at the current stats."""
        self._baseline = self.state.stats.clone()
        self.events.publish(
            ProgressionEvent.ALLOCATION_OPENED,
            battle_points=self.state.battle_points,
            increments=self.increment.to_dict(),
        )

    def allocate(self, stat: str) -> bool:
        """Spend one battle point on a stat."""
        if not self.allocation_open or self.state.battle_points <= 0:
            return False
        if stat not in STAT_KEYS:
            return False

        step = self.increment.get(stat)
        stats = self.state.stats
        self.state.battle_points -= 1
        stats.set(stat, stats.get(stat) + step)
        if stat == "hp":
            self.state.current_hp += step

        self.events.publish(
            ProgressionEvent.STAT_ALLOCATED,
            stat=stat,
            value=stats.get(stat),
            battle_points=self.state.battle_points,
        )
        return True

    def refund(self, stat: str) -> bool:
        """Return one point from a stat; never drops below the baseline."""
        if not self.allocation_open or stat not in STAT_KEYS:
            return False

        stats = self.state.stats
        step = self.increment.get(stat)
        if stats.get(stat) <= self._baseline.get(stat):
            return False

        self.state.battle_points += 1
        stats.set(stat, stats.get(stat) - step)
        if stat == "hp":
            self.state.current_hp = max(0, self.state.current_hp - step)

        self.events.publish(
            ProgressionEvent.STAT_REFUNDED,
            stat=stat,
            value=stats.get(stat),
            battle_points=self.state.battle_points,
        )
        return True

    def close_allocation(self) -> bool:
        """
        Commit the allocation step.

        Returns:
            False while battle points remain unspent
        """
        if self.state.battle_points > 0:
            return False
        self._baseline = None
        self.events.publish(
            ProgressionEvent.ALLOCATION_CLOSED,
            stats=self.state.stats.to_dict(),
        )
        return True

    def snapshot(self) -> dict[str, Any]:
        return {
            'level': self.state.level,
            'experience': self.state.experience,
            'next_level_threshold': self.state.next_level_threshold,
            'battle_points': self.state.battle_points,
            'stats': self.state.stats.to_dict(),
            'current_hp': self.state.current_hp,
            'allocation_open': self.allocation_open,
            'increments': self.increment.to_dict(),
        }
