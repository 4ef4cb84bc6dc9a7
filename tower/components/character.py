"""
Character components - stat block and leveling state.
"""

from __future__ import annotations

from pydantic import Field

from tower_engine.core.component import Component

STAT_KEYS: tuple[str, ...] = ("hp", "atk", "def", "spd")


class StatBlock(Component):
    """
    The four persistent character stats.

    "def" is a Python keyword, so the field is named ``defense`` and
    serialized under its "def" alias.

    Attributes:
        hp: Maximum hit points
        atk: Attack power, feeds damage and penalty size
        defense: Subtracted from incoming enemy attacks
        spd: Speed, feeds the damage resolver (and enemy recovery time)
    """
    hp: int = 100
    atk: int = 15
    defense: int = Field(default=5, alias="def")
    spd: int = 5

    def get(self, key: str) -> int:
        """Read a stat by its save-file key (hp/atk/def/spd)."""
        return getattr(self, _attr(key))

    def set(self, key: str, value: int) -> None:
        """Write a stat by its save-file key."""
        setattr(self, _attr(key), value)


def _attr(key: str) -> str:
    if key not in STAT_KEYS:
        raise KeyError(f"Unknown stat: {key}")
    return "defense" if key == "def" else key


class ProgressionState(Component):
    """
    Player leveling state.

    Attributes:
        level: Current level (>= 1)
        experience: XP carried toward the next level
        next_level_threshold: XP needed for the next level
        battle_points: Unspent allocation currency
        stats: Persistent stat totals (stats.hp is max HP)
        current_hp: HP inside the current battle
    """
    level: int = Field(default=1, ge=1)
    experience: int = Field(default=0, ge=0)
    next_level_threshold: int = 50
    battle_points: int = Field(default=0, ge=0)
    stats: StatBlock = Field(default_factory=StatBlock)
    current_hp: int = 100

    @property
    def max_hp(self) -> int:
        return self.stats.hp

    @property
    def is_dead(self) -> bool:
        return self.current_hp <= 0

    def restore_hp(self) -> None:
        """Refill HP to max."""
        self.current_hp = self.stats.hp
