"""
Battle enemies - stage rosters turned into live combatants.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Any

MS_PER_SECOND = 1000


def resolve_stat(value: Any, rng: random.Random) -> int:
    """
    Resolve a stat that is either fixed or a [min, max] range.

    Ranges are drawn once, uniformly and inclusively.
    """
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            return int(value[0]) if value else 0
        lo, hi = int(value[0]), int(value[1])
        return rng.randint(min(lo, hi), max(lo, hi))
    if value is None:
        return 0
    return int(value)


@dataclass
class Enemy:
    """
    A live enemy inside one battle.

    Timers are kept in milliseconds; speed is seconds between attacks.
    """
    name: str
    max_hp: int
    current_hp: int
    atk: int
    defense: int
    spd: int
    exp: int

    recovery_ms: int = 0
    paralyzed: bool = False
    paralysis_ms: int = 0
    paralysis_chain_count: int = 0
    defeated: bool = False
    hidden: bool = False

    @classmethod
    def from_data(cls, data: dict[str, Any], rng: random.Random) -> Enemy:
        hp = max(0, resolve_stat(data.get('hp'), rng))
        spd = resolve_stat(data.get('spd'), rng)
        return cls(
            name=str(data.get('name', '???')),
            max_hp=hp,
            current_hp=hp,
            atk=resolve_stat(data.get('atk'), rng),
            defense=resolve_stat(data.get('def'), rng),
            spd=spd,
            exp=resolve_stat(data.get('exp'), rng),
            recovery_ms=spd * MS_PER_SECOND,
        )

    @property
    def is_alive(self) -> bool:
        return self.current_hp > 0

    @property
    def is_targetable(self) -> bool:
        return self.is_alive and not self.defeated and not self.hidden

    @property
    def recovery_period_ms(self) -> int:
        return self.spd * MS_PER_SECOND

    def take_damage(self, amount: int) -> int:
        """Apply damage; hp never goes below 0. Returns hp removed."""
        dealt = min(self.current_hp, max(0, amount))
        self.current_hp -= dealt
        return dealt

    def paralyze(self, duration_s: int) -> None:
        self.paralyzed = True
        self.paralysis_ms = duration_s * MS_PER_SECOND
        self.paralysis_chain_count += 1

    def snapshot(self) -> Enemy:
        """Detached copy handed to damage resolvers."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'max_hp': self.max_hp,
            'current_hp': self.current_hp,
            'atk': self.atk,
            'def': self.defense,
            'spd': self.spd,
            'recovery_ms': self.recovery_ms,
            'paralyzed': self.paralyzed,
            'paralysis_ms': self.paralysis_ms,
            'defeated': self.defeated,
            'hidden': self.hidden,
        }
