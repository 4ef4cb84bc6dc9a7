"""
Damage resolution for solved cards.

The session calls a resolver with a fixed contract and layers the
chain bonus and paralysis duration on top of whatever it returns. Any
callable with the DamageResolver signature can be swapped in.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Protocol

from tower.battle.cards import Card
from tower.battle.enemy import Enemy
from tower.config import DamageConfig


@dataclass(frozen=True)
class AttackerStats:
    """The attacker stats a resolver may look at."""
    atk: int
    spd: int


@dataclass(frozen=True)
class ParalysisInfo:
    is_paralyzed: bool = False
    chance: float = 0.0


@dataclass(frozen=True)
class DamageResult:
    """Result of resolving one solved card."""
    damage: int
    is_ultimate: bool = False
    star_consumed: int = 0
    paralysis: ParalysisInfo = field(default_factory=ParalysisInfo)


class DamageResolver(Protocol):
    def __call__(
        self,
        attacker: AttackerStats,
        card: Card,
        target: Enemy,
        combo: int,
        star_pool: int,
        config: DamageConfig,
    ) -> DamageResult:
        ...


class StandardDamageResolver:
    """
    Default damage curve.

    damage = max(1, atk * power(rank)% - def * defense_factor)
             * variance roll
             * (1 + combo_multiplier * (combo - 1))
             * ultimate_multiplier when the star pool is full
    """

    def __init__(self, rng: random.Random):
        self.rng = rng

    def __call__(
        self,
        attacker: AttackerStats,
        card: Card,
        target: Enemy,
        combo: int,
        star_pool: int,
        config: DamageConfig,
    ) -> DamageResult:
        power = config.power_for_rank(card.rank)
        base = max(1.0, attacker.atk * power / 100 - target.defense * config.defense_factor)

        # Random variance (default 90-110%)
        damage = base * self.rng.uniform(1 - config.variance, 1 + config.variance)

        if combo > 1:
            damage *= 1 + config.combo_multiplier * (combo - 1)

        threshold = config.ultimate_star_threshold
        is_ultimate = threshold > 0 and star_pool >= threshold
        if is_ultimate:
            damage *= config.ultimate_multiplier

        return DamageResult(
            damage=max(1, int(damage)),
            is_ultimate=is_ultimate,
            star_consumed=threshold if is_ultimate else 0,
            paralysis=self._roll_paralysis(attacker, card, config),
        )

    def _roll_paralysis(
        self,
        attacker: AttackerStats,
        card: Card,
        config: DamageConfig,
    ) -> ParalysisInfo:
        chance = (
            config.paralysis_base_chance
            + config.paralysis_rank_bonus * (card.rank - 1)
            + config.paralysis_speed_bonus * max(0, attacker.spd)
        )
        chance = max(0.0, min(config.paralysis_max_chance, chance))
        return ParalysisInfo(is_paralyzed=self.rng.random() < chance, chance=chance)
