"""
Battle module - real-time arithmetic card combat.

Provides:
- Card dealing (operators, ranks, problem generators)
- Damage resolution (combo, ultimate, paralysis)
- Enemy state and recovery timers
- The combat session state machine
"""

from tower.battle.cards import (
    Card,
    CardDealer,
    OPERATORS,
    RANK_WEIGHTS,
    range_problem,
    weighted_pick,
)
from tower.battle.damage import (
    AttackerStats,
    DamageResolver,
    DamageResult,
    ParalysisInfo,
    StandardDamageResolver,
)
from tower.battle.enemy import Enemy, resolve_stat
from tower.battle.session import (
    CombatSession,
    BattlePhase,
    BattleEvent,
    WIN,
    LOSE,
)

__all__ = [
    # Cards
    "Card",
    "CardDealer",
    "OPERATORS",
    "RANK_WEIGHTS",
    "range_problem",
    "weighted_pick",
    # Damage
    "AttackerStats",
    "DamageResolver",
    "DamageResult",
    "ParalysisInfo",
    "StandardDamageResolver",
    # Enemies
    "Enemy",
    "resolve_stat",
    # Session
    "CombatSession",
    "BattlePhase",
    "BattleEvent",
    "WIN",
    "LOSE",
]
