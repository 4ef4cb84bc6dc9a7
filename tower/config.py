"""
Game configuration.

Tunables for damage, respawn, scoring, battle pacing, leveling and
movement timing. Values are validated when the settings are loaded;
unknown keys are ignored.

Usage:
    settings = GameSettings.from_file("settings.json")
    resolver = StandardDamageResolver(settings.damage, rng)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tower.components.character import StatBlock


class _Config(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True)


class DamageConfig(_Config):
    """
    Damage curve used by the standard resolver.

    The base curve follows the usual attack-vs-defense shape:
    ``max(1, atk * rank_power% - def * defense_factor)`` with a uniform
    variance roll, then the combo bonus and the ultimate multiplier.
    """
    combo_multiplier: float = 0.1
    ultimate_star_threshold: int = 30
    ultimate_multiplier: float = 3.0
    chain_threshold: int = 5
    chain_damage_multiplier: float = 2.0
    paralysis_duration: int = 5  # seconds

    rank_power: list[int] = Field(default_factory=lambda: [100, 125, 150, 200, 250])
    defense_factor: float = 0.5
    variance: float = 0.1

    paralysis_base_chance: float = 0.05
    paralysis_rank_bonus: float = 0.05
    paralysis_speed_bonus: float = 0.005
    paralysis_max_chance: float = 0.5

    def power_for_rank(self, rank: int) -> int:
        """Damage percentage for a card rank (clamped to the table)."""
        if not self.rank_power:
            return 100
        index = min(max(rank, 1), len(self.rank_power)) - 1
        return self.rank_power[index]


class RespawnConfig(_Config):
    """Encounter respawn rules."""
    delay_ms: int = 30000
    limit: int = 3


class ScoreConfig(_Config):
    """Clear-score weights."""
    time_weight: float = -1.0
    kill_weight: float = 100.0
    floor_weight: float = 500.0
    base_clear_bonus: float = 2000.0
    table_size: int = 30


class BattleConfig(_Config):
    """Battle pacing and card dealing."""
    tick_ms: int = 100
    hand_size: int = 5
    max_misses: int = 3
    penalty_ratio: float = 0.5
    min_penalty: int = 5
    defeat_display_ms: int = 1500
    rank_weights: list[float] = Field(
        default_factory=lambda: [0.40, 0.30, 0.15, 0.10, 0.05]
    )
    boss_markers: list[str] = Field(default_factory=lambda: ["BOSS", "ボス"])

    def penalty_for(self, atk: int) -> int:
        """Penalty damage for a discard or a failed card."""
        return max(self.min_penalty, int(atk * self.penalty_ratio))

    def is_boss(self, name: str) -> bool:
        return any(marker in name for marker in self.boss_markers)


def _default_increments() -> dict[str, StatBlock]:
    return {
        "初級": StatBlock(hp=40, atk=6, defense=6, spd=3),
        "中級": StatBlock(hp=35, atk=5, defense=5, spd=2),
        "上級": StatBlock(hp=30, atk=4, defense=4, spd=2),
        "超級": StatBlock(hp=25, atk=3, defense=3, spd=1),
        "極級": StatBlock(hp=20, atk=2, defense=2, spd=1),
    }


class ProgressionConfig(_Config):
    """Leveling curve and stat allocation increments."""
    exp_per_level: int = 50
    points_per_level: int = 5
    increments: dict[str, StatBlock] = Field(default_factory=_default_increments)
    fallback_increment: StatBlock = Field(
        default_factory=lambda: StatBlock(hp=20, atk=2, defense=2, spd=1)
    )
    starting_stats: StatBlock = Field(default_factory=StatBlock)

    def increment_for(self, grade_name: str) -> StatBlock:
        """Per-point increments for a grade, by its display name."""
        return self.increments.get(grade_name, self.fallback_increment)

    def threshold_for(self, level: int) -> int:
        return level * self.exp_per_level


class NavigatorTiming(_Config):
    """Movement animation phase lengths in milliseconds."""
    turn_ms: int = 300
    lunge_ms: int = 150
    recover_ms: int = 150
    step_ms: int = 100

    @property
    def move_windup_ms(self) -> int:
        """Turn plus the lunge/recover bounce that precedes walking."""
        return self.turn_ms + self.lunge_ms + self.recover_ms


class GameSettings(_Config):
    """Root configuration."""
    damage: DamageConfig = Field(default_factory=DamageConfig)
    respawn: RespawnConfig = Field(default_factory=RespawnConfig)
    score: ScoreConfig = Field(default_factory=ScoreConfig)
    battle: BattleConfig = Field(default_factory=BattleConfig)
    progression: ProgressionConfig = Field(default_factory=ProgressionConfig)
    navigator: NavigatorTiming = Field(default_factory=NavigatorTiming)

    death_time_penalty_s: int = 10
    save_slots: int = 3
    autosave: bool = True
    min_radar_size: int = 5

    @classmethod
    def from_file(cls, path: Path | str) -> GameSettings:
        """Load settings from a JSON file."""
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.model_validate(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameSettings:
        return cls.model_validate(data)
