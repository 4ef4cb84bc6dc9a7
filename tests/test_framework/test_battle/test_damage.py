import random

import pytest

from tower.battle.cards import Card, ADD
from tower.battle.damage import AttackerStats, StandardDamageResolver
from tower.battle.enemy import Enemy, resolve_stat
from tower.config import DamageConfig


def make_enemy(**overrides):
    data = {"name": "Slime", "hp": 50, "atk": 3, "def": 0, "spd": 5, "exp": 10}
    data.update(overrides)
    return Enemy.from_data(data, random.Random(0))


def card(rank=1):
    return Card(operator=ADD, rank=rank, question="1 + 1", answer=2)


class TestStandardDamageResolver:
    def test_base_damage_within_variance(self):
        resolver = StandardDamageResolver(random.Random(3))
        config = DamageConfig()

        for _ in range(30):
            result = resolver(AttackerStats(atk=20, spd=0), card(), make_enemy(), 1, 0, config)
            assert 18 <= result.damage <= 22
            assert not result.is_ultimate
            assert result.star_consumed == 0

    def test_rank_power_and_defense(self):
        resolver = StandardDamageResolver(random.Random(3))
        config = DamageConfig(variance=0.0)

        # 20 * 200% - 10 * 0.5
        result = resolver(AttackerStats(atk=20, spd=0), card(rank=4), make_enemy(**{"def": 10}), 1, 0, config)
        assert result.damage == 35

    def test_minimum_damage(self):
        resolver = StandardDamageResolver(random.Random(3))
        config = DamageConfig(variance=0.0)

        result = resolver(AttackerStats(atk=1, spd=0), card(), make_enemy(**{"def": 500}), 1, 0, config)
        assert result.damage == 1

    def test_combo_bonus(self):
        resolver = StandardDamageResolver(random.Random(3))
        config = DamageConfig(variance=0.0)

        # 1 + 0.1 * (3 - 1)
        result = resolver(AttackerStats(atk=100, spd=0), card(), make_enemy(), 3, 0, config)
        assert result.damage == 120

    def test_ultimate_at_threshold(self):
        resolver = StandardDamageResolver(random.Random(3))
        config = DamageConfig(variance=0.0)

        result = resolver(AttackerStats(atk=10, spd=0), card(), make_enemy(), 1, 30, config)
        assert result.is_ultimate
        assert result.star_consumed == 30
        assert result.damage == 30

    def test_paralysis_chance_is_capped(self):
        resolver = StandardDamageResolver(random.Random(3))
        config = DamageConfig()

        result = resolver(AttackerStats(atk=10, spd=1000), card(rank=5), make_enemy(), 1, 0, config)
        assert result.paralysis.chance == pytest.approx(config.paralysis_max_chance)

    def test_paralysis_chance_formula(self):
        resolver = StandardDamageResolver(random.Random(3))
        config = DamageConfig()

        result = resolver(AttackerStats(atk=10, spd=10), card(rank=2), make_enemy(), 1, 0, config)
        assert result.paralysis.chance == pytest.approx(0.05 + 0.05 + 0.05)


class TestEnemy:
    def test_resolve_stat(self):
        rng = random.Random(0)
        assert resolve_stat(7, rng) == 7
        assert resolve_stat(None, rng) == 0
        for _ in range(20):
            assert 3 <= resolve_stat([5, 3], rng) <= 5

    def test_from_data(self):
        enemy = make_enemy(hp=[20, 20], spd=4)
        assert enemy.max_hp == 20
        assert enemy.current_hp == 20
        assert enemy.recovery_ms == 4000
        assert enemy.is_targetable

    def test_take_damage_floors_at_zero(self):
        enemy = make_enemy(hp=10)
        assert enemy.take_damage(25) == 10
        assert enemy.current_hp == 0
        assert not enemy.is_alive

    def test_paralyze(self):
        enemy = make_enemy()
        enemy.paralyze(4)
        assert enemy.paralyzed
        assert enemy.paralysis_ms == 4000
        assert enemy.paralysis_chain_count == 1

    def test_snapshot_is_detached(self):
        enemy = make_enemy()
        copy = enemy.snapshot()
        copy.current_hp = 0
        assert enemy.current_hp == 50
