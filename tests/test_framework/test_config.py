import json

from tower.config import GameSettings, BattleConfig, ProgressionConfig, DamageConfig


def test_defaults():
    settings = GameSettings()
    assert settings.damage.combo_multiplier == 0.1
    assert settings.damage.ultimate_star_threshold == 30
    assert settings.damage.chain_threshold == 5
    assert settings.damage.paralysis_duration == 5
    assert settings.respawn.delay_ms == 30000
    assert settings.respawn.limit == 3
    assert settings.score.time_weight == -1
    assert settings.save_slots == 3
    assert settings.autosave is True
    assert settings.navigator.move_windup_ms == 600


def test_penalty():
    config = BattleConfig()
    assert config.penalty_for(15) == 7
    assert config.penalty_for(4) == 5
    assert config.penalty_for(0) == 5


def test_boss_markers():
    config = BattleConfig()
    assert config.is_boss("BOSS Golem")
    assert config.is_boss("闇のボス")
    assert not config.is_boss("Slime")


def test_increment_lookup():
    config = ProgressionConfig()
    assert config.increment_for("初級").hp == 40
    assert config.increment_for("unknown") == config.fallback_increment
    assert config.threshold_for(2) == 100


def test_rank_power_clamps():
    config = DamageConfig()
    assert config.power_for_rank(1) == 100
    assert config.power_for_rank(5) == 250
    assert config.power_for_rank(9) == 250
    assert config.power_for_rank(0) == 100


def test_from_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({
        "respawn": {"delay_ms": 1000},
        "battle": {"max_misses": 2},
        "unknown_section": {"ignored": True},
    }), encoding="utf-8")

    settings = GameSettings.from_file(path)

    assert settings.respawn.delay_ms == 1000
    assert settings.respawn.limit == 3
    assert settings.battle.max_misses == 2
