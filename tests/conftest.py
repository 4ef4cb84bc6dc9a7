import os
import sys
import random
from pathlib import Path

import pytest

# Ensure tower modules can be imported
sys.path.append(os.getcwd())

DATA_PATH = Path(__file__).parent.parent / "game" / "data"


class EventRecorder:
    """Collects every event of the given Enums, in publish order."""

    def __init__(self, event_bus, *enums):
        self.events = []
        for enum in enums:
            event_bus.subscribe_all(enum, self.events.append, weak=False)

    def of(self, event_type):
        return [e for e in self.events if e.type == event_type]

    def types(self):
        return [e.type for e in self.events]

    def clear(self):
        self.events.clear()


@pytest.fixture
def event_bus():
    """Fresh EventBus for each test."""
    from tower_engine.core.events import EventBus
    return EventBus()


@pytest.fixture
def recorder(event_bus):
    """Factory: recorder(NavigatorEvent, BattleEvent, ...)"""
    def make(*enums):
        return EventRecorder(event_bus, *enums)
    return make


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def manual_clock():
    from tower_engine.core.clock import ManualClock
    return ManualClock(current_ms=1_000_000)


@pytest.fixture
def run_clock(manual_clock):
    from tower_engine.core.clock import RunClock
    return RunClock(manual_clock)


@pytest.fixture
def settings():
    from tower.config import GameSettings
    return GameSettings()


@pytest.fixture
def floor_records():
    return [
        {
            "id": "floor_a",
            "index": 0,
            "name": "Test Hall",
            "layout": ["Sx1xG"],
            "mapping": {"1": 1},
        },
        {
            "id": "floor_b",
            "index": 1,
            "name": "Boss Hall",
            "layout": ["Sx2xG"],
            "mapping": {"2": 2},
        },
    ]


@pytest.fixture
def stage_records():
    return [
        {
            "id": "stages_a",
            "index": 0,
            "floor": "Test Hall",
            "stages": [
                {
                    "id": 1,
                    "title": "Slime Pool",
                    "enemies": [
                        {"name": "Slime", "hp": 10, "atk": 3, "def": 0, "spd": 5, "exp": 10},
                    ],
                },
            ],
        },
        {
            "id": "stages_b",
            "index": 1,
            "floor": "Boss Hall",
            "stages": [
                {
                    "id": 2,
                    "title": "Throne",
                    "enemies": [
                        {"name": "BOSS Golem", "hp": 10, "atk": 3, "def": 0, "spd": 5, "exp": 40},
                    ],
                },
            ],
        },
    ]


@pytest.fixture
def grade_records():
    return [
        {
            "id": "grade_easy",
            "name": "初級",
            "order": 1,
            "ops": ["+"],
            "ratios": [1.0],
            "problems": {"+": {"1": {"a": [1, 9], "b": [1, 9]}}},
        },
        {
            "id": "grade_mid",
            "name": "中級",
            "order": 2,
            "ops": ["+", "-"],
            "ratios": [0.5, 0.5],
            "problems": {
                "+": {"1": {"a": [1, 9], "b": [1, 9]}},
                "-": {"1": {"a": [1, 9], "b": [1, 9]}},
            },
        },
    ]


@pytest.fixture
def database(floor_records, stage_records, grade_records):
    """In-memory database validated against the shipped schemas."""
    from tower_engine.resources.database import Database
    return Database.from_records(
        floors=floor_records,
        stages=stage_records,
        grades=grade_records,
        data_path=DATA_PATH,
    )


@pytest.fixture
def grade(grade_records):
    return grade_records[0]


@pytest.fixture
def new_run(run_clock, settings):
    """Factory for a fresh quest run on the manual clock."""
    from tower.run.context import RunContext

    def make(difficulty="grade_0", mode="quest"):
        return RunContext.new_run(difficulty, mode, clock=run_clock, settings=settings)
    return make
