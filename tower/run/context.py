"""
Run context - the state of one playthrough.

A RunContext is created when a run starts (new_run) or is loaded from
a save (continue_run) and is passed by reference to everything that
reads or writes run state. teardown() ends its lifecycle.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import Field, PrivateAttr, field_validator

from tower.components.character import ProgressionState
from tower.components.encounter import FloorState
from tower.config import GameSettings
from tower.progression.score import QUEST, normalize_mode
from tower.world.grid import EventId
from tower_engine.core.clock import RunClock
from tower_engine.core.component import Component

logger = logging.getLogger(__name__)

RELATIVE = "relative"
ABSOLUTE = "absolute"
MIN_RADAR_SIZE = 5


class RadarSize(Component):
    w: int = MIN_RADAR_SIZE
    h: int = MIN_RADAR_SIZE

    @field_validator('w', 'h')
    @classmethod
    def _at_least_min(cls, value: int) -> int:
        return max(MIN_RADAR_SIZE, value)


class RunSettings(Component):
    """Player-facing map settings saved with the run."""
    control_mode: str = RELATIVE
    click_to_move: bool = True
    radar: RadarSize = Field(default_factory=RadarSize)

    @field_validator('control_mode')
    @classmethod
    def _known_mode(cls, value: str) -> str:
        return ABSOLUTE if value == ABSOLUTE else RELATIVE


def new_player(settings: Optional[GameSettings] = None) -> ProgressionState:
    """Level 1 player with the configured starting stats."""
    settings = settings or GameSettings()
    stats = settings.progression.starting_stats.clone()
    return ProgressionState(
        level=1,
        experience=0,
        next_level_threshold=settings.progression.threshold_for(1),
        battle_points=0,
        stats=stats,
        current_hp=stats.hp,
    )


class RunContext(Component):
    """
    Persisted run state plus the run timer.

    Attributes:
        difficulty: Difficulty id ("grade_<n>")
        floor_index: 0-based floor
        elapsed_seconds: Run time banked while the timer was stopped
        total_kills: Enemies defeated this run
        player: Player progression
        floor_states: Per-floor steps, position and defeat ledger
        deaths: Deaths this run
        floor_deaths: Deaths on the current floor
        mode: "quest" or "arena"
        arena_index: Position in the arena enemy list
        settings: Map settings
    """
    difficulty: str = ""
    floor_index: int = Field(default=0, ge=0)
    elapsed_seconds: int = Field(default=0, ge=0)
    total_kills: int = Field(default=0, ge=0)
    player: ProgressionState = Field(default_factory=ProgressionState)
    floor_states: dict[int, FloorState] = Field(default_factory=dict)
    deaths: int = Field(default=0, ge=0)
    floor_deaths: int = Field(default=0, ge=0)
    mode: str = QUEST
    arena_index: int = Field(default=0, ge=0)
    settings: RunSettings = Field(default_factory=RunSettings)

    _clock: RunClock = PrivateAttr(default_factory=RunClock)
    _timer_started_at: Optional[int] = PrivateAttr(default=None)
    _active: bool = PrivateAttr(default=False)

    pending_event_id: Optional[EventId] = Field(default=None, exclude=True)
    pending_enemy_index: Optional[int] = Field(default=None, exclude=True)
    last_result_stamp: Optional[str] = Field(default=None, exclude=True)

    @field_validator('mode', mode='before')
    @classmethod
    def _normalize_mode(cls, value: Any) -> str:
        return normalize_mode(value)

    # Lifecycle

    @classmethod
    def new_run(
        cls,
        difficulty: str,
        mode: str = QUEST,
        clock: Optional[RunClock] = None,
        settings: Optional[GameSettings] = None,
    ) -> RunContext:
        """Start a fresh run with the timer running."""
        run = cls(difficulty=difficulty, mode=mode, player=new_player(settings))
        run._attach(clock)
        run.ensure_floor_state(run.floor_index)
        run.start_timer()
        logger.info(f"New {run.mode} run on {difficulty}")
        return run

    @classmethod
    def continue_run(cls, data: Any, clock: Optional[RunClock] = None) -> RunContext:
        """
        Resume a run from save data.

        Invalid or missing fields fall back to their defaults.
        """
        run = cls.restore(data)
        run._attach(clock)
        run.ensure_floor_state(run.floor_index)
        run.start_timer()
        logger.info(f"Continued {run.mode} run at floor {run.floor_index + 1}")
        return run

    def _attach(self, clock: Optional[RunClock]) -> None:
        self._clock = clock or RunClock()
        self._timer_started_at = None
        self._active = True

    def teardown(self) -> None:
        """End the run: bank the timer and drop transient state."""
        self.stop_timer()
        self.pending_event_id = None
        self.pending_enemy_index = None
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def clock(self) -> RunClock:
        return self._clock

    # Floors

    def ensure_floor_state(self, floor_index: int) -> FloorState:
        if floor_index not in self.floor_states:
            self.floor_states[floor_index] = FloorState()
        return self.floor_states[floor_index]

    @property
    def floor_state(self) -> FloorState:
        return self.ensure_floor_state(self.floor_index)

    # Run timer

    @property
    def timer_running(self) -> bool:
        return self._timer_started_at is not None

    def start_timer(self) -> None:
        if self._timer_started_at is None:
            self._timer_started_at = self._clock.now_ms()

    def stop_timer(self) -> None:
        """Bank whole elapsed seconds and stop the timer."""
        if self._timer_started_at is None:
            return
        self.elapsed_seconds += (self._clock.now_ms() - self._timer_started_at) // 1000
        self._timer_started_at = None

    def reset_timer(self) -> None:
        self.elapsed_seconds = 0
        self._timer_started_at = None

    def elapsed_now(self) -> int:
        """Banked seconds plus the running segment."""
        if self._timer_started_at is None:
            return self.elapsed_seconds
        return self.elapsed_seconds + (self._clock.now_ms() - self._timer_started_at) // 1000

    # Persistence

    def to_save_data(self, meta: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Save payload with the live elapsed time."""
        data = self.to_dict()
        data['elapsed_seconds'] = self.elapsed_now()
        data['ts'] = self._clock.now_ms()
        data['meta'] = dict(meta or {})
        return data
