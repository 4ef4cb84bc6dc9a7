"""
Run controller - wires map, encounters, battles and results together.

Screen flow:

    MAP --event cell--> ENCOUNTER --fight--> BATTLE --win/lose--> MAP
     |                      |                  |
     |                      +--flee--> MAP     +--arena--> BATTLE / RESULT
     +--goal--> RESULT --advance_floor--> MAP

The controller owns no rules of its own. It listens to the navigator
and combat events on the shared bus, writes outcomes back into the
RunContext and the respawn ledger, and autosaves at the checkpoints.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Optional

from tower.battle.damage import DamageResolver
from tower.battle.session import LOSE, WIN, BattleEvent, CombatSession
from tower.config import GameSettings
from tower.progression.score import ARENA, QUEST, ScoreEntry, ScoreTable, calculate_score
from tower.run.arena import arena_entry_at
from tower.run.context import RunContext, RunSettings
from tower.run.difficulty import Difficulty, difficulty_list, find_difficulty
from tower.world.encounter import EncounterGate
from tower.world.grid import GridLayout
from tower.world.navigator import MoveCommand, Navigator, NavigatorEvent
from tower.world.respawn import RespawnLedger
from tower_engine.core.clock import RunClock
from tower_engine.core.events import Event, EventBus
from tower_engine.errors import TowerError
from tower_engine.resources.database import Database

if TYPE_CHECKING:
    from tower.save.manager import SaveManager

logger = logging.getLogger(__name__)


class RunScreen(Enum):
    """Which surface currently receives input."""
    NONE = auto()
    MAP = auto()
    ENCOUNTER = auto()
    BATTLE = auto()
    RESULT = auto()


class RunEvent(Enum):
    """Events published by the RunController."""
    STARTED = auto()          # mode, difficulty
    SCREEN_CHANGED = auto()   # screen
    FLOOR_ENTERED = auto()    # floor_index, name
    FLOOR_ADVANCED = auto()   # floor_index
    RESULT = auto()           # result
    ENDED = auto()


@dataclass
class RunResult:
    """A cleared floor (or finished arena) with its score table."""
    entry: ScoreEntry
    rank: int
    has_next_floor: bool
    scores: list[ScoreEntry] = field(default_factory=list)


class RunController:
    """
    Drives one run from start to result.

    Usage:
        controller = RunController(database, events, save_manager=saves)
        controller.new_run("grade_1")
        controller.move(RelativeMove.FORWARD)
        controller.update(16)       # call every frame
    """

    def __init__(
        self,
        database: Database,
        events: EventBus,
        settings: Optional[GameSettings] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[RunClock] = None,
        save_manager: Optional[SaveManager] = None,
        score_table: Optional[ScoreTable] = None,
        resolver: Optional[DamageResolver] = None,
    ):
        self.database = database
        self.events = events
        self.settings = settings or GameSettings()
        self.rng = rng or random.Random()
        self.clock = clock or RunClock()
        self.save_manager = save_manager
        self.score_table = score_table or ScoreTable(size=self.settings.score.table_size)
        self.resolver = resolver

        self.difficulties: list[Difficulty] = difficulty_list(database)

        self.run: Optional[RunContext] = None
        self.ledger: Optional[RespawnLedger] = None
        self.gate: Optional[EncounterGate] = None
        self.navigator: Optional[Navigator] = None
        self.session: Optional[CombatSession] = None
        self.screen = RunScreen.NONE
        self.last_result: Optional[RunResult] = None

        self.events.subscribe(NavigatorEvent.MOVED, self._on_moved)
        self.events.subscribe(NavigatorEvent.ENTER_EVENT, self._on_enter_event)
        self.events.subscribe(NavigatorEvent.REACHED_GOAL, self._on_reached_goal)
        self.events.subscribe(BattleEvent.BATTLE_END, self._on_battle_end)

    # Queries

    @property
    def difficulty(self) -> Difficulty:
        return find_difficulty(self.difficulties, self.run.difficulty if self.run else None)

    @property
    def has_next_floor(self) -> bool:
        if self.run is None or self.run.mode != QUEST:
            return False
        return self.run.floor_index + 1 < self.database.floor_count

    def _require_run(self) -> RunContext:
        if self.run is None or not self.run.active:
            raise TowerError("No active run")
        return self.run

    def _set_screen(self, screen: RunScreen) -> None:
        if self.screen != screen:
            self.screen = screen
            self.events.publish(RunEvent.SCREEN_CHANGED, screen=screen)

    # Lifecycle

    def new_run(
        self,
        difficulty_id: Optional[str] = None,
        mode: str = QUEST,
        run_settings: Optional[RunSettings] = None,
    ) -> RunContext:
        """Start a fresh run and enter its first surface."""
        difficulty = find_difficulty(self.difficulties, difficulty_id)
        run = RunContext.new_run(difficulty.id, mode, clock=self.clock, settings=self.settings)
        if run_settings is not None:
            run.settings = run_settings.clone()
        self._attach(run)
        self.autosave('new-run')
        self.events.publish(RunEvent.STARTED, mode=run.mode, difficulty=run.difficulty)
        self.resume()
        return run

    def continue_run(self, data: Any) -> RunContext:
        """Resume a run from save data."""
        run = RunContext.continue_run(data, clock=self.clock)
        run.difficulty = find_difficulty(self.difficulties, run.difficulty).id
        self._attach(run)
        self.events.publish(RunEvent.STARTED, mode=run.mode, difficulty=run.difficulty)
        self.resume()
        return run

    def continue_from_slot(self, index: int) -> Optional[RunContext]:
        if self.save_manager is None:
            return None
        data = self.save_manager.load(index)
        if data is None:
            return None
        return self.continue_run(data)

    def _attach(self, run: RunContext) -> None:
        if self.run is not None:
            self.end_run()
        self.run = run
        self.ledger = RespawnLedger(run.floor_states, self.settings.respawn)
        self.gate = EncounterGate(
            self.database,
            self.ledger,
            self.events,
            clock=self.clock,
            battle_config=self.settings.battle,
        )
        self.last_result = None

    def resume(self) -> None:
        """Enter the run's play surface: the map, or the next arena bout."""
        run = self._require_run()
        if run.mode == ARENA:
            self.start_battle()
        else:
            self.enter_map()

    def end_run(self) -> None:
        """Tear the run down and release its session and navigator."""
        if self.run is None:
            return
        if self.session is not None and not self.session.is_over:
            self.session.pause()
        if self.navigator is not None:
            self.navigator.stop()
        self.run.teardown()
        self.run = None
        self.ledger = None
        self.gate = None
        self.navigator = None
        self.session = None
        self._set_screen(RunScreen.NONE)
        self.events.publish(RunEvent.ENDED)

    def autosave(self, reason: str) -> bool:
        if self.save_manager is None or self.run is None:
            return False
        return self.save_manager.auto_save(self.run, reason)

    def update(self, dt_ms: int) -> None:
        """Advance whichever surface is active."""
        if self.screen == RunScreen.MAP and self.navigator is not None:
            self.navigator.update(dt_ms)
        elif self.screen == RunScreen.BATTLE and self.session is not None:
            self.session.update(dt_ms)

    # Map

    def enter_map(self) -> Navigator:
        """Build the navigator for the current floor from its saved state."""
        run = self._require_run()
        floor = self.database.get_floor(run.floor_index)
        layout = GridLayout.from_data(floor)
        state = run.floor_state

        navigator = Navigator(
            layout,
            self.events,
            self.settings.navigator,
            hidden_events=state.cleared,
        )
        saved = state.to_dict()
        saved['elapsed_ms'] = run.elapsed_now() * 1000
        navigator.resume_from_state(saved)
        self.navigator = navigator
        self.session = None

        run.start_timer()
        self._set_screen(RunScreen.MAP)
        self.events.publish(
            RunEvent.FLOOR_ENTERED,
            floor_index=run.floor_index,
            name=layout.name,
        )
        return navigator

    def move(self, command: MoveCommand) -> bool:
        if self.screen != RunScreen.MAP or self.navigator is None:
            return False
        return self.navigator.move(command)

    def _on_moved(self, event: Event) -> None:
        if self.run is None:
            return
        state = self.run.floor_state
        state.steps += int(event.get('steps_delta', 0))
        position = event.get('position')
        if position is not None:
            state.position = position.clone()
        self.autosave('moved')

    def _on_enter_event(self, event: Event) -> None:
        if self.run is None or self.gate is None:
            return
        event_id = event['event_id']
        encounter = self.gate.enter(self.run.floor_index, event_id)
        if encounter is None:
            return
        self.run.pending_event_id = event_id
        if self.navigator is not None:
            self.navigator.stop()
        self._set_screen(RunScreen.ENCOUNTER)

    def _on_reached_goal(self, event: Event) -> None:
        if self.run is None:
            return
        self.show_result()

    # Encounter decision

    def fight(self) -> bool:
        if self.screen != RunScreen.ENCOUNTER or self.gate is None:
            return False
        encounter = self.gate.fight()
        if encounter is None:
            return False
        self.run.pending_event_id = encounter.event_id
        self.start_battle()
        return True

    def flee(self) -> bool:
        """Decline the pending encounter; bosses cannot be fled."""
        if self.screen != RunScreen.ENCOUNTER or self.gate is None:
            return False
        if not self.gate.flee():
            return False
        self.run.pending_event_id = None
        if self.navigator is not None:
            self.navigator.start_clock()
        self._set_screen(RunScreen.MAP)
        return True

    # Battle

    def start_battle(self) -> Optional[CombatSession]:
        """
        Start the battle for the pending encounter (quest) or the
        current arena bout.

        Returns:
            The running session, or None when the arena has no bout left
        """
        run = self._require_run()
        if run.mode == ARENA:
            entry = arena_entry_at(self.database, run.arena_index)
            if entry is None:
                self.show_result()
                return None
            run.floor_index = entry.floor_index
            run.ensure_floor_state(entry.floor_index)
            run.pending_event_id = entry.stage_id
            run.pending_enemy_index = entry.enemy_index
            enemies = [dict(entry.enemy)]
        else:
            stage = self.database.get_stage(run.floor_index, run.pending_event_id)
            enemies = list(stage.get('enemies', []))

        grade = self.database.get_grade(self.difficulty.grade_id)
        if self.navigator is not None:
            self.navigator.stop()
        run.start_timer()

        session = CombatSession(
            run,
            enemies,
            grade,
            self.events,
            self.rng,
            settings=self.settings,
            resolver=self.resolver,
        )
        self.session = session
        self._set_screen(RunScreen.BATTLE)
        session.start()
        return session

    def _on_battle_end(self, event: Event) -> None:
        run = self.run
        if run is None or self.session is None:
            return
        session = self.session
        result = event.get('result')

        if result == LOSE:
            run.deaths += 1
            run.floor_deaths += 1
            run.elapsed_seconds += self.settings.death_time_penalty_s
            run.floor_state.position = None
            logger.info(f"Defeat on floor {run.floor_index + 1} ({run.floor_deaths} this floor)")
        elif result == WIN and run.mode == QUEST and run.pending_event_id is not None:
            if session.is_boss:
                event_id = str(run.pending_event_id)
                if event_id not in run.floor_state.cleared:
                    run.floor_state.cleared.append(event_id)
            else:
                self.ledger.record_defeat(
                    run.floor_index,
                    run.pending_event_id,
                    self.clock.now_ms(),
                )

        run.pending_event_id = None
        run.pending_enemy_index = None

        if run.mode == ARENA:
            if result == WIN:
                run.arena_index += 1
                if arena_entry_at(self.database, run.arena_index) is not None:
                    self.start_battle()
                    return
            self.show_result()
            return

        self.enter_map()

    # Result

    def show_result(self) -> RunResult:
        """Score the run and record it once per distinct result."""
        run = self._require_run()
        run.stop_timer()
        if self.navigator is not None:
            self.navigator.stop()

        score = calculate_score(
            run.elapsed_seconds,
            run.total_kills,
            run.floor_index,
            self.settings.score,
        )
        entry = ScoreEntry(
            ts=self.clock.now_ms(),
            floor_index=run.floor_index,
            score=score,
            elapsed_seconds=run.elapsed_seconds,
            total_kills=run.total_kills,
            deaths=run.floor_deaths,
            mode=run.mode,
        )
        rank = 0
        if run.last_result_stamp != entry.stamp:
            rank = self.score_table.record(entry)
            run.last_result_stamp = entry.stamp

        result = RunResult(
            entry=entry,
            rank=rank,
            has_next_floor=self.has_next_floor,
            scores=self.score_table.list_by_floor(run.floor_index, run.mode),
        )
        self.last_result = result
        logger.info(f"Floor {run.floor_index + 1} result: {score} points (rank {rank})")
        self._set_screen(RunScreen.RESULT)
        self.events.publish(RunEvent.RESULT, result=result)
        return result

    def advance_floor(self) -> bool:
        """
        Move a quest run on to the next floor.

        Returns:
            False for arena runs and on the last floor
        """
        if self.screen != RunScreen.RESULT or not self.has_next_floor:
            return False
        run = self._require_run()
        run.floor_index += 1
        state = run.ensure_floor_state(run.floor_index)
        state.position = None
        state.steps = 0
        state.defeated = {}
        state.cleared = []
        run.floor_deaths = 0
        run.reset_timer()
        run.start_timer()
        self.autosave('next-floor')
        self.events.publish(RunEvent.FLOOR_ADVANCED, floor_index=run.floor_index)
        self.enter_map()
        return True

    def snapshot(self) -> dict[str, Any]:
        """Presentation view of the run."""
        run = self.run
        return {
            'screen': self.screen.name,
            'mode': run.mode if run else None,
            'difficulty': self.difficulty.label if run else None,
            'floor_index': run.floor_index if run else None,
            'elapsed_seconds': run.elapsed_now() if run else 0,
            'total_kills': run.total_kills if run else 0,
            'deaths': run.deaths if run else 0,
            'map': self.navigator.snapshot() if self.navigator and self.screen == RunScreen.MAP else None,
            'battle': self.session.snapshot() if self.session else None,
        }
