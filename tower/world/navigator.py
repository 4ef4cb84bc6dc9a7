"""
Navigator - grid movement for the player on one floor.

Movement is a small phase machine advanced by update(dt_ms):

    IDLE --move()--> TURNING --(turn time)--> STEPPING --(step time)--> ...
                                                  |
                              wall / event / goal +--> IDLE

Relative commands turn first and then auto-move until the corridor
ends; absolute commands take exactly one step with no animation. While
a command is in flight the navigator is busy and further commands are
ignored, not queued.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Any, Iterable, Optional, Union

from tower.components.transform import (
    Facing,
    GridPosition,
    NavigatorState,
    RelativeMove,
    SavedFloorPosition,
)
from tower.config import NavigatorTiming
from tower.world.grid import Cell, CellKind, EventId, GridLayout
from tower_engine.core.events import EventBus

logger = logging.getLogger(__name__)

MoveCommand = Union[RelativeMove, Facing]


class NavigatorEvent(Enum):
    """Events published by the Navigator."""
    MOVED = auto()          # steps_delta, position
    TURNED = auto()         # facing
    ENTER_EVENT = auto()    # event_id, position
    REACHED_GOAL = auto()   # position, elapsed_ms
    MESSAGE = auto()        # text


class MovePhase(Enum):
    """Animation phase of the current action."""
    IDLE = auto()
    TURNING = auto()
    STEPPING = auto()


class RadarCell(Enum):
    """Radar classification of a cell around the player."""
    CURRENT = auto()
    ROOM = auto()
    PATH = auto()
    WALL = auto()


class Navigator:
    """
    Moves the player through a GridLayout.

    Usage:
        nav = Navigator(layout, events)
        nav.move(RelativeMove.FORWARD)
        nav.update(16)      # call every frame
        nav.settle()        # or finish the action right away
    """

    def __init__(
        self,
        layout: GridLayout,
        events: EventBus,
        timing: Optional[NavigatorTiming] = None,
        hidden_events: Iterable[EventId] = (),
    ):
        self.layout = layout
        self.events = events
        self.timing = timing or NavigatorTiming()

        start = layout.find_start()
        self.state = NavigatorState(
            position=start,
            facing=layout.initial_facing(start),
        )

        self._hidden: set[str] = {str(event_id) for event_id in hidden_events}
        self.phase = MovePhase.IDLE
        self._phase_remaining = 0
        self._auto_move = False
        self._clock_running = True

    # State access

    @property
    def position(self) -> GridPosition:
        return self.state.position

    @property
    def facing(self) -> Facing:
        return self.state.facing

    @property
    def steps(self) -> int:
        return self.state.steps

    @property
    def busy(self) -> bool:
        return self.state.busy

    @property
    def goal_reached(self) -> bool:
        return self.state.goal_reached

    @property
    def elapsed_ms(self) -> int:
        return self.state.elapsed_ms

    # Commands

    def move(self, command: MoveCommand) -> bool:
        """
        Start a movement command.

        Args:
            command: A RelativeMove or an absolute Facing

        Returns:
            True if the command was accepted
        """
        if self.state.busy or self.state.goal_reached:
            return False
        if not isinstance(command, (Facing, RelativeMove)):
            return False
        if isinstance(command, Facing):
            return self._move_absolute(command)
        return self._move_relative(command)

    def _move_relative(self, command: RelativeMove) -> bool:
        self.state.busy = True
        self.state.facing = self.state.facing.turned(command.value)
        self.events.publish(NavigatorEvent.TURNED, facing=self.state.facing)

        if command == RelativeMove.REVERSE:
            self._message("Turned around.")
            self._auto_move = False
            self._enter_phase(MovePhase.TURNING, self.timing.turn_ms)
        else:
            self._auto_move = True
            self._enter_phase(MovePhase.TURNING, self.timing.move_windup_ms)
        return True

    def _move_absolute(self, direction: Facing) -> bool:
        target = self.state.position.step(direction)
        cell = self.layout.cell_at(target.x, target.y)
        if cell.is_wall:
            return False

        self.state.busy = True
        self.state.facing = direction
        self._step_to(target)
        self._finish_action()
        if not self._continues(cell):
            self._process(cell)
        return True

    def set_event_visibility(self, event_id: EventId, visible: bool) -> None:
        """Hide or unhide an event id; hidden events behave as path."""
        if visible:
            self._hidden.discard(str(event_id))
        else:
            self._hidden.add(str(event_id))

    def is_hidden(self, event_id: EventId) -> bool:
        return str(event_id) in self._hidden

    def resume_from_state(self, saved: Any) -> None:
        """
        Restore steps, position and elapsed time from persisted floor state.

        Accepts a FloorState, a SavedFloorPosition or a plain dict. Missing
        fields keep their current values.
        """
        if saved is None:
            return
        data = saved.to_dict() if hasattr(saved, 'to_dict') else saved
        restored = SavedFloorPosition.restore(data)

        self.state.steps = restored.steps
        if restored.position is not None:
            self.state.position = restored.position
        if restored.elapsed_ms is not None:
            self.state.elapsed_ms = max(0, restored.elapsed_ms)
        logger.debug(
            f"Resumed at {self.state.position.as_tuple()} "
            f"after {self.state.steps} steps"
        )

    def stop(self) -> None:
        """Cancel any in-flight action and stop the floor clock."""
        self.phase = MovePhase.IDLE
        self._phase_remaining = 0
        self._auto_move = False
        self.state.busy = False
        self._clock_running = False

    def start_clock(self) -> None:
        if not self.state.goal_reached:
            self._clock_running = True

    # Affordances

    def destination(self, command: MoveCommand) -> GridPosition:
        """Cell a command would first move into."""
        if isinstance(command, Facing):
            return self.state.position.step(command)
        return self.state.position.step(self.state.facing.turned(command.value))

    def can_move(self, command: MoveCommand) -> bool:
        """Whether the UI affordance for a command is enabled."""
        if self.state.goal_reached:
            return False
        target = self.destination(command)
        return not self.layout.is_wall(target.x, target.y)

    def affordances(self) -> dict[str, bool]:
        """Enabled state of every relative and absolute command."""
        commands: list[MoveCommand] = [*RelativeMove, *Facing]
        return {command.name: self.can_move(command) for command in commands}

    def radar(self, width: int = 5, height: int = 5) -> list[list[RadarCell]]:
        """
        Cells around the player, row by row.

        Even sizes put the extra row/column after the player.
        """
        width = max(1, width)
        height = max(1, height)
        cx, cy = self.state.position.as_tuple()
        rows = []
        for dy in range(-((height - 1) // 2), height // 2 + 1):
            row = []
            for dx in range(-((width - 1) // 2), width // 2 + 1):
                if dx == 0 and dy == 0:
                    row.append(RadarCell.CURRENT)
                    continue
                cell = self.layout.cell_at(cx + dx, cy + dy)
                if cell.is_wall:
                    row.append(RadarCell.WALL)
                elif self._continues(cell):
                    row.append(RadarCell.PATH)
                else:
                    row.append(RadarCell.ROOM)
            rows.append(row)
        return rows

    # Phase machine

    def update(self, dt_ms: int) -> None:
        """Advance the floor clock and the current action."""
        dt_ms = max(0, int(dt_ms))
        if self._clock_running and not self.state.goal_reached:
            self.state.elapsed_ms += dt_ms
        self._advance_phases(dt_ms)

    def settle(self) -> None:
        """Run the current action to completion without advancing the clock."""
        while self.phase != MovePhase.IDLE:
            self._advance_phases(self._phase_remaining)

    def _advance_phases(self, available_ms: int) -> None:
        while self.phase != MovePhase.IDLE:
            if self._phase_remaining > available_ms:
                self._phase_remaining -= available_ms
                return
            available_ms -= self._phase_remaining
            self._phase_remaining = 0
            self._end_phase()

    def _enter_phase(self, phase: MovePhase, duration_ms: int) -> None:
        self.phase = phase
        self._phase_remaining = max(0, int(duration_ms))

    def _end_phase(self) -> None:
        if self.phase == MovePhase.TURNING and not self._auto_move:
            self._finish_action()
            return
        self._auto_step()

    def _auto_step(self) -> None:
        target = self.state.position.step(self.state.facing)
        cell = self.layout.cell_at(target.x, target.y)
        if cell.is_wall:
            self._finish_action()
            return

        self._step_to(target)
        if self._continues(cell):
            self._enter_phase(MovePhase.STEPPING, self.timing.step_ms)
        else:
            self._finish_action()
            self._process(cell)

    def _step_to(self, target: GridPosition) -> None:
        self.state.position = target
        self.state.steps += 1
        self.events.publish(
            NavigatorEvent.MOVED,
            steps_delta=1,
            position=target.clone(),
        )

    def _finish_action(self) -> None:
        self.phase = MovePhase.IDLE
        self._phase_remaining = 0
        self._auto_move = False
        self.state.busy = False

    # Event resolution

    def _continues(self, cell: Cell) -> bool:
        """Whether auto-move walks through this cell."""
        if cell.kind == CellKind.PATH:
            return True
        if cell.kind in (CellKind.EVENT, CellKind.UNKNOWN):
            return self.is_hidden(cell.event_id)
        return False

    def _process(self, cell: Cell) -> None:
        if cell.kind == CellKind.GOAL:
            self.state.goal_reached = True
            self._clock_running = False
            self._message("Reached the exit.")
            self.events.publish(
                NavigatorEvent.REACHED_GOAL,
                position=self.state.position.clone(),
                elapsed_ms=self.state.elapsed_ms,
            )
        elif cell.kind == CellKind.START:
            self._message("This is the starting point.")
        elif cell.kind == CellKind.HALT:
            self._message("The path continues.")
        elif cell.kind == CellKind.EVENT:
            self._message("Reached an open area.")
            self.events.publish(
                NavigatorEvent.ENTER_EVENT,
                event_id=cell.event_id,
                position=self.state.position.clone(),
            )
        else:
            # Unmapped symbol
            self._message("Reached an open area.")

    def _message(self, text: str) -> None:
        logger.info(text)
        self.events.publish(NavigatorEvent.MESSAGE, text=text)

    def snapshot(self) -> dict[str, Any]:
        """Presentation view of the navigator."""
        return {
            'floor_name': self.layout.name,
            'position': self.state.position.as_tuple(),
            'facing': self.state.facing.name,
            'steps': self.state.steps,
            'busy': self.state.busy,
            'goal_reached': self.state.goal_reached,
            'elapsed_ms': self.state.elapsed_ms,
            'phase': self.phase.name,
            'affordances': self.affordances(),
        }
