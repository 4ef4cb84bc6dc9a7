"""
Grid transform components - facing, position, navigator state.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import Field

from tower_engine.core.component import Component


class Facing(Enum):
    """Compass facing. Values are clockwise quarter turns from north."""
    N = 0
    E = 1
    S = 2
    W = 3

    @property
    def vector(self) -> tuple[int, int]:
        """Grid step for this facing (y grows downward)."""
        vectors = {
            Facing.N: (0, -1),
            Facing.E: (1, 0),
            Facing.S: (0, 1),
            Facing.W: (-1, 0),
        }
        return vectors[self]

    def turned(self, quarter_turns: int) -> Facing:
        """Facing after rotating clockwise by quarter turns."""
        return Facing((self.value + quarter_turns) % 4)


class RelativeMove(Enum):
    """Relative movement commands. Values are clockwise quarter turns."""
    FORWARD = 0
    RIGHT = 1
    REVERSE = 2
    LEFT = 3


class GridPosition(Component):
    """A cell coordinate."""
    x: int = 0
    y: int = 0

    def step(self, facing: Facing) -> GridPosition:
        dx, dy = facing.vector
        return GridPosition(x=self.x + dx, y=self.y + dy)

    def as_tuple(self) -> tuple[int, int]:
        return (self.x, self.y)


class NavigatorState(Component):
    """
    Player state on one floor.

    Attributes:
        position: Current cell
        facing: Current facing
        steps: Cells walked on this floor
        busy: An action is in flight
        goal_reached: The goal cell was reached (terminal)
        elapsed_ms: Floor clock
    """
    position: GridPosition = Field(default_factory=GridPosition)
    facing: Facing = Facing.N
    steps: int = Field(default=0, ge=0)
    busy: bool = False
    goal_reached: bool = False
    elapsed_ms: int = 0


class SavedFloorPosition(Component):
    """The subset of navigator state persisted per floor."""
    steps: int = Field(default=0, ge=0)
    position: Optional[GridPosition] = None
    elapsed_ms: Optional[int] = None
