"""
Grid layout - the floor map a Navigator walks.

Floors are authored as rows of single-character symbols:

    " S x 1 "      S  start marker
    "   x   "      G  goal marker
    "   G   "      x  path
                   0  path that halts auto-move
                   ' ' or ''  wall
                   anything else: an event symbol, resolved through the
                   floor's mapping table to an event id

Coordinates outside the grid read as walls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional, Union

from tower.components.transform import Facing, GridPosition

EventId = Union[int, str]

START = "S"
GOAL = "G"
PATH_SYMBOLS = frozenset({"x"})
HALT_SYMBOL = "0"
WALL_SYMBOLS = frozenset({"", " "})


class CellKind(Enum):
    """What stepping onto a cell means."""
    WALL = auto()
    PATH = auto()
    HALT = auto()  # walkable, but auto-move stops on it
    START = auto()
    GOAL = auto()
    EVENT = auto()
    UNKNOWN = auto()  # unmapped non-path symbol


@dataclass(frozen=True)
class Cell:
    """A resolved cell."""
    kind: CellKind
    symbol: str = ""
    event_id: Optional[EventId] = None

    @property
    def is_wall(self) -> bool:
        return self.kind == CellKind.WALL


def normalize_event_id(value: Any) -> EventId:
    """Digit strings become integers; everything else is kept as a string."""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return value
    text = str(value)
    if text.isdigit():
        return int(text)
    return text


@dataclass(frozen=True)
class GridLayout:
    """
    Immutable floor layout.

    Attributes:
        name: Display name of the floor
        rows: Layout rows, one symbol per character
        mapping: Symbol -> event id table
    """
    name: str
    rows: tuple[str, ...]
    mapping: dict[str, EventId] = field(default_factory=dict)

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> GridLayout:
        """Build from a floor record ({name, layout, mapping})."""
        mapping = {
            str(symbol): normalize_event_id(event_id)
            for symbol, event_id in (data.get('mapping') or {}).items()
        }
        return cls(
            name=str(data.get('name', '')),
            rows=tuple(str(row) for row in data.get('layout', [])),
            mapping=mapping,
        )

    @property
    def height(self) -> int:
        return len(self.rows)

    @property
    def width(self) -> int:
        return max((len(row) for row in self.rows), default=0)

    def symbol_at(self, x: int, y: int) -> str:
        """Raw symbol at a cell; out of bounds reads as ''."""
        if y < 0 or y >= len(self.rows):
            return ""
        row = self.rows[y]
        if x < 0 or x >= len(row):
            return ""
        return row[x]

    def is_wall(self, x: int, y: int) -> bool:
        return self.symbol_at(x, y) in WALL_SYMBOLS

    def cell_at(self, x: int, y: int) -> Cell:
        """Classify the cell at (x, y)."""
        symbol = self.symbol_at(x, y)
        value = symbol.strip()
        if value == "":
            return Cell(CellKind.WALL, symbol)
        if value in PATH_SYMBOLS:
            return Cell(CellKind.PATH, value)
        if value == HALT_SYMBOL:
            return Cell(CellKind.HALT, value)
        if value == START:
            return Cell(CellKind.START, value)
        if value == GOAL:
            return Cell(CellKind.GOAL, value)
        if value in self.mapping:
            return Cell(CellKind.EVENT, value, self.mapping[value])
        return Cell(CellKind.UNKNOWN, value, normalize_event_id(value))

    def find_start(self) -> GridPosition:
        """Location of the start marker, or (0, 0) when there is none."""
        for y, row in enumerate(self.rows):
            x = row.find(START)
            if x >= 0:
                return GridPosition(x=x, y=y)
        return GridPosition()

    def open_neighbours(self, position: GridPosition) -> list[Facing]:
        """Facings whose neighbouring cell is not a wall."""
        return [
            facing for facing in Facing
            if not self.is_wall(*position.step(facing).as_tuple())
        ]

    def initial_facing(self, position: Optional[GridPosition] = None) -> Facing:
        """Face the only open neighbour of the start, otherwise north."""
        position = position or self.find_start()
        open_dirs = self.open_neighbours(position)
        if len(open_dirs) == 1:
            return open_dirs[0]
        return Facing.N

    def event_cells(self) -> dict[EventId, list[GridPosition]]:
        """Every mapped event id and the cells carrying it."""
        cells: dict[EventId, list[GridPosition]] = {}
        for y, row in enumerate(self.rows):
            for x, _ in enumerate(row):
                cell = self.cell_at(x, y)
                if cell.kind == CellKind.EVENT:
                    cells.setdefault(cell.event_id, []).append(GridPosition(x=x, y=y))
        return cells
