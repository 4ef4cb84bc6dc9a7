from tower.components.transform import Facing, GridPosition
from tower.world.grid import GridLayout, CellKind, normalize_event_id


def make_layout():
    return GridLayout.from_data({
        "name": "Grid",
        "layout": [
            " S x1 ",
            " x    ",
            " 0xbG",
        ],
        "mapping": {"1": "1", "b": "boss"},
    })


def test_normalize_event_id():
    assert normalize_event_id("12") == 12
    assert normalize_event_id(3) == 3
    assert normalize_event_id("boss") == "boss"
    assert normalize_event_id(True) == "True"


def test_mapping_normalized():
    layout = make_layout()
    assert layout.mapping == {"1": 1, "b": "boss"}


def test_cell_classification():
    layout = make_layout()
    assert layout.cell_at(1, 0).kind == CellKind.START
    assert layout.cell_at(2, 0).kind == CellKind.WALL
    assert layout.cell_at(3, 0).kind == CellKind.PATH
    assert layout.cell_at(1, 2).kind == CellKind.HALT
    assert layout.cell_at(4, 2).kind == CellKind.GOAL

    event = layout.cell_at(4, 0)
    assert event.kind == CellKind.EVENT
    assert event.event_id == 1

    boss = layout.cell_at(3, 2)
    assert boss.event_id == "boss"


def test_out_of_bounds_is_wall():
    layout = make_layout()
    assert layout.is_wall(-1, 0)
    assert layout.is_wall(0, -1)
    assert layout.is_wall(99, 0)
    assert layout.is_wall(5, 2)  # past the end of a short row
    assert layout.cell_at(0, 99).kind == CellKind.WALL


def test_unmapped_symbol_is_unknown():
    layout = GridLayout.from_data({"layout": ["Sq"]})
    cell = layout.cell_at(1, 0)
    assert cell.kind == CellKind.UNKNOWN
    assert cell.symbol == "q"


def test_find_start_and_facing():
    layout = make_layout()
    start = layout.find_start()
    assert start.as_tuple() == (1, 0)
    # Only the cell below the start is open
    assert layout.open_neighbours(start) == [Facing.S]
    assert layout.initial_facing() == Facing.S


def test_initial_facing_defaults_north():
    layout = GridLayout.from_data({"layout": ["xSx"]})
    assert layout.initial_facing() == Facing.N


def test_missing_start_is_origin():
    layout = GridLayout.from_data({"layout": ["xx"]})
    assert layout.find_start() == GridPosition(x=0, y=0)


def test_event_cells():
    layout = make_layout()
    cells = layout.event_cells()
    assert cells[1] == [GridPosition(x=4, y=0)]
    assert cells["boss"] == [GridPosition(x=3, y=2)]


def test_dimensions():
    layout = make_layout()
    assert layout.height == 3
    assert layout.width == 6
