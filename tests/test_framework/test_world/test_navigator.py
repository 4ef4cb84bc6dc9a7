import pytest

from tower.components.transform import Facing, RelativeMove
from tower.config import NavigatorTiming
from tower.world.grid import GridLayout
from tower.world.navigator import Navigator, NavigatorEvent, MovePhase, RadarCell


@pytest.fixture
def corridor():
    return GridLayout.from_data({
        "name": "Corridor",
        "layout": ["Sxx1x0G"],
        "mapping": {"1": 1},
    })


@pytest.fixture
def junction():
    return GridLayout.from_data({
        "name": "Junction",
        "layout": [
            "Sxq",
            " x ",
            " G ",
        ],
    })


@pytest.fixture
def nav_events(recorder):
    return recorder(NavigatorEvent)


def test_starts_facing_open_neighbour(corridor, event_bus):
    nav = Navigator(corridor, event_bus)
    assert nav.position.as_tuple() == (0, 0)
    assert nav.facing == Facing.E
    assert not nav.busy


def test_forward_auto_moves_to_event(corridor, event_bus, nav_events):
    nav = Navigator(corridor, event_bus)

    assert nav.move(RelativeMove.FORWARD)
    nav.settle()

    assert nav.position.as_tuple() == (3, 0)
    assert nav.steps == 3
    assert not nav.busy

    moved = nav_events.of(NavigatorEvent.MOVED)
    assert [e["position"].as_tuple() for e in moved] == [(1, 0), (2, 0), (3, 0)]
    assert all(e["steps_delta"] == 1 for e in moved)

    entered = nav_events.of(NavigatorEvent.ENTER_EVENT)
    assert len(entered) == 1
    assert entered[0]["event_id"] == 1


def test_move_phase_timing(corridor, event_bus, nav_events):
    timing = NavigatorTiming()
    nav = Navigator(corridor, event_bus, timing)

    nav.move(RelativeMove.FORWARD)
    assert nav.phase == MovePhase.TURNING

    nav.update(timing.move_windup_ms - 1)
    assert nav_events.of(NavigatorEvent.MOVED) == []

    nav.update(1)
    assert nav.position.as_tuple() == (1, 0)
    assert nav.phase == MovePhase.STEPPING

    nav.update(timing.step_ms)
    assert nav.position.as_tuple() == (2, 0)


def test_commands_ignored_while_busy(corridor, event_bus):
    nav = Navigator(corridor, event_bus)
    assert nav.move(RelativeMove.FORWARD)
    assert nav.busy
    assert not nav.move(RelativeMove.REVERSE)
    assert not nav.move(Facing.E)

    nav.settle()
    assert nav.move(RelativeMove.FORWARD)


def test_zero_cell_halts_auto_move(event_bus, nav_events):
    layout = GridLayout.from_data({"layout": ["Sx0xG"]})
    nav = Navigator(layout, event_bus)

    nav.move(RelativeMove.FORWARD)
    nav.settle()

    assert nav.position.as_tuple() == (2, 0)
    assert not nav.goal_reached
    assert not nav.busy
    assert nav_events.of(NavigatorEvent.REACHED_GOAL) == []
    assert nav_events.of(NavigatorEvent.ENTER_EVENT) == []
    assert nav_events.of(NavigatorEvent.MESSAGE)[-1]["text"] == "The path continues."

    radar = nav.radar(3, 1)
    assert radar[0] == [RadarCell.PATH, RadarCell.CURRENT, RadarCell.PATH]
    nav.move(Facing.W)
    assert nav.radar(3, 1)[0][2] == RadarCell.ROOM


def test_forward_past_zero_cell_reaches_goal(corridor, event_bus, nav_events):
    nav = Navigator(corridor, event_bus)
    nav.move(RelativeMove.FORWARD)
    nav.settle()

    nav.move(RelativeMove.FORWARD)
    nav.settle()
    assert nav.position.as_tuple() == (5, 0)
    assert not nav.goal_reached

    nav.move(RelativeMove.FORWARD)
    nav.settle()

    assert nav.position.as_tuple() == (6, 0)
    assert nav.goal_reached
    assert len(nav_events.of(NavigatorEvent.REACHED_GOAL)) == 1
    # Goal is terminal
    assert not nav.move(RelativeMove.REVERSE)
    assert not nav.can_move(Facing.W)


def test_hidden_event_behaves_as_path(corridor, event_bus, nav_events):
    nav = Navigator(corridor, event_bus, hidden_events=[1])
    nav.move(RelativeMove.FORWARD)
    nav.settle()

    # Walks through the hidden event and halts on the "0" cell
    assert nav.position.as_tuple() == (5, 0)
    assert nav_events.of(NavigatorEvent.ENTER_EVENT) == []

    nav.set_event_visibility(1, True)
    assert not nav.is_hidden(1)


def test_unmapped_symbol_stops_without_event(junction, event_bus, nav_events):
    nav = Navigator(junction, event_bus)
    nav.move(RelativeMove.FORWARD)
    nav.settle()

    assert nav.position.as_tuple() == (2, 0)
    assert nav_events.of(NavigatorEvent.ENTER_EVENT) == []
    assert nav_events.of(NavigatorEvent.MESSAGE)


def test_wall_stops_auto_move(event_bus):
    layout = GridLayout.from_data({"layout": ["Sxx "]})
    nav = Navigator(layout, event_bus)

    nav.move(RelativeMove.FORWARD)
    nav.settle()

    assert nav.position.as_tuple() == (2, 0)
    assert not nav.busy


def test_turn_right_then_walk(junction, event_bus):
    nav = Navigator(junction, event_bus)
    assert nav.move(Facing.E)
    assert nav.position.as_tuple() == (1, 0)

    nav.move(RelativeMove.RIGHT)
    nav.settle()

    assert nav.facing == Facing.S
    assert nav.goal_reached
    assert nav.position.as_tuple() == (1, 2)


def test_reverse_only_turns(corridor, event_bus, nav_events):
    timing = NavigatorTiming()
    nav = Navigator(corridor, event_bus, timing)

    nav.move(RelativeMove.REVERSE)
    assert nav.facing == Facing.W
    assert nav.busy

    nav.update(timing.turn_ms)
    assert not nav.busy
    assert nav.position.as_tuple() == (0, 0)
    assert nav_events.of(NavigatorEvent.MOVED) == []
    assert [e["text"] for e in nav_events.of(NavigatorEvent.MESSAGE)] == ["Turned around."]


def test_absolute_move_single_step(corridor, event_bus, nav_events):
    nav = Navigator(corridor, event_bus)

    assert nav.move(Facing.E)
    # No animation: done immediately, one cell only
    assert nav.position.as_tuple() == (1, 0)
    assert not nav.busy
    assert nav.facing == Facing.E

    assert not nav.move(Facing.N)  # wall
    assert nav.position.as_tuple() == (1, 0)

    nav.move(Facing.E)
    nav.move(Facing.E)
    assert nav_events.of(NavigatorEvent.ENTER_EVENT)[0]["event_id"] == 1


def test_affordances(corridor, event_bus):
    nav = Navigator(corridor, event_bus)
    affordances = nav.affordances()

    assert affordances["FORWARD"] is True
    assert affordances["REVERSE"] is False
    assert affordances["RIGHT"] is False
    assert affordances["E"] is True
    assert affordances["N"] is False


def test_radar(corridor, event_bus):
    nav = Navigator(corridor, event_bus)
    nav.move(Facing.E)
    nav.move(Facing.E)  # (2, 0), next to the event cell

    radar = nav.radar(3, 3)

    assert len(radar) == 3 and all(len(row) == 3 for row in radar)
    assert radar[0] == [RadarCell.WALL] * 3
    assert radar[1] == [RadarCell.PATH, RadarCell.CURRENT, RadarCell.ROOM]
    assert radar[2] == [RadarCell.WALL] * 3


def test_resume_from_state(corridor, event_bus):
    nav = Navigator(corridor, event_bus)
    nav.resume_from_state({"steps": 5, "position": {"x": 4, "y": 0}, "elapsed_ms": 9000})

    assert nav.position.as_tuple() == (4, 0)
    assert nav.steps == 5
    assert nav.elapsed_ms == 9000

    # Missing position keeps the current one
    nav.resume_from_state({"steps": 6})
    assert nav.position.as_tuple() == (4, 0)
    assert nav.steps == 6


def test_floor_clock(corridor, event_bus):
    nav = Navigator(corridor, event_bus)
    nav.update(250)
    assert nav.elapsed_ms == 250

    nav.stop()
    nav.update(250)
    assert nav.elapsed_ms == 250

    nav.start_clock()
    nav.update(50)
    assert nav.elapsed_ms == 300


def test_stop_cancels_action(corridor, event_bus):
    nav = Navigator(corridor, event_bus)
    nav.move(RelativeMove.FORWARD)
    nav.stop()

    assert not nav.busy
    assert nav.phase == MovePhase.IDLE
    nav.update(5000)
    assert nav.position.as_tuple() == (0, 0)


def test_snapshot(corridor, event_bus):
    snapshot = Navigator(corridor, event_bus).snapshot()
    assert snapshot["floor_name"] == "Corridor"
    assert snapshot["position"] == (0, 0)
    assert snapshot["facing"] == "E"
    assert snapshot["affordances"]["FORWARD"] is True


def test_move_rejects_unknown_command(corridor, event_bus, nav_events):
    nav = Navigator(corridor, event_bus)

    assert nav.move("N") is False
    assert nav.move(None) is False
    assert not nav.busy
    assert nav.position.as_tuple() == (0, 0)
    assert nav_events.events == []
