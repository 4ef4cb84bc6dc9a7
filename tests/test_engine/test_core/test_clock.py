from tower_engine.core.clock import TickScheduler, RunClock, ManualClock


def test_every_fires_per_interval():
    scheduler = TickScheduler()
    ticks = []
    scheduler.every(100, lambda: ticks.append(scheduler.now_ms))

    scheduler.advance(250)

    assert ticks == [100, 200]
    assert scheduler.now_ms == 250


def test_after_fires_once():
    scheduler = TickScheduler()
    fired = []
    scheduler.after(1500, lambda: fired.append(True))

    scheduler.advance(1499)
    assert fired == []

    scheduler.advance(1)
    scheduler.advance(5000)
    assert fired == [True]
    assert scheduler.active_count == 0


def test_timers_fire_in_due_order():
    scheduler = TickScheduler()
    order = []
    scheduler.after(300, lambda: order.append("late"))
    scheduler.every(100, lambda: order.append("tick"))
    scheduler.after(100, lambda: order.append("early"))

    scheduler.advance(300)

    # Ties fire in creation order
    assert order == ["tick", "early", "tick", "late", "tick"]


def test_cancel_stops_timer():
    scheduler = TickScheduler()
    ticks = []
    handle = scheduler.every(100, lambda: ticks.append(1))

    scheduler.advance(100)
    handle.cancel()
    scheduler.advance(1000)

    assert len(ticks) == 1


def test_callback_can_cancel_itself():
    scheduler = TickScheduler()
    ticks = []
    handles = []

    def tick():
        ticks.append(1)
        if len(ticks) == 3:
            handles[0].cancel()

    handles.append(scheduler.every(10, tick))
    scheduler.advance(1000)

    assert len(ticks) == 3


def test_callback_can_schedule_more_timers():
    scheduler = TickScheduler()
    fired = []
    scheduler.after(100, lambda: scheduler.after(50, lambda: fired.append(scheduler.now_ms)))

    scheduler.advance(200)

    assert fired == [150]


def test_zero_interval_fires_once_per_advance():
    scheduler = TickScheduler()
    ticks = []
    scheduler.every(0, lambda: ticks.append(1))

    scheduler.advance(16)
    scheduler.advance(16)

    assert len(ticks) == 2


def test_negative_advance_is_ignored():
    scheduler = TickScheduler()
    scheduler.advance(100)
    scheduler.advance(-50)
    assert scheduler.now_ms == 100


def test_stop_all():
    scheduler = TickScheduler()
    ticks = []
    scheduler.every(10, lambda: ticks.append(1))
    scheduler.after(10, lambda: ticks.append(2))

    scheduler.stop_all()
    scheduler.advance(100)

    assert ticks == []
    assert scheduler.active_count == 0


def test_run_clock_with_manual_source():
    source = ManualClock(current_ms=500)
    clock = RunClock(source)
    assert clock.now_ms() == 500

    source.advance(1234)
    assert clock.now_ms() == 1734


def test_run_clock_defaults_to_wall_time():
    clock = RunClock()
    assert clock.now_ms() > 0
