"""
Tower Engine

Headless runtime pieces shared by the Arithmetic Tower game:
typed events, pydantic state components, cooperative timers and the
schema-validated master data store.

Quick Start:
    from tower_engine import EventBus, TickScheduler

    bus = EventBus()
    scheduler = TickScheduler()
    scheduler.every(100, lambda: None)
    scheduler.advance(1000)
"""

__version__ = "0.1.0"
__author__ = "Developer"

from tower_engine.core import (
    Component,
    EventBus,
    Event,
    TickScheduler,
    TimerHandle,
    RunClock,
    ManualClock,
)
from tower_engine.resources import Database

__all__ = [
    "Component",
    "EventBus",
    "Event",
    "TickScheduler",
    "TimerHandle",
    "RunClock",
    "ManualClock",
    "Database",
]
