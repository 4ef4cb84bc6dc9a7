"""
Core engine module.

Exports:
- Component: Pydantic base for data-only state models
- EventBus, Event: Typed publish/subscribe messaging
- TickScheduler, TimerHandle: Cooperative timers
- RunClock, ManualClock: Timestamp sources
"""

from tower_engine.core.component import Component
from tower_engine.core.events import EventBus, Event, EventHandler
from tower_engine.core.clock import TickScheduler, TimerHandle, RunClock, ManualClock

__all__ = [
    # State
    "Component",
    # Events
    "EventBus",
    "Event",
    "EventHandler",
    # Time
    "TickScheduler",
    "TimerHandle",
    "RunClock",
    "ManualClock",
]
