"""
Typed event bus.

Event types are Enum members. Each component declares its own closed
Enum (NavigatorEvent, BattleEvent, ...) and documents the payload keys
next to each member, so a subscriber knows exactly what it can receive.

Usage:
    class NavigatorEvent(Enum):
        MOVED = auto()          # steps_delta, position
        REACHED_GOAL = auto()

    bus = EventBus()
    bus.subscribe(NavigatorEvent.MOVED, on_moved)
    bus.publish(NavigatorEvent.MOVED, steps_delta=1, position=pos)

Dispatch is synchronous. An event published from inside a handler is
queued and delivered once the current dispatch has finished, so
handlers always observe events in publish order.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Union
from weakref import WeakMethod, ref

logger = logging.getLogger(__name__)


@dataclass
class Event:
    """
    A published event.

    Attributes:
        type: Enum member identifying the event
        data: Keyword payload given to publish()
        consumed: Set by a handler to stop lower-priority handlers
    """
    type: Enum
    data: dict[str, Any] = field(default_factory=dict)
    consumed: bool = False

    def consume(self) -> None:
        self.consumed = True

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]


EventHandler = Callable[[Event], None]
HandlerRef = Union[EventHandler, ref, WeakMethod]


@dataclass
class _Subscription:
    priority: int
    target: HandlerRef
    one_shot: bool = False
    live: bool = True

    def resolve(self) -> Optional[EventHandler]:
        """The handler, or None once a weakly held handler is gone."""
        if isinstance(self.target, (ref, WeakMethod)):
            return self.target()
        return self.target


class EventBus:
    """
    Publish/subscribe hub shared by every system of a run.

    Handlers run highest priority first; equal priorities keep
    subscription order. Handlers are held weakly by default, so a
    listener that goes away is dropped without unsubscribing. A handler
    that raises is logged and the dispatch carries on.
    """

    def __init__(self):
        self._subscriptions: dict[Enum, list[_Subscription]] = {}
        self._pending: deque[Event] = deque()
        self._dispatching = False

    # Subscription

    def subscribe(
        self,
        event_type: Enum,
        handler: EventHandler,
        priority: int = 0,
        one_shot: bool = False,
        weak: bool = True,
    ) -> None:
        """
        Register a handler for one event type.

        Args:
            event_type: Enum member to listen for
            handler: Called with the Event
            priority: Higher runs earlier
            one_shot: Drop the handler after its first call
            weak: Hold the handler through a weak reference. Pass False
                for lambdas and other handlers nothing else keeps alive.
        """
        if weak:
            target: HandlerRef = WeakMethod(handler) if hasattr(handler, '__self__') else ref(handler)
        else:
            target = handler

        subscriptions = self._subscriptions.setdefault(event_type, [])
        position = len(subscriptions)
        for index, existing in enumerate(subscriptions):
            if priority > existing.priority:
                position = index
                break
        subscriptions.insert(position, _Subscription(priority, target, one_shot))

    def subscribe_all(
        self,
        event_enum: type[Enum],
        handler: EventHandler,
        priority: int = 0,
        weak: bool = True,
    ) -> None:
        """Register one handler for every member of an event Enum."""
        for member in event_enum:
            self.subscribe(member, handler, priority=priority, weak=weak)

    def unsubscribe(self, event_type: Enum, handler: EventHandler) -> None:
        subscriptions = self._subscriptions.get(event_type)
        if not subscriptions:
            return
        for subscription in subscriptions:
            if subscription.resolve() == handler:
                subscription.live = False
        self._prune(event_type)

    def clear(self, event_type: Optional[Enum] = None) -> None:
        """Drop the handlers of one event type, or of every type."""
        if event_type is None:
            self._subscriptions.clear()
        else:
            self._subscriptions.pop(event_type, None)

    def handler_count(self, event_type: Enum) -> int:
        """Live handlers registered for an event type."""
        return sum(
            1 for subscription in self._subscriptions.get(event_type, [])
            if subscription.live and subscription.resolve() is not None
        )

    # Publishing

    def publish(self, event_type: Enum, **data: Any) -> Event:
        """
        Publish an event.

        Returns:
            The Event; consumed tells whether a handler stopped it
        """
        event = Event(type=event_type, data=data)
        self._pending.append(event)
        if not self._dispatching:
            self._drain()
        return event

    def _drain(self) -> None:
        self._dispatching = True
        try:
            while self._pending:
                self._deliver(self._pending.popleft())
        finally:
            self._dispatching = False

    def _deliver(self, event: Event) -> None:
        subscriptions = self._subscriptions.get(event.type)
        if not subscriptions:
            return

        for subscription in list(subscriptions):
            if not subscription.live:
                continue
            handler = subscription.resolve()
            if handler is None:
                subscription.live = False
                continue

            if subscription.one_shot:
                subscription.live = False
            try:
                handler(event)
            except Exception:
                logger.exception("Error in event handler for %s", event.type)

            if event.consumed:
                break

        self._prune(event.type)

    def _prune(self, event_type: Enum) -> None:
        subscriptions = self._subscriptions.get(event_type)
        if subscriptions is not None:
            self._subscriptions[event_type] = [s for s in subscriptions if s.live]
