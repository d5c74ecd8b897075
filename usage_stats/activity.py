"""
User activity tracking.

The counter record has a single ``active`` flag per cycle. The bridge turns
the first activity notification of a cycle into that flag and then stops
listening until the next cycle begins.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, Protocol

from usage_stats.counters import CounterEngine

logger = logging.getLogger(__name__)

ActivityListener = Callable[[], Awaitable[None]]


class ActivityMonitor(Protocol):
    """Source of "the user did something" notifications."""

    def subscribe(self, listener: ActivityListener) -> None: ...

    def unsubscribe(self, listener: ActivityListener) -> None: ...


class UiActivityMonitor:
    """Simple in-process activity source.

    The host application calls :meth:`emit` from its input handlers.
    """

    def __init__(self):
        self._listeners: list[ActivityListener] = []

    def subscribe(self, listener: ActivityListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ActivityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def emit(self) -> None:
        # Snapshot: listeners may unsubscribe themselves while running
        for listener in list(self._listeners):
            await listener()


class BridgeState(Enum):
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"


class ActivityBridge:
    """Marks the current cycle active on the first activity notification.

    Transitions:
        UNSUBSCRIBED --enable() / counters cleared--> SUBSCRIBED
        SUBSCRIBED --activity--> UNSUBSCRIBED (and sets ``active``)
    """

    def __init__(self, monitor: ActivityMonitor, counters: CounterEngine):
        self.monitor = monitor
        self.counters = counters
        self.state = BridgeState.UNSUBSCRIBED

        counters.on_cleared(self.enable)
        self.enable()

    def enable(self) -> None:
        if self.state is BridgeState.SUBSCRIBED:
            return
        self.monitor.subscribe(self.on_activity)
        self.state = BridgeState.SUBSCRIBED

    def disable(self) -> None:
        if self.state is BridgeState.UNSUBSCRIBED:
            return
        self.monitor.unsubscribe(self.on_activity)
        self.state = BridgeState.UNSUBSCRIBED

    async def on_activity(self) -> None:
        self.disable()
        await self.counters.update_daily_measures(lambda m: {"active": True})
        logger.debug("Marked current stats cycle as active")
