"""Tests for the activity bridge."""

from unittest.mock import AsyncMock

import pytest

from usage_stats.activity import ActivityBridge, BridgeState, UiActivityMonitor
from usage_stats.counters import CounterEngine


@pytest.fixture
def counters(db):
    return CounterEngine(db)


@pytest.fixture
def bridge(monitor, counters):
    return ActivityBridge(monitor, counters)


class TestUiActivityMonitor:
    @pytest.mark.asyncio
    async def test_emit_calls_listeners(self):
        monitor = UiActivityMonitor()
        listener = AsyncMock()
        monitor.subscribe(listener)

        await monitor.emit()
        await monitor.emit()

        assert listener.await_count == 2

    def test_subscribe_is_idempotent(self):
        monitor = UiActivityMonitor()
        listener = AsyncMock()
        monitor.subscribe(listener)
        monitor.subscribe(listener)
        assert monitor.listener_count == 1

    def test_unsubscribe_unknown_listener(self):
        UiActivityMonitor().unsubscribe(AsyncMock())


class TestActivityBridge:
    def test_subscribes_on_construction(self, bridge, monitor):
        assert bridge.state is BridgeState.SUBSCRIBED
        assert monitor.listener_count == 1

    @pytest.mark.asyncio
    async def test_first_activity_marks_active(self, bridge, counters):
        await bridge.monitor.emit()

        assert (await counters.get_daily_measures()).active is True
        assert bridge.state is BridgeState.UNSUBSCRIBED

    @pytest.mark.asyncio
    async def test_later_activity_in_cycle_is_inert(self, bridge, monitor, db):
        await monitor.emit()
        db.put_measures = AsyncMock()

        await monitor.emit()
        await monitor.emit()

        db.put_measures.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_activity_keeps_other_counters(self, bridge, monitor, counters):
        await counters.update_daily_measures(lambda m: {"commits": 4})

        await monitor.emit()

        measures = await counters.get_daily_measures()
        assert measures.commits == 4
        assert measures.active is True

    @pytest.mark.asyncio
    async def test_resubscribes_after_clear(self, bridge, monitor, counters):
        await monitor.emit()
        assert monitor.listener_count == 0

        await counters.clear()

        assert bridge.state is BridgeState.SUBSCRIBED
        assert monitor.listener_count == 1
        assert (await counters.get_daily_measures()).active is False

        await monitor.emit()
        assert (await counters.get_daily_measures()).active is True

    def test_enable_twice_subscribes_once(self, bridge, monitor):
        bridge.enable()
        assert monitor.listener_count == 1

    def test_disable_when_unsubscribed(self, bridge, monitor):
        bridge.disable()
        bridge.disable()
        assert monitor.listener_count == 0
