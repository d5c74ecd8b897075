"""Shared test fixtures and configuration for usage-stats tests."""

import sys
from pathlib import Path

import httpx
import pytest

# Add usage_stats to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent))

from usage_stats.activity import UiActivityMonitor
from usage_stats.models import ExecutionMode
from usage_stats.onboarding import HAS_SHOWN_WELCOME_FLOW_KEY
from usage_stats.storage import InMemoryKeyValueStore, InMemoryStatsDatabase
from usage_stats.store import StatsStore

# 2024-01-01T00:00:00Z in epoch milliseconds
START_MS = 1_704_067_200_000
HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


class FakeTransport:
    """Records every posted document and answers with a canned status."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.error = None
        self.sent = []

    async def post(self, body):
        self.sent.append(body)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code)

    def of_type(self, event_type):
        return [body for body in self.sent if body.get("eventType") == event_type]


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class StaticEnvironment:
    """Fixed environment facts so reports are deterministic."""

    def to_payload(self):
        return {
            "version": "1.2.3",
            "osVersion": "Linux 6.1",
            "platform": "linux",
            "theme": "dark",
            "guid": "00000000-0000-4000-8000-000000000000",
        }


@pytest.fixture(autouse=True)
def isolate_home_directory(tmp_path, monkeypatch):
    """Keep the CLI and config away from the real ~/.usage-stats."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setattr("pathlib.Path.home", lambda: fake_home)
    monkeypatch.setattr("usage_stats.config.BASE_DIR", fake_home / ".usage-stats")
    monkeypatch.setattr("usage_stats.config.KV_STORE_PATH", fake_home / ".usage-stats" / "stats.json")
    monkeypatch.setattr("usage_stats.config.STATS_DB_PATH", fake_home / ".usage-stats" / "stats.db")
    monkeypatch.delenv("TEST_ENV", raising=False)
    monkeypatch.delenv("USAGE_STATS_ENV", raising=False)
    yield fake_home


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def db():
    return InMemoryStatsDatabase()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monitor():
    return UiActivityMonitor()


@pytest.fixture
def environment():
    return StaticEnvironment()


@pytest.fixture
def stats_store(kv, db, transport, monitor, environment, clock):
    """A production-mode StatsStore on in-memory storage."""
    return StatsStore(
        kv,
        db,
        transport,
        monitor,
        environment=environment,
        execution_mode=ExecutionMode.PRODUCTION,
        clock=clock,
    )


@pytest.fixture
def onboarded(kv):
    """Mark onboarding as completed so reports are allowed."""
    kv.set(HAS_SHOWN_WELCOME_FLOW_KEY, "1")
    return kv
