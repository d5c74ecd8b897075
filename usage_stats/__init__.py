"""
usage-stats - Client-side usage telemetry aggregation

Counts user actions between reporting cycles, derives onboarding timing
metrics and sends one consolidated usage report per day, honoring the
user's opt-out:
- Counter record with field-wise merge updates
- Launch timing samples averaged per cycle
- Onboarding "time to first X" metrics
- Opt-in/opt-out acknowledgment pings
"""

from .version import __version__

from usage_stats.activity import ActivityBridge, UiActivityMonitor
from usage_stats.client import StatsClient, StatsTransport
from usage_stats.counters import CounterEngine
from usage_stats.environment import EnvironmentProvider, SystemEnvironment
from usage_stats.models import (
    Account,
    DailyMeasures,
    ExecutionMode,
    LaunchStats,
    Repository,
)
from usage_stats.onboarding import OnboardingTimer
from usage_stats.opt_status import OptStatusNotifier
from usage_stats.report import ReportComposer, determine_user_type
from usage_stats.scheduler import ReportScheduler
from usage_stats.storage import (
    InMemoryKeyValueStore,
    InMemoryStatsDatabase,
    JsonFileKeyValueStore,
    KeyValueStore,
    SqliteStatsDatabase,
    StatsDatabase,
)
from usage_stats.store import StatsStore

__all__ = [
    "__version__",
    # Store
    "StatsStore",
    # Components
    "CounterEngine",
    "OnboardingTimer",
    "ReportComposer",
    "ReportScheduler",
    "OptStatusNotifier",
    "ActivityBridge",
    "UiActivityMonitor",
    "determine_user_type",
    # Transport
    "StatsClient",
    "StatsTransport",
    # Storage
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "StatsDatabase",
    "InMemoryStatsDatabase",
    "SqliteStatsDatabase",
    # Environment
    "EnvironmentProvider",
    "SystemEnvironment",
    # Models
    "Account",
    "DailyMeasures",
    "ExecutionMode",
    "LaunchStats",
    "Repository",
]
