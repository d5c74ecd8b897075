"""
Daily report scheduling.

Decides whether a usage report is due and, if so, composes it, submits it
and starts a new cycle:
- 24-hour interval between successful reports
- Nothing is sent while opted out, outside production, or before onboarding
- A failed submission changes nothing, so the next attempt sends a larger report
"""

import logging
import time
from typing import Callable, Optional, Sequence

from usage_stats.client import StatsTransport, deliver
from usage_stats.counters import CounterEngine
from usage_stats.models import Account, ExecutionMode, Repository
from usage_stats.opt_status import OptStatusNotifier
from usage_stats.report import ReportComposer
from usage_stats.storage import KeyValueStore

logger = logging.getLogger(__name__)

LAST_DAILY_STATS_REPORT_KEY = "last-daily-stats-report"

# How often daily stats should be submitted (24 hours, in milliseconds)
DAILY_STATS_REPORT_INTERVAL = 1000 * 60 * 60 * 24


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class ReportScheduler:
    """Gates and performs the daily usage report.

    Not reentrant: drive :meth:`maybe_report` from a single periodic caller.
    """

    def __init__(
        self,
        composer: ReportComposer,
        counters: CounterEngine,
        transport: StatsTransport,
        store: KeyValueStore,
        opt_status: OptStatusNotifier,
        execution_mode: ExecutionMode,
        has_completed_onboarding: Callable[[], bool],
        clock: Optional[Callable[[], int]] = None,
    ):
        self.composer = composer
        self.counters = counters
        self.transport = transport
        self.store = store
        self.opt_status = opt_status
        self.execution_mode = execution_mode
        self.has_completed_onboarding = has_completed_onboarding
        self.clock = clock or now_ms

    def get_last_report_time(self) -> int:
        """Epoch milliseconds of the last successful report, 0 for never."""
        value = self.store.get(LAST_DAILY_STATS_REPORT_KEY)
        if not value:
            return 0
        try:
            return int(value)
        except ValueError:
            return 0

    def next_report_due(self) -> int:
        """Earliest time (epoch milliseconds) a report may be sent."""
        return self.get_last_report_time() + DAILY_STATS_REPORT_INTERVAL

    def should_report_daily_stats(self) -> bool:
        elapsed = self.clock() - self.get_last_report_time()
        if elapsed > DAILY_STATS_REPORT_INTERVAL:
            return True

        logger.debug(
            f"Stats reported {elapsed / 3_600_000:.1f} hours ago, "
            f"waiting until 24 hours have passed"
        )
        return False

    async def maybe_report(
        self,
        accounts: Sequence[Account],
        repositories: Sequence[Repository],
        force: bool = False,
    ) -> bool:
        """Report any stats which are eligible for reporting.

        Args:
            accounts: Signed-in accounts, used to classify the user.
            repositories: Repositories known to the application.
            force: Skip the 24-hour check. Opt-out, execution mode and
                onboarding still apply.

        Counters are cleared after the collector accepts the report, so a
        ``record_*`` update that lands while the POST is in flight is
        dropped along with the reported values.

        Returns:
            True if a report was accepted by the collector.
        """
        if self.opt_status.get_opt_out():
            logger.debug("Stats opted out, skipping report")
            return False

        # Never report while in development or test
        if self.execution_mode is not ExecutionMode.PRODUCTION:
            logger.debug(f"Not reporting stats in {self.execution_mode.value} mode")
            return False

        # Wait until the user has had a chance to see the opt-out in onboarding
        if not self.has_completed_onboarding():
            logger.debug("Onboarding not completed, skipping report")
            return False

        if not force and not self.should_report_daily_stats():
            return False

        now = self.clock()
        report = await self.composer.compose_report(accounts, repositories)

        if not await deliver(self.transport, report, "stats"):
            return False

        logger.info("Stats reported.")

        await self.counters.clear()
        self.store.set(LAST_DAILY_STATS_REPORT_KEY, str(now))
        return True
