"""
The stats store.

Single entry point for the host application. Record usage as it happens
and periodically call :meth:`StatsStore.report_stats`.

Example usage:
    >>> store = StatsStore(kv, db, StatsClient(), monitor)
    >>> await store.start()
    >>> await store.record_commit()
    >>> await store.report_stats(accounts, repositories)
"""

import logging
from typing import Callable, Optional, Sequence

from usage_stats import onboarding
from usage_stats.activity import ActivityBridge, ActivityMonitor
from usage_stats.client import StatsTransport
from usage_stats.counters import CounterEngine
from usage_stats.environment import EnvironmentProvider, SystemEnvironment
from usage_stats.models import Account, DailyMeasures, ExecutionMode, LaunchStats, Repository
from usage_stats.onboarding import OnboardingTimer
from usage_stats.opt_status import OptStatusNotifier
from usage_stats.report import ReportComposer
from usage_stats.scheduler import ReportScheduler, now_ms
from usage_stats.storage import KeyValueStore, StatsDatabase

logger = logging.getLogger(__name__)


class StatsStore:
    """The store for the application's usage stats."""

    def __init__(
        self,
        kv: KeyValueStore,
        db: StatsDatabase,
        transport: StatsTransport,
        activity_monitor: ActivityMonitor,
        environment: Optional[EnvironmentProvider] = None,
        execution_mode: ExecutionMode = ExecutionMode.PRODUCTION,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.kv = kv
        self.db = db
        self.clock = clock or now_ms

        self.counters = CounterEngine(db)
        self.onboarding = OnboardingTimer(kv)
        self.opt_status = OptStatusNotifier(kv, transport)
        self.composer = ReportComposer(
            db, self.counters, self.onboarding, environment or SystemEnvironment(kv)
        )
        self.scheduler = ReportScheduler(
            self.composer,
            self.counters,
            transport,
            kv,
            self.opt_status,
            execution_mode,
            has_completed_onboarding=lambda: onboarding.has_shown_welcome_flow(kv),
            clock=self.clock,
        )
        self.activity = ActivityBridge(activity_monitor, self.counters)

    async def start(self) -> None:
        """Finish startup work that needs the event loop.

        Resends an opt-in/opt-out acknowledgment that never got through.
        """
        await self.opt_status.send_pending_ping()

    # Reporting

    async def report_stats(
        self,
        accounts: Sequence[Account],
        repositories: Sequence[Repository],
        force: bool = False,
    ) -> bool:
        """Report any stats which are eligible for reporting."""
        return await self.scheduler.maybe_report(accounts, repositories, force=force)

    async def get_daily_stats(
        self,
        accounts: Sequence[Account],
        repositories: Sequence[Repository],
    ) -> dict:
        """The report that would be sent right now."""
        return await self.composer.compose_report(accounts, repositories)

    async def get_daily_measures(self) -> DailyMeasures:
        return await self.counters.get_daily_measures()

    async def record_launch_stats(self, stats: LaunchStats) -> None:
        await self.db.add_launch(stats)

    async def clear_daily_stats(self) -> None:
        """Clear the stored daily stats and start a new cycle.

        Normally only called after a successful report.
        """
        await self.counters.clear()

    async def set_opt_out(self, opt_out: bool) -> None:
        """Set whether the user has opted out of stats reporting."""
        await self.opt_status.set_opt_out(opt_out)

    def get_opt_out(self) -> bool:
        """Has the user opted out of stats reporting?"""
        return self.opt_status.get_opt_out()

    # Counters

    async def _increment(self, name: str) -> None:
        await self.counters.update_daily_measures(lambda m: {name: getattr(m, name) + 1})

    async def record_commit(self) -> None:
        await self._increment("commits")
        onboarding.create_timestamp(self.kv, onboarding.FIRST_COMMIT_CREATED_AT_KEY, self.clock())

    async def record_partial_commit(self) -> None:
        await self._increment("partial_commits")

    async def record_co_authored_commit(self) -> None:
        """Record that a commit was created with one or more co-authors."""
        await self._increment("co_authored_commits")

    async def record_open_shell(self) -> None:
        await self._increment("open_shell_count")

    async def record_branch_comparison(self) -> None:
        await self._increment("branch_comparisons")

    async def record_default_branch_comparison(self) -> None:
        """Record a branch comparison against the default branch."""
        await self._increment("default_branch_comparisons")

    async def record_compare_initiated_merge(self) -> None:
        """Record a merge started from the compare view."""
        await self._increment("merges_initiated_from_comparison")

    async def record_menu_initiated_update(self) -> None:
        """Record an "Update from default branch" menu merge."""
        await self._increment("update_from_default_branch_menu_count")

    async def record_merge_conflict_from_pull(self) -> None:
        await self._increment("merge_conflict_from_pull_count")

    async def record_merge_conflict_from_explicit_merge(self) -> None:
        await self._increment("merge_conflict_from_explicit_merge_count")

    async def record_menu_initiated_merge(self) -> None:
        """Record a "Merge into current branch" menu merge."""
        await self._increment("merge_into_current_branch_menu_count")

    async def record_pr_branch_checkout(self) -> None:
        await self._increment("pr_branch_checkouts")

    async def record_repo_clicked(self, has_indicator: bool) -> None:
        if has_indicator:
            await self._increment("repo_with_indicator_clicked")
        else:
            await self._increment("repo_without_indicator_clicked")

    async def record_diverging_branch_banner_dismissal(self) -> None:
        await self._increment("diverging_branch_banner_dismissal")

    async def record_diverging_branch_banner_initiated_merge(self) -> None:
        await self._increment("diverging_branch_banner_initiated_merge")

    async def record_diverging_branch_banner_initiated_compare(self) -> None:
        await self._increment("diverging_branch_banner_initiated_compare")

    async def record_diverging_branch_banner_influenced_merge(self) -> None:
        """Record a merge made after reaching compare from the banner."""
        await self._increment("diverging_branch_banner_influenced_merge")

    async def record_diverging_branch_banner_displayed(self) -> None:
        await self._increment("diverging_branch_banner_displayed")

    async def record_push_to_github(self) -> None:
        await self._increment("dotcom_push_count")
        onboarding.create_timestamp(self.kv, onboarding.FIRST_PUSH_TO_GITHUB_AT_KEY, self.clock())

    async def record_push_to_github_enterprise(self) -> None:
        await self._increment("enterprise_push_count")
        # GitHub.com and Enterprise pushes share one first-push key
        onboarding.create_timestamp(self.kv, onboarding.FIRST_PUSH_TO_GITHUB_AT_KEY, self.clock())

    async def record_push_to_generic_remote(self) -> None:
        await self._increment("external_push_count")

    async def record_user_proceeded_while_loading(self) -> None:
        """Record a merge made while the merge hint was still loading."""
        await self._increment("merged_with_loading_hint_count")

    async def record_merge_hint_success_and_user_proceeded(self) -> None:
        await self._increment("merged_with_clean_merge_hint_count")

    async def record_user_proceeded_after_conflict_warning(self) -> None:
        """Record a merge made despite a merge-conflicts warning."""
        await self._increment("merged_with_conflict_warning_hint_count")

    # Onboarding

    def record_welcome_wizard_initiated(self) -> None:
        """Start (or restart) onboarding timing."""
        self.kv.set(onboarding.WELCOME_WIZARD_INITIATED_AT_KEY, str(self.clock()))
        self.kv.remove(onboarding.WELCOME_WIZARD_COMPLETED_AT_KEY)

    def record_welcome_wizard_terminated(self) -> None:
        self.kv.set(onboarding.WELCOME_WIZARD_COMPLETED_AT_KEY, str(self.clock()))

    def record_add_repository(self) -> None:
        onboarding.create_timestamp(self.kv, onboarding.FIRST_REPOSITORY_ADDED_AT_KEY, self.clock())

    def record_clone_repository(self) -> None:
        onboarding.create_timestamp(self.kv, onboarding.FIRST_REPOSITORY_CLONED_AT_KEY, self.clock())

    def record_create_repository(self) -> None:
        onboarding.create_timestamp(self.kv, onboarding.FIRST_REPOSITORY_CREATED_AT_KEY, self.clock())

    def record_non_default_branch_checkout(self) -> None:
        onboarding.create_timestamp(
            self.kv, onboarding.FIRST_NON_DEFAULT_BRANCH_CHECKOUT_AT_KEY, self.clock()
        )

    def mark_welcome_flow_complete(self) -> None:
        """The user has seen onboarding, including the opt-out choice."""
        onboarding.mark_welcome_flow_complete(self.kv)
