"""
Usage report composition.

Combines environment facts, launch timings, the counter record, account
classification, onboarding metrics and repository counts into the single
JSON document sent to the collector.
"""

import logging
from typing import Any, Dict, Sequence

from usage_stats.counters import CounterEngine
from usage_stats.environment import EnvironmentProvider
from usage_stats.models import Account, Repository
from usage_stats.onboarding import OnboardingTimer
from usage_stats.storage import StatsDatabase

logger = logging.getLogger(__name__)

DOTCOM_API_ENDPOINT = "https://api.github.com"

# Reported for every launch metric when no launch was recorded
NO_LAUNCH_DATA = -1


def determine_user_type(accounts: Sequence[Account]) -> Dict[str, bool]:
    """Classify the signed-in accounts.

    Both flags may be true when the user is signed in to GitHub.com and an
    Enterprise server at the same time.
    """
    return {
        "dotComAccount": any(a.endpoint == DOTCOM_API_ENDPOINT for a in accounts),
        "enterpriseAccount": any(a.endpoint != DOTCOM_API_ENDPOINT for a in accounts),
    }


def categorized_repository_counts(repositories: Sequence[Repository]) -> Dict[str, int]:
    return {
        "repositoryCount": len(repositories),
        "gitHubRepositoryCount": sum(1 for r in repositories if r.github_repository),
    }


class ReportComposer:
    """Builds usage reports from the stats storage."""

    def __init__(
        self,
        db: StatsDatabase,
        counters: CounterEngine,
        onboarding: OnboardingTimer,
        environment: EnvironmentProvider,
    ):
        self.db = db
        self.counters = counters
        self.onboarding = onboarding
        self.environment = environment

    async def get_average_launch_stats(self) -> Dict[str, float]:
        """Mean of every launch sample recorded this cycle."""
        launches = await self.db.get_launches()
        if not launches:
            return {
                "mainReadyTime": NO_LAUNCH_DATA,
                "loadTime": NO_LAUNCH_DATA,
                "rendererReadyTime": NO_LAUNCH_DATA,
            }

        count = len(launches)
        return {
            "mainReadyTime": sum(l.main_ready_time for l in launches) / count,
            "loadTime": sum(l.load_time for l in launches) / count,
            "rendererReadyTime": sum(l.renderer_ready_time for l in launches) / count,
        }

    async def compose_report(
        self,
        accounts: Sequence[Account],
        repositories: Sequence[Repository],
    ) -> Dict[str, Any]:
        """Assemble the full usage report.

        Later sections win on key collisions, although the sections never
        share keys.
        """
        launch_stats = await self.get_average_launch_stats()
        measures = await self.counters.get_daily_measures()

        report: Dict[str, Any] = {"eventType": "usage"}
        report.update(self.environment.to_payload())
        report.update(launch_stats)
        report.update(measures.to_payload())
        report.update(determine_user_type(accounts))
        report.update(self.onboarding.get_onboarding_stats())
        report.update(categorized_repository_counts(repositories))

        logger.debug(f"Composed usage report with {len(report)} fields")
        return report
