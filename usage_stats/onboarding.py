"""
Onboarding timing.

Timestamps for onboarding milestones are kept in the key-value store as
epoch milliseconds. Every "time to first X" metric is measured from the
moment the welcome wizard was started.
"""

import math
from typing import Optional

from usage_stats.storage import KeyValueStore

WELCOME_WIZARD_INITIATED_AT_KEY = "welcome-wizard-initiated-at"
WELCOME_WIZARD_COMPLETED_AT_KEY = "welcome-wizard-terminated-at"
FIRST_REPOSITORY_ADDED_AT_KEY = "first-repository-added-at"
FIRST_REPOSITORY_CLONED_AT_KEY = "first-repository-cloned-at"
FIRST_REPOSITORY_CREATED_AT_KEY = "first-repository-created-at"
FIRST_COMMIT_CREATED_AT_KEY = "first-commit-created-at"
FIRST_PUSH_TO_GITHUB_AT_KEY = "first-push-to-github-at"
FIRST_NON_DEFAULT_BRANCH_CHECKOUT_AT_KEY = "first-non-default-branch-checkout-at"

HAS_SHOWN_WELCOME_FLOW_KEY = "has-shown-welcome-flow"

# Wire name -> timestamp key
ONBOARDING_METRICS = {
    "timeToWelcomeWizardTerminated": WELCOME_WIZARD_COMPLETED_AT_KEY,
    "timeToFirstAddedRepository": FIRST_REPOSITORY_ADDED_AT_KEY,
    "timeToFirstClonedRepository": FIRST_REPOSITORY_CLONED_AT_KEY,
    "timeToFirstCreatedRepository": FIRST_REPOSITORY_CREATED_AT_KEY,
    "timeToFirstCommit": FIRST_COMMIT_CREATED_AT_KEY,
    "timeToFirstGitHubPush": FIRST_PUSH_TO_GITHUB_AT_KEY,
    "timeToFirstNonDefaultBranchCheckout": FIRST_NON_DEFAULT_BRANCH_CHECKOUT_AT_KEY,
}

# The action has not happened yet
NOT_YET = -1


def get_timestamp(store: KeyValueStore, key: str) -> Optional[int]:
    """Read an epoch-millisecond timestamp.

    Returns None if the key is missing or its value is not an integer.
    """
    value = store.get(key)
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def create_timestamp(store: KeyValueStore, key: str, now: int) -> bool:
    """Store ``now`` under ``key`` unless the key already exists.

    Returns:
        True if the timestamp was written.
    """
    if store.get(key) is not None:
        return False
    store.set(key, str(now))
    return True


def has_shown_welcome_flow(store: KeyValueStore) -> bool:
    return store.get(HAS_SHOWN_WELCOME_FLOW_KEY) == "1"


def mark_welcome_flow_complete(store: KeyValueStore) -> None:
    store.set(HAS_SHOWN_WELCOME_FLOW_KEY, "1")


class OnboardingTimer:
    """Derives elapsed-time onboarding metrics from stored timestamps."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def time_to_first(self, key: str) -> Optional[int]:
        """Seconds from wizard start until the event stored under ``key``.

        Returns:
            None if the wizard start was never recorded, -1 if the event has
            not happened (or is not later than the wizard start, which means
            the stored values were tampered with), otherwise the whole number
            of seconds, rounded to nearest.
        """
        start_time = get_timestamp(self.store, WELCOME_WIZARD_INITIATED_AT_KEY)
        if start_time is None:
            return None

        end_time = get_timestamp(self.store, key)
        if end_time is None or end_time <= start_time:
            return NOT_YET

        # Halves round up
        return math.floor((end_time - start_time) / 1000 + 0.5)

    def get_onboarding_stats(self) -> dict:
        """All onboarding metrics keyed by wire name.

        Users who went through onboarding before it was tracked have no
        wizard start, and get no metrics at all.
        """
        if get_timestamp(self.store, WELCOME_WIZARD_INITIATED_AT_KEY) is None:
            return {}

        return {name: self.time_to_first(key) for name, key in ONBOARDING_METRICS.items()}
