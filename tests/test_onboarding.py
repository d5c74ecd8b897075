"""Tests for usage_stats.onboarding."""

import pytest

from usage_stats.onboarding import (
    FIRST_COMMIT_CREATED_AT_KEY,
    FIRST_PUSH_TO_GITHUB_AT_KEY,
    ONBOARDING_METRICS,
    WELCOME_WIZARD_COMPLETED_AT_KEY,
    WELCOME_WIZARD_INITIATED_AT_KEY,
    OnboardingTimer,
    create_timestamp,
    get_timestamp,
    has_shown_welcome_flow,
    mark_welcome_flow_complete,
)

START = 1_000_000


@pytest.fixture
def timer(kv):
    return OnboardingTimer(kv)


class TestTimestamps:
    def test_get_missing(self, kv):
        assert get_timestamp(kv, "nope") is None

    def test_get_malformed_is_absent(self, kv):
        kv.set(FIRST_COMMIT_CREATED_AT_KEY, "yesterday")
        assert get_timestamp(kv, FIRST_COMMIT_CREATED_AT_KEY) is None

    def test_create_is_write_once(self, kv):
        assert create_timestamp(kv, FIRST_COMMIT_CREATED_AT_KEY, 100) is True
        assert create_timestamp(kv, FIRST_COMMIT_CREATED_AT_KEY, 200) is False
        assert get_timestamp(kv, FIRST_COMMIT_CREATED_AT_KEY) == 100

    def test_welcome_flow_flag(self, kv):
        assert has_shown_welcome_flow(kv) is False
        mark_welcome_flow_complete(kv)
        assert has_shown_welcome_flow(kv) is True


class TestTimeToFirst:
    def test_unknown_without_wizard_start(self, timer, kv):
        kv.set(FIRST_COMMIT_CREATED_AT_KEY, str(START))
        assert timer.time_to_first(FIRST_COMMIT_CREATED_AT_KEY) is None

    def test_not_yet_when_event_missing(self, timer, kv):
        kv.set(WELCOME_WIZARD_INITIATED_AT_KEY, str(START))
        assert timer.time_to_first(FIRST_COMMIT_CREATED_AT_KEY) == -1

    def test_not_yet_when_event_equals_start(self, timer, kv):
        kv.set(WELCOME_WIZARD_INITIATED_AT_KEY, str(START))
        kv.set(FIRST_COMMIT_CREATED_AT_KEY, str(START))
        assert timer.time_to_first(FIRST_COMMIT_CREATED_AT_KEY) == -1

    def test_not_yet_when_event_precedes_start(self, timer, kv):
        kv.set(WELCOME_WIZARD_INITIATED_AT_KEY, str(START))
        kv.set(FIRST_COMMIT_CREATED_AT_KEY, str(START - 5000))
        assert timer.time_to_first(FIRST_COMMIT_CREATED_AT_KEY) == -1

    @pytest.mark.parametrize(
        "delta_ms,expected",
        [(1, 0), (499, 0), (500, 1), (1499, 1), (2500, 3), (90_000, 90)],
    )
    def test_rounds_to_nearest_second(self, timer, kv, delta_ms, expected):
        kv.set(WELCOME_WIZARD_INITIATED_AT_KEY, str(START))
        kv.set(FIRST_COMMIT_CREATED_AT_KEY, str(START + delta_ms))
        assert timer.time_to_first(FIRST_COMMIT_CREATED_AT_KEY) == expected

    def test_malformed_start_is_unknown(self, timer, kv):
        kv.set(WELCOME_WIZARD_INITIATED_AT_KEY, "NaN")
        kv.set(FIRST_COMMIT_CREATED_AT_KEY, str(START))
        assert timer.time_to_first(FIRST_COMMIT_CREATED_AT_KEY) is None


class TestGetOnboardingStats:
    def test_empty_without_wizard_start(self, timer, kv):
        kv.set(FIRST_COMMIT_CREATED_AT_KEY, str(START))
        assert timer.get_onboarding_stats() == {}

    def test_all_fields_present_once_started(self, timer, kv):
        kv.set(WELCOME_WIZARD_INITIATED_AT_KEY, str(START))
        kv.set(WELCOME_WIZARD_COMPLETED_AT_KEY, str(START + 60_000))
        kv.set(FIRST_PUSH_TO_GITHUB_AT_KEY, str(START + 120_000))

        stats = timer.get_onboarding_stats()

        assert set(stats) == set(ONBOARDING_METRICS)
        assert len(stats) == 7
        assert stats["timeToWelcomeWizardTerminated"] == 60
        assert stats["timeToFirstGitHubPush"] == 120
        assert stats["timeToFirstCommit"] == -1
        assert stats["timeToFirstClonedRepository"] == -1
