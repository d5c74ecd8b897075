"""
Data models for usage-stats.

These dataclasses give typed shapes to the counter record, launch samples
and the account/repository facts that feed a usage report.
"""

import logging
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


class ExecutionMode(str, Enum):
    """Where the process is running. Only production ever submits."""
    PRODUCTION = "production"
    DEVELOPMENT = "development"
    TEST = "test"


def to_camel(name: str) -> str:
    """Convert a snake_case attribute name to its camelCase wire name."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


# Wire names the collector already knows that differ from to_camel
WIRE_NAMES = {
    "diverging_branch_banner_initiated_merge": "divergingBranchBannerInitatedMerge",
}


@dataclass(frozen=True)
class DailyMeasures:
    """Counters for the current reporting cycle.

    Every counter starts at zero and may never go negative. ``active`` is
    flipped to True the first time the user does anything in a cycle.

    The record is updated through :meth:`merged`, which only accepts known
    field names.
    """

    commits: int = 0
    partial_commits: int = 0
    open_shell_count: int = 0
    co_authored_commits: int = 0
    branch_comparisons: int = 0
    default_branch_comparisons: int = 0
    merges_initiated_from_comparison: int = 0
    update_from_default_branch_menu_count: int = 0
    merge_into_current_branch_menu_count: int = 0
    pr_branch_checkouts: int = 0
    repo_with_indicator_clicked: int = 0
    repo_without_indicator_clicked: int = 0
    diverging_branch_banner_dismissal: int = 0
    diverging_branch_banner_initiated_merge: int = 0
    diverging_branch_banner_initiated_compare: int = 0
    diverging_branch_banner_influenced_merge: int = 0
    diverging_branch_banner_displayed: int = 0
    dotcom_push_count: int = 0
    enterprise_push_count: int = 0
    external_push_count: int = 0
    active: bool = False
    merge_conflict_from_pull_count: int = 0
    merge_conflict_from_explicit_merge_count: int = 0
    merged_with_loading_hint_count: int = 0
    merged_with_clean_merge_hint_count: int = 0
    merged_with_conflict_warning_hint_count: int = 0

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "active":
                if not isinstance(value, bool):
                    raise TypeError(f"active must be a bool, got {value!r}")
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{f.name} must be an int, got {value!r}")
            if value < 0:
                raise ValueError(f"{f.name} must not be negative, got {value}")

    @classmethod
    def field_names(cls) -> tuple:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "DailyMeasures":
        """Build a record from persisted data, filling gaps with defaults.

        Keys that are not counter fields (an old schema, a database id) are
        dropped.
        """
        if not data:
            return cls()

        known = set(cls.field_names())
        unknown = [k for k in data if k not in known]
        if unknown:
            logger.debug(f"Dropping unknown measure fields: {unknown}")

        return cls(**{k: v for k, v in data.items() if k in known})

    def merged(self, changes: Mapping[str, Any]) -> "DailyMeasures":
        """Return a copy with ``changes`` applied field by field.

        Raises:
            TypeError: if ``changes`` names a field that does not exist.
            ValueError: if a counter would become negative.
        """
        return replace(self, **dict(changes))

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_payload(self) -> dict:
        """Counters keyed by their camelCase wire names."""
        return {
            WIRE_NAMES.get(name, to_camel(name)): value
            for name, value in self.to_dict().items()
        }


@dataclass(frozen=True)
class LaunchStats:
    """Timing of a single application launch, in milliseconds.

    Attributes:
        main_ready_time: Time until the main process was ready.
        load_time: Time until the application finished loading.
        renderer_ready_time: Time until the renderer was ready.
    """

    main_ready_time: float
    load_time: float
    renderer_ready_time: float

    def __post_init__(self):
        for f in fields(self):
            if getattr(self, f.name) < 0:
                raise ValueError(f"{f.name} must not be negative")

    def to_payload(self) -> dict:
        return {
            "mainReadyTime": self.main_ready_time,
            "loadTime": self.load_time,
            "rendererReadyTime": self.renderer_ready_time,
        }


@dataclass(frozen=True)
class Account:
    """A signed-in account. Only the API endpoint matters for reporting."""

    login: str
    endpoint: str


@dataclass(frozen=True)
class Repository:
    """A repository known to the application.

    ``github_repository`` holds the owner/name of the hosted repository when
    the repository has a GitHub remote, and None otherwise.
    """

    name: str
    path: str = ""
    github_repository: Optional[str] = None

