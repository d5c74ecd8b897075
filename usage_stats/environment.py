"""
Environment facts included in every usage report.
"""

import platform
import sys
import uuid
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Callable, Optional

from usage_stats.storage import KeyValueStore

GUID_KEY = "stats-guid"
THEME_KEY = "theme"
DEFAULT_THEME = "light"


class EnvironmentProvider(ABC):
    """Read-only source of the facts that identify an installation."""

    @abstractmethod
    def version(self) -> str: ...

    @abstractmethod
    def os_version(self) -> str: ...

    @abstractmethod
    def platform(self) -> str: ...

    @abstractmethod
    def theme(self) -> str: ...

    @abstractmethod
    def guid(self) -> str: ...

    def to_payload(self) -> dict:
        return {
            "version": self.version(),
            "osVersion": self.os_version(),
            "platform": self.platform(),
            "theme": self.theme(),
            "guid": self.guid(),
        }


@lru_cache(maxsize=1)
def get_os_version() -> str:
    """Human-readable OS name and version, e.g. "macOS 14.4" or "Windows 10"."""
    system = platform.system()

    if system == "Darwin":
        release = platform.mac_ver()[0]
        return f"macOS {release}" if release else "macOS"
    if system == "Windows":
        return f"Windows {platform.release()}"
    if system == "Linux":
        return f"Linux {platform.release()}"

    return f"{system} {platform.release()}".strip() or "unknown"


def get_guid(store: KeyValueStore) -> str:
    """Installation id, created on first use and stable afterwards."""
    guid = store.get(GUID_KEY)
    if not guid:
        guid = str(uuid.uuid4())
        store.set(GUID_KEY, guid)
    return guid


def get_persisted_theme_name(store: KeyValueStore) -> str:
    return store.get(THEME_KEY) or DEFAULT_THEME


class SystemEnvironment(EnvironmentProvider):
    """Environment facts read from the running interpreter and the store.

    Args:
        store: Key-value store holding the installation id and theme.
        version: Application version to report. Defaults to this package's.
        theme_provider: Callable returning the current theme name. Defaults
            to the theme persisted in ``store``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        version: Optional[str] = None,
        theme_provider: Optional[Callable[[], str]] = None,
    ):
        from usage_stats.version import __version__

        self.store = store
        self._version = version or __version__
        self._theme_provider = theme_provider

    def version(self) -> str:
        return self._version

    def os_version(self) -> str:
        return get_os_version()

    def platform(self) -> str:
        return sys.platform

    def theme(self) -> str:
        if self._theme_provider is not None:
            return self._theme_provider()
        return get_persisted_theme_name(self.store)

    def guid(self) -> str:
        return get_guid(self.store)
