"""
Configuration for usage-stats.

All settings are read from environment variables when the module is
imported. Tests override them with ``monkeypatch.setattr`` on this module
or by setting the variable and reloading it.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from usage_stats.models import ExecutionMode

logger = logging.getLogger("usage_stats")

# Handler installed by setup_logging, kept so repeat calls reuse it
_handler: Optional[logging.Handler] = None


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_float(name: str, default: float) -> float:
    """Parse a float environment variable, falling back on bad input."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default


# Base directory for persisted state
BASE_DIR = Path(os.getenv("USAGE_STATS_HOME", str(Path.home() / ".usage-stats"))).expanduser()
KV_STORE_PATH = BASE_DIR / "stats.json"
STATS_DB_PATH = BASE_DIR / "stats.db"

# Collector
DEFAULT_STATS_ENDPOINT = "https://central.github.com/api/usage/desktop"
STATS_ENDPOINT = os.getenv("USAGE_STATS_ENDPOINT", DEFAULT_STATS_ENDPOINT)
STATS_TIMEOUT = env_float("USAGE_STATS_TIMEOUT", 10.0)

# The page that explains what is collected
SAMPLES_URL = "https://desktop.github.com/usage-data/"

DEBUG = env_bool("USAGE_STATS_DEBUG")


def get_execution_mode() -> ExecutionMode:
    """Detect the execution mode from the environment.

    USAGE_STATS_ENV selects production, development or test. A set
    TEST_ENV always means test.
    """
    if os.getenv("TEST_ENV"):
        return ExecutionMode.TEST

    value = os.getenv("USAGE_STATS_ENV", ExecutionMode.PRODUCTION.value).strip().lower()
    try:
        return ExecutionMode(value)
    except ValueError:
        logger.warning(f"Unknown USAGE_STATS_ENV={value!r}, assuming development")
        return ExecutionMode.DEVELOPMENT


def setup_logging(debug: bool = False) -> logging.Logger:
    """Attach a stderr handler to the package logger.

    Safe to call more than once; only the level changes on repeat calls.
    """
    global _handler

    level = logging.DEBUG if (debug or DEBUG) else logging.INFO
    logger.setLevel(level)

    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    if _handler not in logger.handlers:
        logger.addHandler(_handler)

    return logger
