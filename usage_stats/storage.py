"""
Storage backends for usage-stats.

Two kinds of storage back the stats engine:

- A durable key-value store for scalar flags and timestamps
  (``KeyValueStore``). Values are strings, the same way a browser's
  localStorage holds them.
- The measurement tables (``StatsDatabase``): an append-only table of launch
  samples and a single counter record for the current cycle.

Each has an in-memory implementation for tests and a file-backed one used by
the CLI.
"""

import asyncio
import json
import logging
import os
import sqlite3
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from usage_stats.models import DailyMeasures, LaunchStats

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract durable key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value for ``key``, or None if it is not set."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``. Removing a missing key is not an error."""


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store for tests."""

    def __init__(self, initial: Optional[dict] = None):
        self._data = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def as_dict(self) -> dict:
        return dict(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """Store keys as a JSON object on disk with owner-only permissions.

    Every ``set`` and ``remove`` rewrites the file, so the store survives a
    process restart at any point. A corrupt file reads as empty.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data = self._load()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError):
            logger.warning(f"Ignoring corrupt stats store at {self.path}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, sort_keys=True)
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)
        self._save()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()


class StatsDatabase(ABC):
    """Abstract measurement tables.

    All access is asynchronous. ``transaction()`` serializes access to the
    counter table: the read-modify-write of an update must run inside it.
    The lock is not reentrant, so the table methods never take it
    themselves.
    """

    def __init__(self):
        self._measures_lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._measures_lock:
            yield

    @abstractmethod
    async def add_launch(self, stats: LaunchStats) -> None:
        """Append one launch sample."""

    @abstractmethod
    async def get_launches(self) -> list[LaunchStats]:
        """Return every launch sample in insertion order."""

    @abstractmethod
    async def clear_launches(self) -> None:
        """Delete all launch samples."""

    @abstractmethod
    async def get_measures(self) -> Optional[dict]:
        """Return the raw counter record, or None if there is none."""

    @abstractmethod
    async def put_measures(self, measures: DailyMeasures) -> None:
        """Insert or replace the counter record."""

    @abstractmethod
    async def clear_measures(self) -> None:
        """Delete the counter record."""


class InMemoryStatsDatabase(StatsDatabase):
    """In-memory tables for tests.

    Every operation yields to the event loop once so that interleavings
    between concurrent tasks behave like a real asynchronous store.
    """

    def __init__(self):
        super().__init__()
        self.launches: list[LaunchStats] = []
        self.measures: Optional[dict] = None

    async def add_launch(self, stats: LaunchStats) -> None:
        await asyncio.sleep(0)
        self.launches.append(stats)

    async def get_launches(self) -> list[LaunchStats]:
        await asyncio.sleep(0)
        return list(self.launches)

    async def clear_launches(self) -> None:
        await asyncio.sleep(0)
        self.launches.clear()

    async def get_measures(self) -> Optional[dict]:
        await asyncio.sleep(0)
        return dict(self.measures) if self.measures is not None else None

    async def put_measures(self, measures: DailyMeasures) -> None:
        await asyncio.sleep(0)
        self.measures = measures.to_dict()

    async def clear_measures(self) -> None:
        await asyncio.sleep(0)
        self.measures = None


class SqliteStatsDatabase(StatsDatabase):
    """Measurement tables in a SQLite file.

    The counter record is stored as JSON in a single-row table so new
    counters never need a schema migration. Blocking sqlite3 calls run in
    the default executor.
    """

    def __init__(self, db_path: Path):
        super().__init__()
        self.db_path = Path(db_path)
        self._ensure_db()

    def _ensure_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS launches (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    main_ready_time REAL NOT NULL,
                    load_time REAL NOT NULL,
                    renderer_ready_time REAL NOT NULL
                );
                CREATE TABLE IF NOT EXISTS daily_measures (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    data TEXT NOT NULL
                );
                """
            )

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def _add_launch(self, stats: LaunchStats) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO launches (main_ready_time, load_time, renderer_ready_time) "
                "VALUES (?, ?, ?)",
                (stats.main_ready_time, stats.load_time, stats.renderer_ready_time),
            )
            conn.commit()

    def _get_launches(self) -> list[LaunchStats]:
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT main_ready_time, load_time, renderer_ready_time "
                "FROM launches ORDER BY id"
            ).fetchall()
        return [LaunchStats(*row) for row in rows]

    def _execute(self, sql: str, params: tuple = ()) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(sql, params)
            conn.commit()

    def _get_measures(self) -> Optional[dict]:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT data FROM daily_measures WHERE id = 1").fetchone()
        if row is None:
            return None
        try:
            data = json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable daily measures record")
            return None
        return data if isinstance(data, dict) else None

    async def add_launch(self, stats: LaunchStats) -> None:
        await self._run(self._add_launch, stats)

    async def get_launches(self) -> list[LaunchStats]:
        return await self._run(self._get_launches)

    async def clear_launches(self) -> None:
        await self._run(self._execute, "DELETE FROM launches")

    async def get_measures(self) -> Optional[dict]:
        return await self._run(self._get_measures)

    async def put_measures(self, measures: DailyMeasures) -> None:
        await self._run(
            self._execute,
            "INSERT OR REPLACE INTO daily_measures (id, data) VALUES (1, ?)",
            (json.dumps(measures.to_dict()),),
        )

    async def clear_measures(self) -> None:
        await self._run(self._execute, "DELETE FROM daily_measures")
