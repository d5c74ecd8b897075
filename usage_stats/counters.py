"""
Counter engine.

Owns the read-modify-write protocol over the current cycle's counter record.
"""

import inspect
import logging
from typing import Any, Callable, Mapping

from usage_stats.models import DailyMeasures
from usage_stats.storage import StatsDatabase

logger = logging.getLogger(__name__)

MeasuresUpdate = Callable[[DailyMeasures], Mapping[str, Any]]
ClearedListener = Callable[[], Any]


class CounterEngine:
    """Applies partial updates to the counter record.

    The engine holds no state of its own besides its listeners; every
    update reads the latest persisted record.
    """

    def __init__(self, db: StatsDatabase):
        self.db = db
        self._cleared_listeners: list[ClearedListener] = []

    async def get_daily_measures(self) -> DailyMeasures:
        """Current counter record with defaults filled in."""
        return DailyMeasures.from_dict(await self.db.get_measures())

    async def update_daily_measures(self, fn: MeasuresUpdate) -> DailyMeasures:
        """Apply ``fn`` to the latest record and persist the merged result.

        ``fn`` receives the current record (defaults filled in) and returns
        only the fields it changes, for example
        ``lambda m: {"commits": m.commits + 1}``. The read, merge and write
        happen inside the database transaction, so concurrent updates never
        overwrite each other.

        Returns:
            The record as written.
        """
        async with self.db.transaction():
            measures = DailyMeasures.from_dict(await self.db.get_measures())
            updated = measures.merged(fn(measures))
            await self.db.put_measures(updated)

        return updated

    def on_cleared(self, listener: ClearedListener) -> None:
        """Call ``listener`` after every clear, when a new cycle begins."""
        self._cleared_listeners.append(listener)

    async def clear(self) -> None:
        """Drop the launch samples and the counter record."""
        async with self.db.transaction():
            await self.db.clear_launches()
            await self.db.clear_measures()

        logger.debug("Daily stats cleared")

        for listener in list(self._cleared_listeners):
            result = listener()
            if inspect.isawaitable(result):
                await result
