"""
Opt-in/opt-out acknowledgment.

Whenever the user changes their reporting consent, a one-shot ping tells the
collector about it. The ping is separate from the daily usage report.
"""

import logging
from typing import Optional

from usage_stats.client import StatsTransport, deliver
from usage_stats.storage import KeyValueStore

logger = logging.getLogger(__name__)

STATS_OPT_OUT_KEY = "stats-opt-out"
HAS_SENT_OPT_IN_PING_KEY = "has-sent-stats-opt-in-ping"


def _parse_opt_out(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    try:
        return bool(int(value))
    except ValueError:
        return None


class OptStatusNotifier:
    """Persists the opt-out flag and acknowledges changes to the collector.

    The "ping sent" mark is never cleared. Once any ping has been accepted,
    a restart will not resend; flips during a run are still acknowledged by
    :meth:`set_opt_out`.
    """

    def __init__(self, store: KeyValueStore, transport: StatsTransport):
        self.store = store
        self.transport = transport

        stored = _parse_opt_out(store.get(STATS_OPT_OUT_KEY))
        self.opt_out = bool(stored)

        # A choice was stored but its ping never made it through
        self._ping_pending = (
            stored is not None and store.get(HAS_SENT_OPT_IN_PING_KEY) is None
        )

    def get_opt_out(self) -> bool:
        return self.opt_out

    @property
    def ping_sent(self) -> bool:
        return self.store.get(HAS_SENT_OPT_IN_PING_KEY) is not None

    async def send_pending_ping(self) -> bool:
        """Retry the acknowledgment left over from a previous run.

        Runs at most once per notifier.

        Returns:
            True if a ping was sent and accepted.
        """
        if not self._ping_pending or self.ping_sent:
            self._ping_pending = False
            return False

        self._ping_pending = False
        return await self.send_opt_in_status_ping(not self.opt_out)

    async def set_opt_out(self, opt_out: bool) -> None:
        """Record the user's choice, pinging the collector if it changed."""
        changed = self.opt_out != opt_out

        self.opt_out = opt_out
        self.store.set(STATS_OPT_OUT_KEY, "1" if opt_out else "0")

        if changed:
            # This ping supersedes any left over from a previous run
            self._ping_pending = False
            await self.send_opt_in_status_ping(not opt_out)

    async def send_opt_in_status_ping(self, opt_in: bool) -> bool:
        direction = "in" if opt_in else "out"

        accepted = await deliver(
            self.transport,
            {"eventType": "ping", "optIn": opt_in},
            f"opt {direction}",
        )
        if accepted:
            self.store.set(HAS_SENT_OPT_IN_PING_KEY, "1")
            logger.info(f"Opt {direction} reported.")

        return accepted
