"""
Stats HTTP client.

Posts JSON documents to the usage collector.
"""

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from usage_stats import config

logger = logging.getLogger(__name__)


class StatsTransport(Protocol):
    """Anything that can deliver a JSON document to the collector."""

    async def post(self, body: Dict[str, Any]) -> httpx.Response:
        ...


class StatsClient:
    """HTTP client for the usage collector.

    Errors are not handled here: a network failure raises an
    ``httpx.HTTPError`` and a rejected document comes back as a non-2xx
    response. Callers decide what a failure means.
    """

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the stats client.

        Args:
            endpoint_url: Collector URL. Defaults to config.STATS_ENDPOINT.
            timeout: Request timeout in seconds. Defaults to config.STATS_TIMEOUT.
            transport: Optional httpx transport, used by tests to mock the network.
        """
        self.endpoint_url = endpoint_url or config.STATS_ENDPOINT
        self.timeout = timeout if timeout is not None else config.STATS_TIMEOUT
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        from usage_stats.version import __version__

        return {
            "Content-Type": "application/json",
            "User-Agent": f"usage-stats/{__version__}",
        }

    async def post(self, body: Dict[str, Any]) -> httpx.Response:
        """Send ``body`` as JSON and return the collector's response."""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.endpoint_url, json=body, headers=self._headers())

        logger.debug(
            f"POST {self.endpoint_url} ({body.get('eventType', 'unknown')}) -> {response.status_code}"
        )
        return response


def describe_failure(response: httpx.Response) -> str:
    """Short description of a rejected request for log messages."""
    return f"Unexpected status: {response.reason_phrase} ({response.status_code})"


async def deliver(transport: StatsTransport, body: Dict[str, Any], description: str) -> bool:
    """Post ``body`` and report whether the collector accepted it.

    Never raises for transport problems; failures are logged and the next
    qualifying event simply tries again.

    Args:
        transport: Where to send the document.
        body: JSON-serializable document.
        description: What is being sent, for log messages (e.g. "stats").

    Returns:
        True if the collector answered with a 2xx status.
    """
    try:
        response = await transport.post(body)
    except httpx.TimeoutException:
        logger.error(f"Error reporting {description}: request timed out")
        return False
    except httpx.HTTPError as e:
        logger.error(f"Error reporting {description}: {e}")
        return False
    except Exception as e:
        logger.error(f"Unexpected error reporting {description}: {e}")
        return False

    if not response.is_success:
        logger.error(f"Error reporting {description}: {describe_failure(response)}")
        return False

    return True
