"""
Liveness probe for the InfluxDB store.
"""

import logging

import httpx

from kmetrics.errors import StoreHealthError

logger = logging.getLogger(__name__)

HEALTH_TIMEOUT_SECONDS = 5.0


class StoreHealthMonitor:
    """Checks the store's /health endpoint within a fixed time budget."""

    def __init__(self, url: str, token: str = ""):
        """
        Args:
            url: InfluxDB base URL
            token: API token, sent for deployments that protect /health
        """
        self.health_url = url.rstrip("/") + "/health"
        self.token = token

    async def probe(self, timeout: float = HEALTH_TIMEOUT_SECONDS) -> None:
        """
        Probe the store once.

        Raises:
            StoreHealthError: On transport errors, timeouts, HTTP errors or a status other than "pass"
        """
        headers = {"Authorization": f"Token {self.token}"} if self.token else {}
        try:
            async with httpx.AsyncClient(timeout=timeout, headers=headers) as client:
                response = await client.get(self.health_url)
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StoreHealthError(f"InfluxDB health check failed: {e}") from e

        status = body.get("status") if isinstance(body, dict) else None
        if status != "pass":
            raise StoreHealthError(f"InfluxDB reported status {status!r}")

    async def check(self, timeout: float = HEALTH_TIMEOUT_SECONDS) -> bool:
        """
        Return True only if the store answers with status "pass". Never raises.
        """
        try:
            await self.probe(timeout=timeout)
            return True
        except StoreHealthError as e:
            logger.warning(str(e))
            return False
        except Exception as e:
            logger.warning(f"InfluxDB health check failed: {e}")
            return False
