"""
Base class for telemetry collectors.

A collector produces one batch of samples per call. Unlike a best-effort
scrape, a failed call produces no batch at all: the error propagates to the
scheduler, which logs it and waits for the next tick.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Generic, List, Optional, TypeVar

from kmetrics.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseCollector(ABC, Generic[T]):
    """
    Abstract base class for collectors.

    Subclasses implement collect(); callers use collect_with_timeout() to get
    timeout enforcement and statistics.
    """

    def __init__(self, name: str, timeout_seconds: float = 30):
        """
        Initialize base collector.

        Args:
            name: Collector name for logging and identification
            timeout_seconds: Maximum time allowed for one collection
        """
        self.name = name
        self.timeout_seconds = timeout_seconds
        self._last_collection_time: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._collection_count = 0
        self._error_count = 0

    @abstractmethod
    async def collect(self) -> List[T]:
        """
        Collect one batch from the source.

        Raises:
            UpstreamFetchError: If the source could not be read
        """

    async def collect_with_timeout(self) -> List[T]:
        """
        Collect with timeout enforcement.

        Returns:
            The collected batch

        Raises:
            UpstreamFetchError: On timeout or any collection failure
        """
        self._collection_count += 1
        start_time = datetime.now(timezone.utc)

        try:
            result = await asyncio.wait_for(self.collect(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            self._record_error(f"Collection timeout after {self.timeout_seconds}s")
            raise UpstreamFetchError(self._last_error) from e
        except UpstreamFetchError as e:
            self._record_error(str(e))
            raise
        except Exception as e:
            self._record_error(str(e))
            raise UpstreamFetchError(f"{self.name} collection failed: {e}") from e

        self._last_collection_time = datetime.now(timezone.utc)
        logger.debug(
            f"{self.name} collected {len(result)} items in "
            f"{(self._last_collection_time - start_time).total_seconds():.2f}s"
        )
        return result

    def _record_error(self, message: str) -> None:
        self._error_count += 1
        self._last_error = message
        logger.debug(f"{self.name}: {message}")

    def get_stats(self) -> dict:
        """
        Get collector statistics.

        Returns:
            Dictionary with collection stats
        """
        return {
            "name": self.name,
            "collections": self._collection_count,
            "errors": self._error_count,
            "error_rate": self._error_count / max(1, self._collection_count),
            "last_collection": self._last_collection_time.isoformat()
            if self._last_collection_time
            else None,
            "last_error": self._last_error,
        }
