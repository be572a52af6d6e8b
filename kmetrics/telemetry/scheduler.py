"""
Periodic collection loop.

Each tick produces one batch (from the Kubernetes collector or the mock
generator) and hands it to the storage backend. A failed tick is logged and
the loop carries on; nothing is retried within the tick.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from kmetrics.errors import UpstreamFetchError, UpstreamWriteError
from kmetrics.telemetry.base import BaseCollector
from kmetrics.telemetry.collectors.mock_collector import MockMetricsGenerator
from kmetrics.telemetry.schemas import CollectionMode, Sample, SchedulerState, WriteReport
from kmetrics.telemetry.storage import InfluxStorageBackend

logger = logging.getLogger(__name__)


class CollectionScheduler:
    """
    Runs collection on a fixed interval until stopped.

    The scheduler owns its SchedulerState; only run_once() changes it, and
    only the scheduler task (or a test) calls run_once().
    """

    def __init__(
        self,
        storage_backend: InfluxStorageBackend,
        mock_generator: MockMetricsGenerator,
        collector: Optional[BaseCollector[Sample]] = None,
        mode: CollectionMode = CollectionMode.LIVE,
        interval_seconds: float = 30,
        test_mode: bool = False,
    ):
        """
        Initialize the scheduler.

        Args:
            storage_backend: Sink for every batch
            mock_generator: Source for mock ticks
            collector: Live source; required in live mode
            mode: Deployment data source, fixed for the scheduler's lifetime
            interval_seconds: Time between ticks
            test_mode: Use mock data for the first tick only, fired at start
        """
        if mode == CollectionMode.LIVE and collector is None:
            raise ValueError("live mode requires a collector")

        self.storage_backend = storage_backend
        self.mock_generator = mock_generator
        self.collector = collector
        self._state = SchedulerState(
            interval_seconds=interval_seconds, mode=mode, test_mode=test_mode
        )
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> SchedulerState:
        """Snapshot of the scheduler state."""
        return self._state.model_copy()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the collection loop as a background task."""
        if self.is_running:
            logger.warning("Collection loop already running")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._collection_loop(), name="kmetrics-collection")
        logger.info(
            f"Starting metrics collection every {self._state.interval_seconds}s "
            f"(mode={self._state.mode.value}, test_mode={self._state.test_mode})"
        )

    async def stop(self) -> None:
        """Stop the loop and wait for the task to finish."""
        if not self._task:
            return

        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Stopped metrics collection")

    async def _collection_loop(self) -> None:
        interval = self._state.interval_seconds
        loop = asyncio.get_running_loop()
        # The tick grid starts at loop start, not after the test-mode tick.
        next_tick = loop.time() + interval

        if self._state.test_mode and not self._state.first_run_done:
            logger.info("Test mode enabled: collecting mock metrics for first run")
            await self.run_once()

        while not self._stop_event.is_set():
            if await self._wait_until(next_tick - loop.time()):
                break

            await self.run_once()

            next_tick += interval
            now = loop.time()
            if next_tick <= now:
                # Ticks that fall inside a slow cycle are dropped, not queued.
                skipped = int((now - next_tick) // interval) + 1
                logger.warning(f"Collection cycle overran the interval, skipping {skipped} tick(s)")
                next_tick += skipped * interval

    async def _wait_until(self, delay: float) -> bool:
        """Sleep for delay seconds; True if stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=max(0.0, delay))
            return True
        except asyncio.TimeoutError:
            return False

    def _use_mock(self) -> bool:
        return self._state.mode == CollectionMode.MOCK or (
            self._state.test_mode and not self._state.first_run_done
        )

    async def run_once(self) -> Optional[WriteReport]:
        """
        Run one tick: produce a batch and write it.

        Returns:
            The write report, or None if the tick failed
        """
        test_tick = self._state.test_mode and not self._state.first_run_done
        self._state.ticks += 1
        self._state.last_tick_at = datetime.now(timezone.utc)

        try:
            batch = await self._produce_batch()
            report = await self.storage_backend.write_samples(batch)
            self._state.last_error = None
            return report
        except UpstreamFetchError as e:
            self._state.last_error = str(e)
            logger.error(f"Error collecting metrics: {e}")
        except UpstreamWriteError as e:
            self._state.last_error = str(e)
            logger.error(f"Error writing metrics: {e}")
        except Exception as e:
            self._state.last_error = str(e)
            logger.error(f"Collection cycle error: {e}", exc_info=True)
        finally:
            if test_tick:
                self._state.first_run_done = True

        return None

    async def _produce_batch(self) -> List[Sample]:
        if self._use_mock():
            batch = self.mock_generator.generate()
            logger.debug(f"Generated {len(batch)} mock samples")
            return batch

        return await self.collector.collect_with_timeout()
