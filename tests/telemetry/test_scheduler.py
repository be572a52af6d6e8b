"""
Tests for the collection scheduler.

Covers per-tick source selection (mock, live, test-mode first tick),
error isolation between ticks and the start/stop lifecycle.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, Mock

import pytest

from kmetrics.errors import UpstreamFetchError, UpstreamWriteError
from kmetrics.telemetry.collectors import KubernetesMetricsCollector
from kmetrics.telemetry.collectors.mock_collector import MockMetricsGenerator
from kmetrics.telemetry.scheduler import CollectionScheduler
from kmetrics.telemetry.schemas import CollectionMode, Sample, WriteReport


@pytest.fixture
def live_samples(fixed_time):
    return [Sample.for_node("live-node", 1, 1, fixed_time)]


@pytest.fixture
def collector(live_samples):
    collector = Mock()
    collector.collect_with_timeout = AsyncMock(return_value=live_samples)
    return collector


def written_batches(storage):
    return [call.args[0] for call in storage.write_samples.call_args_list]


class TestRunOnce:
    """Test single ticks."""

    def test_live_mode_requires_collector(self, mock_storage):
        with pytest.raises(ValueError):
            CollectionScheduler(mock_storage, MockMetricsGenerator(), mode=CollectionMode.LIVE)

    @pytest.mark.asyncio
    async def test_mock_mode_every_tick(self, mock_storage):
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), mode=CollectionMode.MOCK
        )

        await scheduler.run_once()
        await scheduler.run_once()

        batches = written_batches(mock_storage)
        assert [len(b) for b in batches] == [8, 8]
        assert scheduler.state.ticks == 2

    @pytest.mark.asyncio
    async def test_live_mode(self, mock_storage, collector, live_samples):
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), collector=collector
        )

        report = await scheduler.run_once()

        assert report.written == 1
        assert written_batches(mock_storage) == [live_samples]

    @pytest.mark.asyncio
    async def test_test_mode_first_tick_is_mock(self, mock_storage, collector, live_samples):
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), collector=collector, test_mode=True
        )
        assert scheduler.state.first_run_done is False

        await scheduler.run_once()
        assert scheduler.state.first_run_done is True

        await scheduler.run_once()
        await scheduler.run_once()

        batches = written_batches(mock_storage)
        assert len(batches[0]) == 8
        assert batches[1:] == [live_samples, live_samples]
        assert collector.collect_with_timeout.call_count == 2

    @pytest.mark.asyncio
    async def test_test_mode_first_tick_done_even_on_failure(self, mock_storage, collector):
        mock_storage.write_samples.side_effect = UpstreamWriteError("store down")
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), collector=collector, test_mode=True
        )

        assert await scheduler.run_once() is None

        assert scheduler.state.first_run_done is True
        collector.collect_with_timeout.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_error_skips_write(self, mock_storage, collector):
        collector.collect_with_timeout.side_effect = UpstreamFetchError(
            "error getting node metrics: boom"
        )
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), collector=collector
        )

        assert await scheduler.run_once() is None

        mock_storage.write_samples.assert_not_called()
        assert scheduler.state.last_error == "error getting node metrics: boom"

    @pytest.mark.asyncio
    async def test_error_cleared_by_next_good_tick(self, mock_storage, collector, live_samples):
        collector.collect_with_timeout.side_effect = [UpstreamFetchError("boom"), live_samples]
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), collector=collector
        )

        await scheduler.run_once()
        assert scheduler.state.last_error == "boom"

        await scheduler.run_once()
        assert scheduler.state.last_error is None

    @pytest.mark.asyncio
    async def test_unexpected_error_contained(self, mock_storage, collector):
        mock_storage.write_samples.side_effect = RuntimeError("surprise")
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), collector=collector
        )

        assert await scheduler.run_once() is None
        assert scheduler.state.last_error == "surprise"

    def test_state_is_a_snapshot(self, mock_storage):
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), mode=CollectionMode.MOCK, test_mode=True
        )

        state = scheduler.state
        state.first_run_done = True

        assert scheduler.state.first_run_done is False


class TestLifecycle:
    """Test the background loop."""

    @pytest.mark.asyncio
    async def test_test_mode_fires_immediately(self, mock_storage, collector):
        scheduler = CollectionScheduler(
            mock_storage,
            MockMetricsGenerator(),
            collector=collector,
            interval_seconds=60,
            test_mode=True,
        )

        await scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert mock_storage.write_samples.call_count == 1
        assert scheduler.state.first_run_done is True
        collector.collect_with_timeout.assert_not_called()

    @pytest.mark.asyncio
    async def test_first_tick_waits_for_interval(self, mock_storage, collector):
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), collector=collector, interval_seconds=60
        )

        await scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        mock_storage.write_samples.assert_not_called()

    @pytest.mark.asyncio
    async def test_ticks_repeat(self, mock_storage):
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), mode=CollectionMode.MOCK, interval_seconds=0.05
        )

        await scheduler.start()
        await asyncio.sleep(0.28)
        await scheduler.stop()

        assert mock_storage.write_samples.call_count >= 3

    @pytest.mark.asyncio
    async def test_loop_survives_failed_ticks(self, mock_storage, collector):
        collector.collect_with_timeout.side_effect = UpstreamFetchError("down")
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), collector=collector, interval_seconds=0.05
        )

        await scheduler.start()
        await asyncio.sleep(0.2)
        assert scheduler.is_running
        await scheduler.stop()

        assert collector.collect_with_timeout.call_count >= 2

    @pytest.mark.asyncio
    async def test_stop(self, mock_storage):
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), mode=CollectionMode.MOCK, interval_seconds=60
        )

        await scheduler.start()
        assert scheduler.is_running

        await scheduler.stop()
        assert not scheduler.is_running

        # Stopping twice is harmless
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_task(self, mock_storage):
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), mode=CollectionMode.MOCK, interval_seconds=60
        )

        await scheduler.start()
        task = scheduler._task
        await scheduler.start()

        assert scheduler._task is task
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_slow_test_tick_keeps_fixed_grid(self, mock_storage):
        loop = asyncio.get_running_loop()
        tick_times = []

        async def write_samples(samples):
            tick_times.append(loop.time())
            if len(tick_times) == 1:
                await asyncio.sleep(0.2)
            return WriteReport(attempted=1, written=1, failed=0)

        mock_storage.write_samples = AsyncMock(side_effect=write_samples)
        scheduler = CollectionScheduler(
            mock_storage,
            MockMetricsGenerator(),
            mode=CollectionMode.MOCK,
            interval_seconds=0.3,
            test_mode=True,
        )

        started = loop.time()
        await scheduler.start()
        await asyncio.sleep(0.45)
        await scheduler.stop()

        # Second tick lands one interval after start, not after the slow first write
        assert len(tick_times) >= 2
        assert tick_times[1] - started == pytest.approx(0.3, abs=0.08)


class TestErrorLogging:
    """Test how failed ticks are logged."""

    @pytest.mark.asyncio
    async def test_fetch_error_logged_once(self, mock_storage, caplog):
        cluster = Mock()
        cluster.node_usage = AsyncMock(side_effect=RuntimeError("metrics API down"))
        scheduler = CollectionScheduler(
            mock_storage, MockMetricsGenerator(), collector=KubernetesMetricsCollector(cluster)
        )

        with caplog.at_level(logging.DEBUG):
            await scheduler.run_once()

        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert len(errors) == 1
        assert errors[0].getMessage() == (
            "Error collecting metrics: error getting node metrics: metrics API down"
        )
