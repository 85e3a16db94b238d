"""
Unit Tests for the Funding Monitor

Covers a refresh cycle (success and failure), board publishing, the
skip-if-busy trigger and the start/stop lifecycle.

Run with:
    pytest tests/unit/test_funding_monitor.py -v
"""

import asyncio

import pytest

from core.exceptions import NetworkError
from services.event_bus import BOARD_TOPIC, EventBus
from services.funding_monitor import FundingMonitor
from services.pipeline import FundingPipeline


class BlockingPipeline:
    """Pipeline whose run() waits until released."""

    def __init__(self):
        self.release = asyncio.Event()
        self.runs = 0

    async def run(self, client, now_ms=None):
        self.runs += 1
        await self.release.wait()
        return []


class FailingPipeline:
    def __init__(self, error):
        self.error = error

    async def run(self, client, now_ms=None):
        raise self.error


def make_monitor(fake_client, pipeline=None, event_bus=None):
    return FundingMonitor(
        pipeline=pipeline or FundingPipeline(),
        refresh_interval_seconds=3600,
        client_factory=lambda: fake_client,
        event_bus=event_bus or EventBus()
    )


class TestRunCycle:
    """Tests for FundingMonitor.run_cycle"""

    @pytest.mark.asyncio
    async def test_initial_board_is_loading(self, fake_client):
        monitor = make_monitor(fake_client)
        assert monitor.board.loading is True
        assert monitor.board.records == []
        assert monitor.board.error is None

    @pytest.mark.asyncio
    async def test_successful_cycle_publishes_board(self, fake_client):
        """Verify a finished cycle replaces the board and reaches subscribers"""
        event_bus = EventBus()
        queue = await event_bus.subscribe(BOARD_TOPIC)
        monitor = make_monitor(fake_client, event_bus=event_bus)
        monitor._client = fake_client

        board = await monitor.run_cycle()

        assert board.loading is False
        assert board.error is None
        assert board.cycle == 1
        assert board.updated_at is not None
        assert [r.symbol for r in board.records] == ["ETHUSDT", "SOLUSDT", "BTCUSDT"]
        assert queue.get_nowait() is board

    @pytest.mark.asyncio
    async def test_failed_cycle_keeps_previous_records(self, fake_client):
        """Verify a fatal fetch error sets `error` without clearing the board"""
        monitor = make_monitor(fake_client)
        monitor._client = fake_client
        first = await monitor.run_cycle()

        fake_client.premium_index = NetworkError("HTTP 500 on /fapi/v1/premiumIndex")
        second = await monitor.run_cycle()

        assert second.loading is False
        assert second.error == "HTTP 500 on /fapi/v1/premiumIndex"
        assert second.records == first.records
        assert second.updated_at == first.updated_at
        assert second.cycle == 2

    @pytest.mark.asyncio
    async def test_error_without_message_uses_type_name(self, fake_client):
        monitor = make_monitor(fake_client, pipeline=FailingPipeline(TimeoutError()))

        board = await monitor.run_cycle()

        assert board.error == "TimeoutError"
        assert board.loading is False

    @pytest.mark.asyncio
    async def test_recovery_clears_error(self, fake_client):
        monitor = make_monitor(fake_client)
        monitor._client = fake_client
        fake_client.exchange_info = NetworkError("boom")
        await monitor.run_cycle()
        assert monitor.board.error == "boom"

        fake_client.exchange_info = []
        board = await monitor.run_cycle()

        assert board.error is None
        assert board.records == []


class TestScheduling:
    """Tests for start/stop and the skip-if-busy trigger"""

    @pytest.mark.asyncio
    async def test_trigger_requires_start(self, fake_client):
        monitor = make_monitor(fake_client)
        with pytest.raises(RuntimeError, match="not running"):
            monitor.trigger()

    @pytest.mark.asyncio
    async def test_start_runs_first_cycle_immediately(self, fake_client):
        event_bus = EventBus()
        queue = await event_bus.subscribe(BOARD_TOPIC)
        monitor = make_monitor(fake_client, event_bus=event_bus)

        await monitor.start()
        try:
            assert fake_client.entered is True
            board = await asyncio.wait_for(queue.get(), timeout=5)
            assert board.cycle == 1
            assert monitor.running is True
        finally:
            await monitor.stop()

        assert monitor.running is False
        assert fake_client.closed is True

    @pytest.mark.asyncio
    async def test_trigger_skipped_while_busy(self, fake_client):
        """Verify overlapping triggers are skipped instead of queued"""
        pipeline = BlockingPipeline()
        monitor = make_monitor(fake_client, pipeline=pipeline)

        await monitor.start()
        try:
            await asyncio.sleep(0)
            assert monitor.busy is True

            assert monitor.trigger() is None
            assert monitor.skipped_cycles == 1

            pipeline.release.set()
            await asyncio.sleep(0)
            for _ in range(10):
                if not monitor.busy:
                    break
                await asyncio.sleep(0)
            assert monitor.busy is False
            assert pipeline.runs == 1

            task = monitor.trigger()
            assert task is not None
            board = await task
            assert board.cycle == 2
        finally:
            await monitor.stop()

    @pytest.mark.asyncio
    async def test_refresh_waits_for_cycle(self, fake_client):
        monitor = make_monitor(fake_client)
        await monitor.start()
        try:
            await asyncio.sleep(0)
            assert await monitor.refresh() is False
            while monitor.busy:
                await asyncio.sleep(0)

            assert await monitor.refresh() is True
            assert monitor.board.cycle == 2
        finally:
            await monitor.stop()

    @pytest.mark.asyncio
    async def test_cancelled_refresh_still_completes_cycle(self, fake_client):
        """Verify a caller cancelled mid-cycle does not abort the cycle"""
        pipeline = BlockingPipeline()
        pipeline.release.set()
        event_bus = EventBus()
        queue = await event_bus.subscribe(BOARD_TOPIC)
        monitor = make_monitor(fake_client, pipeline=pipeline, event_bus=event_bus)

        await monitor.start()
        try:
            first = await asyncio.wait_for(queue.get(), timeout=5)
            assert first.cycle == 1
            while monitor.busy:
                await asyncio.sleep(0)

            pipeline.release.clear()
            caller = asyncio.create_task(monitor.refresh())
            for _ in range(3):
                await asyncio.sleep(0)
            assert monitor.busy is True

            caller.cancel()
            with pytest.raises(asyncio.CancelledError):
                await caller
            assert monitor.busy is True

            pipeline.release.set()
            second = await asyncio.wait_for(queue.get(), timeout=5)
            assert second.cycle == 2
            assert second.error is None
            assert monitor.board is second
        finally:
            await monitor.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_cycle(self, fake_client):
        pipeline = BlockingPipeline()
        monitor = make_monitor(fake_client, pipeline=pipeline)

        await monitor.start()
        await asyncio.sleep(0)
        assert monitor.busy is True

        await monitor.stop()

        assert monitor.busy is False
        assert fake_client.closed is True

    @pytest.mark.asyncio
    async def test_ping_exchange(self, fake_client):
        monitor = make_monitor(fake_client)
        assert await monitor.ping_exchange() is False

        await monitor.start()
        try:
            assert await monitor.ping_exchange() is True
        finally:
            await monitor.stop()


class TestEventBus:
    """Tests for the board event bus"""

    @pytest.mark.asyncio
    async def test_publish_reaches_every_subscriber(self):
        event_bus = EventBus()
        first = await event_bus.subscribe(BOARD_TOPIC)
        second = await event_bus.subscribe(BOARD_TOPIC)

        await event_bus.publish(BOARD_TOPIC, "board")

        assert first.get_nowait() == "board"
        assert second.get_nowait() == "board"
        assert event_bus.subscriber_count(BOARD_TOPIC) == 2

    @pytest.mark.asyncio
    async def test_full_queue_drops_event(self):
        event_bus = EventBus(max_queue_size=1)
        queue = await event_bus.subscribe(BOARD_TOPIC)

        await event_bus.publish(BOARD_TOPIC, 1)
        await event_bus.publish(BOARD_TOPIC, 2)

        assert queue.qsize() == 1
        assert queue.get_nowait() == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        event_bus = EventBus()
        queue = await event_bus.subscribe(BOARD_TOPIC)

        await event_bus.unsubscribe(BOARD_TOPIC, queue)
        await event_bus.publish(BOARD_TOPIC, "board")

        assert queue.empty()
        assert event_bus.subscriber_count(BOARD_TOPIC) == 0
