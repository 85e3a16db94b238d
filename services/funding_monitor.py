"""
Funding Board Monitor

Background service that runs the funding pipeline once on start and then
on a fixed period, keeps the latest FundingBoard, and publishes every new
board to the event bus under BOARD_TOPIC.

Overlap policy: skip-if-busy. A tick or manual refresh that arrives while
a cycle is still in flight is skipped, so cycles never interleave their
updates to the ranking history.
"""

import asyncio
import contextlib
from typing import Callable, Optional

from core.config import settings
from core.logging import get_logger
from core.schemas import FundingBoard
from core.utils.time import current_utc_datetime
from exchanges.binance.api_client import BinanceAPIClient
from services.event_bus import BOARD_TOPIC, EventBus, bus
from services.pipeline import FundingPipeline


class FundingMonitor:
    """
    Periodic driver of the funding pipeline.

    Attributes:
        board: Latest FundingBoard (records plus loading/error flags)

    Example:
        >>> monitor = FundingMonitor()
        >>> await monitor.start()
        >>> monitor.board.records
        >>> await monitor.stop()
    """

    def __init__(
        self,
        pipeline: Optional[FundingPipeline] = None,
        refresh_interval_seconds: Optional[float] = None,
        client_factory: Optional[Callable[[], BinanceAPIClient]] = None,
        event_bus: Optional[EventBus] = None
    ) -> None:
        self._logger = get_logger(__name__)
        self._pipeline = pipeline or FundingPipeline.from_settings(settings)
        self._interval = refresh_interval_seconds or settings.refresh_interval_seconds
        self._client_factory = client_factory or (
            lambda: BinanceAPIClient(base_url=settings.binance_base_url, timeout=settings.http_timeout)
        )
        self._bus = event_bus or bus
        self._client: Optional[BinanceAPIClient] = None
        self._running = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self._skipped = 0
        self.board = FundingBoard()

    # ============================================
    # Lifecycle
    # ============================================

    @property
    def running(self) -> bool:
        return self._running.is_set()

    @property
    def busy(self) -> bool:
        return self._cycle_task is not None and not self._cycle_task.done()

    @property
    def skipped_cycles(self) -> int:
        return self._skipped

    async def start(self) -> None:
        if self._running.is_set():
            return
        self._logger.info(f"Starting funding monitor (every {self._interval}s)...")
        self._client = self._client_factory()
        await self._client.__aenter__()
        self._running.set()
        self._task = asyncio.create_task(self._run(), name="funding_monitor")

    async def stop(self) -> None:
        if not self._running.is_set():
            return
        self._logger.info("Stopping funding monitor...")
        self._running.clear()
        for task in (self._task, self._cycle_task):
            if task and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._task = None
        self._cycle_task = None
        if self._client:
            await self._client.__aexit__(None, None, None)
            self._client = None

    async def ping_exchange(self) -> bool:
        """Ping Binance through the monitor's client; False when not started."""
        if self._client is None:
            return False
        return await self._client.ping()

    # ============================================
    # Scheduling
    # ============================================

    def trigger(self) -> Optional[asyncio.Task]:
        """
        Start a cycle unless one is already running.

        Returns:
            The cycle task, or None when the trigger was skipped
        """
        if not self._running.is_set():
            raise RuntimeError("Funding monitor is not running. Call start() first.")
        if self.busy:
            self._skipped += 1
            self._logger.warning("Refresh cycle still running; skipping this trigger")
            return None
        self._cycle_task = asyncio.create_task(self.run_cycle(), name="funding_cycle")
        return self._cycle_task

    async def refresh(self) -> bool:
        """
        Trigger a cycle and wait for it to finish.

        The cycle is shielded, so cancelling the caller (e.g. a dropped HTTP
        request) never interrupts a cycle that has already updated history.

        Returns:
            False when the trigger was skipped because a cycle is running

        Raises:
            RuntimeError: If the monitor is not running
        """
        task = self.trigger()
        if task is None:
            return False
        await asyncio.shield(task)
        return True

    async def _run(self) -> None:
        # Fixed-rate ticks: the first fires immediately
        while self._running.is_set():
            self.trigger()
            await asyncio.sleep(self._interval)

    # ============================================
    # Core Cycle
    # ============================================

    async def run_cycle(self) -> FundingBoard:
        """
        Run the pipeline once and publish the resulting board.

        A failed cycle keeps the previous records and only sets `error`.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        cycle = self.board.cycle + 1
        try:
            records = await self._pipeline.run(self._client)
            self.board = FundingBoard(
                records=records,
                loading=False,
                error=None,
                updated_at=current_utc_datetime(),
                cycle=cycle
            )
            self._logger.info(
                f"Funding cycle {cycle} finished in {loop.time() - started:.1f}s "
                f"({len(records)} records)"
            )
        except Exception as e:
            self._logger.error(f"Funding cycle {cycle} failed: {e}")
            self.board = self.board.model_copy(
                update={"loading": False, "error": str(e) or type(e).__name__, "cycle": cycle}
            )
        await self._bus.publish(BOARD_TOPIC, self.board)
        return self.board


_funding_monitor: Optional[FundingMonitor] = None


def get_funding_monitor() -> FundingMonitor:
    global _funding_monitor
    if _funding_monitor is None:
        _funding_monitor = FundingMonitor()
    return _funding_monitor
