"""
Aggregation Service

Drives the lifecycle of the aggregation engine:
- a periodic sweep that flushes stale candles even when ticks stop arriving
- a final drain that force-flushes every open candle on shutdown
"""

import asyncio
import logging
import time
from typing import Optional

from candleflow.candle_aggregation.router import AggregationRouter

logger = logging.getLogger(__name__)


class AggregationService:
    """
    Runs the stale-flush sweep on a fixed period and drains on stop.

    Example usage:
        service = AggregationService(router, flush_interval=1.0)
        await service.start()
        ...
        await service.stop()   # cancels the sweep, then drains all aggregators
    """

    def __init__(self, router: AggregationRouter, flush_interval: float = 1.0):
        if flush_interval <= 0:
            raise ValueError("flush_interval must be positive")
        self.router = router
        self.flush_interval = flush_interval
        self._sweep_task: Optional[asyncio.Task] = None
        self._stopped = False

        # Metrics
        self.sweeps_run = 0
        self.candles_swept = 0

    @property
    def is_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def sweep_now(self, now_seconds: Optional[int] = None) -> int:
        """Run one sweep pass against the given (or current) wall-clock second"""
        if now_seconds is None:
            now_seconds = int(time.time())
        flushed = self.router.sweep(now_seconds)
        self.sweeps_run += 1
        self.candles_swept += flushed
        return flushed

    async def _periodic_sweep(self) -> None:
        """Flush stale candles every `flush_interval` seconds"""
        while True:
            await asyncio.sleep(self.flush_interval)
            try:
                self.sweep_now()
            except Exception as e:
                logger.error(f"Stale-flush sweep failed: {e}", exc_info=True)

    async def start(self) -> None:
        """Start the periodic sweep"""
        if self.is_running:
            return
        logger.info(f"Starting aggregation service (flush interval {self.flush_interval}s)")
        self._stopped = False
        self._sweep_task = asyncio.create_task(self._periodic_sweep())

    async def stop(self) -> None:
        """Stop the sweep and force-flush every open candle"""
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        if self._stopped:
            return
        self._stopped = True

        drained = self.router.shutdown()
        logger.info(
            f"Aggregation service stopped. Drained {drained} open candles; "
            f"{self.candles_swept} swept over {self.sweeps_run} sweeps"
        )
