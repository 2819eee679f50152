"""
Market Data Generator

Simulated tick source. Produces a random-walk bid/ask tick per configured
symbol at a fixed rate and feeds it into the aggregation router.

Each symbol walks independently from a realistic base price; a spread of
0.1% of the mid-price turns each walk step into a bid/ask pair.
"""

import asyncio
import logging
import random
import time
from typing import Dict, List, Optional

from candleflow.candle_aggregation.router import AggregationRouter
from candleflow.schemas.market_data import Tick

logger = logging.getLogger(__name__)

BASE_PRICES: Dict[str, float] = {
    "BTC-USD": 65000.0,
    "ETH-USD": 3500.0,
    "SOL-USD": 150.0,
    "BNB-USD": 400.0,
}
DEFAULT_BASE_PRICE = 100.0

STEP_VOLATILITY = 0.0005  # +-0.05% per tick
SPREAD_RATIO = 0.001
MIN_PRICE = 0.01


class MarketDataGenerator:
    """Random-walk tick generator for a fixed set of symbols"""

    def __init__(
        self,
        router: AggregationRouter,
        symbols: List[str],
        interval_ms: int = 200,
        seed: Optional[int] = None,
    ):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.router = router
        self.interval_ms = interval_ms
        self.prices: Dict[str, float] = {
            symbol: BASE_PRICES.get(symbol, DEFAULT_BASE_PRICE) for symbol in symbols
        }
        self._random = random.Random(seed)
        self._task: Optional[asyncio.Task] = None
        self.event_count = 0

        logger.info(f"MarketDataGenerator initialized with symbols: {symbols}")

    def generate_once(self, now_ms: Optional[int] = None) -> List[Tick]:
        """
        Advance every symbol's walk by one step and ingest the resulting ticks.

        Args:
            now_ms: Tick timestamp in Unix milliseconds (defaults to wall clock)

        Returns:
            The ticks that were ingested
        """
        if now_ms is None:
            now_ms = int(time.time() * 1000)

        ticks = []
        for symbol, price in list(self.prices.items()):
            change = price * self._random.gauss(0.0, STEP_VOLATILITY)
            mid = max(price + change, MIN_PRICE)
            half_spread = mid * SPREAD_RATIO / 2

            tick = Tick(symbol=symbol, bid=mid - half_spread, ask=mid + half_spread, timestamp=now_ms)
            self.router.ingest(tick)
            self.prices[symbol] = mid
            ticks.append(tick)

            self.event_count += 1
            if self.event_count % 500 == 0:
                logger.info(
                    f"Generated {self.event_count} total events. "
                    f"Latest: symbol={symbol} mid={mid:.2f}"
                )
        return ticks

    async def _run(self) -> None:
        """Generate one round of ticks every `interval_ms`"""
        while True:
            self.generate_once()
            await asyncio.sleep(self.interval_ms / 1000)

    async def start(self) -> None:
        """Start generating ticks in the background"""
        if self._task is not None and not self._task.done():
            return
        logger.info(f"Starting market data generator every {self.interval_ms}ms")
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop generating ticks"""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Market data generator failed: {e}", exc_info=True)
            self._task = None
        logger.info(f"Market data generator stopped after {self.event_count} events")
