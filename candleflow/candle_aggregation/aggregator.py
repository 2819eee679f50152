"""
Candle Aggregator

Builds candles for a single (symbol, interval) key from incoming ticks.

A candle is completed when:
- a tick arrives whose bucket is newer than the open one (rollover), or
- the periodic sweep finds the open bucket has ended (stale flush), or
- the engine shuts down (force flush).

Completed candles are handed to the completion callback synchronously,
while the aggregator's lock is held.
"""

import logging
import threading
from typing import Callable, Optional

from candleflow.schemas.intervals import Interval
from candleflow.schemas.market_data import Tick, Candle

logger = logging.getLogger(__name__)

# (interval label, completed candle)
CandleCallback = Callable[[str, Candle], None]


class CandleBuilder:
    """Mutable state of the candle currently being built. Not thread-safe."""

    def __init__(self, bucket_start: int, price: float):
        self.bucket_start = bucket_start
        self.open = price
        self.high = price
        self.low = price
        self.close = price
        self.tick_count = 1

    def add_price(self, price: float) -> None:
        """Fold another price from the same bucket into this candle"""
        if price > self.high:
            self.high = price
        if price < self.low:
            self.low = price
        self.close = price
        self.tick_count += 1

    def build(self) -> Candle:
        """Immutable snapshot of the current state"""
        return Candle(
            bucket_start=self.bucket_start,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.tick_count,
        )


class CandleAggregator:
    """
    Aggregates ticks for one (symbol, interval) pair into candles.

    All public operations take the same per-instance lock, so ticks for
    one key are serialized while different keys never contend.

    Ticks whose bucket is older than the open one are dropped and counted
    in `dropped_ticks`; no reorder buffer is kept.
    """

    def __init__(self, symbol: str, interval: Interval, on_candle_complete: CandleCallback):
        self.symbol = symbol
        self.interval = interval
        self._on_candle_complete = on_candle_complete
        self._lock = threading.Lock()
        self._builder: Optional[CandleBuilder] = None
        self.dropped_ticks = 0

    @property
    def current_bucket(self) -> Optional[int]:
        """Bucket start of the open candle, None when nothing is open"""
        with self._lock:
            return self._builder.bucket_start if self._builder else None

    def process(self, tick: Tick) -> None:
        """
        Fold a tick into the open candle, rolling over to a new bucket if needed.

        Args:
            tick: Validated tick for this aggregator's symbol
        """
        price = tick.mid_price
        bucket = self.interval.bucket_start(tick.timestamp_seconds)

        with self._lock:
            if self._builder is None:
                self._builder = CandleBuilder(bucket, price)
                logger.debug(f"[{self.symbol}@{self.interval.label}] Started candle at bucket={bucket}")
            elif bucket == self._builder.bucket_start:
                self._builder.add_price(price)
            elif bucket > self._builder.bucket_start:
                self._flush()
                self._builder = CandleBuilder(bucket, price)
                logger.debug(f"[{self.symbol}@{self.interval.label}] Rolled to new candle at bucket={bucket}")
            else:
                self.dropped_ticks += 1
                logger.warning(
                    f"[{self.symbol}@{self.interval.label}] Late tick dropped: "
                    f"tick_bucket={bucket}, current_bucket={self._builder.bucket_start}"
                )

    def flush_if_stale(self, now_seconds: int) -> Optional[Candle]:
        """
        Emit the open candle if its bucket has ended relative to `now_seconds`.

        No new candle is opened; the next tick starts one.

        Args:
            now_seconds: Current wall-clock time in Unix seconds

        Returns:
            The emitted candle, or None if nothing was stale
        """
        with self._lock:
            if self._builder is None:
                return None
            if self.interval.bucket_start(now_seconds) <= self._builder.bucket_start:
                return None

            logger.debug(
                f"[{self.symbol}@{self.interval.label}] Flushing stale candle "
                f"at bucket={self._builder.bucket_start}"
            )
            candle = self._flush()
            self._builder = None
            return candle

    def force_flush(self) -> Optional[Candle]:
        """
        Emit whatever candle is open, regardless of staleness.

        Returns:
            The emitted candle, or None if nothing was open
        """
        with self._lock:
            if self._builder is None:
                return None
            candle = self._flush()
            self._builder = None
            return candle

    def _flush(self) -> Candle:
        """Snapshot and emit the open candle. Caller holds the lock."""
        candle = self._builder.build()
        logger.info(
            f"[{self.symbol}@{self.interval.label}] Candle complete: "
            f"time={candle.bucket_start} O={candle.open:.2f} H={candle.high:.2f} "
            f"L={candle.low:.2f} C={candle.close:.2f} V={candle.volume}"
        )
        self._on_candle_complete(self.interval.label, candle)
        return candle
