"""
Aggregation Router

Keeps one CandleAggregator alive per (symbol, interval) key and fans each
incoming tick out to every interval for its symbol. Aggregators for a new
symbol are created on its first tick, with no restart or reconfiguration.
"""

import logging
import threading
from typing import Dict, List, Optional, Tuple

from candleflow.candle_aggregation.aggregator import CandleAggregator
from candleflow.persistence.store import CandleStore
from candleflow.schemas.intervals import Interval
from candleflow.schemas.market_data import Tick, Candle

logger = logging.getLogger(__name__)

# (symbol, interval label)
AggregatorKey = Tuple[str, str]


class AggregationRouter:
    """
    Routes ticks to per-key aggregators and stores completed candles.

    Lookups are lock-free dict reads. The creation lock is taken only on
    the first tick for a key, so at most one aggregator exists per key and
    established keys never contend with each other.

    Example usage:
        store = CandleStore()
        router = AggregationRouter(store)

        router.ingest(Tick("BTC-USD", 64999.5, 65000.5, 1700000000000))
        router.sweep(int(time.time()))   # periodically
        router.shutdown()                # once, after ingestion stops
    """

    def __init__(self, store: CandleStore, intervals: Optional[List[Interval]] = None):
        self.store = store
        self.intervals = list(intervals) if intervals is not None else list(Interval)
        self._aggregators: Dict[AggregatorKey, CandleAggregator] = {}
        self._create_lock = threading.Lock()

    def ingest(self, tick: Tick) -> None:
        """
        Fan a tick out to the aggregator of every interval for its symbol.

        Args:
            tick: Validated tick
        """
        logger.debug(
            f"Ingesting tick: symbol={tick.symbol} bid={tick.bid} "
            f"ask={tick.ask} ts={tick.timestamp}"
        )
        for interval in self.intervals:
            self._get_or_create(tick.symbol, interval).process(tick)

    def _get_or_create(self, symbol: str, interval: Interval) -> CandleAggregator:
        """Return the aggregator for this key, creating it exactly once"""
        key = (symbol, interval.label)
        aggregator = self._aggregators.get(key)
        if aggregator is not None:
            return aggregator

        with self._create_lock:
            aggregator = self._aggregators.get(key)
            if aggregator is None:
                logger.info(f"Creating new aggregator for symbol={symbol} interval={interval.label}")
                aggregator = CandleAggregator(symbol, interval, self._make_callback(symbol))
                self._aggregators[key] = aggregator
            return aggregator

    def _make_callback(self, symbol: str):
        """Completion callback that stores candles under this symbol"""
        def on_candle_complete(interval_label: str, candle: Candle) -> None:
            self.store.save(symbol, interval_label, candle)

        return on_candle_complete

    def _snapshot(self) -> List[CandleAggregator]:
        """Weakly consistent view of the pool, safe against concurrent inserts"""
        return list(self._aggregators.values())

    def sweep(self, now_seconds: int) -> int:
        """
        Flush every open candle whose bucket has ended.

        Aggregators created while the sweep runs may be skipped until the next pass.

        Args:
            now_seconds: Current wall-clock time in Unix seconds

        Returns:
            Number of candles flushed
        """
        flushed = 0
        for aggregator in self._snapshot():
            if aggregator.flush_if_stale(now_seconds) is not None:
                flushed += 1
        if flushed:
            logger.debug(f"Sweep at {now_seconds} flushed {flushed} stale candles")
        return flushed

    def shutdown(self) -> int:
        """
        Force-flush every open candle so no buffered data is lost.

        Returns:
            Number of candles flushed
        """
        aggregators = self._snapshot()
        logger.info(f"Shutdown: force-flushing {len(aggregators)} aggregators")

        flushed = 0
        for aggregator in aggregators:
            candle = aggregator.force_flush()
            if candle is not None:
                flushed += 1
                logger.info(
                    f"Flushed on shutdown: symbol={aggregator.symbol} "
                    f"interval={aggregator.interval.label} time={candle.bucket_start}"
                )
        return flushed

    def active_symbols(self) -> List[str]:
        """Sorted distinct symbols that have live aggregators"""
        return sorted({symbol for symbol, _ in list(self._aggregators.keys())})

    def aggregator_count(self) -> int:
        """Number of live aggregators (symbols x intervals)"""
        return len(self._aggregators)

    def get_aggregator(self, symbol: str, interval_label: str) -> Optional[CandleAggregator]:
        """Aggregator for a key, None if that key was never seen"""
        return self._aggregators.get((symbol, interval_label))

    def dropped_ticks(self) -> int:
        """Total late ticks dropped across all aggregators"""
        return sum(aggregator.dropped_ticks for aggregator in self._snapshot())
