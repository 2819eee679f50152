"""
Candle Store

In-memory store for completed candles, keyed by (symbol, interval, bucket start).

Receives candles from the aggregation engine through the completion callback
and serves inclusive range queries to the query API. Nothing survives a
restart.
"""

import logging
from typing import Dict, List

from candleflow.schemas.market_data import Candle, CandleKey

logger = logging.getLogger(__name__)


class CandleStore:
    """
    Concurrent in-memory candle store.

    - Saves are single dict assignments: last writer wins, overwrites are
      corrections, not errors.
    - Reads iterate over a snapshot of the entries, so they never block
      writers or each other.
    """

    def __init__(self):
        self._candles: Dict[CandleKey, Candle] = {}

    def save(self, symbol: str, interval: str, candle: Candle) -> None:
        """
        Save (or overwrite) a completed candle.

        Args:
            symbol: Trading symbol
            interval: Interval label (e.g., "1m")
            candle: Completed candle
        """
        self._candles[CandleKey(symbol, interval, candle.bucket_start)] = candle
        logger.debug(f"Stored candle: symbol={symbol} interval={interval} time={candle.bucket_start}")

    def query(self, symbol: str, interval: str, from_seconds: int, to_seconds: int) -> List[Candle]:
        """
        Fetch candles for a symbol/interval with from <= bucket start <= to.

        Args:
            symbol: Trading symbol
            interval: Interval label
            from_seconds: Range start in Unix seconds (inclusive)
            to_seconds: Range end in Unix seconds (inclusive)

        Returns:
            Matching candles sorted ascending by bucket start; empty if none
            match, including when from > to
        """
        matches = [
            candle
            for key, candle in list(self._candles.items())
            if key.symbol == symbol
            and key.interval == interval
            and from_seconds <= key.bucket_start <= to_seconds
        ]
        matches.sort(key=lambda candle: candle.bucket_start)
        return matches

    def total_count(self) -> int:
        """Number of candles stored across all symbols and intervals"""
        return len(self._candles)

    def known_symbols(self) -> List[str]:
        """Sorted distinct symbols with at least one stored candle"""
        return sorted({key.symbol for key in list(self._candles.keys())})

    def clear(self) -> None:
        """Drop all candles (test harnesses and resets only)"""
        self._candles.clear()
        logger.info("Candle store cleared")
