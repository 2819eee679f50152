"""
Candleflow - Typed Value Catalog

Interval catalog and the immutable market data types used throughout
the aggregation engine.
"""

from candleflow.schemas.intervals import Interval, TIMEFRAMES, bucket_start
from candleflow.schemas.market_data import Tick, Candle, CandleKey, normalize_symbol

__all__ = [
    "Interval",
    "TIMEFRAMES",
    "bucket_start",
    "Tick",
    "Candle",
    "CandleKey",
    "normalize_symbol",
]
