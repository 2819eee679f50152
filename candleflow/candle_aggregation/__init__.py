"""
Candle Aggregation Engine

Aggregates bid/ask ticks into OHLCV candles for every supported interval:
1s, 5s, 15s, 1m, 5m, 15m, 1h.
"""

from candleflow.candle_aggregation.aggregator import CandleAggregator, CandleBuilder
from candleflow.candle_aggregation.router import AggregationRouter
from candleflow.candle_aggregation.service import AggregationService

__all__ = [
    "CandleAggregator",
    "CandleBuilder",
    "AggregationRouter",
    "AggregationService",
]
