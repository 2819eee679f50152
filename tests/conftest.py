"""Pytest configuration and shared fixtures for the candleflow test suite."""

from __future__ import annotations

from typing import Callable, List, Tuple

import pytest

from candleflow.candle_aggregation.aggregator import CandleAggregator
from candleflow.candle_aggregation.router import AggregationRouter
from candleflow.persistence.store import CandleStore
from candleflow.schemas.intervals import Interval
from candleflow.schemas.market_data import Candle, Tick


def make_tick(mid: float, timestamp_seconds: int, symbol: str = "BTC-USD") -> Tick:
    """Tick whose mid-price is exactly `mid` at the given second."""
    half_spread = mid * 0.0005
    return Tick(
        symbol=symbol,
        bid=mid - half_spread,
        ask=mid + half_spread,
        timestamp=timestamp_seconds * 1000,
    )


@pytest.fixture
def tick_factory() -> Callable[..., Tick]:
    return make_tick


@pytest.fixture
def store() -> CandleStore:
    return CandleStore()


@pytest.fixture
def router(store: CandleStore) -> AggregationRouter:
    return AggregationRouter(store)


@pytest.fixture
def completed() -> List[Tuple[str, Candle]]:
    """Sink for candles emitted through an aggregator's completion callback."""
    return []


@pytest.fixture
def minute_aggregator(completed) -> CandleAggregator:
    """1m aggregator for BTC-USD that records every completed candle."""
    return CandleAggregator(
        "BTC-USD",
        Interval.ONE_MINUTE,
        lambda interval, candle: completed.append((interval, candle)),
    )
