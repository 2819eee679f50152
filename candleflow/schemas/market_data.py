"""
Market Data Types

Value types carried between the tick sources, the aggregation engine and
the candle store. All of them are immutable and validate on construction,
so an invalid tick or candle never exists as a value.
"""

from dataclasses import dataclass, asdict
import json


def normalize_symbol(symbol: str) -> str:
    """Canonical symbol form used by every tick source and by queries"""
    return symbol.strip().upper()


@dataclass(frozen=True)
class Tick:
    """Single bid/ask observation for a symbol"""
    symbol: str
    bid: float
    ask: float
    timestamp: int  # Unix milliseconds

    def __post_init__(self):
        if not isinstance(self.symbol, str) or not self.symbol.strip():
            raise ValueError("Symbol must not be blank")
        if not self.bid > 0:
            raise ValueError("Bid must be positive")
        if not self.ask > 0:
            raise ValueError("Ask must be positive")
        if self.ask < self.bid:
            raise ValueError("Ask must be >= bid")
        if self.timestamp <= 0:
            raise ValueError("Timestamp must be positive")

    @property
    def mid_price(self) -> float:
        """Representative price used for OHLC math"""
        return (self.bid + self.ask) / 2.0

    @property
    def timestamp_seconds(self) -> int:
        """Timestamp truncated to Unix seconds"""
        return self.timestamp // 1000

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return asdict(self)

    def to_json(self) -> str:
        """Serialize to JSON string"""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "Tick":
        """Create Tick from dictionary, raising ValueError on bad input"""
        try:
            return cls(
                symbol=data["symbol"],
                bid=float(data["bid"]),
                ask=float(data["ask"]),
                timestamp=int(data["timestamp"]),
            )
        except KeyError as e:
            raise ValueError(f"Missing tick field: {e.args[0]}")
        except (TypeError, OverflowError) as e:
            raise ValueError(f"Invalid tick field: {e}")

    @classmethod
    def from_json(cls, json_str: str) -> "Tick":
        """Deserialize from JSON string"""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid tick JSON: {e}")
        if not isinstance(data, dict):
            raise ValueError("Tick JSON must be an object")
        return cls.from_dict(data)


@dataclass(frozen=True)
class Candle:
    """Completed OHLCV candle for one bucket"""
    bucket_start: int  # Unix seconds, aligned to the interval
    open: float
    high: float
    low: float
    close: float
    volume: int  # number of ticks that formed this candle

    def __post_init__(self):
        if self.bucket_start < 0:
            raise ValueError("Bucket start must be non-negative")
        if self.high < self.low:
            raise ValueError("High must be >= low")
        if not (self.low <= self.open <= self.high):
            raise ValueError("Open must lie within [low, high]")
        if not (self.low <= self.close <= self.high):
            raise ValueError("Close must lie within [low, high]")
        if self.volume < 0:
            raise ValueError("Volume must be non-negative")

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return asdict(self)

    def to_json(self) -> str:
        """Serialize to JSON string"""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "Candle":
        """Create Candle from dictionary"""
        return cls(
            bucket_start=int(data["bucket_start"]),
            open=float(data["open"]),
            high=float(data["high"]),
            low=float(data["low"]),
            close=float(data["close"]),
            volume=int(data.get("volume", 0)),
        )

    @classmethod
    def from_json(cls, json_str: str) -> "Candle":
        """Deserialize from JSON string"""
        return cls.from_dict(json.loads(json_str))


@dataclass(frozen=True)
class CandleKey:
    """Storage identity of a candle"""
    symbol: str
    interval: str
    bucket_start: int
