"""
Interval Catalog

Fixed set of candle granularities supported by the aggregation engine.
Each interval pairs a label ("1m") with its duration in seconds and knows
how to align a timestamp to the start of its bucket.
"""

from enum import Enum
from typing import Dict, List, Optional


class Interval(Enum):
    """Supported candle intervals (label, duration in seconds)"""

    ONE_SECOND = ("1s", 1)
    FIVE_SECONDS = ("5s", 5)
    FIFTEEN_SECONDS = ("15s", 15)
    ONE_MINUTE = ("1m", 60)
    FIVE_MINUTES = ("5m", 300)
    FIFTEEN_MINUTES = ("15m", 900)
    ONE_HOUR = ("1h", 3600)

    def __init__(self, label: str, seconds: int):
        self.label = label
        self.seconds = seconds

    def bucket_start(self, timestamp_seconds: int) -> int:
        """Start of the bucket containing this timestamp (Unix seconds)"""
        return (timestamp_seconds // self.seconds) * self.seconds

    @classmethod
    def by_label(cls, label: str) -> Optional["Interval"]:
        """Look up an interval by label, None if unsupported"""
        return _BY_LABEL.get(label)

    @classmethod
    def all_labels(cls) -> List[str]:
        """All supported labels, in catalog order"""
        return [interval.label for interval in cls]


# label -> Interval
_BY_LABEL: Dict[str, Interval] = {interval.label: interval for interval in Interval}

# label -> seconds, for callers that only need durations
TIMEFRAMES: Dict[str, int] = {interval.label: interval.seconds for interval in Interval}


def bucket_start(interval: Interval, timestamp_seconds: int) -> int:
    """Align a Unix-seconds timestamp to the start of its bucket for `interval`"""
    return interval.bucket_start(timestamp_seconds)
