"""
Persistence Layer

In-memory storage for completed candles.
"""

from candleflow.persistence.store import CandleStore

__all__ = ["CandleStore"]
