"""
Candleflow

Real-time candle aggregation service. Contains:
- schemas: interval catalog and tick/candle value types
- candle_aggregation: per-key aggregators, router and sweep service
- persistence: in-memory candle store
- ingestion: simulated and NATS tick sources
- query: HTTP history/status API
"""

__version__ = "1.0.0"
