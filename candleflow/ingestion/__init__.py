"""
Ingestion Layer

Tick sources that feed the aggregation router:
- generator: simulated random-walk ticks
- nats_consumer: ticks published on the NATS message bus
"""
