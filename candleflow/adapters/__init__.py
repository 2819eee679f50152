"""
NATS Adapters

Provides the NATS client wrapper used by the message-bus tick source.
"""

from candleflow.adapters.nats_client import NatsClient, NatsConfig

__all__ = ["NatsClient", "NatsConfig"]
