"""
NATS Client Adapter

Async NATS client used by the message-bus tick source. Ticks arrive on
`ticks.raw.{symbol}` subjects as JSON documents.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

import nats
from nats.aio.client import Client as NatsConnection
from nats.aio.msg import Msg

logger = logging.getLogger(__name__)


@dataclass
class NatsConfig:
    """NATS connection configuration"""
    servers: List[str] = field(default_factory=lambda: ["nats://localhost:4222"])
    name: str = "candle-aggregator"
    reconnect_time_wait: float = 2.0
    max_reconnect_attempts: int = -1  # Infinite reconnects

    @classmethod
    def from_env(cls, prefix: str = "NATS") -> "NatsConfig":
        """Create config from environment variables"""
        servers = os.getenv(f"{prefix}_SERVERS", "nats://localhost:4222")
        return cls(
            servers=[s.strip() for s in servers.split(",") if s.strip()],
            name=os.getenv(f"{prefix}_CLIENT_NAME", "candle-aggregator"),
        )


class NatsClient:
    """
    Thin async wrapper around a NATS connection.

    Tracks connection state through the client callbacks and keeps
    subscriptions by subject so they can be dropped individually.
    """

    def __init__(self, config: Optional[NatsConfig] = None):
        self.config = config or NatsConfig()
        self._nc: Optional[NatsConnection] = None
        self._subscriptions: Dict[str, Any] = {}
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if client is connected"""
        return self._connected and self._nc is not None and self._nc.is_connected

    async def connect(self) -> None:
        """Establish connection to NATS server"""
        if self._connected:
            return

        async def error_handler(e):
            logger.error(f"NATS error: {e}")

        async def disconnected_handler():
            logger.warning("NATS disconnected")
            self._connected = False

        async def reconnected_handler():
            logger.info("NATS reconnected")
            self._connected = True

        self._nc = await nats.connect(
            servers=self.config.servers,
            name=self.config.name,
            reconnect_time_wait=self.config.reconnect_time_wait,
            max_reconnect_attempts=self.config.max_reconnect_attempts,
            error_cb=error_handler,
            disconnected_cb=disconnected_handler,
            reconnected_cb=reconnected_handler,
        )
        self._connected = True
        logger.info(f"Connected to NATS: {self.config.servers}")

    async def close(self) -> None:
        """Drain subscriptions and close the connection"""
        if self._nc:
            await self._nc.drain()
            self._connected = False
            self._subscriptions.clear()
            logger.info("NATS connection closed")

    async def subscribe(
        self,
        subject: str,
        callback: Callable[[Msg], Awaitable[None]],
        queue: Optional[str] = None,
    ) -> None:
        """
        Subscribe to a NATS subject.

        Args:
            subject: NATS subject pattern (supports wildcards: *, >)
            callback: Async callback for received messages
            queue: Optional queue group for load balancing
        """
        if not self.is_connected:
            raise RuntimeError("NATS client not connected")

        sub = await self._nc.subscribe(subject, queue=queue or "", cb=callback)
        self._subscriptions[subject] = sub
        logger.info(f"Subscribed to {subject}" + (f" (queue: {queue})" if queue else ""))

    async def unsubscribe(self, subject: str) -> None:
        """Unsubscribe from a subject"""
        sub = self._subscriptions.pop(subject, None)
        if sub is not None:
            await sub.unsubscribe()
            logger.info(f"Unsubscribed from {subject}")


class Topics:
    """NATS subject builders for tick traffic"""

    @staticmethod
    def _sanitize(name: str) -> str:
        """Keep only alphanumerics, hyphens and underscores in a subject token"""
        return "".join(c if c.isalnum() or c in "-_" else "_" for c in name)

    @staticmethod
    def ticks_raw(symbol: str) -> str:
        """Raw tick subject for a symbol"""
        return f"ticks.raw.{Topics._sanitize(symbol)}"

    @staticmethod
    def all_ticks() -> str:
        """Wildcard subject matching every symbol's ticks"""
        return "ticks.raw.*"
