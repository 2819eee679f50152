"""
NATS Tick Consumer

Message-bus tick source: subscribes to raw tick subjects and feeds every
valid tick into the aggregation router. Malformed messages are logged and
dropped; they never reach aggregator state.
"""

import logging
from dataclasses import replace
from typing import Optional

from candleflow.adapters.nats_client import NatsClient, Topics
from candleflow.candle_aggregation.router import AggregationRouter
from candleflow.schemas.market_data import Tick, normalize_symbol

logger = logging.getLogger(__name__)


class NatsTickConsumer:
    """Consumes `ticks.raw.*` and ingests each tick"""

    def __init__(
        self,
        nats_client: NatsClient,
        router: AggregationRouter,
        queue: Optional[str] = None,
    ):
        self.nats = nats_client
        self.router = router
        self.queue = queue

        # Metrics
        self.accepted = 0
        self.rejected = 0

    async def handle_message(self, msg) -> None:
        """Decode and validate one tick message, then ingest it under its canonical symbol"""
        try:
            tick = Tick.from_json(msg.data.decode())
            tick = replace(tick, symbol=normalize_symbol(tick.symbol))
        except (ValueError, UnicodeDecodeError) as e:
            self.rejected += 1
            logger.error(f"Rejected tick on {msg.subject}: {e}")
            return

        self.router.ingest(tick)
        self.accepted += 1

    async def start(self) -> None:
        """Connect (if needed) and subscribe to all raw ticks"""
        if not self.nats.is_connected:
            await self.nats.connect()
        await self.nats.subscribe(Topics.all_ticks(), self.handle_message, queue=self.queue)
        logger.info("NATS tick consumer started")

    async def stop(self) -> None:
        """Unsubscribe and close the connection"""
        await self.nats.unsubscribe(Topics.all_ticks())
        await self.nats.close()
        logger.info(
            f"NATS tick consumer stopped. Accepted {self.accepted} ticks, rejected {self.rejected}"
        )
