"""
Query API

FastAPI service exposing the candle aggregation engine over HTTP. The
application lifespan starts the tick sources and the stale-flush sweep,
and drains every open candle on shutdown.

HTTP Endpoints:
- GET  /            - Health check
- GET  /health      - Detailed health status
- GET  /ping        - Liveness probe
- GET  /status      - Aggregator / store / generator counters
- GET  /symbols     - Symbols with stored candles
- GET  /intervals   - Supported interval labels
- GET  /history     - Candles for symbol/interval/from/to (TradingView format)
- POST /ticks       - Ingest a single bid/ask tick
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import uvicorn

from candleflow.adapters.nats_client import NatsClient
from candleflow.candle_aggregation.router import AggregationRouter
from candleflow.candle_aggregation.service import AggregationService
from candleflow.config.loader import AppConfig, ConfigLoader
from candleflow.ingestion.generator import MarketDataGenerator
from candleflow.ingestion.nats_consumer import NatsTickConsumer
from candleflow.persistence.store import CandleStore
from candleflow.schemas.intervals import Interval
from candleflow.schemas.market_data import Candle, Tick, normalize_symbol

logger = logging.getLogger(__name__)


# Response models (Pydantic)
class HistoryResponse(BaseModel):
    """
    Candle history in TradingView Lightweight Charts format.

    s: "ok", "no_data" or "error: <message>"
    t/o/h/l/c/v: parallel arrays of time, open, high, low, close, volume
    """
    s: str
    t: List[int] = []
    o: List[float] = []
    h: List[float] = []
    l: List[float] = []
    c: List[float] = []
    v: List[int] = []

    @classmethod
    def ok(cls, candles: List[Candle]) -> "HistoryResponse":
        return cls(
            s="ok",
            t=[candle.bucket_start for candle in candles],
            o=[round(candle.open, 2) for candle in candles],
            h=[round(candle.high, 2) for candle in candles],
            l=[round(candle.low, 2) for candle in candles],
            c=[round(candle.close, 2) for candle in candles],
            v=[candle.volume for candle in candles],
        )

    @classmethod
    def no_data(cls) -> "HistoryResponse":
        return cls(s="no_data")

    @classmethod
    def error(cls, message: str) -> "HistoryResponse":
        return cls(s=f"error: {message}")


# Request models (Pydantic)
class TickRequest(BaseModel):
    """Bid/ask tick posted by an external source"""
    symbol: str
    bid: float
    ask: float
    timestamp: int  # Unix milliseconds


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content=HistoryResponse.error(message).model_dump())


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """
    Build the application and wire the aggregation engine.

    Args:
        config: Service configuration (defaults when omitted)

    Returns:
        FastAPI app; components are reachable on `app.state`
    """
    config = config or AppConfig()

    store = CandleStore()
    router = AggregationRouter(store)
    service = AggregationService(router, flush_interval=config.flush.interval_ms / 1000)

    generator = None
    if config.generator.enabled:
        generator = MarketDataGenerator(
            router,
            config.generator.symbols,
            interval_ms=config.generator.interval_ms,
            seed=config.generator.seed,
        )

    consumer = None
    if config.nats.enabled:
        consumer = NatsTickConsumer(
            NatsClient(config.nats.to_nats_config()),
            router,
            queue=config.nats.queue,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start tick sources and the sweep; drain on shutdown"""
        logger.info("Starting Candle Aggregation Service...")

        await service.start()
        if generator:
            await generator.start()
        if app.state.consumer:
            try:
                await app.state.consumer.start()
            except Exception as e:
                logger.warning(f"Failed to connect to NATS: {e}. Running without message-bus ticks.")
                app.state.consumer = None

        yield

        # Stop the sources before draining so no tick lands after the final flush
        try:
            if generator:
                await generator.stop()
            if app.state.consumer:
                try:
                    await app.state.consumer.stop()
                except Exception as e:
                    logger.warning(f"Failed to stop NATS consumer cleanly: {e}")
        finally:
            await service.stop()

        logger.info(
            f"Candle Aggregation Service shutdown complete. "
            f"{store.total_count()} candles stored"
        )

    app = FastAPI(
        title="Candle Aggregation Service",
        description="Aggregates bid/ask ticks into OHLCV candles and serves their history",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store
    app.state.router = router
    app.state.service = service
    app.state.generator = generator
    app.state.consumer = consumer

    @app.get("/")
    async def root():
        """Health check endpoint"""
        return {
            "status": "running",
            "service": "candle-aggregation",
            "timestamp": datetime.now().isoformat(),
        }

    @app.get("/health")
    async def health(request: Request):
        """Detailed health status"""
        consumer = request.app.state.consumer
        return {
            "status": "healthy",
            "service": "candle-aggregation",
            "sweep_running": service.is_running,
            "generator_enabled": generator is not None,
            "nats_connected": consumer.nats.is_connected if consumer else False,
            "timestamp": datetime.now().isoformat(),
        }

    @app.get("/ping")
    async def ping():
        """Liveness probe"""
        return {"status": "ok"}

    @app.get("/status")
    async def status():
        """Aggregator, store and generator counters"""
        return {
            "status": "ok",
            "timestamp": int(time.time()),
            "aggregators": router.aggregator_count(),
            "activeSymbols": router.active_symbols(),
            "totalCandlesStored": store.total_count(),
            "totalEventsGenerated": generator.event_count if generator else 0,
            "lateTicksDropped": router.dropped_ticks(),
            "supportedIntervals": Interval.all_labels(),
        }

    @app.get("/symbols")
    async def symbols() -> List[str]:
        """Symbols with at least one stored candle"""
        return store.known_symbols()

    @app.get("/intervals")
    async def intervals() -> List[str]:
        """Supported interval labels"""
        return Interval.all_labels()

    @app.get("/history", response_model=HistoryResponse)
    async def history(
        symbol: str = Query(..., description="Trading symbol, e.g. BTC-USD"),
        interval: str = Query(..., description="Interval label, e.g. 1m"),
        from_: int = Query(..., alias="from", description="Range start, Unix seconds (inclusive)"),
        to: int = Query(..., description="Range end, Unix seconds (inclusive)"),
    ):
        """
        Fetch candle history for a symbol and interval within a time range.

        Raises:
            400: Unsupported interval, from > to, or blank symbol
        """
        logger.info(f"History request: symbol={symbol} interval={interval} from={from_} to={to}")

        if Interval.by_label(interval) is None:
            logger.warning(f"Invalid interval requested: {interval}")
            return _bad_request(
                f"Unsupported interval: {interval}. "
                f"Supported: {', '.join(Interval.all_labels())}"
            )
        if from_ > to:
            return _bad_request("'from' must be <= 'to'")
        if not symbol.strip():
            return _bad_request("Symbol must not be blank")

        candles = store.query(normalize_symbol(symbol), interval, from_, to)
        if not candles:
            logger.debug(f"No candles found for symbol={symbol} interval={interval} from={from_} to={to}")
            return HistoryResponse.no_data()

        logger.info(f"Returning {len(candles)} candles for symbol={symbol} interval={interval}")
        return HistoryResponse.ok(candles)

    @app.post("/ticks")
    async def receive_tick(data: TickRequest):
        """
        Ingest a tick from an external source.

        The tick is validated, its symbol upper-cased, and fanned out to
        every interval aggregator for that symbol.
        """
        try:
            tick = Tick(
                symbol=normalize_symbol(data.symbol),
                bid=data.bid,
                ask=data.ask,
                timestamp=data.timestamp,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        router.ingest(tick)
        return {
            "status": "accepted",
            "symbol": tick.symbol,
            "mid": tick.mid_price,
            "received_at": datetime.now().isoformat(),
        }

    return app


def main() -> None:
    """Load configuration from the environment and serve the API"""
    config = ConfigLoader.from_env()

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    logger.info(f"Starting Query API on {config.api.host}:{config.api.port}")
    logger.info(f"Generator enabled: {config.generator.enabled}, NATS enabled: {config.nats.enabled}")

    uvicorn.run(
        create_app(config),
        host=config.api.host,
        port=config.api.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
