"""Tests for the HTTP query/ingestion API."""

import pytest
from fastapi.testclient import TestClient

from candleflow.config.loader import AppConfig, FlushConfig, GeneratorConfig
from candleflow.query.api.main import HistoryResponse, create_app
from candleflow.schemas.intervals import Interval
from candleflow.schemas.market_data import Candle


@pytest.fixture
def app():
    # Long sweep period so wall-clock sweeps never race the 2021 timestamps used here
    return create_app(
        AppConfig(generator=GeneratorConfig(enabled=False), flush=FlushConfig(interval_ms=60_000))
    )


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def history(client, **params):
    query = {"symbol": "BTC-USD", "interval": "1m", "from": 1620000000, "to": 1620000600}
    query.update(params)
    return client.get("/history", params=query)


class TestHistory:
    """GET /history."""

    def test_returns_candles_in_tradingview_format(self, app, client):
        store = app.state.store
        store.save("BTC-USD", "1m", Candle(1620000060, 29501.0, 29505.0, 29500.0, 29502.0, 8))
        store.save("BTC-USD", "1m", Candle(1620000000, 29500.0, 29510.0, 29490.0, 29505.0, 10))

        response = history(client, to=1620000120)

        assert response.status_code == 200
        body = response.json()
        assert body["s"] == "ok"
        assert body["t"] == [1620000000, 1620000060]
        assert body["o"] == [29500.0, 29501.0]
        assert body["h"] == [29510.0, 29505.0]
        assert body["l"] == [29490.0, 29500.0]
        assert body["c"] == [29505.0, 29502.0]
        assert body["v"] == [10, 8]

    def test_prices_rounded_to_cents(self, app, client):
        app.state.store.save("BTC-USD", "1m", Candle(1620000000, 1.234, 1.236, 1.231, 1.2349, 1))

        body = history(client).json()

        assert body["o"] == [1.23]
        assert body["h"] == [1.24]
        assert body["l"] == [1.23]
        assert body["c"] == [1.23]

    def test_symbol_is_upper_cased(self, app, client):
        app.state.store.save("BTC-USD", "1m", Candle(1620000000, 1.0, 1.0, 1.0, 1.0, 1))

        assert history(client, symbol="btc-usd").json()["s"] == "ok"

    def test_no_data(self, client):
        response = history(client)

        assert response.status_code == 200
        assert response.json() == HistoryResponse.no_data().model_dump()
        assert response.json()["t"] == []

    def test_invalid_interval(self, client):
        response = history(client, interval="2m")

        assert response.status_code == 400
        assert response.json()["s"].startswith("error: Unsupported interval: 2m")

    def test_from_after_to(self, client):
        response = history(client, **{"from": 1620000600, "to": 1620000000})

        assert response.status_code == 400
        assert response.json()["s"] == "error: 'from' must be <= 'to'"

    def test_blank_symbol(self, client):
        response = history(client, symbol="  ")

        assert response.status_code == 400
        assert response.json()["s"] == "error: Symbol must not be blank"

    def test_missing_parameter(self, client):
        response = client.get("/history", params={"symbol": "BTC-USD", "interval": "1m"})

        assert response.status_code == 422


class TestStatusEndpoints:
    """Operational endpoints."""

    def test_root_and_health(self, client):
        assert client.get("/").json()["status"] == "running"
        health = client.get("/health").json()
        assert health["status"] == "healthy"
        assert health["sweep_running"] is True
        assert health["generator_enabled"] is False
        assert health["nats_connected"] is False

    def test_ping(self, client):
        assert client.get("/ping").json() == {"status": "ok"}

    def test_intervals(self, client):
        assert client.get("/intervals").json() == ["1s", "5s", "15s", "1m", "5m", "15m", "1h"]

    def test_status_and_symbols(self, app, client):
        app.state.store.save("ETH-USD", "1m", Candle(60, 1.0, 1.0, 1.0, 1.0, 1))
        client.post("/ticks", json={"symbol": "BTC-USD", "bid": 99.0, "ask": 101.0, "timestamp": 70_000})
        client.post("/ticks", json={"symbol": "BTC-USD", "bid": 99.0, "ask": 101.0, "timestamp": 50_000})

        status = client.get("/status").json()

        assert status["status"] == "ok"
        assert status["aggregators"] == len(Interval)
        assert status["activeSymbols"] == ["BTC-USD"]
        assert status["totalEventsGenerated"] == 0
        assert status["lateTicksDropped"] >= 1
        assert status["supportedIntervals"] == Interval.all_labels()
        assert "ETH-USD" in client.get("/symbols").json()


class TestTickIngestion:
    """POST /ticks."""

    def test_accepts_valid_tick(self, app, client):
        response = client.post(
            "/ticks", json={"symbol": "sol-usd", "bid": 149.9, "ask": 150.1, "timestamp": 1620000000000}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "accepted"
        assert body["symbol"] == "SOL-USD"
        assert body["mid"] == pytest.approx(150.0)
        assert app.state.router.active_symbols() == ["SOL-USD"]

    def test_rejects_invalid_tick(self, app, client):
        response = client.post(
            "/ticks", json={"symbol": "BTC-USD", "bid": 101.0, "ask": 99.0, "timestamp": 1}
        )

        assert response.status_code == 400
        assert "Ask must be >= bid" in response.json()["detail"]
        assert app.state.router.aggregator_count() == 0


def test_shutdown_drains_open_candles(app):
    with TestClient(app) as client:
        client.post("/ticks", json={"symbol": "BTC-USD", "bid": 99.0, "ask": 101.0, "timestamp": 1620000000000})
        client.post("/ticks", json={"symbol": "BTC-USD", "bid": 109.0, "ask": 111.0, "timestamp": 1620000000500})

    store = app.state.store
    assert store.total_count() == len(Interval)
    [candle] = store.query("BTC-USD", "1m", 1620000000, 1620000000)
    assert candle.open == pytest.approx(100.0)
    assert candle.close == pytest.approx(110.0)
    assert candle.volume == 2


class FailingStopConsumer:
    """Tick source that starts fine but fails to shut down, like a drain on a dead broker."""

    async def start(self):
        pass

    async def stop(self):
        raise RuntimeError("nats: connection closed")


def test_shutdown_drains_even_when_consumer_stop_fails(app):
    app.state.consumer = FailingStopConsumer()

    with TestClient(app) as client:
        client.post("/ticks", json={"symbol": "BTC-USD", "bid": 99.0, "ask": 101.0, "timestamp": 1620000000000})

    assert app.state.store.total_count() == len(Interval)
    assert not app.state.service.is_running


def test_shutdown_drains_even_when_generator_crashed(monkeypatch):
    app = create_app(
        AppConfig(
            generator=GeneratorConfig(enabled=True, interval_ms=5, seed=1),
            flush=FlushConfig(interval_ms=60_000),
        )
    )

    def crash(now_ms=None):
        raise RuntimeError("generator crashed")

    monkeypatch.setattr(app.state.generator, "generate_once", crash)

    with TestClient(app) as client:
        client.post("/ticks", json={"symbol": "BTC-USD", "bid": 99.0, "ask": 101.0, "timestamp": 1620000000000})

    assert app.state.store.total_count() == len(Interval)


def test_generator_feeds_engine_when_enabled():
    app = create_app(AppConfig(generator=GeneratorConfig(enabled=True, interval_ms=5, seed=1)))

    with TestClient(app) as client:
        status = client.get("/status").json()
        assert status["activeSymbols"] in ([], ["BTC-USD", "ETH-USD"])

    assert app.state.generator.event_count > 0
    assert app.state.store.known_symbols() == ["BTC-USD", "ETH-USD"]
