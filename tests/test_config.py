"""Tests for configuration loading."""

from pathlib import Path

import pytest

from candleflow.config.loader import AppConfig, ConfigLoader

DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


def test_defaults():
    config = ConfigLoader().load()

    assert config == AppConfig()
    assert config.flush.interval_ms == 1000
    assert config.generator.enabled is True
    assert config.generator.symbols == ["BTC-USD", "ETH-USD"]
    assert config.nats.enabled is False
    assert config.api.port == 8080


def test_shipped_config_file_loads():
    config = ConfigLoader(DEFAULT_CONFIG).load()

    assert config.generator.interval_ms == 200
    assert config.nats.client_name == "candle-aggregator"


def test_load_yaml(tmp_path):
    path = tmp_path / "service.yaml"
    path.write_text(
        "log_level: DEBUG\n"
        "flush:\n  interval_ms: 500\n"
        "generator:\n  symbols: [SOL-USD]\n  seed: 9\n"
    )

    config = ConfigLoader(path).load()

    assert config.log_level == "DEBUG"
    assert config.flush.interval_ms == 500
    assert config.generator.symbols == ["SOL-USD"]
    assert config.generator.seed == 9
    assert config.api.port == 8080


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert ConfigLoader(path).load() == AppConfig()


def test_missing_file(tmp_path):
    with pytest.raises(ValueError, match="not found"):
        ConfigLoader(tmp_path / "nope.yaml").load()


@pytest.mark.parametrize(
    "content",
    [
        "flush:\n  interval_ms: 0\n",
        "api: [1, 2]\n",
        "- just\n- a list\n",
        "generator: {enabled: true\n",
    ],
)
def test_invalid_content(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content)

    with pytest.raises(ValueError, match="Failed to load"):
        ConfigLoader(path).load()


def test_env_overrides(tmp_path):
    path = tmp_path / "service.yaml"
    path.write_text("generator:\n  symbols: [SOL-USD]\n")

    config = ConfigLoader.from_env(
        {
            "CONFIG_FILE": str(path),
            "LOG_LEVEL": "warning",
            "FLUSH_INTERVAL_MS": "250",
            "GENERATOR_ENABLED": "false",
            "GENERATOR_INTERVAL_MS": "50",
            "NATS_ENABLED": "true",
            "NATS_SERVERS": "nats://a:4222,nats://b:4222",
            "HOST": "127.0.0.1",
            "PORT": "9000",
        }
    )

    assert config.log_level == "WARNING"
    assert config.flush.interval_ms == 250
    assert config.generator.enabled is False
    assert config.generator.symbols == ["SOL-USD"]
    assert config.generator.interval_ms == 50
    assert config.nats.enabled is True
    assert config.nats.to_nats_config().servers == ["nats://a:4222", "nats://b:4222"]
    assert config.api.host == "127.0.0.1"
    assert config.api.port == 9000


def test_env_symbols_override():
    config = ConfigLoader.from_env({"GENERATOR_SYMBOLS": "BTC-USD, SOL-USD,"})

    assert config.generator.symbols == ["BTC-USD", "SOL-USD"]


def test_invalid_env_override():
    with pytest.raises(ValueError, match="Invalid environment override"):
        ConfigLoader.from_env({"PORT": "not-a-port"})
