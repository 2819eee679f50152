"""
Config Loader

Loads the service configuration from an optional YAML file and applies
environment variable overrides on top.

Example config file:
    log_level: INFO
    flush:
      interval_ms: 1000
    generator:
      enabled: true
      symbols: [BTC-USD, ETH-USD]
      interval_ms: 200
    nats:
      enabled: false
      servers: ["nats://localhost:4222"]
    api:
      host: 0.0.0.0
      port: 8080
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from candleflow.adapters.nats_client import NatsConfig

logger = logging.getLogger(__name__)


class FlushConfig(BaseModel):
    """Stale-flush sweep settings"""
    interval_ms: int = Field(default=1000, gt=0)


class GeneratorConfig(BaseModel):
    """Simulated tick source settings"""
    enabled: bool = True
    symbols: List[str] = Field(default_factory=lambda: ["BTC-USD", "ETH-USD"])
    interval_ms: int = Field(default=200, gt=0)
    seed: Optional[int] = None


class NatsSourceConfig(BaseModel):
    """NATS tick source settings"""
    enabled: bool = False
    servers: List[str] = Field(default_factory=lambda: ["nats://localhost:4222"])
    client_name: str = "candle-aggregator"
    queue: Optional[str] = None

    def to_nats_config(self) -> NatsConfig:
        return NatsConfig(servers=list(self.servers), name=self.client_name)


class ApiConfig(BaseModel):
    """HTTP server settings"""
    host: str = "0.0.0.0"
    port: int = Field(default=8080, gt=0, lt=65536)


class AppConfig(BaseModel):
    """Complete service configuration"""
    log_level: str = "INFO"
    flush: FlushConfig = Field(default_factory=FlushConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    nats: NatsSourceConfig = Field(default_factory=NatsSourceConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigLoader:
    """
    Loads AppConfig from YAML and the environment.

    Example usage:
        config = ConfigLoader(Path("config/default.yaml")).load()

        # or, in a container:
        config = ConfigLoader.from_env()
    """

    def __init__(self, config_file: Optional[Path] = None):
        """
        Args:
            config_file: YAML file to load; None means defaults only
        """
        self.config_file = config_file

    def load(self) -> AppConfig:
        """
        Load the YAML file (if any) into an AppConfig.

        Raises:
            ValueError: If the file is missing or its content is invalid
        """
        if self.config_file is None:
            return AppConfig()

        if not self.config_file.exists():
            raise ValueError(f"Config file not found: {self.config_file}")

        try:
            with open(self.config_file) as f:
                raw = yaml.safe_load(f) or {}
            if not isinstance(raw, dict):
                raise ValueError("top-level YAML value must be a mapping")
            config = AppConfig(**raw)
        except (yaml.YAMLError, ValidationError, ValueError) as e:
            logger.error(f"Failed to load {self.config_file}: {e}")
            raise ValueError(f"Failed to load {self.config_file}: {e}")

        logger.info(f"Loaded config from {self.config_file}")
        return config

    @staticmethod
    def apply_env(config: AppConfig, env: Dict[str, str]) -> AppConfig:
        """
        Return a copy of `config` with environment overrides applied.

        Raises:
            ValueError: If an override does not validate
        """
        data = config.model_dump()

        if "LOG_LEVEL" in env:
            data["log_level"] = env["LOG_LEVEL"].upper()
        if "FLUSH_INTERVAL_MS" in env:
            data["flush"]["interval_ms"] = env["FLUSH_INTERVAL_MS"]
        if "GENERATOR_ENABLED" in env:
            data["generator"]["enabled"] = _parse_bool(env["GENERATOR_ENABLED"])
        if "GENERATOR_SYMBOLS" in env:
            data["generator"]["symbols"] = _split_list(env["GENERATOR_SYMBOLS"])
        if "GENERATOR_INTERVAL_MS" in env:
            data["generator"]["interval_ms"] = env["GENERATOR_INTERVAL_MS"]
        if "NATS_ENABLED" in env:
            data["nats"]["enabled"] = _parse_bool(env["NATS_ENABLED"])
        if "NATS_SERVERS" in env:
            data["nats"]["servers"] = _split_list(env["NATS_SERVERS"])
        if "HOST" in env:
            data["api"]["host"] = env["HOST"]
        if "PORT" in env:
            data["api"]["port"] = env["PORT"]

        try:
            return AppConfig(**data)
        except ValidationError as e:
            raise ValueError(f"Invalid environment override: {e}")

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> AppConfig:
        """Load CONFIG_FILE (if set) and apply environment overrides"""
        env = dict(os.environ) if env is None else env
        config_file = env.get("CONFIG_FILE")
        loader = cls(Path(config_file) if config_file else None)
        return cls.apply_env(loader.load(), env)
