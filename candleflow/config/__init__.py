"""
Configuration

YAML + environment configuration for the candle aggregation service.
"""

from candleflow.config.loader import (
    AppConfig,
    ApiConfig,
    ConfigLoader,
    FlushConfig,
    GeneratorConfig,
    NatsSourceConfig,
)

__all__ = [
    "AppConfig",
    "ApiConfig",
    "ConfigLoader",
    "FlushConfig",
    "GeneratorConfig",
    "NatsSourceConfig",
]
