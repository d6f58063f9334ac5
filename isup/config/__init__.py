"""Configuration loading and validation.

Public API
----------
- :func:`load_config`: Read and validate a YAML configuration file
- :func:`parse_config`: Validate an already-parsed mapping
- :class:`IsupConfig`: Root configuration model
"""

from isup.config.durations import parse_duration
from isup.config.loader import load_config, parse_config
from isup.config.schema import (
    ClientConfig,
    IsupConfig,
    MemoryStoreConfig,
    RedisStoreConfig,
    RequestConfig,
    StoreConfig,
    StrategyConfig,
    WeightedLogConfig,
)

__all__ = [
    "ClientConfig",
    "IsupConfig",
    "MemoryStoreConfig",
    "RedisStoreConfig",
    "RequestConfig",
    "StoreConfig",
    "StrategyConfig",
    "WeightedLogConfig",
    "load_config",
    "parse_config",
    "parse_duration",
]
