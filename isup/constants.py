"""Shared constants for isup."""

SERVER_NAME = "isup"
SERVER_VERSION = "0.1.0"

# Network defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080

# Logging defaults
DEFAULT_LOG_LEVEL = "INFO"

# Probe client defaults
DEFAULT_REQUEST_TIMEOUT = 2.0  # seconds
DEFAULT_POOL_IDLE_TIMEOUT = 60.0  # seconds

# Redis store defaults
DEFAULT_REDIS_URL = "redis://localhost:6379"
DEFAULT_REDIS_KEY_PREFIX = "isup:"
DEFAULT_REDIS_SORTED_SET = "isup:scores"

# Config discovery
CONFIG_ENV_VAR = "ISUP_CONFIG"
