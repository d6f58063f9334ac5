"""Configuration models.

Pydantic models for the YAML configuration file: polling interval, probe
client timeouts, store backend, scoring strategy and the probe list.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from isup.constants import (
    DEFAULT_REDIS_KEY_PREFIX,
    DEFAULT_REDIS_SORTED_SET,
    DEFAULT_REDIS_URL,
)
from isup.config.durations import parse_duration
from isup.probe import Probe, normalize_headers, normalize_method, normalize_url
from isup.strategy.weighted_log import DEFAULT_EFFORT, DEFAULT_WEIGHT


def _duration(value: Any) -> Optional[float]:
    return parse_duration(value)


# ── Client ───────────────────────────────────────────────────────────────


class ClientConfig(BaseModel):
    """Probe client timeouts, in seconds (human-readable strings accepted)."""

    model_config = ConfigDict(extra="forbid")

    request_timeout: Optional[float] = Field(
        default=None,
        ge=0,
        description="Maximum time for a probe before it counts as failed.",
    )
    pool_idle_timeout: Optional[float] = Field(
        default=None,
        ge=0,
        description="How long an idle pooled connection is kept.",
    )

    @field_validator("request_timeout", "pool_idle_timeout", mode="before")
    @classmethod
    def _parse_durations(cls, v: Any) -> Optional[float]:
        return _duration(v)


# ── Store ────────────────────────────────────────────────────────────────


class MemoryStoreConfig(BaseModel):
    """In-process score store."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["memory"] = "memory"


class RedisStoreConfig(BaseModel):
    """Redis score store."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["redis"]
    connection: str = Field(
        default=DEFAULT_REDIS_URL,
        min_length=1,
        description="Redis URL (supports ${ENV_VAR}).",
    )
    key_prefix: str = Field(default=DEFAULT_REDIS_KEY_PREFIX)
    sorted_set_name: str = Field(default=DEFAULT_REDIS_SORTED_SET, min_length=1)


StoreConfig = Annotated[
    Union[MemoryStoreConfig, RedisStoreConfig],
    Field(discriminator="type"),
]


# ── Strategy ─────────────────────────────────────────────────────────────


class WeightedLogConfig(BaseModel):
    """Parameters for the weighted-log scoring strategy."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["weighted_log"] = "weighted_log"
    weight: float = Field(default=DEFAULT_WEIGHT, ge=0, le=1)
    effort: float = Field(default=DEFAULT_EFFORT, ge=0)


StrategyConfig = WeightedLogConfig


# ── Probes ───────────────────────────────────────────────────────────────


class RequestConfig(BaseModel):
    """One monitored request."""

    url: str = Field(..., min_length=1)
    method: str = Field(default="GET", min_length=1)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = Field(
        default=None,
        description="Raw string or any JSON value, sent as the request body.",
    )

    @field_validator("url")
    @classmethod
    def _normalize_url(cls, v: str) -> str:
        return normalize_url(v)

    @field_validator("method")
    @classmethod
    def _upper_method(cls, v: str) -> str:
        return normalize_method(v)

    @field_validator("headers", mode="before")
    @classmethod
    def _stringify_headers(cls, v: Any) -> Any:
        # YAML turns values like `1.0` into numbers; headers are plain text.
        if v is None:
            return {}
        if isinstance(v, dict):
            return normalize_headers(v)
        return v

    def to_probe(self) -> Probe:
        return Probe.create(self.method, self.url, body=self.body, headers=self.headers)


# ── Top-level ────────────────────────────────────────────────────────────


class IsupConfig(BaseModel):
    """Root configuration model."""

    interval: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds between polling cycles.",
    )
    client: Optional[ClientConfig] = None
    store: StoreConfig = Field(default_factory=MemoryStoreConfig)
    strategy: StrategyConfig = Field(default_factory=WeightedLogConfig)
    requests: List[RequestConfig] = Field(default_factory=list)

    @field_validator("interval", mode="before")
    @classmethod
    def _parse_interval(cls, v: Any) -> Optional[float]:
        return _duration(v)
