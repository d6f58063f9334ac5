"""Scoring strategies.

Public API
----------
- :class:`Strategy`: Abstract scoring strategy
- :class:`WeightedLog`: Weighted latency average with a logarithmic score
- :func:`create_strategy`: Build a strategy from validated configuration
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from isup.strategy.base import ProbeStatus, Strategy
from isup.strategy.weighted_log import WeightedLog, status_weight

if TYPE_CHECKING:
    from isup.config.schema import StrategyConfig


def create_strategy(config: Optional["StrategyConfig"] = None) -> Strategy:
    """Instantiate the strategy selected by *config* (default: WeightedLog)."""
    if config is None:
        return WeightedLog()
    if config.type == "weighted_log":
        return WeightedLog(weight=config.weight, effort=config.effort)
    raise ValueError(f"Unknown strategy type: {config.type!r}")


__all__ = [
    "ProbeStatus",
    "Strategy",
    "WeightedLog",
    "create_strategy",
    "status_weight",
]
