"""Score value computed for each monitored URL."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

NANOS_PER_SECOND = 1_000_000_000


@dataclass(frozen=True)
class Score:
    """Latency average, fitness number and reliability for one URL.

    ``response_avg`` is held in nanoseconds. A new instance is produced on
    every update; the default value is the prior used on a store miss.
    """

    response_avg: int = 0
    score: float = 0.0
    reliability: float = 0.0

    @property
    def response_avg_seconds(self) -> float:
        return self.response_avg / NANOS_PER_SECOND

    def to_dict(self) -> Dict[str, Any]:
        return {
            "response_avg": self.response_avg,
            "score": self.score,
            "reliability": self.reliability,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Score":
        return cls(
            response_avg=int(data.get("response_avg", 0)),
            score=float(data.get("score", 0.0)),
            reliability=float(data.get("reliability", 0.0)),
        )
