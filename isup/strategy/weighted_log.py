"""Weighted-average latency with a logarithmic fitness score."""

from __future__ import annotations

import math

from isup.score import NANOS_PER_SECOND, Score
from isup.strategy.base import Number, ProbeStatus, Strategy, check_sample

# ── Status weights ───────────────────────────────────────────────────────

STATUS_NO_ERROR = 1.0
STATUS_RECOVERABLE = 0.7
STATUS_SERVER_ERROR = 0.5
STATUS_UNDEFINED = 0.3
STATUS_NON_RECOVERABLE = 0.2

RELIABILITY_FACTOR = 0.001

DEFAULT_WEIGHT = 0.5
DEFAULT_EFFORT = 10.0


def status_weight(status: ProbeStatus) -> float:
    """Map a status code to how much it counts towards the score."""
    if status is None:
        return STATUS_UNDEFINED
    if 100 <= status <= 399:
        return STATUS_NO_ERROR
    if status in (408, 429):
        return STATUS_RECOVERABLE
    if 400 <= status <= 499:
        return STATUS_NON_RECOVERABLE
    if 500 <= status <= 599:
        return STATUS_SERVER_ERROR
    return STATUS_UNDEFINED


class WeightedLog(Strategy):
    """Exponential moving average of latency plus a log-scaled score.

    Parameters
    ----------
    weight:
        Share of the newest sample in the latency average, in ``[0, 1]``.
        Closer to 0 favours history, closer to 1 favours the latest probe.
    effort:
        Multiplier for the reliability penalty on a failed probe. With the
        default of 10, one failure costs as much reliability as ten
        successes earn.
    """

    def __init__(self, weight: float = DEFAULT_WEIGHT, effort: float = DEFAULT_EFFORT) -> None:
        if not 0.0 <= weight <= 1.0:
            raise ValueError(f"weight must be within [0, 1], got {weight}")
        if not math.isfinite(effort) or effort < 0:
            raise ValueError(f"effort must be finite and >= 0, got {effort}")
        self.weight = float(weight)
        self.effort = float(effort)

    def __repr__(self) -> str:
        return f"WeightedLog(weight={self.weight}, effort={self.effort})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WeightedLog):
            return NotImplemented
        return (self.weight, self.effort) == (other.weight, other.effort)

    def adjust_reliability(self, reliability: float, status: ProbeStatus) -> float:
        if status is not None and 200 <= status <= 299:
            increment = RELIABILITY_FACTOR
        elif status is not None and (100 <= status <= 199 or 300 <= status <= 399):
            increment = 0.0
        else:
            increment = -(self.effort * RELIABILITY_FACTOR)
        return min(max(reliability + increment, 0.0), 1.0)

    def weighted_response_average(self, current: Number, new: Number) -> int:
        historical = (1.0 - self.weight) * current
        latest = self.weight * new
        return int(historical + latest)

    @staticmethod
    def logarithmic_score(reliability: float, weight: float, response: Number) -> float:
        response_influence = 0.1 + abs(0.5 - weight) * 0.15
        response_factor = 1.0 / (1.0 + (response / NANOS_PER_SECOND) * response_influence)
        return math.log(reliability * weight * response_factor + 1.0)

    def calculate(self, prior: Score, new_response: Number, status: ProbeStatus) -> Score:
        check_sample(new_response, status)
        weight = status_weight(status)
        reliability = self.adjust_reliability(prior.reliability, status)
        return Score(
            response_avg=self.weighted_response_average(prior.response_avg, new_response),
            score=self.logarithmic_score(reliability, weight, new_response),
            reliability=reliability,
        )
