"""Strategy interface: turns a prior score and a new sample into a new score."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Optional, Union

from isup.score import Score

# ``None`` marks a probe that got no HTTP response at all (timeout,
# refused connection, TLS failure).
ProbeStatus = Optional[int]

Number = Union[int, float]


def check_sample(new_response: Number, status: ProbeStatus) -> None:
    """Reject samples the scoring formulas are not defined for."""
    if isinstance(new_response, bool) or not isinstance(new_response, (int, float)):
        raise ValueError(f"Response time must be a number of nanoseconds, got {new_response!r}")
    if not math.isfinite(new_response) or new_response < 0:
        raise ValueError(f"Response time must be finite and non-negative, got {new_response!r}")
    if status is not None and not 0 <= status <= 0xFFFF:
        raise ValueError(f"Status code out of range: {status!r}")


class Strategy(ABC):
    """Base class for scoring strategies.

    Implementations must be pure: the same inputs always give the same
    :class:`Score` and no state is kept between calls.
    """

    @abstractmethod
    def calculate(self, prior: Score, new_response: Number, status: ProbeStatus) -> Score:
        """Return the updated score for a URL.

        *new_response* is the elapsed time of the latest probe in
        nanoseconds, *status* its HTTP status code or ``None`` when the
        probe failed at the transport level.
        """
