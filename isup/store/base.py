"""Store interface for per-URL scores."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Optional

from isup.errors import StoreError
from isup.score import Score


def check_score(key: str, score: Score, backend: str) -> None:
    """Reject values that would make ``best()`` ordering undefined."""
    if not math.isfinite(score.score) or not math.isfinite(score.reliability):
        raise StoreError(f"refusing non-finite score for '{key}': {score}", backend=backend)


class Store(ABC):
    """Abstract base class for score persistence backends.

    Entries are independent per key and last write wins. ``best()`` returns
    the key with the highest ``Score.score``; each backend documents how it
    breaks ties.
    """

    name = "store"

    @abstractmethod
    async def set(self, key: str, score: Score) -> None:
        """Store *score* under *key*, replacing any previous value."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Score]:
        """Return the score stored under *key*, or ``None``."""

    @abstractmethod
    async def best(self) -> Optional[str]:
        """Return the key with the highest score, or ``None`` if empty."""

    async def close(self) -> None:
        """Release backend resources."""
