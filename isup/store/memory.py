"""In-process score store."""

from __future__ import annotations

import threading
from typing import Dict, Optional

from isup.score import Score
from isup.store.base import Store, check_score


class MemoryStore(Store):
    """Lock-guarded dict of scores, safe across tasks and threads.

    ``best()`` copies the entries under the lock and scans the copy, so it
    reflects a consistent snapshot that concurrent writers may already have
    moved past. Ties go to the key written first.
    """

    name = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._scores: Dict[str, Score] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._scores)

    async def set(self, key: str, score: Score) -> None:
        check_score(key, score, self.name)
        with self._lock:
            self._scores[key] = score

    async def get(self, key: str) -> Optional[Score]:
        with self._lock:
            return self._scores.get(key)

    async def best(self) -> Optional[str]:
        with self._lock:
            entries = list(self._scores.items())
        if not entries:
            return None
        # max() keeps the first maximal item, i.e. the earliest-written key.
        key, _ = max(entries, key=lambda item: item[1].score)
        return key

    def snapshot(self) -> Dict[str, Score]:
        """Return a copy of all stored scores."""
        with self._lock:
            return dict(self._scores)
