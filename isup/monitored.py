"""Ordered, mutable collection of probes."""

from __future__ import annotations

import threading
from typing import Iterable, Iterator, List

from isup.probe import Probe, normalize_url


class MonitoredSet:
    """Thread-safe ordered list of :class:`Probe` objects.

    Insertion order is kept and duplicates are allowed. Readers get copies,
    so a polling cycle iterating over :meth:`snapshot` is unaffected by
    inserts or removals that happen while it runs.
    """

    def __init__(self, probes: Iterable[Probe] = ()) -> None:
        self._lock = threading.Lock()
        self._probes: List[Probe] = list(probes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._probes)

    def __iter__(self) -> Iterator[Probe]:
        return iter(self.snapshot())

    def append(self, probe: Probe) -> None:
        with self._lock:
            self._probes.append(probe)

    def remove(self, url: str) -> int:
        """Drop every probe whose URL equals *url* once normalised.

        Raises :class:`~isup.errors.InvalidURLError` before touching the
        list if *url* does not parse. Returns the number of probes removed.
        """
        target = normalize_url(url)
        with self._lock:
            kept = [p for p in self._probes if p.url != target]
            removed = len(self._probes) - len(kept)
            self._probes = kept
        return removed

    def urls(self) -> List[str]:
        with self._lock:
            return [p.url for p in self._probes]

    def snapshot(self) -> List[Probe]:
        """Return a copy of the current probes, in order."""
        with self._lock:
            return list(self._probes)
