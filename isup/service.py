"""Polling orchestrator.

:class:`Service` owns a probe client, a scoring strategy, a score store and
the monitored probe set. Each call to :meth:`Service.update` probes every
monitored URL concurrently and writes the new scores back; :meth:`Service.run`
repeats that in a background asyncio task until :meth:`Service.stop`.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, List, Optional

import httpx

from isup.client import ProbeClient
from isup.errors import StoreError
from isup.monitored import MonitoredSet
from isup.probe import Probe
from isup.score import Score
from isup.store import MemoryStore, Store, create_store
from isup.strategy import Strategy, WeightedLog, create_strategy

if TYPE_CHECKING:
    from isup.config.schema import IsupConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateReport:
    """Summary of one polling cycle."""

    probes: int
    transport_failures: int
    store_failures: int
    errors: int
    updated_at: int

    def to_dict(self) -> dict:
        return {
            "probes": self.probes,
            "transport_failures": self.transport_failures,
            "store_failures": self.store_failures,
            "errors": self.errors,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class _ProbeOutcome:
    transport_failed: bool = False
    store_failed: bool = False


class Service:
    """Probe scheduler and best-URL oracle.

    Parameters
    ----------
    strategy:
        Scoring strategy applied to every sample.
    store:
        Score persistence backend.
    client:
        Transport used to send probes.
    probes:
        Initial probes to monitor.
    """

    def __init__(
        self,
        strategy: Strategy,
        store: Store,
        client: ProbeClient,
        probes: Iterable[Probe] = (),
    ) -> None:
        self._strategy = strategy
        self._store = store
        self._client = client
        self._probes = MonitoredSet(probes)

        self._updated_at = 0
        self._updated_lock = threading.Lock()

        self._task: Optional[asyncio.Task[None]] = None
        self._stopped = asyncio.Event()

    @classmethod
    def default(cls, probes: Iterable[Probe] = ()) -> "Service":
        """WeightedLog strategy, in-memory store and the default client."""
        return cls(WeightedLog(), MemoryStore(), ProbeClient(), probes)

    @classmethod
    def from_config(
        cls,
        config: "IsupConfig",
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "Service":
        """Build a service from a validated :class:`IsupConfig`."""
        client = ProbeClient.from_config(config.client, config.interval, transport=transport)
        probes = [request.to_probe() for request in config.requests]
        service = cls(create_strategy(config.strategy), create_store(config.store), client, probes)
        logger.info(
            "Service configured: %d probe(s), store=%s, strategy=%r",
            len(probes),
            service.store.name,
            service.strategy,
        )
        return service

    def use_store(self, store: Store) -> "Service":
        self._store = store
        return self

    def use_strategy(self, strategy: Strategy) -> "Service":
        self._strategy = strategy
        return self

    # ── Accessors ────────────────────────────────────────────────────────

    @property
    def strategy(self) -> Strategy:
        return self._strategy

    @property
    def store(self) -> Store:
        return self._store

    @property
    def client(self) -> ProbeClient:
        return self._client

    @property
    def updated_at(self) -> int:
        """Unix time (seconds) of the last completed cycle, 0 if none yet."""
        with self._updated_lock:
            return self._updated_at

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Probe set ────────────────────────────────────────────────────────

    def urls(self) -> List[str]:
        """Monitored URLs in insertion order."""
        return self._probes.urls()

    def insert(self, probe: Probe) -> None:
        """Start monitoring *probe*; duplicates are not checked."""
        self._probes.append(probe)
        logger.debug("Probe added: %s %s", probe.method, probe.url)

    def remove(self, url: str) -> None:
        """Stop monitoring every probe for *url*.

        Raises :class:`~isup.errors.InvalidURLError` for an unparsable URL.
        Removing a URL that is not monitored is a no-op. Scores already
        stored for the URL are left in place.
        """
        removed = self._probes.remove(url)
        logger.debug("Removed %d probe(s) for %s", removed, url)

    # ── Scores ───────────────────────────────────────────────────────────

    async def best_url(self) -> Optional[str]:
        """Return the best-scoring URL; store errors propagate."""
        return await self._store.best()

    async def update(self) -> UpdateReport:
        """Probe every monitored URL once and record the new scores.

        The probe list is snapshotted when the cycle starts. Transport and
        store failures are logged per probe and never abort the cycle.
        """
        probes = self._probes.snapshot()
        results = await asyncio.gather(
            *(self._process(probe) for probe in probes),
            return_exceptions=True,
        )

        transport_failures = 0
        store_failures = 0
        errors = 0
        for probe, outcome in zip(probes, results):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                errors += 1
                logger.error(
                    "[%s] Unexpected error while scoring probe",
                    probe.url,
                    exc_info=outcome,
                )
                continue
            transport_failures += outcome.transport_failed
            store_failures += outcome.store_failed

        now = int(time.time())
        with self._updated_lock:
            self._updated_at = now

        report = UpdateReport(
            probes=len(probes),
            transport_failures=transport_failures,
            store_failures=store_failures,
            errors=errors,
            updated_at=now,
        )
        logger.debug("Polling cycle finished: %s", report.to_dict())
        return report

    async def _process(self, probe: Probe) -> _ProbeOutcome:
        result = await self._client.send(probe)
        if not result.ok:
            logger.warning(
                "[%s] Probe failed after %.0fms: %s",
                probe.url,
                result.elapsed_ns / 1e6,
                result.error,
            )

        try:
            prior = await self._store.get(probe.url)
        except StoreError as exc:
            logger.warning("[%s] Could not read prior score, starting fresh: %s", probe.url, exc)
            prior = None
        if prior is None:
            prior = Score()

        score = self._strategy.calculate(prior, result.elapsed_ns, result.status)
        try:
            await self._store.set(probe.url, score)
        except StoreError as exc:
            logger.warning("[%s] Could not store score: %s", probe.url, exc)
            return _ProbeOutcome(transport_failed=not result.ok, store_failed=True)

        logger.debug(
            "[%s] status=%s elapsed=%.1fms score=%.6f reliability=%.3f",
            probe.url,
            result.status,
            result.elapsed_ns / 1e6,
            score.score,
            score.reliability,
        )
        return _ProbeOutcome(transport_failed=not result.ok)

    # ── Background loop ──────────────────────────────────────────────────

    def run(self, interval: float) -> "asyncio.Task[None]":
        """Launch the polling loop: ``update()``, wait *interval*, repeat.

        Must be called from a running event loop. Returns the background
        task; use :meth:`stop` to end it.
        """
        if interval < 0:
            raise ValueError(f"interval must be >= 0, got {interval}")
        if self._task is not None and not self._task.done():
            logger.warning("Polling loop already running.")
            return self._task
        self._stopped.clear()
        self._task = asyncio.create_task(self._run(interval), name="isup-poller")
        logger.info("Polling loop started (interval=%.2fs, probes=%d)", interval, len(self._probes))
        return self._task

    async def stop(self) -> None:
        """Signal the loop to stop and wait for it."""
        self._stopped.set()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Polling loop stopped.")

    async def _run(self, interval: float) -> None:
        while not self._stopped.is_set():
            try:
                await self.update()
            except Exception:
                logger.exception("Polling cycle failed")
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=interval)
                break  # stopped was set
            except asyncio.TimeoutError:
                pass  # interval elapsed, loop again

    async def close(self) -> None:
        """Stop polling and release the client and store."""
        await self.stop()
        await self._client.close()
        await self._store.close()

    async def __aenter__(self) -> "Service":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
