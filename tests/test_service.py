"""Tests for the Service orchestrator: polling cycles, probe set, loop."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

import httpx
import pytest

from isup.client import ProbeClient
from isup.config import parse_config
from isup.errors import InvalidURLError, StoreError
from isup.probe import Probe
from isup.score import Score
from isup.service import Service, UpdateReport
from isup.store import MemoryStore
from isup.strategy import WeightedLog

HEALTHY = "https://healthy.example/"
DOWN = ["https://down-1.example/", "https://down-2.example/", "https://down-3.example/"]


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "healthy.example":
        return httpx.Response(200)
    raise httpx.ConnectError("connection refused", request=request)


def _make_service(
    urls,
    store: Optional[MemoryStore] = None,
    handler: Callable = _handler,
) -> Service:
    client = ProbeClient(transport=httpx.MockTransport(handler))
    probes = [Probe.create("GET", url) for url in urls]
    if store is None:
        store = MemoryStore()
    return Service(WeightedLog(), store, client, probes)


class _FlakyStore(MemoryStore):
    """Memory store whose reads or writes fail for selected keys."""

    def __init__(self, fail_set=(), fail_get=(), fail_best=False) -> None:
        super().__init__()
        self.fail_set = set(fail_set)
        self.fail_get = set(fail_get)
        self.fail_best = fail_best

    async def set(self, key: str, score: Score) -> None:
        if key in self.fail_set:
            raise StoreError("write refused", backend="flaky")
        await super().set(key, score)

    async def get(self, key: str) -> Optional[Score]:
        if key in self.fail_get:
            raise StoreError("read refused", backend="flaky")
        return await super().get(key)

    async def best(self) -> Optional[str]:
        if self.fail_best:
            raise StoreError("ranking unavailable", backend="flaky")
        return await super().best()


# ── update() ─────────────────────────────────────────────────────────────


class TestUpdate:
    @pytest.mark.asyncio
    async def test_failures_are_scored_not_raised(self) -> None:
        store = MemoryStore()
        async with _make_service([*DOWN, HEALTHY], store=store) as service:
            report = await service.update()

            assert report.probes == 4
            assert report.transport_failures == 3
            assert report.store_failures == 0
            assert report.errors == 0
            assert len(store) == 4

            healthy = await store.get(HEALTHY)
            assert healthy.reliability == pytest.approx(0.001)
            assert healthy.score > 0
            for url in DOWN:
                down = await store.get(url)
                assert down.reliability == 0.0
                assert down.score == 0.0

            assert await service.best_url() == HEALTHY

    @pytest.mark.asyncio
    async def test_timeouts_are_scored_not_raised(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host != "healthy.example":
                await asyncio.sleep(5)
            return httpx.Response(200)

        store = MemoryStore()
        client = ProbeClient(request_timeout=0.05, transport=httpx.MockTransport(handler))
        probes = [Probe.create("GET", url) for url in [*DOWN[:2], HEALTHY]]
        async with Service(WeightedLog(), store, client, probes) as service:
            report = await service.update()

            assert report.transport_failures == 2
            assert report.errors == 0
            assert len(store) == 3
            for url in DOWN[:2]:
                assert (await store.get(url)).score == 0.0
            assert await service.best_url() == HEALTHY

    @pytest.mark.asyncio
    async def test_empty_store_passed_in_is_used(self) -> None:
        store = MemoryStore()
        async with _make_service([HEALTHY], store=store) as service:
            assert service.store is store
            await service.update()
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_scores_build_on_the_prior(self) -> None:
        store = MemoryStore()
        async with _make_service([HEALTHY], store=store) as service:
            await service.update()
            await service.update()
            await service.update()
        assert (await store.get(HEALTHY)).reliability == pytest.approx(0.003)

    @pytest.mark.asyncio
    async def test_sets_updated_at(self) -> None:
        async with _make_service([HEALTHY]) as service:
            assert service.updated_at == 0
            report = await service.update()
            assert isinstance(report, UpdateReport)
            assert service.updated_at == report.updated_at > 0

    @pytest.mark.asyncio
    async def test_empty_set_still_completes_a_cycle(self) -> None:
        async with _make_service([]) as service:
            report = await service.update()
            assert report.probes == 0
            assert service.updated_at > 0
            assert await service.best_url() is None

    @pytest.mark.asyncio
    async def test_store_write_failure_is_isolated(self) -> None:
        store = _FlakyStore(fail_set={DOWN[0]})
        async with _make_service([DOWN[0], HEALTHY], store=store) as service:
            report = await service.update()
        assert report.store_failures == 1
        assert await store.get(DOWN[0]) is None
        assert await store.get(HEALTHY) is not None

    @pytest.mark.asyncio
    async def test_store_read_failure_starts_from_default(self) -> None:
        store = _FlakyStore(fail_get={HEALTHY})
        async with _make_service([HEALTHY], store=store) as service:
            report = await service.update()
        assert report.store_failures == 0
        assert store.snapshot()[HEALTHY].reliability == pytest.approx(0.001)

    @pytest.mark.asyncio
    async def test_unexpected_error_is_counted(self) -> None:
        class _Broken(WeightedLog):
            def calculate(self, prior, new_response, status):
                if status is None:
                    raise RuntimeError("boom")
                return super().calculate(prior, new_response, status)

        service = _make_service([DOWN[0], HEALTHY])
        service.use_strategy(_Broken())
        async with service:
            report = await service.update()
            assert report.errors == 1
            assert await service.best_url() == HEALTHY

    @pytest.mark.asyncio
    async def test_probe_set_is_snapshotted_per_cycle(self) -> None:
        holder = {}

        def handler(request: httpx.Request) -> httpx.Response:
            holder["service"].insert(Probe.create("GET", "https://late.example/"))
            return httpx.Response(200)

        service = _make_service([HEALTHY], handler=handler)
        holder["service"] = service
        async with service:
            report = await service.update()
            assert report.probes == 1
            assert "https://late.example/" in service.urls()
            assert await service.store.get("https://late.example/") is None


# ── Probe set ────────────────────────────────────────────────────────────


class TestProbeSet:
    def test_insert_and_urls(self) -> None:
        service = _make_service([HEALTHY])
        service.insert(Probe.create("GET", "http://added.example"))
        assert service.urls() == [HEALTHY, "http://added.example/"]

    def test_remove_is_idempotent(self) -> None:
        service = _make_service([HEALTHY, DOWN[0]])
        service.remove(HEALTHY)
        service.remove(HEALTHY)
        assert service.urls() == [DOWN[0]]

    def test_remove_invalid_url_raises_without_change(self) -> None:
        service = _make_service([HEALTHY])
        with pytest.raises(InvalidURLError):
            service.remove("no scheme here")
        assert service.urls() == [HEALTHY]

    @pytest.mark.asyncio
    async def test_remove_keeps_stored_score(self) -> None:
        store = MemoryStore()
        async with _make_service([HEALTHY], store=store) as service:
            await service.update()
            service.remove(HEALTHY)
            assert service.urls() == []
            assert await store.get(HEALTHY) is not None
            assert await service.best_url() == HEALTHY


# ── best_url() ───────────────────────────────────────────────────────────


class TestBestUrl:
    @pytest.mark.asyncio
    async def test_store_errors_propagate(self) -> None:
        service = _make_service([HEALTHY], store=_FlakyStore(fail_best=True))
        with pytest.raises(StoreError):
            await service.best_url()
        await service.close()

    @pytest.mark.asyncio
    async def test_use_store_swaps_backend(self) -> None:
        other = MemoryStore()
        await other.set("https://other.example/", Score(score=1.0, reliability=1.0))
        service = _make_service([HEALTHY]).use_store(other)
        assert service.store is other
        assert await service.best_url() == "https://other.example/"
        await service.close()


# ── run() / stop() ───────────────────────────────────────────────────────


class TestRunLoop:
    @pytest.mark.asyncio
    async def test_runs_until_stopped(self) -> None:
        store = MemoryStore()
        service = _make_service([HEALTHY], store=store)
        task = service.run(0.01)
        assert service.is_running
        await asyncio.sleep(0.1)
        await service.stop()

        assert task.done()
        assert not service.is_running
        assert service.updated_at > 0
        # At least two cycles ran.
        assert (await store.get(HEALTHY)).reliability >= 0.002 - 1e-9
        await service.close()

    @pytest.mark.asyncio
    async def test_run_twice_returns_same_task(self) -> None:
        service = _make_service([HEALTHY])
        first = service.run(1.0)
        assert service.run(1.0) is first
        await service.close()
        assert not service.is_running

    @pytest.mark.asyncio
    async def test_negative_interval_rejected(self) -> None:
        service = _make_service([HEALTHY])
        with pytest.raises(ValueError):
            service.run(-1)
        assert not service.is_running

    @pytest.mark.asyncio
    async def test_stop_without_run(self) -> None:
        service = _make_service([HEALTHY])
        await service.stop()
        await service.close()


# ── Construction ─────────────────────────────────────────────────────────


class TestConstruction:
    def test_default(self) -> None:
        service = Service.default([Probe.create("GET", HEALTHY)])
        assert isinstance(service.strategy, WeightedLog)
        assert isinstance(service.store, MemoryStore)
        assert service.client.request_timeout == 2.0
        assert service.urls() == [HEALTHY]

    @pytest.mark.asyncio
    async def test_from_config(self) -> None:
        config = parse_config(
            {
                "interval": "5s",
                "strategy": {"type": "weighted_log", "weight": 0.8, "effort": 2},
                "requests": [
                    {"url": "https://healthy.example"},
                    {"url": "https://down-1.example/", "method": "post", "body": {"ping": True}},
                ],
            }
        )
        service = Service.from_config(config, transport=httpx.MockTransport(_handler))
        assert service.urls() == [HEALTHY, DOWN[0]]
        assert service.strategy == WeightedLog(weight=0.8, effort=2)
        assert service.client.request_timeout == 5.0
        async with service:
            report = await service.update()
            assert report.transport_failures == 1
            assert await service.best_url() == HEALTHY
