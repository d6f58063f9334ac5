"""HTTP transport used to send probes.

Wraps a pooled :class:`httpx.AsyncClient`. Transport failures never raise
out of :meth:`ProbeClient.send`; they come back as a :class:`ProbeResult`
with ``status=None`` and the time actually spent.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import httpx

from isup.constants import DEFAULT_POOL_IDLE_TIMEOUT, DEFAULT_REQUEST_TIMEOUT
from isup.errors import ProbeFailure
from isup.probe import Probe
from isup.strategy.base import ProbeStatus

if TYPE_CHECKING:
    from isup.config.schema import ClientConfig

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (
    httpx.HTTPError,
    httpx.StreamError,
    asyncio.TimeoutError,
    OSError,
)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe request."""

    url: str
    status: ProbeStatus
    elapsed_ns: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not None


class ProbeClient:
    """Async HTTP client for probe requests.

    Parameters
    ----------
    request_timeout:
        Upper bound in seconds for a whole request, ``None`` for no limit.
    pool_idle_timeout:
        Seconds an idle keep-alive connection stays pooled. ``None`` keeps
        httpx's default expiry.
    transport:
        Optional httpx transport, e.g. :class:`httpx.MockTransport`.
    """

    def __init__(
        self,
        request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT,
        pool_idle_timeout: Optional[float] = DEFAULT_POOL_IDLE_TIMEOUT,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._request_timeout = request_timeout
        self._pool_idle_timeout = pool_idle_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(
        cls,
        config: Optional["ClientConfig"],
        interval: Optional[float] = None,
        **kwargs: Any,
    ) -> "ProbeClient":
        """Build a client following the timeout defaulting rules.

        An explicit client section wins. Without one, the polling interval
        doubles as the request timeout; with neither, requests never time
        out.
        """
        if config is not None:
            return cls(config.request_timeout, config.pool_idle_timeout, **kwargs)
        return cls(interval, None, **kwargs)

    @property
    def request_timeout(self) -> Optional[float]:
        return self._request_timeout

    @property
    def pool_idle_timeout(self) -> Optional[float]:
        return self._pool_idle_timeout

    # ── lifecycle ───────────────────────────────────────────────────

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            limits = httpx.Limits()
            if self._pool_idle_timeout is not None:
                limits = httpx.Limits(keepalive_expiry=self._pool_idle_timeout)
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._request_timeout),
                limits=limits,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProbeClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ── public API ──────────────────────────────────────────────────

    async def send(self, probe: Probe) -> ProbeResult:
        """Send *probe* and report its status code and elapsed time."""
        client = self._ensure_client()
        start = time.perf_counter_ns()
        try:
            request = client.request(
                probe.method,
                probe.url,
                content=probe.body or None,
                headers=probe.headers,
            )
            if self._request_timeout is not None:
                response = await asyncio.wait_for(request, timeout=self._request_timeout)
            else:
                response = await request
        except _TRANSPORT_ERRORS as exc:
            elapsed = time.perf_counter_ns() - start
            failure = ProbeFailure(probe.url, exc)
            logger.debug("%s", failure)
            return ProbeResult(
                url=probe.url,
                status=None,
                elapsed_ns=elapsed,
                error=f"{type(exc).__name__}: {exc}",
            )
        elapsed = time.perf_counter_ns() - start
        return ProbeResult(url=probe.url, status=response.status_code, elapsed_ns=elapsed)
