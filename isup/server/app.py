"""Starlette ASGI application exposing the best-scoring URL."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from isup.constants import SERVER_NAME
from isup.errors import StoreError
from isup.service import Service

logger = logging.getLogger(__name__)


def _get_service(request: Request) -> Service:
    """Retrieve the Service instance from app state."""
    service: Optional[Service] = getattr(request.app.state, "isup_service", None)
    if service is None:
        raise RuntimeError("Service not found on app.state")
    return service


def _error_json(error: str, message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse({"error": error, "message": message}, status_code=status_code)


# ── GET / ────────────────────────────────────────────────────────────────


async def handle_best(request: Request) -> JSONResponse:
    """Best URL right now plus the time of the last completed cycle."""
    service = _get_service(request)
    try:
        url = await service.best_url()
    except StoreError as exc:
        logger.warning("best_url failed: %s", exc)
        return _error_json("store_unavailable", str(exc), status_code=503)
    return JSONResponse({"url": url, "updated_at": service.updated_at})


# ── GET /urls ────────────────────────────────────────────────────────────


async def handle_urls(request: Request) -> JSONResponse:
    service = _get_service(request)
    return JSONResponse({"urls": service.urls(), "updated_at": service.updated_at})


def create_app(service: Service, interval: Optional[float] = None) -> Starlette:
    """Create the ASGI app.

    When *interval* is given, the app lifespan runs the service's polling
    loop for as long as the app is served. The service is closed on
    shutdown either way.
    """

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        if interval is not None:
            service.run(interval)
        logger.info("%s app started (%d URL(s) monitored)", SERVER_NAME, len(service.urls()))
        try:
            yield
        finally:
            await service.close()
            logger.info("%s app shut down.", SERVER_NAME)

    application = Starlette(
        lifespan=lifespan,
        routes=[
            Route("/", endpoint=handle_best, methods=["GET"]),
            Route("/urls", endpoint=handle_urls, methods=["GET"]),
        ],
    )
    application.state.isup_service = service
    return application
