"""Shared HTTP client for outbound completion calls.

The client is opened by the application lifespan and handed to the
provider, so every generation call reuses the same connection pool.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx

from recruiter.app.core.config import Settings, settings


def create_http_client(app_settings: Optional[Settings] = None) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` configured from settings.

    The caller owns the client and must close it (``await client.aclose()``
    or ``async with``).
    """
    cfg = app_settings or settings

    # The read timeout matches the generation deadline; the provider's
    # wall-clock deadline still bounds the whole attempt.
    timeout = httpx.Timeout(cfg.generation_timeout, connect=cfg.httpx_connect_timeout)
    limits = httpx.Limits(
        max_connections=cfg.httpx_max_connections,
        max_keepalive_connections=cfg.httpx_max_keepalive_connections,
        keepalive_expiry=cfg.httpx_keepalive_expiry,
    )
    return httpx.AsyncClient(timeout=timeout, limits=limits)


@asynccontextmanager
async def init_http_client(
    app_settings: Optional[Settings] = None,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Yield a shared client for the lifetime of the application.

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with init_http_client() as http_client:
                yield
    """
    client = create_http_client(app_settings)
    try:
        yield client
    finally:
        await client.aclose()
