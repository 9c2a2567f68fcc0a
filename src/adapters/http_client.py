"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y la política de reintentos de todas las
  descargas (thumbnails, descriptor, CDN).
- Facilita testeo: se puede inyectar un `httpx.MockTransport`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from core.config import AppSettings
from core.errors import HTTPStatusFetchError, OpaqueResponseError

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 2

# Status que reporta un transporte cuando el cuerpo queda oculto por CORS.
OPAQUE_STATUS = 0

Sleep = Callable[[float], Awaitable[None]]


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros."""

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json,text/plain,*/*",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def backoff_seconds(attempt: int) -> float:
    """Espera lineal: 300 ms + 200 ms por intento previo (attempt empieza en 0)."""

    return (300 + attempt * 200) / 1000


def is_opaque_response(response: httpx.Response) -> bool:
    return response.status_code == OPAQUE_STATUS


async def _get_checked(client: httpx.AsyncClient, url: str) -> httpx.Response:
    response = await client.get(url)
    if is_opaque_response(response):
        raise OpaqueResponseError(url=url)
    if not response.is_success:
        raise HTTPStatusFetchError(response.status_code, url=url)
    return response


async def _get_with_retries(
    client: httpx.AsyncClient,
    url: str,
    *,
    retries: int,
    sleep: Sleep | None,
) -> httpx.Response:
    sleep = sleep or _sleep
    attempts = max(0, retries) + 1
    for attempt in range(attempts):
        try:
            return await _get_checked(client, url)
        except (OpaqueResponseError, HTTPStatusFetchError, httpx.TransportError) as exc:
            if attempt == attempts - 1:
                raise
            delay = backoff_seconds(attempt)
            logger.warning(
                "GET %s failed (%s); retry %d/%d in %.1fs",
                url,
                exc,
                attempt + 1,
                attempts - 1,
                delay,
            )
            await sleep(delay)
    raise AssertionError("unreachable")  # pragma: no cover


async def fetch_text(
    client: httpx.AsyncClient,
    url: str,
    retries: int = DEFAULT_RETRIES,
    *,
    sleep: Sleep | None = None,
) -> str:
    """GET con reintentos; devuelve el cuerpo decodificado como texto."""

    response = await _get_with_retries(client, url, retries=retries, sleep=sleep)
    return response.text


async def fetch_bytes(
    client: httpx.AsyncClient,
    url: str,
    retries: int = DEFAULT_RETRIES,
    *,
    sleep: Sleep | None = None,
) -> bytes:
    """GET con reintentos; devuelve el cuerpo en bruto."""

    response = await _get_with_retries(client, url, retries=retries, sleep=sleep)
    return response.content
