"""
Identity relay: FastAPI app.

Responde con cabeceras CORS permisivas en todas las respuestas para que
cualquier origen pueda llamarlo.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import Response

from core.config import AppSettings
from relay.router import router

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def create_app(
    settings: AppSettings | None = None,
    *,
    upstream_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Construye la app; `upstream_transport` permite sustituir la API upstream en tests."""

    settings = settings or AppSettings()
    app = FastAPI(title="avatar3d-dl relay", version="0.1.0")
    app.state.settings = settings
    app.state.upstream_transport = upstream_transport

    @app.middleware("http")
    async def cors_headers(request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    app.include_router(router)
    logger.debug("relay configured with upstream %s", settings.users_api_url)
    return app
