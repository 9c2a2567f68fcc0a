"""Endpoint de lookup de identidad.

Una única llamada upstream por request; no se guarda nada entre requests.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from adapters.http_client import build_async_client
from adapters.users_api import lookup_username
from core.config import AppSettings
from relay.schemas import ErrorResponse, HealthResponse, UserIdRequest, UserIdResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["identity"])


async def _read_request(request: Request) -> UserIdRequest:
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        payload = {}
    try:
        return UserIdRequest.model_validate(payload)
    except ValidationError:
        return UserIdRequest()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code)


@router.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    return HealthResponse(service=request.app.title, version=request.app.version)


@router.post(
    "/api/userid",
    response_model=UserIdResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def resolve_userid(request: Request) -> Response:
    body = await _read_request(request)
    if not body.username:
        return _error(400, "username required")

    settings: AppSettings = request.app.state.settings
    transport: httpx.AsyncBaseTransport | None = request.app.state.upstream_transport

    try:
        async with build_async_client(settings, transport=transport) as client:
            lookup = await lookup_username(
                client,
                body.username,
                users_api_url=settings.users_api_url,
            )
    except httpx.RequestError as exc:
        logger.error("upstream lookup for %r failed: %s", body.username, exc)
        return _error(502, "upstream request failed")

    if not lookup.ok:
        logger.warning("upstream returned %d for %r", lookup.status_code, body.username)
        return Response(
            content=lookup.content,
            status_code=lookup.status_code,
            media_type=lookup.content_type,
        )

    user_id = lookup.first_id()
    if not user_id:
        logger.info("no user found for %r", body.username)
        return _error(404, "user not found")

    logger.info("resolved %r -> %s", body.username, user_id)
    return JSONResponse(UserIdResponse(id=user_id).model_dump())
