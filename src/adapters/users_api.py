"""API upstream de usuarios (búsqueda batch por username).

La usa únicamente el relay.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx


@dataclass(frozen=True)
class UsersLookup:
    """Resultado crudo de la búsqueda upstream."""

    status_code: int
    content: bytes
    content_type: str
    payload: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def first_id(self) -> Any:
        """`id` del primer resultado, o None si no hay."""

        if not isinstance(self.payload, dict):
            return None
        data = self.payload.get("data")
        if not isinstance(data, list) or not data:
            return None
        first = data[0]
        if not isinstance(first, dict):
            return None
        return first.get("id") or None


async def lookup_username(
    client: httpx.AsyncClient,
    username: str,
    *,
    users_api_url: str,
) -> UsersLookup:
    response = await client.post(
        users_api_url,
        json={"usernames": [username], "excludeBannedUsers": False},
    )
    try:
        payload = response.json()
    except ValueError:
        payload = None
    return UsersLookup(
        status_code=response.status_code,
        content=response.content,
        content_type=response.headers.get("content-type", "application/json"),
        payload=payload,
    )
