"""Cliente del relay: username -> userId.

Solo habla con el relay local; el relay es quien llama a la API de usuarios.
"""

from __future__ import annotations

from typing import Any

import httpx

from core.errors import IdentityLookupError

GENERIC_LOOKUP_ERROR = "Username lookup failed"


async def resolve_user_id(
    client: httpx.AsyncClient,
    username: str,
    *,
    relay_url: str,
) -> Any:
    """Devuelve el `id` que responde el relay, sin reinterpretarlo."""

    url = f"{relay_url.rstrip('/')}/api/userid"
    response = await client.post(url, json={"username": username})

    try:
        body = response.json()
    except ValueError:
        body = None

    if not response.is_success:
        message = body.get("error") if isinstance(body, dict) else None
        raise IdentityLookupError(message or GENERIC_LOOKUP_ERROR)

    if not isinstance(body, dict):
        raise IdentityLookupError(GENERIC_LOOKUP_ERROR)
    return body.get("id")
