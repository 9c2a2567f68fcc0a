"""Direccionamiento de contenido en el CDN.

Un hash de contenido se asigna siempre al mismo shard (`t0`..`t7`), de modo
que la URL usada para descargar y la referencia reescrita en el `.mtl`
coinciden.
"""

from __future__ import annotations

SHARD_SEED = 31
SHARD_COUNT = 8
DEFAULT_HOST_TYPE = "t"
DEFAULT_CDN_DOMAIN = "rbxcdn.com"


def shard_for(content_hash: str) -> int:
    """XOR de los code points del hash sobre la semilla, módulo el número de shards."""

    state = SHARD_SEED
    for ch in content_hash:
        state ^= ord(ch)
    return state % SHARD_COUNT


def hash_url(
    content_hash: str,
    host_type: str = DEFAULT_HOST_TYPE,
    *,
    domain: str = DEFAULT_CDN_DOMAIN,
) -> str:
    return f"https://{host_type}{shard_for(content_hash)}.{domain}/{content_hash}"
