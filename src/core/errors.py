"""Excepciones del dominio.

Todas heredan de `Avatar3DError` para que la CLI pueda capturar en un único
punto (el borde del comando) sin tragarse errores de programación.
"""

from __future__ import annotations


class Avatar3DError(Exception):
    """Base de los errores esperables del pipeline."""


class InvalidUsernameError(Avatar3DError):
    """El username está vacío tras `strip()`."""


class FetchError(Avatar3DError):
    """Fallo de una descarga (antes de decodificar el contenido)."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class OpaqueResponseError(FetchError):
    """El transporte devolvió una respuesta opaca (cuerpo inaccesible por CORS)."""

    def __init__(self, *, url: str | None = None) -> None:
        super().__init__("opaque-response (CORS)", url=url)


class HTTPStatusFetchError(FetchError):
    """Respuesta con status HTTP fuera de 2xx."""

    def __init__(self, status_code: int, *, url: str | None = None) -> None:
        super().__init__(f"HTTP {status_code}", url=url)
        self.status_code = status_code


class IdentityLookupError(Avatar3DError):
    """El relay no pudo resolver el username."""


class AvatarPipelineError(Avatar3DError):
    """Respuesta upstream con forma inesperada o datos ausentes."""
