"""Contrato del constructor de archivos."""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from core.domain.models import ArchiveEntry


@runtime_checkable
class ArchiveBuilder(Protocol):
    def build(self, entries: Iterable[ArchiveEntry]) -> bytes:
        """Empaqueta las entradas (en orden) y devuelve el binario final."""

        ...
