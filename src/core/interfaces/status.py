"""Contrato del reporte de estado.

Por qué Protocol:
- El pipeline no conoce la capa de presentación (terminal, web, tests);
  recibe un objeto que cumple este contrato.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import StatusKind


@runtime_checkable
class StatusReporter(Protocol):
    """Superficie observacional: nunca decide el resultado del pipeline."""

    def report_status(self, kind: StatusKind, title: str, message: str) -> None:
        """Reemplaza el estado mostrado."""

        ...

    def append_log(self, line: str) -> None:
        """Añade una línea a la transcripción en curso."""

        ...


class NullStatusReporter:
    """Reporter que descarta todo (uso programático sin UI)."""

    def report_status(self, kind: StatusKind, title: str, message: str) -> None:
        return None

    def append_log(self, line: str) -> None:
        return None
