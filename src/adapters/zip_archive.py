"""Exportación ZIP del bundle.

Por qué está en adapters:
- El formato binario es un detalle de infraestructura; el Core solo entrega
  una secuencia ordenada de entradas (nombre, bytes).
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Iterable

from core.domain.models import ArchiveArtifact, ArchiveEntry


class ZipArchiveBuilder:
    """Implementa `core.interfaces.archive.ArchiveBuilder` con `zipfile`."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self._compression = compression

    def build(self, entries: Iterable[ArchiveEntry]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=self._compression) as zf:
            for entry in entries:
                zf.writestr(entry.name, entry.content)
        return buffer.getvalue()


def save_archive(*, artifact: ArchiveArtifact, output_dir: Path) -> Path:
    """Escribe el ZIP en `output_dir/<artifact.filename>`."""

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / artifact.filename
    output_path.write_bytes(artifact.data)
    return output_path
