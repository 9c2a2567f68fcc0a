"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación en el borde: las respuestas upstream se decodifican una vez y
  el resto del pipeline trabaja con tipos conocidos.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Union

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic.config import ConfigDict

from core.errors import AvatarPipelineError

StatusKind = Literal["ok", "err", "warn"]

NO_AVATAR_DATA = "No avatar data returned from thumbnails API."


class ThumbnailEntry(BaseModel):
    """Una entrada de la API de thumbnails 3D."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    target_id: Any = Field(
        default=None,
        alias="targetId",
        description="userId al que corresponde la entrada.",
    )
    state: Any = Field(
        default=None,
        description="Estado de render reportado por upstream (p.ej. 'Completed').",
    )
    image_url: str | None = Field(
        default=None,
        alias="imageUrl",
        description="URL del JSON descriptor del avatar 3D.",
    )
    version: Any = Field(default=None)


class ListedShape(BaseModel):
    """Respuesta con forma `{"data": [entry, ...]}` (lista no vacía)."""

    kind: Literal["listed"] = "listed"
    entries: list[ThumbnailEntry] = Field(..., min_length=1)

    @property
    def entry(self) -> ThumbnailEntry:
        return self.entries[0]


class DirectShape(BaseModel):
    """Respuesta que ya es la entrada (`imageUrl`/`targetId` en la raíz)."""

    kind: Literal["direct"] = "direct"
    entry: ThumbnailEntry


ThumbnailResponse = Union[ListedShape, DirectShape]


def _validate_entry(raw: dict[str, Any]) -> ThumbnailEntry:
    try:
        return ThumbnailEntry.model_validate(raw)
    except ValidationError as exc:
        raise AvatarPipelineError("Thumbnails API returned an invalid entry.") from exc


def decode_thumbnail_response(payload: Any) -> ThumbnailResponse:
    """Clasifica la respuesta de thumbnails en una de las dos formas conocidas.

    Raises:
        AvatarPipelineError: si no encaja en ninguna.
    """

    if not isinstance(payload, dict):
        raise AvatarPipelineError(NO_AVATAR_DATA)

    data = payload.get("data")
    if isinstance(data, list) and data:
        first = data[0] if isinstance(data[0], dict) else {}
        return ListedShape(entries=[_validate_entry(first)])

    if payload.get("imageUrl") or payload.get("targetId"):
        return DirectShape(entry=_validate_entry(payload))

    raise AvatarPipelineError(NO_AVATAR_DATA)


class AvatarDescriptor(BaseModel):
    """Descriptor 3D: hashes de malla, material y texturas.

    Las claves desconocidas se conservan para el snapshot `_meta.json`.
    """

    model_config = ConfigDict(extra="allow")

    obj: str | None = Field(default=None, description="Hash de la malla (.obj).")
    mtl: str | None = Field(default=None, description="Hash del material (.mtl).")
    textures: list[str] | None = Field(
        default=None,
        description="Hashes de texturas, en el orden en que se numeran.",
    )

    @field_validator("obj", "mtl", mode="before")
    @classmethod
    def _hash_or_none(cls, value: Any) -> str | None:
        if not value:
            return None
        return str(value)

    @field_validator("textures", mode="before")
    @classmethod
    def _textures_list(cls, value: Any) -> list[str] | None:
        if not isinstance(value, list):
            # Un valor no-lista solo cuenta como presente si es truthy.
            return [] if value else None
        return [str(v) for v in value]

    @property
    def has_assets(self) -> bool:
        return bool(self.obj) or bool(self.mtl) or self.textures is not None

    @property
    def texture_hashes(self) -> list[str]:
        return list(self.textures or [])


@dataclass(frozen=True)
class TextureEntry:
    content_hash: str
    url: str
    filename: str


@dataclass(frozen=True)
class ArchiveEntry:
    name: str
    content: bytes


@dataclass
class ArchiveBundle:
    """Entradas del ZIP en orden de inserción (una invocación, un bundle)."""

    entries: list[ArchiveEntry] = field(default_factory=list)

    def add_text(self, name: str, text: str) -> None:
        self.entries.append(ArchiveEntry(name=name, content=text.encode("utf-8")))

    def add_bytes(self, name: str, data: bytes) -> None:
        self.entries.append(ArchiveEntry(name=name, content=bytes(data)))

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.entries]


class ArchiveArtifact:
    """ZIP terminado, con propiedad explícita de los bytes.

    Se libera con `release()` (o al salir del `with`) una vez que el
    llamador lo ha guardado.
    """

    def __init__(
        self,
        *,
        filename: str,
        data: bytes,
        entry_names: list[str],
        base_name: str | None = None,
        user_id: Any = None,
    ) -> None:
        self.filename = filename
        self.entry_names = list(entry_names)
        self.base_name = base_name
        self.user_id = user_id
        self._data: bytes | None = data

    @property
    def released(self) -> bool:
        return self._data is None

    @property
    def data(self) -> bytes:
        if self._data is None:
            raise RuntimeError(f"archive {self.filename!r} was already released")
        return self._data

    def release(self) -> None:
        self._data = None

    def __enter__(self) -> "ArchiveArtifact":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class DownloadResult(BaseModel):
    """Resumen de una descarga completada."""

    username: str = Field(..., min_length=1)
    user_id: Any = Field(..., description="Identificador devuelto por el relay, tal cual.")
    base_name: str = Field(..., min_length=1)
    archive_name: str = Field(..., min_length=1)
    entry_names: list[str] = Field(default_factory=list)
    saved_path: Path | None = None
