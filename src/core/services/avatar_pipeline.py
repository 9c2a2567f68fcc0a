"""Orquestación de la descarga de un avatar 3D.

Flujo estrictamente lineal: username -> userId (relay) -> thumbnails ->
descriptor -> material/texturas -> malla -> metadata -> ZIP. Cualquier fallo
aborta la invocación y no se produce ningún archivo.

Los efectos de presentación (estado, log) se delegan en un `StatusReporter`
inyectado; el empaquetado en un `ArchiveBuilder`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Sequence

import httpx

from adapters.http_client import build_async_client, fetch_bytes, fetch_text
from adapters.relay_client import resolve_user_id
from adapters.zip_archive import ZipArchiveBuilder, save_archive
from core.config import AppSettings
from core.content_address import hash_url
from core.domain.models import (
    ArchiveArtifact,
    ArchiveBundle,
    AvatarDescriptor,
    DownloadResult,
    TextureEntry,
    decode_thumbnail_response,
)
from core.errors import AvatarPipelineError, InvalidUsernameError
from core.interfaces.archive import ArchiveBuilder
from core.interfaces.status import NullStatusReporter, StatusReporter

logger = logging.getLogger(__name__)

CORS_HINT = (
    "CORS Blocked:\n"
    "The avatar CDN often blocks direct downloads.\n"
    "Run the relay (`avatar3d serve`) or a proxy to make it always work."
)
_HINT_KEYWORDS = ("cors", "opaque", "failed to fetch", "connect")


def normalize_username(raw: str | None) -> str:
    username = (raw or "").strip()
    if not username:
        raise InvalidUsernameError("Please enter a username.")
    return username


def base_name_for(username: str, user_id: Any) -> str:
    return f"User_{username}_{user_id}"


def texture_entries(
    textures: Sequence[str],
    *,
    settings: AppSettings | None = None,
) -> list[TextureEntry]:
    """Nombres locales `texture_{n}.png` (1-indexed, en orden) y sus URLs."""

    settings = settings or AppSettings()
    return [
        TextureEntry(
            content_hash=tex_hash,
            url=hash_url(tex_hash, settings.cdn_host_type, domain=settings.cdn_domain),
            filename=f"texture_{index}.png",
        )
        for index, tex_hash in enumerate(textures, start=1)
    ]


def rewrite_material(material_text: str, entries: Sequence[TextureEntry]) -> str:
    """Sustituye cada aparición literal de cada hash por su nombre local."""

    rewritten = material_text
    for entry in entries:
        if entry.content_hash:
            rewritten = rewritten.replace(entry.content_hash, entry.filename)
    return rewritten


def failure_hint(message: str) -> str:
    """Texto de ayuda para fallos de red/CORS (vacío si no aplica)."""

    low = message.lower()
    if any(keyword in low for keyword in _HINT_KEYWORDS):
        return CORS_HINT
    return ""


def _parse_json(text: str, error_message: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        raise AvatarPipelineError(error_message) from exc


async def download_avatar(
    username: str,
    *,
    client: httpx.AsyncClient,
    settings: AppSettings | None = None,
    reporter: StatusReporter | None = None,
    archive_builder: ArchiveBuilder | None = None,
) -> ArchiveArtifact:
    """Ejecuta el pipeline completo y devuelve el ZIP en memoria."""

    settings = settings or AppSettings()
    reporter = reporter or NullStatusReporter()
    archive_builder = archive_builder or ZipArchiveBuilder()
    username = normalize_username(username)
    retries = settings.fetch_retries

    def cdn_url(content_hash: str) -> str:
        return hash_url(content_hash, settings.cdn_host_type, domain=settings.cdn_domain)

    reporter.report_status("warn", "Working", "Starting download...\n")

    user_id = await resolve_user_id(client, username, relay_url=settings.relay_url)
    reporter.append_log(f"-> Resolved userId: {user_id}")
    logger.info("resolved %s -> %s", username, user_id)

    reporter.append_log("-> Fetching thumbnails API...")
    thumb_url = f"{settings.thumbnails_url}?userId={user_id}"
    thumb_text = await fetch_text(client, thumb_url, retries)
    shape = decode_thumbnail_response(
        _parse_json(thumb_text, "Thumbnails API did not return JSON.")
    )
    entry = shape.entry
    if not entry.image_url:
        raise AvatarPipelineError("Thumbnails API returned no imageUrl.")

    reporter.append_log("-> Fetching avatar JSON...")
    image_text = await fetch_text(client, entry.image_url, retries)
    raw_descriptor = _parse_json(image_text, "Avatar imageUrl did not return JSON.")
    if not isinstance(raw_descriptor, dict):
        raise AvatarPipelineError("Avatar JSON missing obj/mtl/textures.")
    descriptor = AvatarDescriptor.model_validate(raw_descriptor)
    if not descriptor.has_assets:
        raise AvatarPipelineError("Avatar JSON missing obj/mtl/textures.")

    base_name = base_name_for(username, user_id)
    bundle = ArchiveBundle()

    if descriptor.mtl:
        reporter.append_log("-> Fetching .mtl...")
        mtl_text = await fetch_text(client, cdn_url(descriptor.mtl), retries)

        textures = texture_entries(descriptor.texture_hashes, settings=settings)
        bundle.add_text(f"{base_name}.mtl", rewrite_material(mtl_text, textures))

        for texture in textures:
            reporter.append_log(f"-> Downloading {texture.filename}...")
            bundle.add_bytes(texture.filename, await fetch_bytes(client, texture.url, retries))

    if descriptor.obj:
        reporter.append_log("-> Fetching .obj...")
        obj_text = await fetch_text(client, cdn_url(descriptor.obj), retries)
        bundle.add_text(f"{base_name}.obj", obj_text)

    bundle.add_text(
        f"{base_name}_meta.json",
        json.dumps(raw_descriptor, ensure_ascii=False, indent=2),
    )

    reporter.append_log("-> Building ZIP...")
    data = archive_builder.build(bundle.entries)
    return ArchiveArtifact(
        filename=f"{base_name}_3D_Files.zip",
        data=data,
        entry_names=bundle.names,
        base_name=base_name,
        user_id=user_id,
    )


async def run_download(
    username: str | None,
    *,
    settings: AppSettings | None = None,
    reporter: StatusReporter | None = None,
    output_dir: Path | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    archive_builder: ArchiveBuilder | None = None,
) -> DownloadResult:
    """Punto de entrada para front-ends: valida, descarga, guarda y reporta.

    Re-lanza cualquier fallo después de reportarlo.
    """

    settings = settings or AppSettings()
    reporter = reporter or NullStatusReporter()
    output_dir = output_dir or settings.output_dir

    try:
        clean = normalize_username(username)
    except InvalidUsernameError as exc:
        reporter.report_status("err", "Error", str(exc))
        raise

    try:
        async with build_async_client(settings, transport=transport) as client:
            artifact = await download_avatar(
                clean,
                client=client,
                settings=settings,
                reporter=reporter,
                archive_builder=archive_builder,
            )
        with artifact:
            saved_path = save_archive(artifact=artifact, output_dir=output_dir)
            result = DownloadResult(
                username=clean,
                user_id=artifact.user_id,
                base_name=artifact.base_name or artifact.filename,
                archive_name=artifact.filename,
                entry_names=artifact.entry_names,
                saved_path=saved_path,
            )
    except Exception as exc:
        logger.debug("download failed for %s", clean, exc_info=True)
        message = str(exc) or exc.__class__.__name__
        hint = failure_hint(message)
        reporter.report_status("err", "Failed", f"{message}\n\n{hint}" if hint else message)
        raise

    reporter.report_status("ok", "Done", f"Download saved!\n\nFile: {result.saved_path}")
    return result
