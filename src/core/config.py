"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- El relay, la CLI y los adaptadores HTTP leen la misma config.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "avatar3d-dl"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "avatar3d-dl"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "avatar3d-dl"
    return Path.home() / ".config" / "avatar3d-dl"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str]) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# avatar3d-dl user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Un único contrato para el pipeline de descarga, el relay y la CLI.
    """

    model_config = SettingsConfigDict(
        env_prefix="AVATAR3D_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request (segundos).",
    )
    user_agent: str = Field(
        default="avatar3d-dl/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para peticiones salientes.",
    )

    relay_url: str = Field(
        default="http://localhost:3000",
        min_length=8,
        description="Base URL del relay que resuelve username -> userId.",
    )
    relay_host: str = Field(
        default="127.0.0.1",
        min_length=1,
        description="Host de escucha del relay (`serve`).",
    )
    relay_port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Puerto de escucha del relay (`serve`).",
    )

    users_api_url: str = Field(
        default="https://users.roproxy.com/v1/usernames/users",
        min_length=8,
        description="Endpoint upstream de búsqueda de usernames (batch).",
    )
    thumbnails_url: str = Field(
        default="https://thumbnails.roproxy.com/v1/users/avatar-3d",
        min_length=8,
        description="Endpoint upstream del descriptor 3D por userId.",
    )
    cdn_domain: str = Field(
        default="rbxcdn.com",
        min_length=1,
        description="Dominio del CDN direccionado por hash.",
    )
    cdn_host_type: str = Field(
        default="t",
        min_length=1,
        max_length=4,
        description="Prefijo de host del CDN (p.ej. 't' -> t0..t7).",
    )

    fetch_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Reintentos por descarga (2 => hasta 3 intentos).",
    )
    output_dir: Path = Field(
        default=Path("downloads"),
        description="Directorio donde se guardan los ZIP generados.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Nivel de logging (DEBUG/INFO/WARNING/ERROR).",
    )
