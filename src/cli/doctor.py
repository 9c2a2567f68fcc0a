"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from core.config import AppSettings, write_user_env_vars
from core.content_address import hash_url

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc) or exc.__class__.__name__


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="avatar3d-dl Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("Relay URL", "OK", settings.relay_url)
    table.add_row("Thumbnails API", "OK", settings.thumbnails_url)
    table.add_row("CDN", "OK", f"{settings.cdn_host_type}0-7.{settings.cdn_domain}")
    table.add_row("Output dir", "OK", str(settings.output_dir))

    # Connectivity (best-effort)
    checks = [
        ("Relay health", f"{settings.relay_url.rstrip('/')}/health"),
        ("Thumbnails host", settings.thumbnails_url),
        ("CDN shard", hash_url("0", settings.cdn_host_type, domain=settings.cdn_domain)),
    ]
    relay_ok = True
    for label, url in checks:
        ok, detail = asyncio.run(_check_http(url, settings))
        if label == "Relay health":
            relay_ok = ok
        table.add_row(label, "OK" if ok else "FAIL", detail)

    _console.print(table)

    if not relay_ok:
        _console.print(
            "\n[yellow]Note:[/yellow] The relay is not reachable. Start it with `avatar3d serve`."
        )


@app.command(name="set-relay")
def set_relay(url: str = typer.Argument(..., help="Relay base URL, e.g. http://localhost:3000")) -> None:
    """Store the relay URL in the user config .env."""

    url = url.strip()
    if not url.startswith(("http://", "https://")):
        raise typer.BadParameter("url must start with http:// or https://")

    env_path = write_user_env_vars({"AVATAR3D_RELAY_URL": url})
    _console.print(f"[green]Saved relay URL to:[/green] {env_path}")
