"""CLI principal (Typer).

Comandos:
- `download`: username(s) -> ZIP con el avatar 3D.
- `serve`: levanta el relay de identidad.
- `doctor`: diagnóstico de configuración/conectividad.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from cli import doctor
from cli.ui_components import RichStatusReporter, build_results_table, print_banner
from core.config import AppSettings
from core.domain.models import DownloadResult
from core.services.avatar_pipeline import run_download

app = typer.Typer(no_args_is_help=True, help="Download 3D avatars as ZIP archives.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.command()
def download(
    usernames: list[str] = typer.Argument(..., help="One or more usernames."),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Where to save the ZIP files."
    ),
    relay_url: Optional[str] = typer.Option(
        None, "--relay-url", help="Relay base URL (overrides AVATAR3D_RELAY_URL)."
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print errors and the summary."),
) -> None:
    """Resolve each username and save its avatar as `User_<name>_<id>_3D_Files.zip`."""

    settings = AppSettings()
    if relay_url:
        settings = settings.model_copy(update={"relay_url": relay_url})
    configure_logging(settings.log_level)

    if not quiet:
        print_banner(_console)

    reporter = RichStatusReporter(_console, quiet=quiet)
    results: list[DownloadResult] = []
    failures = 0
    # Una invocación a la vez: cada username termina antes de empezar el siguiente.
    for username in usernames:
        try:
            results.append(
                asyncio.run(
                    run_download(
                        username,
                        settings=settings,
                        reporter=reporter,
                        output_dir=output_dir,
                    )
                )
            )
        except Exception:
            failures += 1

    if results:
        _console.print(build_results_table(results))
    if failures:
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port."),
) -> None:
    """Run the identity relay (POST /api/userid)."""

    import uvicorn  # noqa: PLC0415

    from relay.main import create_app  # noqa: PLC0415

    settings = AppSettings()
    configure_logging("INFO")
    bind_host = host or settings.relay_host
    bind_port = port or settings.relay_port
    logging.getLogger(__name__).info("relay listening on http://%s:%d", bind_host, bind_port)
    uvicorn.run(create_app(settings), host=bind_host, port=bind_port, log_config=None)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
