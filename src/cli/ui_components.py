"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- `RichStatusReporter` es la implementación de terminal del `StatusReporter`.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import DownloadResult, StatusKind

_KIND_STYLES: dict[str, str] = {
    "ok": "green",
    "err": "red",
    "warn": "yellow",
}


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("avatar3d-dl", style="bold cyan")
    subtitle = Text("Username • Avatar 3D • ZIP", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_status_panel(kind: StatusKind, title: str, message: str) -> Panel:
    style = _KIND_STYLES.get(kind, "yellow")
    body = Text()
    body.append(f" {title} ", style=f"bold reverse {style}")
    body.append("\n" + message.rstrip())
    return Panel(body, border_style=style)


class RichStatusReporter:
    """Muestra estado y transcripción en la terminal.

    Guarda el último estado y las líneas de log para que el comando pueda
    consultarlos (p.ej. en modo `--quiet`).
    """

    def __init__(self, console: Console | None = None, *, quiet: bool = False) -> None:
        self._console = console or Console()
        self._quiet = quiet
        self.status: tuple[StatusKind, str, str] | None = None
        self.lines: list[str] = []

    def report_status(self, kind: StatusKind, title: str, message: str) -> None:
        self.status = (kind, title, message)
        self.lines = []
        if self._quiet and kind != "err":
            return
        self._console.print(build_status_panel(kind, title, message))

    def append_log(self, line: str) -> None:
        self.lines.append(line)
        if not self._quiet:
            self._console.print(Text(line, style="dim"))


def build_results_table(results: list[DownloadResult]) -> Table:
    table = Table(title="Downloads")
    table.add_column("Username", style="cyan", no_wrap=True)
    table.add_column("User ID", style="white")
    table.add_column("Files", style="green")
    table.add_column("Archive", style="magenta")
    for result in results:
        table.add_row(
            result.username,
            str(result.user_id),
            str(len(result.entry_names)),
            str(result.saved_path or result.archive_name),
        )
    return table
