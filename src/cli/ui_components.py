"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en `compile` y `doctor`.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import AppSettings
from core.domain.models import CompilationError, ErrorKind


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("remote-tex", style="bold cyan")
    subtitle = Text("LaTeX → PDF • remote compilation", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_settings_table(settings: AppSettings, *, title: str = "Compilation service") -> Table:
    table = Table(title=title)
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("Service endpoint", settings.service_endpoint)
    table.add_row("Relay endpoint", settings.relay_endpoint or "-")
    table.add_row("Result base URL", settings.resolved_result_base_url())
    table.add_row("Engine", f"{settings.engine_field}={settings.engine}")
    table.add_row("Return type", f"{settings.return_type_field}={settings.return_type}")
    table.add_row("Source field", settings.source_field)
    table.add_row("Timeout", f"{settings.http_timeout_seconds:g}s")
    return table


def build_error_panel(error: CompilationError) -> Panel:
    """Panel para un `CompilationError`: mensaje, log (si hay) y sugerencia."""

    style = "yellow" if error.kind is ErrorKind.COMPILATION_FAILED else "red"
    body = Text()
    body.append(error.message.strip() + "\n", style="bold")
    if error.status_code is not None:
        body.append(f"HTTP status: {error.status_code}\n", style="dim")
    if error.log:
        body.append("\nLog:\n\n", style="bold")
        body.append(error.log.strip() + "\n")
    body.append(f"\n{error.hint}", style="italic")

    title = Text(error.kind.value.replace("_", " ").title(), style=f"bold {style}")
    return Panel(body, title=title, border_style=style)
