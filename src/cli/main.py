"""CLI principal (Typer).

Comandos:
- `compile`: envía un `.tex` al servicio remoto y guarda el PDF.
- `doctor`: diagnóstico de configuración/conectividad (ver `cli.doctor`).

La CLI es el único sitio donde la configuración se lee del entorno.
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from cli import doctor
from cli.ui_components import build_error_panel, print_banner
from core.config import AppSettings
from core.domain.models import CompilationFailure, ErrorKind
from core.logger import setup_logger
from core.services.compilation_client import CompilationClient

app = typer.Typer(no_args_is_help=True, help="Compile LaTeX documents on a remote TeX service.")
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)

EXIT_COMPILATION_FAILED = 1
EXIT_SERVICE_UNAVAILABLE = 3
EXIT_PROTOCOL_VIOLATION = 4

_EXIT_CODES: dict[ErrorKind, int] = {
    ErrorKind.COMPILATION_FAILED: EXIT_COMPILATION_FAILED,
    ErrorKind.TRANSPORT_UNREACHABLE: EXIT_SERVICE_UNAVAILABLE,
    ErrorKind.RELAY_FAILURE: EXIT_SERVICE_UNAVAILABLE,
    ErrorKind.UPSTREAM_REJECTED: EXIT_SERVICE_UNAVAILABLE,
    ErrorKind.PROTOCOL_VIOLATION: EXIT_PROTOCOL_VIOLATION,
}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs on stderr."),
    log_file: Path | None = typer.Option(None, "--log-file", help="Also write a DEBUG log to this file."),
) -> None:
    setup_logger(level="DEBUG" if verbose else "WARNING", log_file=log_file)


def _read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.is_file():
        raise typer.BadParameter(f"file not found: {path}", param_hint="SOURCE")
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise typer.BadParameter(f"{path} is not UTF-8 text: {exc.reason}", param_hint="SOURCE") from exc


def _default_output(source: str) -> Path:
    if source == "-":
        return Path("document.pdf")
    return Path(source).with_suffix(".pdf")


@app.command("compile")
def compile_command(
    source: str = typer.Argument(..., help="LaTeX file to compile ('-' reads stdin)."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Where to write the PDF."),
    timeout: float | None = typer.Option(None, "--timeout", min=0.1, help="Deadline per request (seconds)."),
    engine: str | None = typer.Option(None, "--engine", help="Override the configured engine."),
    relay: str | None = typer.Option(None, "--relay", help="Override the configured relay endpoint."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Do not print the banner."),
) -> None:
    """Compile a LaTeX document remotely and save the resulting PDF."""

    source_text = _read_source(source)
    if not source_text.strip():
        raise typer.BadParameter("nothing to compile: the document is empty", param_hint="SOURCE")

    overrides: dict[str, object] = {}
    if engine:
        overrides["engine"] = engine
    if relay:
        overrides["relay_endpoint"] = relay
    try:
        settings = AppSettings(**overrides)
    except ValidationError as exc:
        messages = "; ".join(error["msg"] for error in exc.errors())
        raise typer.BadParameter(messages, param_hint="--engine/--relay") from exc

    if not quiet:
        print_banner(_console)

    client = CompilationClient(settings)
    with _console.status("Compiling on the remote service...", spinner="dots"):
        result = client.compile_sync(source_text, timeout=timeout)

    if isinstance(result, CompilationFailure):
        _err_console.print(build_error_panel(result.error))
        raise typer.Exit(code=_EXIT_CODES[result.error.kind])

    target = output or _default_output(source)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(result.artifact)
    _console.print(f"[green]PDF saved to:[/green] {target} ({len(result.artifact)} bytes)")


def run() -> None:
    app()
