"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import httpx
import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client, route_through_relay
from cli.ui_components import build_settings_table
from core.config import AppSettings, write_user_env_vars

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    """GET best-effort: cualquier respuesta HTTP cuenta como alcanzable."""

    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except httpx.HTTPError as exc:
        return False, f"{type(exc).__name__}: {exc}"


@app.command()
def run() -> None:
    """Show the active configuration and check that the service is reachable."""

    settings = AppSettings()
    _console.print(build_settings_table(settings))

    table = Table(title="remote-tex Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    direct = settings.model_copy(update={"relay_endpoint": None})
    ok_service, detail_service = asyncio.run(_check_http(settings.service_endpoint, direct))
    table.add_row("Service (direct)", "OK" if ok_service else "FAIL", detail_service)

    if settings.relay_endpoint:
        relayed_url, _ = route_through_relay(settings.service_endpoint, settings)
        ok_relay, detail_relay = asyncio.run(_check_http(relayed_url, settings))
        table.add_row("Service (via relay)", "OK" if ok_relay else "FAIL", detail_relay)
    else:
        table.add_row("Relay", "OPTIONAL", "No relay configured -> direct requests")

    _console.print(table)

    if not ok_service and not settings.relay_endpoint:
        _console.print(
            "\n[yellow]Note:[/yellow] If the service is blocked on your network, configure a relay with "
            "`remote-tex doctor setup`."
        )


@app.command()
def setup() -> None:
    """Interactive setup (stores config in the user config .env)."""

    current = AppSettings()

    endpoint = typer.prompt("Service endpoint", default=current.service_endpoint, show_default=True).strip()
    relay = typer.prompt(
        "Relay endpoint (empty for none)",
        default=current.relay_endpoint or "",
        show_default=True,
    ).strip()
    engine = typer.prompt("Engine", default=current.engine, show_default=True).strip()

    if not endpoint or not engine:
        raise typer.BadParameter("service endpoint and engine are required")

    env_path = write_user_env_vars(
        {
            "REMOTE_TEX_SERVICE_ENDPOINT": endpoint,
            "REMOTE_TEX_RELAY_ENDPOINT": relay,
            "REMOTE_TEX_ENGINE": engine,
        }
    )

    _console.print(f"[green]Saved config to:[/green] {env_path}")
