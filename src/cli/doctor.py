"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.errors import AuthError
from core.domain.models import UserCredentials
from core.services.batch_orchestrator import acquire_runner
from core.services.session_manager import SessionManager

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(settings.site_path)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


async def _check_login(settings: AppSettings, credentials: UserCredentials) -> tuple[bool, str]:
    from adapters.atg import AtgRunnerFactory  # noqa: PLC0415

    try:
        async with acquire_runner(AtgRunnerFactory(settings)) as runner:
            handle = await SessionManager(runner).login(credentials)
    except AuthError as exc:
        return False, str(exc)
    # Sólo un prefijo: el token completo es una credencial.
    return True, f"token {handle.token[:4]}…"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="Batch-Checkout Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("Platform", "OK", settings.base_url)
    table.add_row("Push site", "OK", settings.push_site)
    table.add_row(
        "TLS verify",
        "OK" if settings.verify_tls else "WARN",
        "enabled" if settings.verify_tls else "disabled (test environment)",
    )
    table.add_row("Step timeout", "OK", f"{settings.step_timeout_seconds:.0f}s")
    table.add_row(
        "Batch deadline",
        "OK",
        f"{settings.batch_timeout_seconds:.0f}s" if settings.batch_timeout_seconds else "none",
    )

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_http(settings))
    table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not ok_http:
        _console.print(
            "\n[yellow]Note:[/yellow] check BATCH_CHECKOUT_BASE_URL and network access to the platform."
        )


@app.command()
def login(
    username: str = typer.Option(..., "--username", "-u", help="Platform user."),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="Platform password."
    ),
) -> None:
    """Authenticate once against the platform (browser login) and report the result."""

    settings = AppSettings()
    credentials = UserCredentials(username=username, password=password)
    ok, detail = asyncio.run(_check_login(settings, credentials))
    if ok:
        _console.print(f"[green]Login OK[/green] ({detail})")
        return
    _console.print(f"[red]Login FAILED:[/red] {detail}")
    raise typer.Exit(code=1)
