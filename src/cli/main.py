"""CLI principal (Typer).

Comandos:
- `serve`: levanta la API HTTP (uvicorn).
- `purchase`: ejecuta un batch desde un archivo JSON con el mismo formato que `POST /purchase`.
- `doctor`: diagnósticos de entorno.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from adapters.json_exporter import export_batch_json
from cli import doctor
from cli.ui_components import build_outcomes_table, build_summary_panel, print_banner
from core.config import AppSettings
from core.domain.errors import AuthError, BatchValidationError
from core.domain.models import AddressOutcome, BatchRequest
from core.logging_setup import configure_logging
from core.services.batch_orchestrator import BatchOrchestrator
from core.services.checkout_pipeline import PipelineHooks

app = typer.Typer(
    no_args_is_help=True,
    help="Repite un pedido para un lote de direcciones en una única sesión.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Host (por defecto BATCH_CHECKOUT_API_HOST)."),
    port: int | None = typer.Option(None, help="Puerto (por defecto BATCH_CHECKOUT_API_PORT)."),
) -> None:
    """Levanta `POST /purchase` y `GET /health`."""

    import uvicorn  # noqa: PLC0415

    from adapters.http_api import create_app  # noqa: PLC0415

    settings = AppSettings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_config=None,
    )


@app.command()
def purchase(
    request_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON del batch."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Exportar resultado a JSON."),
    as_json: bool = typer.Option(False, "--json", help="Imprimir sólo `{success, failed, orders}`."),
) -> None:
    """Ejecuta un batch desde archivo y muestra el resultado por dirección."""

    settings = AppSettings()
    configure_logging(settings.log_level, console=Console(stderr=True))

    try:
        request = BatchRequest.model_validate(json.loads(request_file.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise typer.BadParameter(f"Request inválido: {exc}") from exc

    if not as_json:
        print_banner(_console)

    def _finished(outcome: AddressOutcome) -> None:
        if as_json:
            return
        mark = "[green]✓[/green]" if outcome.succeeded else "[red]✗[/red]"
        _console.print(f"{mark} dirección {outcome.address_id}")

    from adapters.atg import AtgRunnerFactory  # noqa: PLC0415

    orchestrator = BatchOrchestrator(settings, hooks=PipelineHooks(address_finished=_finished))
    try:
        result = asyncio.run(orchestrator.execute_batch(request, AtgRunnerFactory(settings)))
    except (BatchValidationError, AuthError) as exc:
        _console.print(f"[red]Batch rechazado:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    if output:
        export_batch_json(result=result, output_path=output)

    if as_json:
        _console.print_json(data=result.to_response())
    else:
        _console.print(build_outcomes_table(result))
        _console.print(build_summary_panel(result))
        if output:
            _console.print(f"[dim]Resultado exportado a {output}[/dim]")

    if result.failed:
        raise typer.Exit(code=1)


def run() -> None:
    app()
