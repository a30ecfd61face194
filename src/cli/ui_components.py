"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import BatchResult


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Permite desactivar banner en modos no interactivos (`--json`).
    """

    title = Text("BATCH-CHECKOUT", style="bold cyan")
    subtitle = Text("Repetir pedido • Multi-dirección • Una sesión", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_outcomes_table(result: BatchResult) -> Table:
    """Una fila por dirección, en el orden del request."""

    table = Table(title="Resultado por dirección")
    table.add_column("Dirección", style="cyan", no_wrap=True)
    table.add_column("Estado", style="white")
    table.add_column("Orden", style="green")
    table.add_column("Paso", style="magenta")
    table.add_column("Motivo", style="red")
    table.add_column("Intentos", style="dim", justify="right")
    for outcome in result.outcomes:
        status = "[green]OK[/green]" if outcome.succeeded else "[red]FALLO[/red]"
        table.add_row(
            str(outcome.address_id),
            status,
            outcome.order_id or "",
            outcome.failed_step.value if outcome.failed_step else "",
            outcome.reason or "",
            str(outcome.attempts),
        )
    return table


def build_summary_panel(result: BatchResult) -> Panel:
    body = Text()
    body.append(f"Exitosas: {result.success}\n", style="green")
    body.append(f"Fallidas: {result.failed}\n", style="red" if result.failed else "dim")
    if result.orders:
        body.append("Órdenes: " + ", ".join(result.orders))
    border = "green" if not result.failed else "yellow"
    return Panel(body, title=Text("Batch", style="bold"), border_style=border)
