"""Configuración de logging.

Los módulos sólo hacen `logging.getLogger(__name__)`; el handler (Rich) se
instala una vez desde el entry-point (CLI o servidor).
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "INFO", *, console: Console | None = None) -> None:
    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
    )
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # httpx loguea cada request en INFO: demasiado ruido para un batch.
    logging.getLogger("httpx").setLevel(logging.WARNING)
