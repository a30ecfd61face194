"""Exportación JSON del resultado del batch.

Por qué JSON:
- Deja constancia de qué órdenes se generaron por dirección (auditoría).
- Permite encadenar el resultado con otras herramientas sin re-ejecutar el batch.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.domain.models import BatchResult


def export_batch_json(*, result: BatchResult, output_path: Path) -> Path:
    """Exporta `BatchResult` (incluye `outcomes`) a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = result.model_dump(mode="json")
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
