"""Resolución de banda horaria y fecha de entrega.

Función pura: no toca red ni sesión, por eso se ejecuta antes que cualquier
otra cosa en el batch. Un request con banda o fecha inválida se rechaza sin
efectos laterales.
"""

from __future__ import annotations

from datetime import datetime

from core.domain.errors import InvalidBandError, InvalidDateError
from core.domain.models import DeliverySlot, ResolvedBand

BAND_CODES: dict[DeliverySlot, str] = {
    DeliverySlot.MANIANA: "1_9_13",
    DeliverySlot.TARDE: "1_13_18",
    DeliverySlot.NOCHE: "1_18_22",
}


def normalize_date(value: str) -> str:
    """`YYYY-MM-DD` -> `YYYYMMDD`. Rechaza fechas inexistentes (p.ej. 2024-02-30)."""

    try:
        parsed = datetime.strptime(value.strip(), "%Y-%m-%d")
    except (ValueError, AttributeError) as exc:
        raise InvalidDateError(str(value)) from exc
    return parsed.strftime("%Y%m%d")


def resolve_band(band: str, date: str) -> ResolvedBand:
    try:
        slot = DeliverySlot(band)
    except ValueError as exc:
        raise InvalidBandError(band) from exc
    return ResolvedBand(code=BAND_CODES[slot], date=normalize_date(date))
