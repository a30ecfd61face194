from __future__ import annotations

import pytest

from core.domain.errors import BatchValidationError, InvalidBandError, InvalidDateError
from core.services.band_resolver import normalize_date, resolve_band


@pytest.mark.parametrize(
    ("band", "code"),
    [("MANIANA", "1_9_13"), ("TARDE", "1_13_18"), ("NOCHE", "1_18_22")],
)
def test_known_bands_map_to_platform_codes(band, code):
    resolved = resolve_band(band, "2025-03-14")
    assert resolved.code == code
    assert resolved.date == "20250314"


def test_unknown_band_is_a_validation_error():
    with pytest.raises(InvalidBandError) as exc_info:
        resolve_band("INVALID", "2025-03-14")

    assert isinstance(exc_info.value, BatchValidationError)
    assert str(exc_info.value) == "Banda inválida: INVALID"


def test_band_is_case_sensitive():
    with pytest.raises(InvalidBandError):
        resolve_band("tarde", "2025-03-14")


@pytest.mark.parametrize("value", ["20250314", "2025-02-30", "14-03-2025", ""])
def test_malformed_dates_are_rejected(value):
    with pytest.raises(InvalidDateError):
        normalize_date(value)


def test_band_checked_before_date():
    with pytest.raises(InvalidBandError):
        resolve_band("INVALID", "not-a-date")
