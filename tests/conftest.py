from __future__ import annotations

from typing import Any, Callable

import pytest

from core.config import AppSettings
from core.domain.models import BatchRequest
from fakes import request_payload


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        step_timeout_seconds=5,
        checkout_settle_seconds=0,
        batch_timeout_seconds=None,
        default_concurrency=1,
        max_concurrency=8,
    )


@pytest.fixture
def make_request() -> Callable[..., BatchRequest]:
    def _make(
        *,
        addresses: list[int] | None = None,
        band: str = "TARDE",
        date: str = "2025-03-14",
        options: dict[str, Any] | None = None,
    ) -> BatchRequest:
        payload = request_payload(
            entrega={
                "tipo": "DELIVERY",
                "direcciones": addresses if addresses is not None else [101, 102],
                "fecha": date,
                "banda": band,
            }
        )
        if options is not None:
            payload["opciones"] = options
        return BatchRequest.model_validate(payload)

    return _make
