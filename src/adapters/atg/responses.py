"""Parseo de respuestas REST de la plataforma (ATG).

Por qué un módulo aparte:
- La plataforma distingue éxito/fracaso con campos ad hoc (`codigoError`,
  `sinStock`, `orderId`...). Acá se traducen a resultados tipados del dominio,
  así el pipeline nunca inspecciona JSON crudo.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic.config import ConfigDict

from core.domain.errors import RunnerError
from core.domain.models import (
    CartValidation,
    CommitFailure,
    CommitFailureReason,
    CommitResult,
    CommitSuccess,
    PaymentPlans,
    ValidationStatus,
)

CODE_OK = "0"
CODE_COMMIT_REJECTED = "1"
CODE_OUT_OF_STOCK = "10"


class AtgPayload(BaseModel):
    """Campos comunes de las respuestas del actor REST."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    error_code: str | None = Field(default=None, alias="codigoError")
    error_message: str | None = Field(default=None, alias="mensajeError")
    order_id: str | None = Field(default=None, alias="orderId")
    out_of_stock: Any = Field(default=None, alias="sinStock")
    installment_plans: list[dict[str, Any]] = Field(default_factory=list, alias="planesCuotas")

    @field_validator("error_code", "order_id", mode="before")
    @classmethod
    def _as_text(cls, value: object) -> object:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("installment_plans", mode="before")
    @classmethod
    def _plans_list(cls, value: object) -> object:
        return value if isinstance(value, list) else []


def ensure_ok(response: httpx.Response, operation: str) -> None:
    if response.status_code != 200:
        raise RunnerError(
            f"{operation} HTTP {response.status_code}",
            status_code=response.status_code,
        )


def read_payload(response: httpx.Response, operation: str) -> AtgPayload:
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError) as exc:
        raise RunnerError(f"{operation}: respuesta no es JSON", status_code=response.status_code) from exc
    if not isinstance(data, dict):
        raise RunnerError(f"{operation}: respuesta inesperada", status_code=response.status_code)
    try:
        return AtgPayload.model_validate(data)
    except ValidationError as exc:
        raise RunnerError(f"{operation}: {exc}", status_code=response.status_code) from exc


def check_repeat_order(payload: AtgPayload) -> None:
    if payload.error_code != CODE_OK:
        raise RunnerError(
            f"repeatOrder falló: {payload.error_code} {payload.error_message or ''}".rstrip(),
            error_code=payload.error_code,
        )


def parse_cart_validation(payload: AtgPayload) -> CartValidation:
    if payload.error_code == CODE_OUT_OF_STOCK:
        return CartValidation(status=ValidationStatus.OUT_OF_STOCK)
    return CartValidation(status=ValidationStatus.OK)


def parse_payment_plans(payload: AtgPayload) -> PaymentPlans:
    """Arma los identificadores de plan a partir del grupo del primer plan de cuotas.

    El sufijo 51 es el plan de un pago sin interés.
    """

    group = None
    if payload.installment_plans:
        group = payload.installment_plans[0].get("grupo")
    if group in (None, ""):
        raise RunnerError("No se pudo obtener grupo de plan")
    return PaymentPlans(
        plan_payment_id=f"{group}_51",
        plan_init=f"{group}:1,51-1$(0%-0%)//",
        plan_tracer=f"{group};51,&",
    )


def parse_commit_response(raw: str) -> CommitResult:
    """Traduce la respuesta de `commitOrder`. Nunca lanza: todo lo ilegible es GENERIC_ERROR."""

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return CommitFailure(reason=CommitFailureReason.GENERIC_ERROR)
    if not isinstance(data, dict):
        return CommitFailure(reason=CommitFailureReason.GENERIC_ERROR)

    try:
        payload = AtgPayload.model_validate(data)
    except ValidationError:
        return CommitFailure(reason=CommitFailureReason.GENERIC_ERROR)

    if payload.error_code == CODE_OK and payload.order_id:
        return CommitSuccess(order_id=payload.order_id)
    if payload.error_code == CODE_COMMIT_REJECTED and payload.out_of_stock:
        return CommitFailure(reason=CommitFailureReason.OUT_OF_STOCK)
    return CommitFailure(reason=CommitFailureReason.GENERIC_ERROR)
