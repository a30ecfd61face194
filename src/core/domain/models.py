"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- El request llega con nombres en español (contrato HTTP); en Python usamos
  nombres en inglés vía `alias`.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, Field, SecretStr
from pydantic.config import ConfigDict


class DeliveryType(str, Enum):
    DELIVERY = "DELIVERY"
    PICKUP = "PICKUP"


class DeliverySlot(str, Enum):
    """Bandas horarias lógicas aceptadas en el borde."""

    MANIANA = "MANIANA"
    TARDE = "TARDE"
    NOCHE = "NOCHE"


class CartMode(str, Enum):
    REPEAT_ORDER = "REPETIR_PEDIDO"


class CheckoutStep(str, Enum):
    """Pasos del pipeline, en el orden en que se ejecutan."""

    CLEAR_CART = "clear_cart"
    SELECT_ADDRESS = "select_address"
    REPEAT_ORDER = "repeat_order"
    VALIDATE_CART = "validate_cart"
    REMOVE_OUT_OF_STOCK = "remove_out_of_stock"
    GET_PAYMENT_PLANS = "get_payment_plans"
    REFRESH_CHECKOUT = "refresh_checkout"
    COMMIT_ORDER = "commit_order"


class CheckoutState(str, Enum):
    START = "start"
    CART_CLEARED = "cart_cleared"
    ADDRESS_SELECTED = "address_selected"
    ORDER_REPLICATED = "order_replicated"
    VALIDATED = "validated"
    STOCK_REMEDIATED = "stock_remediated"
    CHECKOUT_REFRESHED = "checkout_refreshed"
    COMMITTED = "committed"


class ValidationStatus(str, Enum):
    OK = "OK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class CommitFailureReason(str, Enum):
    OUT_OF_STOCK = "OUT_OF_STOCK"
    GENERIC_ERROR = "GENERIC_ERROR"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


# ---------------------------------------------------------------------------
# Request de batch (inmutable una vez aceptado)
# ---------------------------------------------------------------------------


class _RequestModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class UserCredentials(_RequestModel):
    username: str = Field(..., min_length=1, description="Usuario de la plataforma.")
    password: SecretStr = Field(..., description="Password (nunca se loguea).")


class DeliveryConfig(_RequestModel):
    delivery_type: DeliveryType = Field(
        default=DeliveryType.DELIVERY,
        alias="tipo",
        description="Tipo de entrega.",
    )
    addresses: tuple[int, ...] = Field(
        ...,
        alias="direcciones",
        min_length=1,
        description="Ids de dirección de entrega; una orden por dirección.",
    )
    date: str = Field(
        ...,
        alias="fecha",
        description="Fecha de entrega/cobro en formato YYYY-MM-DD.",
    )
    band: str = Field(
        ...,
        alias="banda",
        description="Banda lógica (MANIANA/TARDE/NOCHE). Se valida en el resolver, no acá.",
    )


class CartConfig(_RequestModel):
    mode: CartMode = Field(default=CartMode.REPEAT_ORDER, alias="modo")
    order_number: str = Field(
        ...,
        alias="numeroPedido",
        min_length=1,
        description="Número del pedido a replicar.",
    )
    order_id: str = Field(
        ...,
        alias="orderId",
        min_length=1,
        description="Id interno del pedido a replicar.",
    )


class PaymentConfig(_RequestModel):
    payment_method_id: int = Field(..., alias="formaPagoId")
    card_bank_id: str = Field(..., alias="tarjetaBancoId", min_length=1)


class PurchaseOptions(_RequestModel):
    retry_out_of_stock: bool = Field(
        default=False,
        alias="reintentarSinStock",
        description="Reintentar la dirección si el commit reporta falta de stock.",
    )
    max_retries: int = Field(
        default=0,
        alias="maxReintentos",
        ge=0,
        le=5,
        description="Intentos extra por dirección (cada uno arranca desde el paso 1).",
    )
    refresh_fallback: bool = Field(
        default=False,
        alias="fallbackRefrescoCheckout",
        description="Si el refresco de caja falla, intentar el commit igual.",
    )
    concurrency: int | None = Field(
        default=None,
        ge=1,
        description="Pipelines en vuelo simultáneos (None = configuración por defecto).",
    )
    timeout_seconds: float | None = Field(
        default=None,
        alias="timeoutSegundos",
        gt=0,
        description="Deadline del batch en segundos.",
    )


class BatchRequest(_RequestModel):
    """Request completo de `POST /purchase`."""

    user: UserCredentials = Field(..., alias="usuario")
    delivery: DeliveryConfig = Field(..., alias="entrega")
    cart: CartConfig = Field(..., alias="carrito")
    payment: PaymentConfig = Field(..., alias="pago")
    options: PurchaseOptions = Field(default_factory=PurchaseOptions, alias="opciones")


# ---------------------------------------------------------------------------
# Estado de sesión y de checkout
# ---------------------------------------------------------------------------


class ResolvedBand(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Código de banda de la plataforma (p.ej. '1_13_18').")
    date: str = Field(..., description="Fecha normalizada YYYYMMDD.")


class SessionHandle(BaseModel):
    """Sesión autenticada, compartida en sólo lectura por todos los pipelines."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(..., min_length=1, repr=False)
    username: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PaymentPlans(BaseModel):
    model_config = ConfigDict(frozen=True)

    plan_payment_id: str
    plan_init: str
    plan_tracer: str


class CheckoutContext(BaseModel):
    """Estado mutable de UNA corrida de pipeline para UNA dirección.

    Se crea fresco por intento y nunca se comparte entre direcciones.
    """

    model_config = ConfigDict(validate_assignment=True)

    address_id: int
    charge_date: str
    delivery_date: str
    band_code: str
    payment_method_id: int
    card_bank_id: str
    payment_plans: PaymentPlans | None = None
    state: CheckoutState = CheckoutState.START
    attempt: int = Field(default=1, ge=1)


# ---------------------------------------------------------------------------
# Resultados tipados del runner
# ---------------------------------------------------------------------------


class CartValidation(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ValidationStatus

    @property
    def out_of_stock(self) -> bool:
        return self.status is ValidationStatus.OUT_OF_STOCK


class CommitSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[True] = True
    order_id: str = Field(..., min_length=1)


class CommitFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    reason: CommitFailureReason


CommitResult = Union[CommitSuccess, CommitFailure]


# ---------------------------------------------------------------------------
# Resultados del batch
# ---------------------------------------------------------------------------


class AddressOutcome(BaseModel):
    address_id: int
    status: OutcomeStatus
    order_id: str | None = None
    reason: str | None = None
    failed_step: CheckoutStep | None = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @classmethod
    def committed(cls, address_id: int, order_id: str, *, attempts: int) -> "AddressOutcome":
        return cls(
            address_id=address_id,
            status=OutcomeStatus.SUCCESS,
            order_id=order_id,
            attempts=attempts,
        )

    @classmethod
    def failure(
        cls,
        address_id: int,
        reason: str,
        *,
        step: CheckoutStep | None = None,
        attempts: int = 0,
    ) -> "AddressOutcome":
        return cls(
            address_id=address_id,
            status=OutcomeStatus.FAILURE,
            reason=reason,
            failed_step=step,
            attempts=attempts,
        )


class BatchResult(BaseModel):
    """Agregado del batch. `outcomes` respeta el orden de direcciones del request."""

    success: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    orders: list[str] = Field(default_factory=list)
    outcomes: list[AddressOutcome] = Field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: list[AddressOutcome]) -> "BatchResult":
        succeeded = [o for o in outcomes if o.succeeded]
        return cls(
            success=len(succeeded),
            failed=len(outcomes) - len(succeeded),
            orders=[o.order_id for o in succeeded if o.order_id],
            outcomes=list(outcomes),
        )

    def to_response(self) -> dict[str, object]:
        """Payload del contrato HTTP (`{success, failed, orders}`)."""

        return {"success": self.success, "failed": self.failed, "orders": list(self.orders)}
