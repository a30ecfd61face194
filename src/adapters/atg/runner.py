"""Runner concreto contra la plataforma ATG (CotoDigital).

Implementa `core.interfaces.runner.PurchaseRunner`:
- login por navegador (ver `browser_login`), una vez por batch;
- el resto de las operaciones por REST con un único `httpx.AsyncClient`
  que lleva las cookies de la sesión.

El carrito es único por sesión, por eso `supports_concurrency = False`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

import httpx

from adapters.atg.browser_login import BrowserSession, login_with_browser
from adapters.atg.responses import (
    check_repeat_order,
    ensure_ok,
    parse_cart_validation,
    parse_commit_response,
    parse_payment_plans,
    read_payload,
)
from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.errors import RunnerError, RunnerTimeoutError
from core.domain.models import (
    CartValidation,
    CheckoutContext,
    CommitResult,
    PaymentPlans,
    UserCredentials,
)

logger = logging.getLogger(__name__)

LoginCallable = Callable[[AppSettings, UserCredentials], Awaitable[BrowserSession]]

ACTORS = "/rest/model/atg/actors"


class AtgRunner:
    supports_concurrency = False

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        login: LoginCallable = login_with_browser,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._login = login
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._token: str | None = None

    # =========================
    # Ciclo de vida
    # =========================
    async def init(self) -> None:
        self._client = None
        self._token = None

    async def dispose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # =========================
    # Login + sesión
    # =========================
    async def login(self, user: UserCredentials) -> None:
        session = await self._login(self._settings, user)
        self._token = session.token
        self._client = build_async_client(
            self._settings,
            cookies=session.to_httpx_cookies(),
            transport=self._transport,
        )

    def get_session_token(self) -> str:
        return self._token or ""

    def _api(self) -> httpx.AsyncClient:
        if self._client is None or not self._token:
            raise RunnerError("Sesión no iniciada")
        return self._client

    async def _request(self, method: str, url: str, op: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._api().request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise RunnerTimeoutError(f"{op}: timeout ({exc.__class__.__name__})") from exc

    def _params(self, **extra: Any) -> dict[str, Any]:
        params: dict[str, Any] = {
            "pushSite": self._settings.push_site,
            "_dynSessConf": self._token,
        }
        params.update(extra)
        return params

    def _plan_params(self, context: CheckoutContext) -> dict[str, Any]:
        return self._params(
            idTipoGrupo="0",
            idFormaPago=str(context.payment_method_id),
            idTarjetaBanco=context.card_bank_id,
            fechaCobro=context.charge_date,
            cobroOnline="2",
        )

    # =========================
    # Carrito / dirección
    # =========================
    async def clear_cart(self) -> None:
        res = await self._request(
            "POST", f"{ACTORS}/cCarritoActor/limpiarCarrito", "clearCart", params=self._params()
        )
        ensure_ok(res, "clearCart")

    async def select_address(self, address_id: int) -> None:
        res = await self._request(
            "GET",
            f"{ACTORS}/cProfileActor/changeDeliveryAddress",
            "selectAddress",
            params=self._params(selectedAddress=address_id),
        )
        ensure_ok(res, f"selectAddress ({address_id})")

    async def repeat_order(self, order_number: str, order_id: str) -> None:
        res = await self._request(
            "POST",
            f"{ACTORS}/cProfileActor/getRepetirPedido",
            "repeatOrder",
            params=self._params(),
            json={"numeroPedido": order_number, "orderId": order_id},
        )
        ensure_ok(res, "repeatOrder")
        check_repeat_order(read_payload(res, "repeatOrder"))

    # =========================
    # Validaciones
    # =========================
    async def validate_cart(self) -> CartValidation:
        res = await self._request(
            "POST", f"{ACTORS}/cvActor/validarCarritoPreCheckout", "validateCart", params=self._params()
        )
        return parse_cart_validation(read_payload(res, "validateCart"))

    async def remove_out_of_stock(self) -> None:
        res = await self._request(
            "POST", f"{ACTORS}/cCarritoActor/eliminarSinStock", "removeOutOfStock", params=self._params()
        )
        ensure_ok(res, "removeOutOfStock")

    # =========================
    # Pagos
    # =========================
    async def get_payment_plans(self, context: CheckoutContext) -> PaymentPlans:
        res = await self._request(
            "GET",
            f"{ACTORS}/cvActor/getPlanesCuotasOfertas",
            "getPaymentPlans",
            params=self._plan_params(context),
        )
        return parse_payment_plans(read_payload(res, "getPaymentPlans"))

    # =========================
    # Refresco de caja
    # =========================
    async def refresh_checkout(self, context: CheckoutContext) -> None:
        """Resincroniza carrito, planes y costo de envío antes del commit.

        La plataforma recalcula del lado servidor los planes y el envío; sin
        este paso el commit puede usar valores viejos.
        """

        cart = await self._request(
            "GET", f"{ACTORS}/cCarritoActor/getCarrito", "refreshCheckout:getCarrito", params=self._params()
        )
        ensure_ok(cart, "refreshCheckout:getCarrito")

        plans = await self._request(
            "GET",
            f"{ACTORS}/cvActor/getPlanesCuotasOfertas",
            "refreshCheckout:getPlanesCuotasOfertas",
            params=self._plan_params(context),
        )
        ensure_ok(plans, "refreshCheckout:getPlanesCuotasOfertas")

        shipping = await self._request(
            "POST",
            f"{ACTORS}/cvActor/getCostoEnvio",
            "refreshCheckout:getCostoEnvio",
            params=self._params(),
            json=self._shipping_body(context),
        )
        ensure_ok(shipping, "refreshCheckout:getCostoEnvio")

        if self._settings.checkout_settle_seconds:
            await asyncio.sleep(self._settings.checkout_settle_seconds)

    def _shipping_body(self, context: CheckoutContext) -> dict[str, str]:
        # La plataforma espera los dos campos como JSON serializado dentro del JSON.
        shipments = {
            "envios": [
                {
                    "id": 0,
                    "idTipoGrupo": "1",
                    "costoEnvio": self._settings.shipping_cost,
                    "fechaEnvio": context.delivery_date,
                    "bandasEntrega": context.band_code,
                    "idServicioDisponible": self._settings.service_id,
                    "sinCosto": False,
                }
            ],
            "importeTotal": 0,
        }
        return {
            "envios": json.dumps(shipments),
            "cupones": json.dumps({"cupones": []}),
        }

    # =========================
    # Commit
    # =========================
    async def commit_order(self, context: CheckoutContext) -> CommitResult:
        if context.payment_plans is None:
            raise RunnerError("commitOrder sin planes de pago en el contexto")

        form = {
            "pushSite": self._settings.push_site,
            "_dynSessConf": self._token or "",
            "idFormaPago": str(context.payment_method_id),
            "idTarjetaBanco": context.card_bank_id,
            "idPlanesPago": context.payment_plans.plan_payment_id,
            "fechasCobro": f"1_{context.charge_date}",
            "fechasEntrega": f"1_{context.delivery_date}",
            "bandasEntrega": context.band_code,
            "idTiposPago": "1_2",
            "idTiposServicioEntrega": f"1_{self._settings.service_id}",
            "idCondicionIVA": "0",
            "idDatosFacturacion": "0",
            "cobroOnline": "2",
            "participaSorteo": "NO",
            "pin": self._settings.payment_pin,
        }
        res = await self._request("POST", f"{ACTORS}/cvActor/commitOrder", "commitOrder", data=form)
        logger.debug("commitOrder raw (dirección %s): %s", context.address_id, res.text)
        return parse_commit_response(res.text)


class AtgRunnerFactory:
    """Fábrica de runners para el orquestador (un runner por batch)."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        login: LoginCallable = login_with_browser,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._login = login
        self._transport = transport

    def __call__(self) -> AtgRunner:
        return AtgRunner(self._settings, login=self._login, transport=self._transport)
