"""
Tests for the ATG runner over a mocked transport.

No browser and no network: the browser login is replaced by a coroutine that
returns a fixed session, and every REST call goes to `httpx.MockTransport`.
"""
from __future__ import annotations

import json
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

from adapters.atg import AtgRunner, AtgRunnerFactory, BrowserSession
from core.config import AppSettings
from core.domain.errors import RunnerError, RunnerTimeoutError
from core.domain.models import (
    BatchRequest,
    CheckoutContext,
    CheckoutStep,
    CommitSuccess,
    PaymentPlans,
    UserCredentials,
    ValidationStatus,
)
from core.services.batch_orchestrator import BatchOrchestrator
from fakes import request_payload

CREDENTIALS = UserCredentials(username="bot@example.com", password="s3cret")


class FakePlatform:
    """Servidor falso: responde por path y registra los requests."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, httpx.Response] = {}
        self.timeouts: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        name = request.url.path.rsplit("/", 1)[-1]
        if name in self.timeouts:
            raise httpx.ReadTimeout("timed out", request=request)
        if name in self.responses:
            return self.responses[name]
        if name == "getRepetirPedido":
            return httpx.Response(200, json={"codigoError": "0"})
        if name == "validarCarritoPreCheckout":
            return httpx.Response(200, json={"codigoError": "0"})
        if name == "getPlanesCuotasOfertas":
            return httpx.Response(200, json={"planesCuotas": [{"grupo": "12"}]})
        if name == "commitOrder":
            return httpx.Response(200, text=json.dumps({"codigoError": "0", "orderId": "A-1"}))
        return httpx.Response(200, json={})

    def paths(self) -> list[str]:
        return [r.url.path.rsplit("/", 1)[-1] for r in self.requests]

    def last(self, name: str) -> httpx.Request:
        return [r for r in self.requests if r.url.path.endswith(name)][-1]


async def fake_login(settings: AppSettings, user: UserCredentials) -> BrowserSession:
    return BrowserSession(
        token="tok-xyz",
        cookies=[{"name": "JSESSIONID", "value": "abc", "domain": "testdigital3.redcoto.com.ar", "path": "/"}],
    )


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def runner_settings() -> AppSettings:
    return AppSettings(checkout_settle_seconds=0, step_timeout_seconds=5)


@pytest_asyncio.fixture
async def runner(platform, runner_settings):
    runner = AtgRunner(runner_settings, login=fake_login, transport=httpx.MockTransport(platform.handler))
    await runner.init()
    await runner.login(CREDENTIALS)
    yield runner
    await runner.dispose()


def _context(**overrides) -> CheckoutContext:
    data = dict(
        address_id=101,
        charge_date="20250314",
        delivery_date="20250314",
        band_code="1_13_18",
        payment_method_id=4,
        card_bank_id="21",
    )
    data.update(overrides)
    return CheckoutContext(**data)


@pytest.mark.asyncio
async def test_operations_require_login(runner_settings):
    runner = AtgRunner(runner_settings, login=fake_login)
    await runner.init()

    assert runner.get_session_token() == ""
    with pytest.raises(RunnerError, match="Sesión no iniciada"):
        await runner.clear_cart()


@pytest.mark.asyncio
async def test_calls_carry_push_site_and_session_token(runner, platform):
    await runner.clear_cart()
    await runner.select_address(101)

    for request in platform.requests:
        assert request.url.params["pushSite"] == "CotoDigital"
        assert request.url.params["_dynSessConf"] == "tok-xyz"
    assert platform.last("changeDeliveryAddress").url.params["selectedAddress"] == "101"
    assert platform.last("changeDeliveryAddress").headers["cookie"] == "JSESSIONID=abc"
    assert runner.get_session_token() == "tok-xyz"


@pytest.mark.asyncio
async def test_http_error_raises_runner_error(runner, platform):
    platform.responses["limpiarCarrito"] = httpx.Response(500)

    with pytest.raises(RunnerError) as exc_info:
        await runner.clear_cart()
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_repeat_order_sends_order_and_checks_code(runner, platform):
    await runner.repeat_order("900123", "o777")
    assert json.loads(platform.last("getRepetirPedido").content) == {
        "numeroPedido": "900123",
        "orderId": "o777",
    }

    platform.responses["getRepetirPedido"] = httpx.Response(
        200, json={"codigoError": "2", "mensajeError": "sin pedido"}
    )
    with pytest.raises(RunnerError, match="sin pedido"):
        await runner.repeat_order("900123", "o777")


@pytest.mark.asyncio
async def test_validate_cart_out_of_stock(runner, platform):
    platform.responses["validarCarritoPreCheckout"] = httpx.Response(200, json={"codigoError": "10"})

    validation = await runner.validate_cart()
    assert validation.status is ValidationStatus.OUT_OF_STOCK


@pytest.mark.asyncio
async def test_payment_plans_use_context_values(runner, platform):
    plans = await runner.get_payment_plans(_context(payment_method_id=9, card_bank_id="33"))

    params = platform.last("getPlanesCuotasOfertas").url.params
    assert params["idFormaPago"] == "9"
    assert params["idTarjetaBanco"] == "33"
    assert params["fechaCobro"] == "20250314"
    assert params["idTipoGrupo"] == "0"
    assert params["cobroOnline"] == "2"
    assert plans.plan_payment_id == "12_51"


@pytest.mark.asyncio
async def test_refresh_checkout_resyncs_cart_plans_and_shipping(runner, platform):
    await runner.refresh_checkout(_context(delivery_date="20250315", band_code="1_18_22"))

    assert platform.paths() == ["getCarrito", "getPlanesCuotasOfertas", "getCostoEnvio"]
    body = json.loads(platform.last("getCostoEnvio").content)
    shipments = json.loads(body["envios"])
    assert shipments["envios"][0]["fechaEnvio"] == "20250315"
    assert shipments["envios"][0]["bandasEntrega"] == "1_18_22"
    assert json.loads(body["cupones"]) == {"cupones": []}


@pytest.mark.asyncio
async def test_commit_posts_form_from_context(runner, platform):
    plans = PaymentPlans(plan_payment_id="12_51", plan_init="i", plan_tracer="t")

    result = await runner.commit_order(_context(payment_plans=plans))

    assert result == CommitSuccess(order_id="A-1")
    request = platform.last("commitOrder")
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
    assert form["idPlanesPago"] == "12_51"
    assert form["fechasCobro"] == "1_20250314"
    assert form["fechasEntrega"] == "1_20250314"
    assert form["bandasEntrega"] == "1_13_18"
    assert form["idFormaPago"] == "4"
    assert form["idTarjetaBanco"] == "21"
    assert form["_dynSessConf"] == "tok-xyz"


@pytest.mark.asyncio
async def test_commit_without_plans_is_an_error(runner):
    with pytest.raises(RunnerError):
        await runner.commit_order(_context())


@pytest.mark.asyncio
async def test_full_batch_over_mocked_platform(platform, runner_settings):
    factory = AtgRunnerFactory(
        runner_settings, login=fake_login, transport=httpx.MockTransport(platform.handler)
    )
    request = BatchRequest.model_validate(request_payload())

    result = await BatchOrchestrator(runner_settings).execute_batch(request, factory)

    assert result.to_response() == {"success": 2, "failed": 0, "orders": ["A-1", "A-1"]}
    addresses = [
        r.url.params["selectedAddress"]
        for r in platform.requests
        if r.url.path.endswith("changeDeliveryAddress")
    ]
    assert addresses == ["101", "102"]
    assert platform.paths()[:3] == ["limpiarCarrito", "changeDeliveryAddress", "getRepetirPedido"]


@pytest.mark.asyncio
async def test_network_timeout_raises_runner_timeout(runner, platform):
    platform.timeouts.add("limpiarCarrito")

    with pytest.raises(RunnerTimeoutError, match="clearCart: timeout"):
        await runner.clear_cart()


@pytest.mark.asyncio
async def test_commit_timeout_fails_address_once_with_generic_error(platform, runner_settings):
    platform.timeouts.add("commitOrder")
    factory = AtgRunnerFactory(
        runner_settings, login=fake_login, transport=httpx.MockTransport(platform.handler)
    )
    payload = request_payload()
    payload["entrega"]["direcciones"] = [101]
    payload["opciones"] = {"maxReintentos": 2}

    result = await BatchOrchestrator(runner_settings).execute_batch(
        BatchRequest.model_validate(payload), factory
    )

    (outcome,) = result.outcomes
    assert outcome.reason == "GENERIC_ERROR"
    assert outcome.failed_step is CheckoutStep.COMMIT_ORDER
    assert platform.paths().count("commitOrder") == 1
