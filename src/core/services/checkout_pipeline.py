"""Per-address checkout pipeline.

One `CheckoutPipeline.run` call drives the runner through the fixed step
order for a single delivery address and always returns an `AddressOutcome`:
it is the error boundary between one address and the rest of the batch.

Step order (changing it is a bug, the platform depends on it):
clear cart, select address, repeat order, validate cart, remove out-of-stock
items (only when validation says so), fetch payment plans, refresh checkout,
commit order.

Every attempt works on a freshly allocated `CheckoutContext`; retries start
again from the first step instead of resuming mid-pipeline.
A commit that raised or timed out is never retried: its effect on the
platform is unknown.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from core.domain.errors import RunnerTimeoutError, StepError
from core.domain.models import (
    AddressOutcome,
    BatchRequest,
    CheckoutContext,
    CheckoutState,
    CheckoutStep,
    CommitFailureReason,
    CommitResult,
    CommitSuccess,
    ResolvedBand,
    SessionHandle,
)
from core.interfaces.runner import PurchaseRunner

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PipelineConfig:
    """Batch-wide, read-only parameters shared by every address pipeline."""

    order_number: str
    order_id: str
    band: ResolvedBand
    payment_method_id: int
    card_bank_id: str
    max_retries: int = 0
    retry_out_of_stock: bool = False
    refresh_fallback: bool = False
    step_timeout: float | None = None

    @classmethod
    def from_request(
        cls,
        request: BatchRequest,
        band: ResolvedBand,
        *,
        step_timeout: float | None = None,
    ) -> "PipelineConfig":
        return cls(
            order_number=request.cart.order_number,
            order_id=request.cart.order_id,
            band=band,
            payment_method_id=request.payment.payment_method_id,
            card_bank_id=request.payment.card_bank_id,
            max_retries=request.options.max_retries,
            retry_out_of_stock=request.options.retry_out_of_stock,
            refresh_fallback=request.options.refresh_fallback,
            step_timeout=step_timeout,
        )


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (progress)."""

    address_started: Callable[[int], None] | None = None
    address_finished: Callable[[AddressOutcome], None] | None = None


class CheckoutPipeline:
    def __init__(
        self,
        *,
        runner: PurchaseRunner,
        session: SessionHandle,
        config: PipelineConfig,
        hooks: PipelineHooks | None = None,
    ) -> None:
        self._runner = runner
        self._session = session
        self._config = config
        self._hooks = hooks or PipelineHooks()

    def new_context(self, address_id: int, *, attempt: int = 1) -> CheckoutContext:
        # Cobro y entrega comparten la fecha normalizada del request.
        return CheckoutContext(
            address_id=address_id,
            charge_date=self._config.band.date,
            delivery_date=self._config.band.date,
            band_code=self._config.band.code,
            payment_method_id=self._config.payment_method_id,
            card_bank_id=self._config.card_bank_id,
            attempt=attempt,
        )

    async def run(self, address_id: int) -> AddressOutcome:
        if self._hooks.address_started:
            self._hooks.address_started(address_id)

        outcome = await self._run_with_retries(address_id)

        if outcome.succeeded:
            logger.info("dirección %s: orden %s", address_id, outcome.order_id)
        else:
            logger.warning(
                "dirección %s falló en %s: %s",
                address_id,
                outcome.failed_step.value if outcome.failed_step else "-",
                outcome.reason,
            )
        if self._hooks.address_finished:
            self._hooks.address_finished(outcome)
        return outcome

    async def _run_with_retries(self, address_id: int) -> AddressOutcome:
        max_attempts = 1 + self._config.max_retries
        attempt = 1
        while True:
            context = self.new_context(address_id, attempt=attempt)
            try:
                result = await self._run_attempt(context)
            except StepError as exc:
                reason = exc.reason
                if isinstance(exc.cause, (asyncio.TimeoutError, RunnerTimeoutError)):
                    reason = CommitFailureReason.GENERIC_ERROR.value
                outcome = AddressOutcome.failure(
                    address_id, reason, step=exc.step, attempts=attempt
                )
                # Un commit sin respuesta pudo haber creado la orden igual.
                retryable = exc.step is not CheckoutStep.COMMIT_ORDER
            except Exception as exc:
                outcome = AddressOutcome.failure(
                    address_id, str(exc) or exc.__class__.__name__, attempts=attempt
                )
                retryable = True
            else:
                if isinstance(result, CommitSuccess):
                    return AddressOutcome.committed(
                        address_id, result.order_id, attempts=attempt
                    )
                outcome = AddressOutcome.failure(
                    address_id,
                    result.reason.value,
                    step=CheckoutStep.COMMIT_ORDER,
                    attempts=attempt,
                )
                retryable = (
                    result.reason is CommitFailureReason.OUT_OF_STOCK
                    and self._config.retry_out_of_stock
                )

            if not retryable or attempt >= max_attempts:
                return outcome
            logger.info(
                "dirección %s: reintento %d/%d tras %s",
                address_id,
                attempt,
                self._config.max_retries,
                outcome.reason,
            )
            attempt += 1

    async def _step(self, step: CheckoutStep, call: Callable[[], Awaitable[T]]) -> T:
        timeout = self._config.step_timeout
        try:
            if timeout is None:
                return await call()
            return await asyncio.wait_for(call(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise StepError(step, asyncio.TimeoutError(f"timeout tras {timeout}s")) from exc
        except Exception as exc:
            raise StepError(step, exc) from exc

    async def _run_attempt(self, context: CheckoutContext) -> CommitResult:
        runner = self._runner
        address_id = context.address_id
        logger.debug(
            "dirección %s: intento %d (usuario=%s)",
            address_id,
            context.attempt,
            self._session.username,
        )

        await self._step(CheckoutStep.CLEAR_CART, runner.clear_cart)
        context.state = CheckoutState.CART_CLEARED

        await self._step(
            CheckoutStep.SELECT_ADDRESS, lambda: runner.select_address(address_id)
        )
        context.state = CheckoutState.ADDRESS_SELECTED

        await self._step(
            CheckoutStep.REPEAT_ORDER,
            lambda: runner.repeat_order(self._config.order_number, self._config.order_id),
        )
        context.state = CheckoutState.ORDER_REPLICATED

        validation = await self._step(CheckoutStep.VALIDATE_CART, runner.validate_cart)
        context.state = CheckoutState.VALIDATED
        logger.info("dirección %s: validación %s", address_id, validation.status.value)

        if validation.out_of_stock:
            await self._step(CheckoutStep.REMOVE_OUT_OF_STOCK, runner.remove_out_of_stock)
            context.state = CheckoutState.STOCK_REMEDIATED

        context.payment_plans = await self._step(
            CheckoutStep.GET_PAYMENT_PLANS, lambda: runner.get_payment_plans(context)
        )

        try:
            await self._step(
                CheckoutStep.REFRESH_CHECKOUT, lambda: runner.refresh_checkout(context)
            )
        except StepError as exc:
            if not self._config.refresh_fallback:
                raise
            logger.warning(
                "dirección %s: refresco de caja falló (%s), se intenta el commit igual",
                address_id,
                exc.reason,
            )
        context.state = CheckoutState.CHECKOUT_REFRESHED

        result = await self._step(
            CheckoutStep.COMMIT_ORDER, lambda: runner.commit_order(context)
        )
        context.state = CheckoutState.COMMITTED
        logger.info("dirección %s: commit %s", address_id, result.model_dump(mode="json"))
        return result
