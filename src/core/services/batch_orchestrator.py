"""Batch orchestration.

Consolidates the whole batch flow so every entry-point (HTTP API, CLI, tests)
shares it:

1. resolve the delivery band (rejects the batch before any side effect),
2. acquire a runner and authenticate exactly once,
3. run one `CheckoutPipeline` per address, sequentially or with a bounded
   number of pipelines in flight,
4. aggregate outcomes in request order,
5. release the runner exactly once, whatever happened.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

from core.config import AppSettings
from core.domain.models import AddressOutcome, BatchRequest, BatchResult
from core.interfaces.runner import PurchaseRunner, RunnerFactory
from core.services.band_resolver import resolve_band
from core.services.checkout_pipeline import CheckoutPipeline, PipelineConfig, PipelineHooks
from core.services.session_manager import SessionManager

logger = logging.getLogger(__name__)

TIMEOUT_REASON = "timeout"


@asynccontextmanager
async def acquire_runner(factory: RunnerFactory) -> AsyncIterator[PurchaseRunner]:
    """Crea e inicializa un runner; `dispose` corre una sola vez al salir."""

    runner = factory()
    try:
        await runner.init()
        yield runner
    finally:
        try:
            await runner.dispose()
        except Exception:
            logger.exception("dispose del runner falló")


class BatchOrchestrator:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        hooks: PipelineHooks | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._hooks = hooks

    async def execute_batch(
        self,
        request: BatchRequest,
        runner_factory: RunnerFactory,
    ) -> BatchResult:
        band = resolve_band(request.delivery.band, request.delivery.date)
        addresses = list(request.delivery.addresses)

        logger.info(
            "batch iniciado: usuario=%s direcciones=%s pedido=%s banda=%s",
            request.user.username,
            addresses,
            request.cart.order_number,
            band.code,
        )

        async with acquire_runner(runner_factory) as runner:
            session = await SessionManager(runner).login(request.user)
            pipeline = CheckoutPipeline(
                runner=runner,
                session=session,
                config=PipelineConfig.from_request(
                    request, band, step_timeout=self._settings.step_timeout_seconds
                ),
                hooks=self._hooks,
            )
            outcomes = await self._run_addresses(
                pipeline,
                addresses,
                concurrency=self._effective_concurrency(request, runner, len(addresses)),
                timeout=request.options.timeout_seconds or self._settings.batch_timeout_seconds,
            )

        result = BatchResult.from_outcomes(outcomes)
        logger.info(
            "batch finalizado: success=%d failed=%d orders=%s",
            result.success,
            result.failed,
            result.orders,
        )
        return result

    def _effective_concurrency(
        self,
        request: BatchRequest,
        runner: PurchaseRunner,
        total: int,
    ) -> int:
        requested = request.options.concurrency or self._settings.default_concurrency
        if requested > 1 and not getattr(runner, "supports_concurrency", False):
            logger.info(
                "el runner no admite llamadas concurrentes en una sesión; concurrencia %d -> 1",
                requested,
            )
            return 1
        return max(1, min(requested, self._settings.max_concurrency, total))

    async def _run_addresses(
        self,
        pipeline: CheckoutPipeline,
        addresses: Sequence[int],
        *,
        concurrency: int,
        timeout: float | None,
    ) -> list[AddressOutcome]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout else None
        # Cada resultado se guarda en la posición de su dirección, no en orden de llegada.
        outcomes: list[AddressOutcome | None] = [None] * len(addresses)

        async def run_one(index: int, address_id: int) -> None:
            if deadline is not None and loop.time() >= deadline:
                outcomes[index] = AddressOutcome.failure(address_id, TIMEOUT_REASON)
                return
            try:
                outcomes[index] = await pipeline.run(address_id)
            except Exception as exc:
                logger.exception("error no controlado en dirección %s", address_id)
                outcomes[index] = AddressOutcome.failure(
                    address_id, str(exc) or exc.__class__.__name__
                )

        if concurrency <= 1:
            for index, address_id in enumerate(addresses):
                await run_one(index, address_id)
        else:
            semaphore = asyncio.Semaphore(concurrency)

            async def bounded(index: int, address_id: int) -> None:
                async with semaphore:
                    await run_one(index, address_id)

            await asyncio.gather(*(bounded(i, a) for i, a in enumerate(addresses)))

        missing = [addresses[i] for i, o in enumerate(outcomes) if o is None]
        if missing:
            raise RuntimeError(f"direcciones sin resultado: {missing}")
        return [o for o in outcomes if o is not None]
