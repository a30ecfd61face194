"""API HTTP (FastAPI).

Superficie:
- `POST /purchase`: ejecuta un batch y responde `{success, failed, orders}`.
- `GET /health`: `{"status": "ok"}`.

Errores de batch completo:
- `BatchValidationError` (banda/fecha inválida) -> 400 `{error}`.
- `AuthError` -> 401 `{error}`.
Los fallos por dirección nunca salen de acá como error: van en los contadores.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from core.config import AppSettings
from core.domain.errors import AuthError, BatchValidationError
from core.domain.models import BatchRequest
from core.interfaces.runner import RunnerFactory
from core.services.batch_orchestrator import BatchOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@dataclass
class PurchaseDeps:
    orchestrator: BatchOrchestrator
    runner_factory: RunnerFactory


def get_deps() -> PurchaseDeps:
    raise NotImplementedError("Dependency override required")


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/purchase")
async def purchase(
    request: BatchRequest,
    deps: PurchaseDeps = Depends(get_deps),
) -> dict[str, Any]:
    result = await deps.orchestrator.execute_batch(request, deps.runner_factory)
    return result.to_response()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BatchValidationError)
    async def batch_validation_handler(
        request: Request, exc: BatchValidationError
    ) -> JSONResponse:
        logger.warning("batch rechazado: %s", exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"error": str(exc)})


def create_app(
    settings: AppSettings | None = None,
    *,
    runner_factory: RunnerFactory | None = None,
) -> FastAPI:
    settings = settings or AppSettings()
    if runner_factory is None:
        from adapters.atg import AtgRunnerFactory  # noqa: PLC0415

        runner_factory = AtgRunnerFactory(settings)

    deps = PurchaseDeps(orchestrator=BatchOrchestrator(settings), runner_factory=runner_factory)

    app = FastAPI(title="batch-checkout", version="0.1.0")
    app.dependency_overrides[get_deps] = lambda: deps
    register_exception_handlers(app)
    app.include_router(router)
    return app
