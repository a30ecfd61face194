"""Autenticación única por batch."""

from __future__ import annotations

import logging

from core.domain.errors import AuthError
from core.domain.models import SessionHandle, UserCredentials
from core.interfaces.runner import PurchaseRunner

logger = logging.getLogger(__name__)


class SessionManager:
    """Hace login exactamente una vez y expone el `SessionHandle` resultante.

    El handle es inmutable: los pipelines lo comparten en sólo lectura.
    """

    def __init__(self, runner: PurchaseRunner) -> None:
        self._runner = runner
        self._handle: SessionHandle | None = None
        self._attempted = False

    @property
    def handle(self) -> SessionHandle | None:
        return self._handle

    async def login(self, credentials: UserCredentials) -> SessionHandle:
        if self._attempted:
            raise RuntimeError("SessionManager.login ya fue invocado para este batch")
        self._attempted = True

        try:
            await self._runner.login(credentials)
            token = self._runner.get_session_token()
        except AuthError:
            logger.error("login rechazado para usuario=%s", credentials.username)
            raise
        except Exception as exc:
            logger.error("login falló para usuario=%s: %s", credentials.username, exc)
            raise AuthError(f"No se pudo autenticar: {exc}") from exc

        if not token:
            logger.error("login sin token de sesión para usuario=%s", credentials.username)
            raise AuthError("La plataforma no entregó token de sesión")

        self._handle = SessionHandle(token=token, username=credentials.username)
        logger.info("sesión iniciada para usuario=%s", credentials.username)
        return self._handle
