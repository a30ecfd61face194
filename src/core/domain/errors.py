"""Taxonomía de errores del dominio.

Alcance de cada error:
- `BatchValidationError` y `AuthError` abortan el batch completo.
- `StepError` queda acotado a una dirección y se convierte en un resultado fallido.
- `RunnerError` es lo que lanzan los adaptadores ante fallos HTTP/protocolo;
  `RunnerTimeoutError` cuando la plataforma no respondió a tiempo.

El stock faltante en la validación y el fallo del commit NO son excepciones:
son valores (`CartValidation`, `CommitFailure`).
"""

from __future__ import annotations

from core.domain.models import CheckoutStep


class CheckoutError(Exception):
    """Base de todos los errores propios."""


class BatchValidationError(CheckoutError):
    """Request de batch mal formado. No se produjo ningún efecto lateral."""


class InvalidBandError(BatchValidationError):
    def __init__(self, band: str) -> None:
        super().__init__(f"Banda inválida: {band}")
        self.band = band


class InvalidDateError(BatchValidationError):
    def __init__(self, value: str) -> None:
        super().__init__(f"Fecha inválida (se espera YYYY-MM-DD): {value}")
        self.value = value


class AuthError(CheckoutError):
    """La plataforma rechazó las credenciales o no entregó el token de sesión."""


class RunnerError(CheckoutError):
    """Fallo de una operación del runner (HTTP o código de error de la plataforma)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class RunnerTimeoutError(RunnerError):
    """La plataforma no respondió a tiempo. El resultado de la operación es desconocido."""


class StepError(CheckoutError):
    """Un paso del pipeline falló para una dirección."""

    def __init__(self, step: CheckoutStep, cause: BaseException) -> None:
        reason = str(cause) or cause.__class__.__name__
        super().__init__(f"{step.value}: {reason}")
        self.step = step
        self.cause = cause
        self.reason = reason
