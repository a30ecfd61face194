"""Contrato del runner de la plataforma.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite que el runner real (navegador + REST) y los dobles de test sean
  intercambiables sin acoplar el Core a implementaciones concretas.

Reglas de diseño:
- Todas las operaciones son asíncronas (I/O de red) salvo `get_session_token`.
- Las operaciones que dependen de la dirección reciben el `CheckoutContext`
  explícitamente; el runner no guarda estado por dirección.
- Las respuestas crudas de la plataforma se parsean a resultados tipados dentro
  del runner; el Core nunca ve JSON.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from core.domain.models import (
    CartValidation,
    CheckoutContext,
    CommitResult,
    PaymentPlans,
    UserCredentials,
)


@runtime_checkable
class PurchaseRunner(Protocol):
    """Operaciones primitivas contra la plataforma."""

    # Si es False, el orquestador limita la concurrencia a 1: el carrito es único por sesión.
    supports_concurrency: bool

    async def init(self) -> None: ...

    async def dispose(self) -> None: ...

    async def login(self, user: UserCredentials) -> None: ...

    def get_session_token(self) -> str: ...

    async def clear_cart(self) -> None: ...

    async def select_address(self, address_id: int) -> None: ...

    async def repeat_order(self, order_number: str, order_id: str) -> None: ...

    async def validate_cart(self) -> CartValidation: ...

    async def remove_out_of_stock(self) -> None: ...

    async def get_payment_plans(self, context: CheckoutContext) -> PaymentPlans: ...

    async def refresh_checkout(self, context: CheckoutContext) -> None: ...

    async def commit_order(self, context: CheckoutContext) -> CommitResult: ...


RunnerFactory = Callable[[], PurchaseRunner]
