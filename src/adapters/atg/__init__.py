"""Adaptador de la plataforma ATG (CotoDigital).

Por qué un paquete:
- Agrupa login por navegador, parseo de respuestas y el runner REST.
- El runner implementa `core.interfaces.runner.PurchaseRunner`.
"""

from adapters.atg.browser_login import BrowserSession, login_with_browser
from adapters.atg.runner import AtgRunner, AtgRunnerFactory

__all__ = [
    "AtgRunner",
    "AtgRunnerFactory",
    "BrowserSession",
    "login_with_browser",
]
