"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI ni la API.
- Permite que adaptadores (HTTP/navegador) y servicios lean config de forma consistente.

Importante:
- Las credenciales del usuario NO viven acá: llegan en cada request de batch.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "batch-checkout"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "batch-checkout"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "batch-checkout"
    return Path.home() / ".config" / "batch-checkout"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/API/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="BATCH_CHECKOUT_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    base_url: str = Field(
        default="https://testdigital3.redcoto.com.ar",
        min_length=8,
        description="Base URL de la plataforma (storefront ATG).",
    )
    site_path: str = Field(
        default="/sitios/cdigi/nuevositio",
        min_length=1,
        description="Página pública desde la que se obtiene el token de sesión.",
    )
    push_site: str = Field(
        default="CotoDigital",
        min_length=1,
        description="Valor del parámetro `pushSite` en todas las llamadas REST.",
    )

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout por request HTTP (segundos).",
    )
    user_agent: str = Field(
        default="batch-checkout/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para las llamadas REST.",
    )
    headless: bool = Field(
        default=True,
        description="Lanzar el navegador de login sin ventana.",
    )
    verify_tls: bool = Field(
        default=False,
        description="Verificar certificados TLS (el entorno de pruebas usa certificados propios).",
    )

    checkout_settle_seconds: float = Field(
        default=1.6,
        ge=0,
        description="Pausa tras refrescar la caja para que la plataforma recalcule totales.",
    )
    shipping_cost: str = Field(
        default="399",
        description="Costo de envío informado al recalcular el ShippingGroup.",
    )
    service_id: str = Field(
        default="300",
        description="Id del servicio de entrega disponible.",
    )
    payment_pin: str = Field(
        default="111",
        description="PIN enviado en el commit de la orden.",
    )

    step_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout por paso del pipeline (segundos).",
    )
    batch_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Deadline del batch completo (segundos). None = sin deadline.",
    )
    default_concurrency: int = Field(
        default=1,
        ge=1,
        description="Pipelines en vuelo por defecto cuando el request no lo indica.",
    )
    max_concurrency: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Tope duro de pipelines en vuelo por batch.",
    )

    log_level: str = Field(
        default="INFO",
        description="Nivel de logging (DEBUG, INFO, WARNING...).",
    )
    api_host: str = Field(default="0.0.0.0", description="Host del servidor HTTP.")
    api_port: int = Field(default=3000, ge=1, le=65535, description="Puerto del servidor HTTP.")
