"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza base_url, timeouts, headers, TLS y cookies de sesión.
- Facilita testeo: se puede inyectar un `transport` (p.ej. `httpx.MockTransport`).
"""

from __future__ import annotations

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    cookies: httpx.Cookies | None = None,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` apuntado a la plataforma.

    Por qué un builder:
    - Centraliza timeouts/headers para que todas las llamadas REST se comporten igual.
    - El runner lo crea una vez por sesión con las cookies que dejó el login.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json, text/plain, */*",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=settings.base_url,
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        cookies=cookies,
        verify=settings.verify_tls,
        transport=transport,
    )
