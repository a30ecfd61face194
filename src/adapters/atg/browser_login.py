"""Login vía navegador (Playwright).

Por qué un navegador:
- El token de sesión (`_dynSessConf`) sólo existe en el `sessionStorage` de la
  página pública; no hay endpoint REST que lo entregue.
- El POST de login se hace desde la propia página para que las cookies queden
  asociadas al mismo contexto.

Después del login se exportan las cookies y se cierra el navegador: el resto de
las operaciones van por REST (httpx).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx
from playwright.async_api import async_playwright

from core.config import AppSettings
from core.domain.errors import AuthError
from core.domain.models import UserCredentials

_READ_SESSION_JS = """
() => {
    const raw = sessionStorage.getItem("_dynSessConf");
    return raw ? JSON.parse(raw) : null;
}
"""

_LOGIN_JS = """
async ({ url, username, password }) => {
    const res = await fetch(url, {
        method: "POST",
        headers: { "Content-Type": "application/json;charset=UTF-8" },
        body: JSON.stringify({ login: username, password, isAngular: "true" }),
        credentials: "include",
    });
    return res.status;
}
"""


@dataclass(frozen=True)
class BrowserSession:
    token: str
    cookies: list[dict[str, Any]] = field(default_factory=list)

    def to_httpx_cookies(self) -> httpx.Cookies:
        jar = httpx.Cookies()
        for cookie in self.cookies:
            name = cookie.get("name")
            if not name:
                continue
            jar.set(
                name,
                str(cookie.get("value", "")),
                domain=cookie.get("domain", ""),
                path=cookie.get("path", "/"),
            )
        return jar


def login_url(settings: AppSettings, token: str) -> str:
    query = urlencode({"pushSite": settings.push_site, "_dynSessConf": token})
    return f"/rest/model/atg/actors/cProfileActor/login?{query}"


async def login_with_browser(settings: AppSettings, user: UserCredentials) -> BrowserSession:
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=settings.headless)
        try:
            context = await browser.new_context(ignore_https_errors=not settings.verify_tls)
            page = await context.new_page()
            await page.goto(f"{settings.base_url}{settings.site_path}", wait_until="networkidle")

            session_data = await page.evaluate(_READ_SESSION_JS)
            token = None
            if isinstance(session_data, dict):
                token = session_data.get("sessionConfirmationNumber")
            if not token:
                raise AuthError("No se pudo obtener _dynSessConf")
            token = str(token)

            status = await page.evaluate(
                _LOGIN_JS,
                {
                    "url": login_url(settings, token),
                    "username": user.username,
                    "password": user.password.get_secret_value(),
                },
            )
            if status != 200:
                raise AuthError(f"HTTP error en login: {status}")

            state = await context.storage_state()
            return BrowserSession(token=token, cookies=list(state.get("cookies", [])))
        finally:
            await browser.close()
