"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers, redirects y la política de relay.
- Facilita testeo: se puede sustituir por un cliente con `httpx.MockTransport`.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers para que envío y recuperación se comporten igual.
    - `transport` permite inyectar un `httpx.MockTransport` en tests.
    """

    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/pdf,application/json;q=0.9,text/html;q=0.8,*/*;q=0.5",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def route_through_relay(url: str, settings: AppSettings) -> tuple[str, bool]:
    """Devuelve la URL efectiva y si pasa por el relay.

    El relay recibe la URL destino concatenada a su prefijo
    (p.ej. `https://relay.example/?url=` + destino).
    """

    relay = settings.relay_endpoint
    if not relay:
        return url, False
    target = quote(url, safe="") if settings.relay_encode_target else url
    return f"{relay}{target}", True
