"""Transporte HTTP (httpx) hacia el servicio de compilación.

Responsabilidad:
- Codificar el documento como `multipart/form-data` con los campos configurados.
- Hacer exactamente una petición por llamada, opcionalmente vía relay.
- Traducir fallos de red de httpx a `TransportFailure` con una causa concreta.

No interpreta la respuesta: eso es trabajo de `core.services.classifier`.
"""

from __future__ import annotations

import asyncio

import httpx
from loguru import logger

from adapters.http_client import build_async_client, route_through_relay
from core.config import AppSettings
from core.domain.errors import TransportFailure
from core.domain.models import CompilationRequest, RawResponse, TransportFailureKind


def _failure_from_httpx(exc: httpx.TransportError) -> TransportFailure:
    # El orden importa: ConnectTimeout es TimeoutException, no ConnectError.
    if isinstance(exc, httpx.TimeoutException):
        return TransportFailure(TransportFailureKind.TIMEOUT, f"request timed out ({type(exc).__name__})")
    if isinstance(exc, (httpx.ConnectError, httpx.ProxyError, httpx.UnsupportedProtocol)):
        return TransportFailure(TransportFailureKind.UNREACHABLE, f"could not reach the service: {exc}")
    if isinstance(exc, (httpx.ReadError, httpx.WriteError, httpx.CloseError, httpx.RemoteProtocolError)):
        return TransportFailure(TransportFailureKind.RESET, f"connection reset by peer: {exc}")
    return TransportFailure(TransportFailureKind.UNREACHABLE, f"network error: {type(exc).__name__}: {exc}")


class HttpxTransport:
    """Implementa `core.interfaces.CompilationTransport` con httpx."""

    def __init__(self, settings: AppSettings, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client

    def build_form(self, request: CompilationRequest) -> tuple[dict[str, str], dict[str, tuple[None, bytes]]]:
        """Campos del formulario: (data, files).

        El documento va como parte sin filename para forzar multipart.
        """

        data = {
            self._settings.engine_field: self._settings.engine,
            self._settings.return_type_field: self._settings.return_type,
        }
        files = {self._settings.source_field: (None, request.source_text.encode("utf-8"))}
        return data, files

    async def submit(self, request: CompilationRequest, *, timeout: float | None = None) -> RawResponse:
        url, via_relay = route_through_relay(self._settings.service_endpoint, self._settings)
        data, files = self.build_form(request)
        logger.debug(f"[transport] POST {url} ({len(request.source_text)} chars, relay={via_relay})")
        return await self._send("POST", url, via_relay=via_relay, timeout=timeout, data=data, files=files)

    async def fetch(self, url: str, *, timeout: float | None = None) -> RawResponse:
        effective, via_relay = route_through_relay(url, self._settings)
        logger.debug(f"[transport] GET {effective} (relay={via_relay})")
        return await self._send("GET", effective, via_relay=via_relay, timeout=timeout)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        via_relay: bool,
        timeout: float | None,
        **kwargs: object,
    ) -> RawResponse:
        deadline = timeout if timeout is not None else self._settings.http_timeout_seconds
        try:
            response = await asyncio.wait_for(self._request(method, url, **kwargs), timeout=deadline)
        except asyncio.TimeoutError as exc:
            raise TransportFailure(TransportFailureKind.TIMEOUT, f"no response within {deadline:g}s") from exc
        except httpx.TransportError as exc:
            raise _failure_from_httpx(exc) from exc

        return RawResponse(
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
            body=response.content,
            via_relay=via_relay,
        )

    async def _request(self, method: str, url: str, **kwargs: object) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, **kwargs)  # type: ignore[arg-type]
        async with build_async_client(self._settings) as client:
            return await client.request(method, url, **kwargs)  # type: ignore[arg-type]
