"""Segunda fase del protocolo: canjear una referencia por el resultado."""

from __future__ import annotations

from urllib.parse import quote

from core.config import AppSettings
from core.domain.models import RawResponse, Reference
from core.interfaces.transport import CompilationTransport


class ReferenceResolver:
    """Construye la URL del resultado y la recupera con el transporte.

    La URL es determinista: base configurada + token codificado. El llamador
    clasifica la respuesta una sola vez; una segunda `Reference` no se sigue.
    """

    def __init__(self, settings: AppSettings, transport: CompilationTransport) -> None:
        self._settings = settings
        self._transport = transport

    def result_url(self, reference: Reference) -> str:
        token = quote(reference.token, safe="._-~")
        # `.` y `..` son segmentos de ruta: sin codificar sacarían la URL de la base.
        if token in (".", ".."):
            token = "%2E" * len(token)
        return self._settings.resolved_result_base_url() + token

    async def resolve(self, reference: Reference, *, timeout: float | None = None) -> RawResponse:
        return await self._transport.fetch(self.result_url(reference), timeout=timeout)
