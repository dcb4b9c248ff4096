"""Contrato del transporte hacia el servicio de compilación.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite que el cliente use httpx en producción y un transporte falso en
  tests sin acoplar el Core a implementaciones concretas.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import CompilationRequest, RawResponse


@runtime_checkable
class CompilationTransport(Protocol):
    """Contrato mínimo del transporte.

    Reglas de diseño:
    - Ambos métodos son asíncronos porque hacen I/O (HTTP).
    - Exactamente una operación de red por llamada; sin reintentos.
    - Los fallos de red se lanzan como `core.domain.errors.TransportFailure`.
    - `timeout` es el plazo del llamador en segundos (None = el configurado).
    """

    async def submit(self, request: CompilationRequest, *, timeout: float | None = None) -> RawResponse:
        """Envía el documento y devuelve la respuesta cruda."""

        ...

    async def fetch(self, url: str, *, timeout: float | None = None) -> RawResponse:
        """Recupera un resultado de la segunda fase y devuelve la respuesta cruda."""

        ...
