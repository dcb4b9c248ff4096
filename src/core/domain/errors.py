"""Excepciones del dominio.

Solo el transporte lanza; el cliente las convierte en valores
(`CompilationFailure`) antes de devolver nada al llamador.
"""

from __future__ import annotations

from core.domain.models import TransportFailureKind


class TransportFailure(Exception):
    """No se pudo completar la operación de red."""

    def __init__(self, kind: TransportFailureKind, cause: str) -> None:
        super().__init__(f"{kind.value}: {cause}")
        self.kind = kind
        self.cause = cause
