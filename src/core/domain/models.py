"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Las variantes de clasificación y de resultado son modelos con un campo
  discriminante, así cada respuesta cae exactamente en una de ellas.

Nota:
- Estos modelos describen *qué* devuelve el servicio, no *cómo* se obtiene.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

PDF_MEDIA_TYPE = "application/pdf"


class BodyKind(str, Enum):
    """Forma del cuerpo de un diagnóstico."""

    PLAIN_TEXT = "plain_text"
    ENCODED_BLOB = "encoded_blob"
    HTML_PAGE = "html_page"


class TransportFailureKind(str, Enum):
    """Causa de un fallo a nivel de transporte o de protocolo."""

    UNREACHABLE = "unreachable"
    RESET = "reset"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    RELAY = "relay"
    UPSTREAM_REJECTED = "upstream_rejected"
    PROTOCOL = "protocol"


class ErrorKind(str, Enum):
    """Taxonomía de errores visible para el llamador."""

    TRANSPORT_UNREACHABLE = "transport_unreachable"
    RELAY_FAILURE = "relay_failure"
    UPSTREAM_REJECTED = "upstream_rejected"
    COMPILATION_FAILED = "compilation_failed"
    PROTOCOL_VIOLATION = "protocol_violation"


class CompilationRequest(BaseModel):
    """Documento a compilar. Inmutable; se construye por llamada."""

    model_config = ConfigDict(frozen=True)

    source_text: str = Field(
        ...,
        description="Código LaTeX completo, enviado sin truncar.",
    )


class RawResponse(BaseModel):
    """Respuesta cruda del transporte, sin interpretar."""

    model_config = ConfigDict(frozen=True)

    status_code: int = Field(
        ...,
        ge=100,
        le=999,
        description="Código HTTP devuelto (orientativo, nunca autoritativo).",
    )
    content_type: str | None = Field(
        default=None,
        description="Cabecera Content-Type tal cual llegó (si llegó).",
    )
    body: bytes = Field(
        default=b"",
        description="Cuerpo completo de la respuesta.",
    )
    via_relay: bool = Field(
        default=False,
        description="True si la petición atravesó el relay configurado.",
    )

    @property
    def is_success_status(self) -> bool:
        return 200 <= self.status_code < 300


class Artifact(BaseModel):
    """El servicio devolvió el PDF compilado."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["artifact"] = "artifact"
    content: bytes = Field(..., min_length=1, description="Bytes del PDF.")


class Reference(BaseModel):
    """Primera fase de un protocolo de dos fases: hay que pedir el resultado."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["reference"] = "reference"
    token: str = Field(..., min_length=1, description="Token/filename opaco del resultado.")


class Diagnostic(BaseModel):
    """El documento se procesó pero el servicio devolvió un log en vez de un PDF."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["diagnostic"] = "diagnostic"
    raw_body: bytes = Field(default=b"", description="Cuerpo del log sin normalizar.")
    body_kind: BodyKind = Field(..., description="Cómo interpretar `raw_body`.")


class TransportError(BaseModel):
    """Todo lo que no se puede clasificar con confianza en las otras variantes."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["transport_error"] = "transport_error"
    kind: TransportFailureKind
    cause: str = Field(..., description="Descripción legible de la causa.")
    status_code: int | None = Field(default=None, description="Código HTTP, si hubo respuesta.")


ClassifiedOutcome = Union[Artifact, Reference, Diagnostic, TransportError]


_ERROR_HINTS: dict[ErrorKind, str] = {
    ErrorKind.COMPILATION_FAILED: "The document is invalid: fix the LaTeX source using the log.",
    ErrorKind.TRANSPORT_UNREACHABLE: "The compilation service is unavailable: retry later.",
    ErrorKind.RELAY_FAILURE: "The relay failed to reach the compilation service: retry later.",
    ErrorKind.UPSTREAM_REJECTED: "The compilation service rejected the request: check the configuration.",
    ErrorKind.PROTOCOL_VIOLATION: "Unrecognized response from the service: please report a bug.",
}


class CompilationError(BaseModel):
    """Error estructurado devuelto (nunca lanzado) por `CompilationClient.compile`."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str = Field(..., min_length=1, description="Resumen de una línea.")
    log: str | None = Field(
        default=None,
        description="Log extraído (solo para `compilation_failed`).",
    )
    cause: TransportFailureKind | None = Field(
        default=None,
        description="Causa de transporte/protocolo, si aplica.",
    )
    status_code: int | None = Field(default=None, description="Código HTTP, si hubo respuesta.")

    @property
    def hint(self) -> str:
        return _ERROR_HINTS[self.kind]

    @property
    def is_retryable(self) -> bool:
        return self.kind in (ErrorKind.TRANSPORT_UNREACHABLE, ErrorKind.RELAY_FAILURE)


class CompilationSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"
    artifact: bytes = Field(..., min_length=1, description="PDF compilado.")
    media_type: str = Field(default=PDF_MEDIA_TYPE)

    @property
    def ok(self) -> bool:
        return True


class CompilationFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["failure"] = "failure"
    error: CompilationError

    @property
    def ok(self) -> bool:
        return False


CompilationResult = Union[CompilationSuccess, CompilationFailure]
