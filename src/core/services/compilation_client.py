"""Cliente de compilación remota (fachada).

Orquesta transporte -> clasificación -> (resolución de referencia) ->
extracción de diagnóstico, y devuelve siempre un `CompilationResult`.

Estados de una llamada:
    idle -> submitted -> classified -> [resolved] -> done

La rama `resolved` se ejecuta como mucho una vez: si el servicio contesta a la
segunda fase con otra referencia, es una violación de protocolo. No hay
reintentos: si se quieren, van en una capa por encima de este cliente.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum

import httpx
from loguru import logger

from adapters.http_transport import HttpxTransport
from core.config import AppSettings
from core.domain.errors import TransportFailure
from core.domain.models import (
    Artifact,
    ClassifiedOutcome,
    CompilationError,
    CompilationFailure,
    CompilationRequest,
    CompilationResult,
    CompilationSuccess,
    Diagnostic,
    ErrorKind,
    Reference,
    TransportError,
    TransportFailureKind,
)
from core.interfaces.transport import CompilationTransport
from core.services.classifier import classify
from core.services.diagnostics import extract_log
from core.services.reference_resolver import ReferenceResolver

_ERROR_KIND_BY_CAUSE: dict[TransportFailureKind, ErrorKind] = {
    TransportFailureKind.UNREACHABLE: ErrorKind.TRANSPORT_UNREACHABLE,
    TransportFailureKind.RESET: ErrorKind.TRANSPORT_UNREACHABLE,
    TransportFailureKind.TIMEOUT: ErrorKind.TRANSPORT_UNREACHABLE,
    TransportFailureKind.CANCELLED: ErrorKind.TRANSPORT_UNREACHABLE,
    TransportFailureKind.RELAY: ErrorKind.RELAY_FAILURE,
    TransportFailureKind.UPSTREAM_REJECTED: ErrorKind.UPSTREAM_REJECTED,
    TransportFailureKind.PROTOCOL: ErrorKind.PROTOCOL_VIOLATION,
}

_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.TRANSPORT_UNREACHABLE: "Network Error: could not complete the request to the PDF compilation service",
    ErrorKind.RELAY_FAILURE: "The relay could not forward the request to the PDF compilation service",
    ErrorKind.UPSTREAM_REJECTED: "The compilation service rejected the request",
    ErrorKind.PROTOCOL_VIOLATION: "The compilation service returned a response that could not be understood",
    ErrorKind.COMPILATION_FAILED: "LaTeX Compilation Failed",
}


class CompilationState(str, Enum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    CLASSIFIED = "classified"
    RESOLVED = "resolved"
    DONE = "done"


@dataclass
class _CompilationRun:
    """Estado de una única llamada a `compile` (no se comparte entre llamadas)."""

    state: CompilationState = CompilationState.IDLE

    def advance(self, state: CompilationState) -> None:
        logger.debug(f"[compile] {self.state.value} -> {state.value}")
        self.state = state


def _failure_from_transport(error: TransportError) -> CompilationFailure:
    kind = _ERROR_KIND_BY_CAUSE[error.kind]
    return CompilationFailure(
        error=CompilationError(
            kind=kind,
            message=f"{_MESSAGES[kind]}: {error.cause}",
            cause=error.kind,
            status_code=error.status_code,
        )
    )


class CompilationClient:
    """Compila LaTeX en un servicio remoto.

    Por qué una fachada:
    - El llamador (CLI, UI) solo ve `compile(source_text)` y un resultado
      como valor; nunca una excepción.
    - La configuración llega explícita en el constructor, así varias
      instancias con backends distintos pueden convivir.
    """

    def __init__(
        self,
        settings: AppSettings,
        *,
        transport: CompilationTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport or HttpxTransport(settings, client=http_client)
        self._resolver = ReferenceResolver(settings, self._transport)

    @property
    def settings(self) -> AppSettings:
        return self._settings

    async def compile(self, source_text: str, *, timeout: float | None = None) -> CompilationResult:
        """Compila `source_text`; `timeout` es el plazo por round-trip en segundos."""

        run = _CompilationRun()
        try:
            request = CompilationRequest(source_text=source_text)
            outcome = await self._run(request, run, timeout=timeout)
        except TransportFailure as exc:
            outcome = TransportError(kind=exc.kind, cause=exc.cause)
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None:
                task.uncancel()
            outcome = TransportError(kind=TransportFailureKind.CANCELLED, cause="the request was cancelled")
        except Exception as exc:
            logger.exception("[compile] unexpected error while compiling")
            outcome = TransportError(
                kind=TransportFailureKind.PROTOCOL,
                cause=f"unexpected error: {type(exc).__name__}: {exc}",
            )

        if run.state is not CompilationState.DONE:
            run.advance(CompilationState.DONE)
        return self._finish(outcome)

    def compile_sync(self, source_text: str, *, timeout: float | None = None) -> CompilationResult:
        """Variante bloqueante para contextos sin event loop (CLI)."""

        return asyncio.run(self.compile(source_text, timeout=timeout))

    async def _run(
        self,
        request: CompilationRequest,
        run: _CompilationRun,
        *,
        timeout: float | None,
    ) -> ClassifiedOutcome:
        run.advance(CompilationState.SUBMITTED)
        raw = await self._transport.submit(request, timeout=timeout)

        outcome = classify(raw)
        run.advance(CompilationState.CLASSIFIED)
        logger.debug(f"[compile] first response: HTTP {raw.status_code} {raw.content_type!r} -> {outcome.outcome}")

        if isinstance(outcome, Reference):
            raw = await self._resolver.resolve(outcome, timeout=timeout)
            outcome = classify(raw)
            run.advance(CompilationState.RESOLVED)
            logger.debug(f"[compile] resolved response: HTTP {raw.status_code} {raw.content_type!r} -> {outcome.outcome}")
            if isinstance(outcome, Reference):
                outcome = TransportError(
                    kind=TransportFailureKind.PROTOCOL,
                    cause="the service answered the result fetch with another reference",
                    status_code=raw.status_code,
                )

        run.advance(CompilationState.DONE)
        return outcome

    def _finish(self, outcome: ClassifiedOutcome) -> CompilationResult:
        if isinstance(outcome, Artifact):
            logger.info(f"[compile] PDF received ({len(outcome.content)} bytes)")
            return CompilationSuccess(artifact=outcome.content)

        if isinstance(outcome, Diagnostic):
            log = extract_log(outcome)
            logger.warning(f"[compile] LaTeX compilation failed ({outcome.body_kind.value} log)")
            return CompilationFailure(
                error=CompilationError(
                    kind=ErrorKind.COMPILATION_FAILED,
                    message=_MESSAGES[ErrorKind.COMPILATION_FAILED],
                    log=log,
                )
            )

        if isinstance(outcome, TransportError):
            logger.error(f"[compile] {outcome.kind.value}: {outcome.cause}")
            return _failure_from_transport(outcome)

        # Una Reference nunca llega aquí: `_run` la resuelve o la convierte en error.
        return _failure_from_transport(
            TransportError(kind=TransportFailureKind.PROTOCOL, cause="unresolved reference")
        )
