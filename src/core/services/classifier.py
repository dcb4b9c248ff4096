"""Clasificación de respuestas del servicio de compilación.

El servicio responde 200 tanto si compila como si falla, así que el código de
estado solo se usa para detectar fallos de infraestructura (relay, rechazo del
origen). El resto se decide por Content-Type y por la forma del cuerpo.

Reglas, en orden (gana la primera):
1. Estado no-2xx -> `TransportError` (relay/origen), salvo que traiga una
   página con `<pre>` o un sobre JSON de error. Un 5xx del relay nunca es log.
2. Content-Type declarado: PDF, texto/HTML, base64 o sobre JSON.
3. Content-Type ausente o genérico -> firma `%PDF-`; si no, diagnóstico.

`classify` es una función pura: la misma `RawResponse` da siempre el mismo
resultado.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from core.domain.models import (
    Artifact,
    BodyKind,
    ClassifiedOutcome,
    Diagnostic,
    RawResponse,
    Reference,
    TransportError,
    TransportFailureKind,
)

PDF_SIGNATURE = b"%PDF-"
# Algunos generadores dejan basura antes de la cabecera; los lectores la toleran.
SIGNATURE_WINDOW = 1024

ARTIFACT_TYPES = frozenset({"application/pdf", "application/x-pdf"})
PLAIN_TYPES = frozenset({"text/plain"})
HTML_TYPES = frozenset({"text/html", "application/xhtml+xml"})
ENCODED_TYPES = frozenset({"application/base64"})

STATUS_KEYS = ("status", "result", "success")
SUCCESS_VALUES = frozenset({"success", "succeeded", "ok", "done", "completed"})
ERROR_VALUES = frozenset({"error", "failure", "failed", "ko"})
LOG_KEYS = ("log", "logs", "log_base64", "message", "error", "detail")
INLINE_KEYS = ("pdf", "content", "data", "artifact")
REFERENCE_KEYS = ("filename", "reference", "token", "id")


def media_type(content_type: str | None) -> str | None:
    """`text/html; charset=utf-8` -> `text/html` (None si no hay cabecera útil)."""

    if not content_type:
        return None
    value = content_type.split(";", 1)[0].strip().lower()
    return value or None


def has_pdf_signature(body: bytes) -> bool:
    return PDF_SIGNATURE in body[:SIGNATURE_WINDOW]


def _looks_like_markup(body: bytes) -> bool:
    head = body[:SIGNATURE_WINDOW].lstrip().lower()
    return head.startswith((b"<!doctype", b"<html", b"<?xml")) or b"<pre" in body.lower()


def _is_json(mtype: str | None) -> bool:
    return mtype is not None and (mtype == "application/json" or mtype.endswith("+json"))


def _load_envelope(raw: RawResponse) -> dict[str, Any] | None:
    try:
        envelope = json.loads(raw.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return envelope if isinstance(envelope, dict) else None


def _carries_log(raw: RawResponse, mtype: str | None) -> bool:
    """Un no-2xx solo es un log si trae una región `<pre>` o un sobre JSON de error.

    Texto plano o base64 con estado de error suele ser la página del relay o
    del servidor ("Bad Gateway"), no un log de TeX.
    """

    if raw.via_relay and raw.status_code >= 500:
        return False
    if _is_json(mtype):
        envelope = _load_envelope(raw)
        return envelope is not None and _envelope_status(envelope) is False
    if mtype in PLAIN_TYPES or mtype in ENCODED_TYPES:
        return False
    return b"<pre" in raw.body.lower()


def _infrastructure_failure(raw: RawResponse) -> TransportError:
    if raw.via_relay and (raw.status_code >= 500 or not raw.body.strip()):
        return TransportError(
            kind=TransportFailureKind.RELAY,
            cause=f"relay answered HTTP {raw.status_code} without a service response",
            status_code=raw.status_code,
        )
    return TransportError(
        kind=TransportFailureKind.UPSTREAM_REJECTED,
        cause=f"service answered HTTP {raw.status_code}",
        status_code=raw.status_code,
    )


def _protocol(cause: str, raw: RawResponse) -> TransportError:
    return TransportError(kind=TransportFailureKind.PROTOCOL, cause=cause, status_code=raw.status_code)


def _artifact_from_claim(raw: RawResponse) -> ClassifiedOutcome:
    if not raw.body:
        return _protocol("PDF content type with an empty body", raw)
    if not has_pdf_signature(raw.body):
        return _protocol("PDF content type but the body has no PDF signature", raw)
    return Artifact(content=raw.body)


def _envelope_status(envelope: dict[str, Any]) -> bool | None:
    """True = éxito, False = error, None = sin campo de estado reconocible."""

    for key in STATUS_KEYS:
        if key not in envelope:
            continue
        value = envelope[key]
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in SUCCESS_VALUES:
                return True
            if normalized in ERROR_VALUES:
                return False
    return None


def _envelope_log(envelope: dict[str, Any]) -> tuple[bytes, BodyKind] | None:
    encoded = str(envelope.get("encoding", "")).strip().lower() == "base64"
    for key in LOG_KEYS:
        value = envelope.get(key)
        if isinstance(value, list):
            value = "\n".join(str(item) for item in value)
        if isinstance(value, str) and value:
            kind = BodyKind.ENCODED_BLOB if (encoded or key == "log_base64") else BodyKind.PLAIN_TEXT
            return value.encode("utf-8"), kind
    return None


def _classify_envelope(raw: RawResponse) -> ClassifiedOutcome:
    envelope = _load_envelope(raw)
    if envelope is None:
        return _protocol("JSON content type but the body is not a JSON object", raw)

    status = _envelope_status(envelope)
    if status is None:
        return _protocol("JSON envelope without a recognizable status field", raw)

    if status is False:
        log = _envelope_log(envelope)
        if log is None:
            if not raw.is_success_status:
                return _infrastructure_failure(raw)
            return Diagnostic(raw_body=b"", body_kind=BodyKind.PLAIN_TEXT)
        body, kind = log
        return Diagnostic(raw_body=body, body_kind=kind)

    for key in INLINE_KEYS:
        value = envelope.get(key)
        if isinstance(value, str) and value:
            try:
                content = base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError):
                return _protocol(f"envelope field '{key}' is not valid base64", raw)
            if not has_pdf_signature(content):
                return _protocol(f"envelope field '{key}' does not decode to a PDF", raw)
            return Artifact(content=content)

    for key in REFERENCE_KEYS:
        value = envelope.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (str, int)) and str(value).strip():
            return Reference(token=str(value).strip())

    return _protocol("successful envelope without inline content or reference", raw)


def _sniff(raw: RawResponse) -> ClassifiedOutcome:
    if has_pdf_signature(raw.body):
        return Artifact(content=raw.body)
    if _looks_like_markup(raw.body):
        return Diagnostic(raw_body=raw.body, body_kind=BodyKind.HTML_PAGE)
    return Diagnostic(raw_body=raw.body, body_kind=BodyKind.PLAIN_TEXT)


def classify(raw: RawResponse) -> ClassifiedOutcome:
    """Clasifica una respuesta cruda en exactamente una variante."""

    mtype = media_type(raw.content_type)

    if not raw.is_success_status and not _carries_log(raw, mtype):
        return _infrastructure_failure(raw)

    if mtype in ARTIFACT_TYPES:
        return _artifact_from_claim(raw)
    if not raw.body.strip():
        return _protocol("empty response body", raw)
    if mtype in PLAIN_TYPES:
        return Diagnostic(raw_body=raw.body, body_kind=BodyKind.PLAIN_TEXT)
    if mtype in HTML_TYPES:
        return Diagnostic(raw_body=raw.body, body_kind=BodyKind.HTML_PAGE)
    if mtype in ENCODED_TYPES:
        return Diagnostic(raw_body=raw.body, body_kind=BodyKind.ENCODED_BLOB)
    if _is_json(mtype):
        return _classify_envelope(raw)

    return _sniff(raw)
