"""Extracción de logs legibles a partir de diagnósticos.

Es una preocupación de presentación: nunca lanza. Si el cuerpo no se puede
decodificar o no contiene un log reconocible, devuelve un texto fijo.
"""

from __future__ import annotations

import base64
import binascii

from bs4 import BeautifulSoup

from core.domain.models import BodyKind, Diagnostic

UNDECODABLE_LOG = "The compilation log could not be decoded."
NO_SPECIFIC_LOG = (
    "Could not extract a specific log. The full response is likely an HTML error page from the service."
)
EMPTY_LOG = "The service returned no log output."


def _text(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")


def _from_plain_text(body: bytes) -> str:
    return _text(body).strip() or EMPTY_LOG


def _from_encoded_blob(body: bytes) -> str:
    # Los saltos de línea (MIME) no son parte del alfabeto; se quitan antes de validar.
    compact = b"".join(body.split())
    if not compact:
        return EMPTY_LOG
    try:
        decoded = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError):
        return UNDECODABLE_LOG
    return _text(decoded)


def _from_html_page(body: bytes) -> str:
    soup = BeautifulSoup(_text(body), "html.parser")
    pre = soup.find("pre")
    if pre is None:
        return NO_SPECIFIC_LOG
    return pre.get_text().strip() or EMPTY_LOG


def extract_log(diagnostic: Diagnostic) -> str:
    """Normaliza el cuerpo de un `Diagnostic` a texto plano."""

    if diagnostic.body_kind is BodyKind.ENCODED_BLOB:
        return _from_encoded_blob(diagnostic.raw_body)
    if diagnostic.body_kind is BodyKind.HTML_PAGE:
        return _from_html_page(diagnostic.raw_body)
    return _from_plain_text(diagnostic.raw_body)
