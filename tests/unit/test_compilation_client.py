"""Tests for the compilation facade: state machine, error taxonomy, totality."""

import asyncio
import base64
import json

import httpx
import pytest
from fake_transport import FakeTransport

from core.domain.errors import TransportFailure
from core.domain.models import (
    PDF_MEDIA_TYPE,
    CompilationFailure,
    CompilationSuccess,
    ErrorKind,
    RawResponse,
    TransportFailureKind,
)
from core.services.compilation_client import CompilationClient
from core.services.diagnostics import UNDECODABLE_LOG

pytestmark = pytest.mark.anyio

DOCUMENT = "\\documentclass{article}\\begin{document}Hi\\end{document}"


def _pdf(body: bytes) -> RawResponse:
    return RawResponse(status_code=200, content_type="application/pdf", body=body)


def _json(payload: dict) -> RawResponse:
    return RawResponse(status_code=200, content_type="application/json", body=json.dumps(payload).encode())


@pytest.mark.unit
async def test_pdf_response_is_success_with_exact_bytes(settings, pdf_bytes):
    transport = FakeTransport(submit_response=_pdf(pdf_bytes))
    client = CompilationClient(settings, transport=transport)

    result = await client.compile(DOCUMENT)

    assert isinstance(result, CompilationSuccess)
    assert result.ok
    assert result.artifact == pdf_bytes
    assert result.media_type == PDF_MEDIA_TYPE
    assert transport.submitted[0].source_text == DOCUMENT
    assert transport.fetched == []


@pytest.mark.unit
async def test_html_log_is_compilation_failure(settings):
    raw = RawResponse(status_code=200, content_type="text/html", body=b"<html><pre>Error on line 4</pre></html>")
    client = CompilationClient(settings, transport=FakeTransport(submit_response=raw))

    result = await client.compile(DOCUMENT)

    assert isinstance(result, CompilationFailure)
    assert not result.ok
    assert result.error.kind is ErrorKind.COMPILATION_FAILED
    assert result.error.log == "Error on line 4"
    assert "fix the LaTeX source" in result.error.hint


@pytest.mark.unit
async def test_reference_is_resolved_once(settings, pdf_bytes):
    transport = FakeTransport(
        submit_response=_json({"status": "success", "id": 42}),
        fetch_responses=[_pdf(pdf_bytes)],
    )
    client = CompilationClient(settings, transport=transport)

    result = await client.compile(DOCUMENT, timeout=7)

    assert isinstance(result, CompilationSuccess)
    assert result.artifact == pdf_bytes
    assert transport.fetched == ["https://tex.example/cgi-bin/42"]
    assert transport.timeouts == [7, 7]


@pytest.mark.unit
async def test_second_reference_is_protocol_violation(settings):
    transport = FakeTransport(
        submit_response=_json({"status": "success", "id": 42}),
        fetch_responses=[_json({"status": "success", "id": 43})],
    )
    client = CompilationClient(settings, transport=transport)

    result = await client.compile(DOCUMENT)

    assert isinstance(result, CompilationFailure)
    assert result.error.kind is ErrorKind.PROTOCOL_VIOLATION
    assert result.error.cause is TransportFailureKind.PROTOCOL
    assert len(transport.fetched) == 1
    assert "report a bug" in result.error.hint


@pytest.mark.unit
async def test_reference_then_log_is_compilation_failure(settings):
    transport = FakeTransport(
        submit_response=_json({"status": "success", "filename": "out.pdf"}),
        fetch_responses=[RawResponse(status_code=200, content_type="text/plain", body=b"! Emergency stop.\n")],
    )
    client = CompilationClient(settings, transport=transport)

    result = await client.compile(DOCUMENT)

    assert isinstance(result, CompilationFailure)
    assert result.error.kind is ErrorKind.COMPILATION_FAILED
    assert result.error.log == "! Emergency stop."


@pytest.mark.unit
async def test_connection_reset_on_submit_is_unreachable(settings):
    transport = FakeTransport(submit_error=TransportFailure(TransportFailureKind.RESET, "connection reset by peer"))
    client = CompilationClient(settings, transport=transport)

    result = await client.compile(DOCUMENT)

    assert isinstance(result, CompilationFailure)
    assert result.error.kind is ErrorKind.TRANSPORT_UNREACHABLE
    assert result.error.cause is TransportFailureKind.RESET
    assert result.error.is_retryable
    assert transport.fetched == []


@pytest.mark.unit
async def test_invalid_encoded_log_is_still_compilation_failure(settings):
    raw = _json({"status": "error", "encoding": "base64", "log": "@@not-base64@@"})
    client = CompilationClient(settings, transport=FakeTransport(submit_response=raw))

    result = await client.compile(DOCUMENT)

    assert isinstance(result, CompilationFailure)
    assert result.error.kind is ErrorKind.COMPILATION_FAILED
    assert result.error.log == UNDECODABLE_LOG


@pytest.mark.unit
async def test_encoded_log_is_decoded(settings):
    log = "! LaTeX Error: Environment foo undefined."
    raw = _json({"status": "error", "log_base64": base64.b64encode(log.encode()).decode()})
    client = CompilationClient(settings, transport=FakeTransport(submit_response=raw))

    result = await client.compile(DOCUMENT)

    assert result.error.log == log


@pytest.mark.unit
async def test_relay_gateway_error_is_relay_failure(settings):
    raw = RawResponse(status_code=502, content_type="text/html", body=b"<h1>502</h1>", via_relay=True)
    client = CompilationClient(settings, transport=FakeTransport(submit_response=raw))

    result = await client.compile(DOCUMENT)

    assert result.error.kind is ErrorKind.RELAY_FAILURE
    assert result.error.status_code == 502


@pytest.mark.unit
@pytest.mark.parametrize(
    ("raw", "kind"),
    [
        (
            RawResponse(status_code=502, content_type="text/plain", body=b"Bad Gateway", via_relay=True),
            ErrorKind.RELAY_FAILURE,
        ),
        (
            RawResponse(
                status_code=503,
                content_type="application/json",
                body=b'{"error": "upstream timed out"}',
                via_relay=True,
            ),
            ErrorKind.RELAY_FAILURE,
        ),
        (
            RawResponse(status_code=500, content_type="text/plain", body=b"Internal Server Error"),
            ErrorKind.UPSTREAM_REJECTED,
        ),
    ],
)
async def test_server_error_pages_are_not_compilation_logs(settings, raw, kind):
    client = CompilationClient(settings, transport=FakeTransport(submit_response=raw))

    result = await client.compile(DOCUMENT)

    assert isinstance(result, CompilationFailure)
    assert result.error.kind is kind
    assert result.error.log is None
    assert result.error.status_code == raw.status_code


@pytest.mark.unit
async def test_upstream_rejection(settings):
    raw = RawResponse(status_code=400, content_type="text/html", body=b"<h1>Bad Request</h1>")
    client = CompilationClient(settings, transport=FakeTransport(submit_response=raw))

    result = await client.compile(DOCUMENT)

    assert result.error.kind is ErrorKind.UPSTREAM_REJECTED
    assert not result.error.is_retryable


@pytest.mark.unit
async def test_unexpected_errors_are_returned_not_raised(settings):
    client = CompilationClient(settings, transport=FakeTransport(submit_error=RuntimeError("bug")))

    result = await client.compile(DOCUMENT)

    assert isinstance(result, CompilationFailure)
    assert result.error.kind is ErrorKind.PROTOCOL_VIOLATION
    assert "RuntimeError" in result.error.message


@pytest.mark.unit
async def test_cancellation_becomes_a_result(settings):
    transport = FakeTransport(hang=True)
    client = CompilationClient(settings, transport=transport)

    task = asyncio.create_task(client.compile(DOCUMENT))
    await asyncio.sleep(0.01)
    task.cancel()
    result = await task

    assert isinstance(result, CompilationFailure)
    assert result.error.kind is ErrorKind.TRANSPORT_UNREACHABLE
    assert result.error.cause is TransportFailureKind.CANCELLED


@pytest.mark.unit
async def test_concurrent_calls_are_independent(settings, pdf_bytes):
    ok = CompilationClient(settings, transport=FakeTransport(submit_response=_pdf(pdf_bytes)))
    bad = CompilationClient(
        settings,
        transport=FakeTransport(submit_response=RawResponse(status_code=200, content_type="text/plain", body=b"err")),
    )

    results = await asyncio.gather(ok.compile(DOCUMENT), bad.compile(DOCUMENT), ok.compile(DOCUMENT))

    assert [r.ok for r in results] == [True, False, True]


@pytest.mark.unit
async def test_two_phase_protocol_over_http(settings, pdf_bytes):
    """End to end through httpx: POST returns a reference, GET returns the PDF."""
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(f"{request.method} {request.url.path}")
        if request.method == "POST":
            return httpx.Response(200, json={"status": "success", "filename": "job-9.pdf"})
        return httpx.Response(200, headers={"content-type": "application/pdf"}, content=pdf_bytes)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = CompilationClient(settings, http_client=http_client)
        result = await client.compile(DOCUMENT)

    assert isinstance(result, CompilationSuccess)
    assert result.artifact == pdf_bytes
    assert calls == ["POST /cgi-bin/latexcgi", "GET /cgi-bin/job-9.pdf"]


@pytest.mark.unit
async def test_network_failure_over_http(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        result = await CompilationClient(settings, http_client=http_client).compile(DOCUMENT)

    assert result.error.kind is ErrorKind.TRANSPORT_UNREACHABLE
    assert result.error.cause is TransportFailureKind.UNREACHABLE
    assert "retry later" in result.error.hint


@pytest.mark.unit
def test_compile_sync(settings, pdf_bytes):
    client = CompilationClient(settings, transport=FakeTransport(submit_response=_pdf(pdf_bytes)))

    result = client.compile_sync(DOCUMENT)

    assert isinstance(result, CompilationSuccess)
