"""Unit tests for the two-phase result lookup."""

import pytest
from fake_transport import FakeTransport

from core.domain.models import RawResponse, Reference
from core.services.reference_resolver import ReferenceResolver


@pytest.mark.unit
def test_result_url_defaults_to_service_directory(settings):
    resolver = ReferenceResolver(settings, FakeTransport())

    assert resolver.result_url(Reference(token="42")) == "https://tex.example/cgi-bin/42"


@pytest.mark.unit
def test_result_url_uses_configured_base(settings):
    settings = settings.model_copy(update={"result_base_url": "https://tex.example/results"})
    resolver = ReferenceResolver(settings, FakeTransport())

    assert resolver.result_url(Reference(token="a1b2.pdf")) == "https://tex.example/results/a1b2.pdf"


@pytest.mark.unit
def test_result_url_encodes_the_token(settings):
    resolver = ReferenceResolver(settings, FakeTransport())

    assert resolver.result_url(Reference(token="my doc/../x")) == "https://tex.example/cgi-bin/my%20doc%2F..%2Fx"


@pytest.mark.unit
@pytest.mark.parametrize(("token", "segment"), [("..", "%2E%2E"), (".", "%2E"), ("../../etc", "..%2F..%2Fetc")])
def test_result_url_stays_under_the_base(settings, token, segment):
    resolver = ReferenceResolver(settings, FakeTransport())

    url = resolver.result_url(Reference(token=token))

    assert url == f"https://tex.example/cgi-bin/{segment}"


@pytest.mark.unit
def test_result_url_is_deterministic(settings):
    resolver = ReferenceResolver(settings, FakeTransport())

    assert resolver.result_url(Reference(token="7")) == resolver.result_url(Reference(token="7"))


@pytest.mark.unit
@pytest.mark.anyio
async def test_resolve_fetches_once_with_deadline(settings):
    response = RawResponse(status_code=200, content_type="application/pdf", body=b"%PDF-1.4")
    transport = FakeTransport(fetch_responses=[response])
    resolver = ReferenceResolver(settings, transport)

    raw = await resolver.resolve(Reference(token="42"), timeout=3.5)

    assert raw == response
    assert transport.fetched == ["https://tex.example/cgi-bin/42"]
    assert transport.timeouts == [3.5]
