import os

import pytest

from core.config import AppSettings

SERVICE_ENDPOINT = "https://tex.example/cgi-bin/latexcgi"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(monkeypatch, tmp_path) -> AppSettings:
    """Settings isolated from the developer's .env files and REMOTE_TEX_* variables."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.upper().startswith("REMOTE_TEX_"):
            monkeypatch.delenv(name, raising=False)
    return AppSettings(_env_file=None, service_endpoint=SERVICE_ENDPOINT)


@pytest.fixture
def pdf_bytes() -> bytes:
    return b"%PDF-1.5\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n%%EOF\n"
