"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- El cliente de compilación recibe `AppSettings` explícitamente en su
  constructor; solo la CLI lo construye desde el entorno.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "remote-tex"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "remote-tex"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "remote-tex"
    return Path.home() / ".config" / "remote-tex"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario.

    Un valor vacío elimina la clave (p.ej. para desactivar el relay).
    """

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    for key, value in values.items():
        if value is None:
            continue
        if value == "":
            existing.pop(key, None)
        else:
            existing[key] = value

    lines = ["# remote-tex user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración del cliente de compilación remota.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único valor de configuración que se pasa al cliente, de modo que
      varias configuraciones pueden convivir en el mismo proceso.
    """

    model_config = SettingsConfigDict(
        env_prefix="REMOTE_TEX_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    service_endpoint: str = Field(
        default="https://texlive.net/cgi-bin/latexcgi",
        min_length=8,
        description="URL del servicio de compilación (endpoint de envío).",
    )
    relay_endpoint: str | None = Field(
        default=None,
        description="Prefijo de un relay intermedio; la URL destino se concatena al final.",
    )
    relay_encode_target: bool = Field(
        default=True,
        description="Codificar (percent-encoding) la URL destino al concatenarla al relay.",
    )
    result_base_url: str | None = Field(
        default=None,
        description="Base para recuperar resultados en el protocolo de dos fases "
        "(por defecto, el directorio de `service_endpoint`).",
    )

    engine: str = Field(
        default="pdflatex",
        min_length=1,
        description="Identificador del motor de compilación remoto.",
    )
    return_type: str = Field(
        default="pdf",
        min_length=1,
        description="Tipo de salida solicitado al servicio.",
    )
    source_field: str = Field(
        default="filecontents",
        min_length=1,
        description="Nombre del campo del formulario que transporta el documento.",
    )
    engine_field: str = Field(
        default="engine",
        min_length=1,
        description="Nombre del campo del formulario con el motor.",
    )
    return_type_field: str = Field(
        default="return_type",
        min_length=1,
        description="Nombre del campo del formulario con el tipo de salida.",
    )

    http_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Plazo por round-trip (segundos) si el llamador no aporta uno.",
    )
    user_agent: str = Field(
        default="remote-tex/0.1 (+https://local)",
        min_length=1,
        description="User-Agent de las peticiones salientes.",
    )

    @field_validator("service_endpoint", "relay_endpoint", "result_base_url")
    @classmethod
    def _require_http_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        if not value.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return value

    def resolved_result_base_url(self) -> str:
        """Base para el protocolo de dos fases (termina siempre en '/')."""

        base = self.result_base_url or self.service_endpoint.rsplit("/", 1)[0]
        return base if base.endswith("/") else base + "/"
