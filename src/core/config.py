"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- El cliente HTTP y la capa de servicios leen la misma configuración.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "userdesk"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "userdesk"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "userdesk"
    return Path.home() / ".config" / "userdesk"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def default_env_files() -> tuple[str, ...]:
    # Orden: proyecto primero (dev), luego config global de usuario.
    return (".env", str(get_user_env_file()))


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


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# userdesk user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="USERDESK_",
        extra="ignore",
        case_sensitive=False,
        env_file_encoding="utf-8",
    )

    def __init__(self, **values: Any) -> None:
        # La ruta de usuario se resuelve al construir, no al importar el módulo.
        values.setdefault("_env_file", default_env_files())
        super().__init__(**values)

    api_base_url: str = Field(
        default="http://localhost:8000/api",
        description="URL base de la API de usuarios.",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout por request (segundos).",
    )
    user_agent: str = Field(
        default="userdesk/0.1",
        min_length=1,
        description="User-Agent para las peticiones salientes.",
    )
    default_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Headers adicionales para todas las peticiones (JSON en la env var).",
    )

    with_credentials: bool = Field(
        default=False,
        description="Adjunta `auth_token` como Bearer en cada petición.",
    )
    auth_token: SecretStr | None = Field(
        default=None,
        description="Token de acceso para la API (solo se envía con with_credentials).",
    )

    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Intentos totales por llamada (incluye el primero).",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Espera fija entre intentos (segundos).",
    )

    users_endpoint: str = Field(
        default="/users",
        min_length=1,
        description="Endpoint base del recurso User.",
    )
    page_size: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Tamaño de página por defecto para listados.",
    )

    log_level: str = Field(default="WARNING")
    log_format: Literal["json", "text"] = Field(default="text")
