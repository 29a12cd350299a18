"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP/instalador) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "keyman-dl"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "keyman-dl"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "keyman-dl"
    return Path.home() / ".config" / "keyman-dl"


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


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# keyman-dl user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Un único contrato de configuración para CLI, catálogo, descargas e
    instalador de paquetes.
    """

    model_config = SettingsConfigDict(
        env_prefix="KEYMAN_DL_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api_base_url: str = Field(
        default="https://r.keymanweb.com/api/3.0/",
        min_length=8,
        description="Base URL of the cloud keyboard catalog.",
    )
    api_remote_url: str = Field(
        default="https://r.keymanweb.com/api/2.0/remote?url=",
        min_length=8,
        description="Redirect endpoint for ad-hoc (legacy JSON) keyboards.",
    )
    device_type: Literal["phone", "tablet"] = Field(
        default="phone",
        description="Device class reported to the catalog.",
    )

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Timeout per request (seconds). Requests are never retried.",
    )
    user_agent: str = Field(
        default="keyman-dl/0.1 (+https://keyman.com)",
        min_length=1,
        description="User-Agent for catalog and file downloads.",
    )

    data_dir: Path | None = Field(
        default=None,
        description="Where installed keyboards and packages live (default: user config dir / data).",
    )
    strict_font_metadata: bool = Field(
        default=False,
        description="Fail the download on malformed font metadata instead of skipping fonts.",
    )

    min_keyboard_height_dp: int = Field(default=150, gt=0)
    max_keyboard_height_dp: int = Field(default=400, gt=0)
    default_keyboard_height_dp: int = Field(default=260, gt=0)

    log_level: str = Field(
        default="WARNING",
        description="Root log level for the CLI (DEBUG, INFO, WARNING, ...).",
    )

    def resolved_data_dir(self) -> Path:
        return self.data_dir or (get_user_config_dir() / "data")

    def packages_dir(self) -> Path:
        return self.resolved_data_dir() / "packages"

    def preferences_path(self) -> Path:
        return get_user_config_dir() / "preferences.json"

    def api_device_type(self) -> str:
        """Device identifier understood by the catalog API."""

        return "androidtablet" if self.device_type == "tablet" else "androidphone"
