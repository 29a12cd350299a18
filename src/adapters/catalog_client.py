"""Cliente del catálogo de teclados (cloud y distribución ad-hoc).

Dos formas de respuesta:
- Cloud:  {"options": {...}, "language": {"id", "name", "keyboards": [{...}]}}
- Legacy: {"options": {...}, "keyboard": {"id", "name", "languages": [{...}], ...}}

Este módulo es I/O puro (HTTP) + parsing; no decide qué hacer con el teclado.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote_plus

import httpx

from adapters.http_client import fetch_json_object
from core.config import AppSettings
from core.domain.errors import InvalidRequest, MalformedResponse
from core.domain.models import UNDEFINED_PACKAGE_ID, KeyboardDescriptor, KeyboardRequest, is_safe_path_component

KEY_OPTIONS = "options"
KEY_KEYBOARD_BASE_URI = "keyboardBaseUri"
KEY_FONT_BASE_URI = "fontBaseUri"
KEY_LANGUAGE = "language"
KEY_LANGUAGES = "languages"
KEY_KEYBOARDS = "keyboards"
KEY_KEYBOARD = "keyboard"


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_request(request: KeyboardRequest) -> None:
    if _blank(request.package_id):
        raise InvalidRequest("Invalid keyboard: missing package ID")
    if not request.is_custom and (_blank(request.language_id) or _blank(request.keyboard_id)):
        raise InvalidRequest("Invalid keyboard: language and keyboard IDs are required")


def build_cloud_url(settings: AppSettings, language_id: str, keyboard_id: str) -> str:
    return (
        f"{settings.api_base_url}languages/{language_id}/{keyboard_id}"
        f"?device={settings.api_device_type()}"
    )


def build_remote_url(settings: AppSettings, filename: str) -> str:
    return f"{settings.api_remote_url}{quote_plus(filename)}&device={settings.api_device_type()}"


def resolve_request_url(request: KeyboardRequest, settings: AppSettings) -> str:
    """URL to fetch for `request` (direct URL, remote redirect or cloud catalog)."""

    validate_request(request)
    if request.is_custom:
        if request.is_direct:
            if _blank(request.url):
                raise InvalidRequest("Invalid keyboard: direct download without URL")
            return str(request.url)
        return build_remote_url(settings, request.filename)
    return build_cloud_url(settings, str(request.language_id), str(request.keyboard_id))


def is_custom_url(url: str | None, settings: AppSettings | None = None) -> bool:
    """True when `url` points at neither the cloud catalog nor the remote API."""

    if url is None:
        return False
    settings = settings or AppSettings()
    return settings.api_base_url not in url and settings.api_remote_url not in url


def _require_dict(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedResponse(f"The keyboard could not be installed: missing {what}")
    return value


def _str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def parse_keyboard_descriptor(data: dict[str, Any], *, is_custom: bool) -> KeyboardDescriptor:
    """Build a `KeyboardDescriptor` from a catalog (or legacy ad-hoc) response."""

    options = _require_dict(data.get(KEY_OPTIONS), KEY_OPTIONS)
    kb_base_uri = _str(options.get(KEY_KEYBOARD_BASE_URI))
    if not kb_base_uri:
        raise MalformedResponse("The keyboard could not be installed: missing options.keyboardBaseUri")
    font_base_uri = _str(options.get(KEY_FONT_BASE_URI))

    if not is_custom:
        language = _require_dict(data.get(KEY_LANGUAGE), KEY_LANGUAGE)
        keyboards = language.get(KEY_KEYBOARDS)
        if not isinstance(keyboards, list) or not keyboards:
            raise MalformedResponse("The keyboard could not be installed: no keyboards for language")
        keyboard = _require_dict(keyboards[0], "language.keyboards[0]")
        language_id = _str(language.get("id"))
        language_name = _str(language.get("name"))
    else:
        keyboard = _require_dict(data.get(KEY_KEYBOARD), KEY_KEYBOARD)
        languages = keyboard.get(KEY_LANGUAGES)
        if not isinstance(languages, list):
            raise MalformedResponse("The keyboard could not be installed: missing keyboard.languages")
        ids: list[str] = []
        names: list[str] = []
        for entry in languages:
            entry = _require_dict(entry, "keyboard.languages[]")
            if "id" not in entry or "name" not in entry:
                raise MalformedResponse("The keyboard could not be installed: incomplete language entry")
            ids.append(_str(entry["id"]))
            names.append(_str(entry["name"]))
        language_id = ";".join(ids)
        language_name = ";".join(names)

    keyboard_id = _str(keyboard.get("id"))
    name = _str(keyboard.get("name"))
    filename = _str(keyboard.get("filename"))
    if not keyboard_id or not name or not language_name or not filename:
        raise MalformedResponse("The keyboard could not be installed: incomplete keyboard entry")
    package_id = _str(keyboard.get("packageID"), UNDEFINED_PACKAGE_ID) or UNDEFINED_PACKAGE_ID
    if not is_safe_path_component(package_id):
        raise MalformedResponse(f"The keyboard could not be installed: invalid packageID {package_id!r}")

    return KeyboardDescriptor(
        keyboard_id=keyboard_id,
        package_id=package_id,
        name=name,
        version=_str(keyboard.get("version"), "1.0") or "1.0",
        filename=filename,
        language_id=language_id,
        language_name=language_name,
        keyboard_base_uri=kb_base_uri,
        font_base_uri=font_base_uri,
        font=keyboard.get("font"),
        osk_font=keyboard.get("oskFont"),
    )


class CatalogClient:
    """Fetches keyboard descriptors from the catalog or a legacy JSON URL."""

    def __init__(self, client: httpx.AsyncClient, settings: AppSettings | None = None) -> None:
        self._client = client
        self._settings = settings or AppSettings()

    async def fetch_json(self, url: str) -> dict[str, Any]:
        return await fetch_json_object(self._client, url)

    async def fetch_descriptor(self, url: str, *, is_custom: bool) -> KeyboardDescriptor:
        data = await self.fetch_json(url)
        return parse_keyboard_descriptor(data, is_custom=is_custom)
