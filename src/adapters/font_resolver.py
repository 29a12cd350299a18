"""Resolución de URLs de fuentes.

Los catálogos describen cada fuente como `{"family": ..., "source": ...}`,
donde `source` es un string o una lista de strings. Solo se descargan los
formatos que el teclado puede usar: ttf/otf siempre, svg/woff solo para la
fuente del teclado en pantalla (OSK).
"""

from __future__ import annotations

import logging
from typing import Any

from core.domain.errors import MalformedResponse

LOGGER = logging.getLogger(__name__)

FONT_SOURCE_KEY = "source"


def _accept_source(source: str, *, is_osk_font: bool) -> str | None:
    if ".svg#" in source:
        return source[: source.index(".svg#") + len(".svg")] if is_osk_font else None
    # Extension checks apply to the URL path, never to a fragment.
    path = source.split("#", 1)[0]
    if path.endswith(".ttf") or path.endswith(".otf"):
        return path
    if is_osk_font and (path.endswith(".svg") or path.endswith(".woff")):
        return path
    return None


def resolve_font_urls(
    font: Any,
    base_uri: str,
    is_osk_font: bool,
    *,
    strict: bool = False,
) -> list[str] | None:
    """Absolute URLs to download for a font descriptor.

    Returns `None` when there is nothing usable to read (absent or malformed
    metadata), which callers treat as "no fonts". With `strict=True`
    malformed metadata raises `MalformedResponse` instead.
    """

    if font is None:
        return None

    sources: Any = font.get(FONT_SOURCE_KEY) if isinstance(font, dict) else font
    if isinstance(sources, str):
        sources = [sources]

    if not isinstance(sources, list) or not all(isinstance(s, str) for s in sources):
        if strict:
            raise MalformedResponse(f"Malformed font metadata: {font!r}")
        LOGGER.info("Ignoring malformed font metadata: %r", font)
        return None

    urls: list[str] = []
    for source in sources:
        accepted = _accept_source(source, is_osk_font=is_osk_font)
        if accepted is not None:
            urls.append(base_uri + accepted)
    return urls
