"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y redirects para catálogo y descargas.
- Facilita testeo: se puede inyectar un `transport` (p.ej. `httpx.MockTransport`).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlsplit

import httpx

from core.config import AppSettings
from core.domain.errors import DownloadFailed, ServerUnreachable
from core.domain.models import is_safe_path_component

LOGGER = logging.getLogger(__name__)


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    El timeout es acotado y no hay reintentos: un fallo de red termina la
    descarga con error en lugar de quedarse colgada.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json, */*;q=0.8",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def filename_from_url(url: str) -> str:
    """Last path segment of `url`, without query string or fragment."""

    path = urlsplit(url).path
    return unquote(path.rsplit("/", 1)[-1])


async def fetch_json_object(client: httpx.AsyncClient, url: str) -> dict[str, Any]:
    """GET `url` and return its JSON object root.

    Any transport error, non-2xx status or non-object root is reported as
    `ServerUnreachable`.
    """

    try:
        resp = await client.get(url)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise ServerUnreachable(f"Could not reach server: {url} ({exc})") from exc

    if not isinstance(data, dict):
        raise ServerUnreachable(f"Unexpected JSON root from {url}")
    return data


async def download_file(
    client: httpx.AsyncClient,
    url: str,
    destination: Path,
    filename: str | None = None,
) -> Path:
    """Stream `url` into `destination/filename` (filename defaults to the URL's).

    Writes to a `.part` file first so a failed transfer never leaves a
    truncated file under the final name.
    """

    name = filename or filename_from_url(url)
    if not name:
        raise DownloadFailed(f"Cannot derive a filename from {url}")
    if not is_safe_path_component(name):
        raise DownloadFailed(f"Refusing unsafe filename {name!r} from {url}")

    destination.mkdir(parents=True, exist_ok=True)
    target = destination / name
    if not target.resolve().is_relative_to(destination.resolve()):
        raise DownloadFailed(f"Refusing to write outside {destination}: {name!r}")
    partial = target.with_name(target.name + ".part")

    LOGGER.debug("Downloading %s -> %s", url, target)
    try:
        async with client.stream("GET", url) as resp:
            resp.raise_for_status()
            with partial.open("wb") as fh:
                async for chunk in resp.aiter_bytes():
                    fh.write(chunk)
    except (httpx.HTTPError, OSError) as exc:
        partial.unlink(missing_ok=True)
        raise DownloadFailed(f"Download failed: {url} ({exc})") from exc

    partial.replace(target)
    return target
