"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from adapters.catalog_client import build_cloud_url
from adapters.http_client import build_async_client
from core.config import AppSettings, get_user_env_file

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return response.is_success, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


def _check_writable(path: Path) -> tuple[bool, str]:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return False, str(exc)
    if not os.access(path, os.W_OK):
        return False, "not writable"
    return True, str(path)


@app.command()
def run(
    language: str = typer.Option("en", help="Language ID used for the catalog check."),
    keyboard: str = typer.Option("sil_euro_latin", help="Keyboard ID used for the catalog check."),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="keyman-dl Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    env_file = get_user_env_file()
    table.add_row("User config", "OK" if env_file.exists() else "OPTIONAL", str(env_file))
    table.add_row("Catalog API", "OK", settings.api_base_url)
    table.add_row("Device type", "OK", settings.api_device_type())
    table.add_row("HTTP timeout", "OK", f"{settings.http_timeout_seconds:.0f}s (no retries)")

    ok_dir, detail_dir = _check_writable(settings.packages_dir())
    table.add_row("Packages dir", "OK" if ok_dir else "FAIL", detail_dir)

    check_url = build_cloud_url(settings, language, keyboard)
    ok_http, detail_http = asyncio.run(_check_http(check_url, settings))
    table.add_row("Catalog connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not ok_http:
        _console.print(
            "\n[yellow]Note:[/yellow] check network access or set KEYMAN_DL_API_BASE_URL "
            "(`keyman-dl config set api_base_url <url>`)."
        )
