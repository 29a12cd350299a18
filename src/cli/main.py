"""CLI principal (Typer).

Esta capa es el adaptador de presentación: muestra el progreso, pregunta
al usuario en caso de reinstalación/downgrade y pinta resultados. Toda la
lógica vive en `core.services`.
"""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from adapters.catalog_client import is_custom_url
from adapters.preferences import JsonPreferenceStore
from cli import doctor
from cli.ui_components import (
    build_height_table,
    build_installed_table,
    build_prompt_panel,
    outcome_text,
    print_banner,
)
from core.config import AppSettings, write_user_env_vars
from core.domain.models import DownloadOutcome, KeyboardRequest, Orientation
from core.services.acquisition import AcquisitionHooks, KeyboardAcquirer
from core.services.keyboard_height import (
    KeyboardHeightAdjuster,
    load_preference,
    reset_keyboard_height,
)

app = typer.Typer(no_args_is_help=True, help="Download and install Keyman keyboards and packages.")
height_app = typer.Typer(no_args_is_help=True, help="Show or change the saved keyboard height.")
config_app = typer.Typer(no_args_is_help=True, help="Persist configuration in the user .env file.")
app.add_typer(height_app, name="height")
app.add_typer(config_app, name="config")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@app.command()
def download(
    language: str = typer.Option(None, "--language", "-l", help="Language ID (cloud catalog)."),
    keyboard: str = typer.Option(None, "--keyboard", "-k", help="Keyboard ID (cloud catalog)."),
    package: str = typer.Option(None, "--package", "-p", help="Package ID."),
    url: str = typer.Option(None, "--url", help="Ad-hoc keyboard URL (.kmp or legacy JSON)."),
    direct: bool = typer.Option(False, "--direct", help="Download --url as-is instead of through the remote API."),
    filename: str = typer.Option(None, "--filename", help="Filename passed to the remote API."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Accept reinstall/downgrade prompts."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="No banner."),
) -> None:
    """Download a keyboard from the catalog, or an ad-hoc keyboard/package."""

    is_custom = filename is not None or is_custom_url(url)
    request = KeyboardRequest(
        package_id=package,
        keyboard_id=keyboard,
        language_id=language,
        keyboard_name=keyboard,
        language_name=language,
        is_custom=is_custom,
        is_direct=direct,
        url=url,
        filename=filename or url,
    )

    if not quiet:
        print_banner(_console)

    status = _console.status("Downloading keyboard...")
    def _progress_start(title: str) -> None:
        status.update(f"Downloading {title}...")
        status.start()

    hooks = AcquisitionHooks(progress_start=_progress_start, progress_dismiss=status.stop)
    acquirer = KeyboardAcquirer(AppSettings(), hooks=hooks)

    result = asyncio.run(acquirer.acquire(request))
    pending = result.pending
    if result.needs_confirmation and pending is not None:
        _console.print(build_prompt_panel(pending.prompt))
        try:
            accepted = yes or typer.confirm(pending.prompt.confirm_text, default=False)
        except (typer.Abort, KeyboardInterrupt):
            # The archive waits in a temp dir until a decision is made.
            asyncio.run(acquirer.decline(pending))
            raise
        if accepted:
            result = asyncio.run(acquirer.confirm(pending))
        else:
            result = asyncio.run(acquirer.decline(pending))

    _console.print(outcome_text(result))
    if result.outcome is DownloadOutcome.SUCCESS:
        _console.print(build_installed_table(result))
    elif result.outcome is not DownloadOutcome.CANCELLED:
        raise typer.Exit(code=1)


def _orientation(value: str) -> Orientation:
    try:
        return Orientation(value.lower())
    except ValueError as exc:
        raise typer.BadParameter("orientation must be 'portrait' or 'landscape'") from exc


@height_app.command("show")
def height_show() -> None:
    store = JsonPreferenceStore(AppSettings().preferences_path())
    _console.print(build_height_table(load_preference(store)))


@height_app.command("set")
def height_set(
    pixels: int = typer.Argument(..., help="Height in pixels (clamped to the allowed range)."),
    orientation: str = typer.Option("portrait", "--orientation", "-o"),
    density: float = typer.Option(1.0, "--density", help="Display density (px per dp)."),
) -> None:
    settings = AppSettings()
    store = JsonPreferenceStore(settings.preferences_path())
    adjuster = KeyboardHeightAdjuster(store, orientation=_orientation(orientation), density=density, settings=settings)
    # Same path as a drag gesture: start at 0 and move by -pixels relative to the current height.
    adjuster.press(0)
    adjuster.move(adjuster.current_height - pixels)
    saved = adjuster.release()
    _console.print(f"[green]Saved {orientation} keyboard height:[/green] {saved}px ({adjuster.height_dp}dp)")


@height_app.command("reset")
def height_reset() -> None:
    store = JsonPreferenceStore(AppSettings().preferences_path())
    reset_keyboard_height(store)
    _console.print("[green]Keyboard height reset for both orientations.[/green]")


@config_app.command("set")
def config_set(key: str, value: str) -> None:
    """Store KEY=VALUE (KEYMAN_DL_ prefix added when missing)."""

    name = key.upper()
    if not name.startswith("KEYMAN_DL_"):
        name = f"KEYMAN_DL_{name}"
    env_path = write_user_env_vars({name: value})
    _console.print(f"[green]Saved {name} to:[/green] {env_path}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
