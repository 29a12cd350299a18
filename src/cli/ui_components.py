"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import AcquisitionResult, ConfirmationPrompt, DownloadOutcome, KeyboardHeightPreference


def print_banner(console: Console) -> None:
    title = Text("keyman-dl", style="bold cyan")
    subtitle = Text("Keyboards • Packages • Fonts", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_installed_table(result: AcquisitionResult) -> Table:
    """Tabla con los teclados instalados (paquete) o el teclado descargado."""

    table = Table(title=f"Package {result.package_id or '-'}")
    table.add_column("Keyboard", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Language", style="green")
    table.add_column("Version", style="magenta")

    rows = result.installed_keyboards or ([result.keyboard] if result.keyboard else [])
    for kb in rows:
        table.add_row(
            kb.get("keyboardId", ""),
            kb.get("keyboardName", ""),
            f"{kb.get('languageName', '')} ({kb.get('languageId', '')})",
            kb.get("version", ""),
        )
    return table


def build_prompt_panel(prompt: ConfirmationPrompt) -> Panel:
    return Panel(Text(prompt.text), title=Text(prompt.title, style="bold yellow"), border_style="yellow")


def outcome_text(result: AcquisitionResult) -> Text:
    styles = {
        DownloadOutcome.SUCCESS: ("Installed", "green"),
        DownloadOutcome.NO_CHANGE_EXISTS: ("Already installed", "cyan"),
        DownloadOutcome.NEEDS_CONFIRMATION: ("Waiting for confirmation", "yellow"),
        DownloadOutcome.FAILED: ("Failed", "red"),
        DownloadOutcome.CANCELLED: ("Cancelled", "yellow"),
    }
    label, style = styles[result.outcome]
    text = Text(label, style=f"bold {style}")
    if result.error_kind and result.outcome is not DownloadOutcome.NEEDS_CONFIRMATION:
        text.append(f" [{result.error_kind}] {result.error_message or ''}", style="dim")
    return text


def build_height_table(pref: KeyboardHeightPreference) -> Table:
    table = Table(title="Keyboard height")
    table.add_column("Orientation", style="cyan")
    table.add_column("Height (px)", style="white")
    table.add_row("portrait", str(pref.portrait) if pref.portrait is not None else "default")
    table.add_row("landscape", str(pref.landscape) if pref.landscape is not None else "default")
    return table
