"""Contrato del instalador de paquetes `.kmp`.

Por qué Protocol:
- El orquestador solo necesita "instala el archivo en P y dime qué teclados
  quedaron instalados"; el formato del paquete es asunto del adaptador.
- Permite sustituir el instalador real por un doble en los tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from core.domain.models import InstalledKeyboard


@runtime_checkable
class PackageInstaller(Protocol):
    """Installs keyboard packages from local archives.

    `process_kmp` returns one record per installed keyboard. An empty list
    means nothing new was installed, which callers must disambiguate with
    `is_downgrade` / `is_same_version`. Corrupt archives raise
    `core.domain.errors.InstallFailed`.
    """

    def process_kmp(self, archive: Path, *, force: bool = False) -> list[InstalledKeyboard]:
        ...

    def is_downgrade(self, archive: Path) -> bool:
        ...

    def is_same_version(self, archive: Path) -> bool:
        ...

    def get_package_name(self, archive: Path) -> str:
        ...

    def get_package_version(self, archive: Path, *, installed: bool) -> str:
        """Version of the archive, or of the already-installed copy when `installed`."""

        ...
