"""Instalador de paquetes `.kmp`.

Un `.kmp` es un zip con un manifiesto `kmp.json` y los ficheros de uno o
más teclados. La instalación extrae el archivo a un directorio temporal
junto al propio `.kmp` y lo mueve a `<packages_dir>/<package_id>/`.

Reglas de versión:
- Si el paquete ya está instalado con una versión igual o superior, no se
  instala nada (lista vacía) salvo con `force=True`.
"""

from __future__ import annotations

import json
import logging
import shutil
import zipfile
from pathlib import Path
from typing import Any

from core.domain.errors import InstallFailed, InvalidPackageId
from core.domain.models import InstalledKeyboard, is_safe_path_component

LOGGER = logging.getLogger(__name__)

MANIFEST = "kmp.json"
KMP_SUFFIX = ".kmp"


def derive_package_id(filename: str) -> str:
    """Package ID for an archive filename (`foo-bar.kmp` -> `foo-bar`)."""

    if not filename or len(filename) < len(KMP_SUFFIX) + 1 or not filename.lower().endswith(KMP_SUFFIX):
        raise InvalidPackageId(f"Invalid KMP filename: {filename!r}")
    package_id = filename[: -len(KMP_SUFFIX)]
    if not package_id.strip() or not is_safe_path_component(package_id):
        raise InvalidPackageId(f"Invalid package ID derived from {filename!r}")
    return package_id


def version_key(version: str) -> tuple[int, ...]:
    """Comparable key for dotted versions; non-numeric parts count as 0."""

    parts: list[int] = []
    for raw in version.strip().split("."):
        digits = "".join(ch for ch in raw if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def _description(info: dict[str, Any], key: str) -> str | None:
    entry = info.get(key)
    if isinstance(entry, dict):
        value = entry.get("description")
        return str(value) if value is not None else None
    if isinstance(entry, str):
        return entry
    return None


class KmpPackageInstaller:
    """Concrete `PackageInstaller` backed by zip archives on disk."""

    def __init__(self, packages_dir: Path) -> None:
        self._packages_dir = packages_dir

    @property
    def packages_dir(self) -> Path:
        return self._packages_dir

    def package_dir(self, package_id: str) -> Path:
        target = self._packages_dir / package_id
        if not is_safe_path_component(package_id) or not target.resolve().is_relative_to(
            self._packages_dir.resolve()
        ):
            raise InvalidPackageId(f"Package ID escapes the packages directory: {package_id!r}")
        return target

    def extraction_dir(self, archive: Path) -> Path:
        return archive.parent / f"{derive_package_id(archive.name)}.temp"

    # -- metadata -----------------------------------------------------------

    def read_manifest(self, archive: Path) -> dict[str, Any]:
        try:
            with zipfile.ZipFile(archive) as zf:
                raw = zf.read(MANIFEST)
        except KeyError as exc:
            raise InstallFailed(f"{archive.name} has no {MANIFEST}") from exc
        except (zipfile.BadZipFile, OSError) as exc:
            raise InstallFailed(f"Corrupt package archive {archive.name}: {exc}") from exc

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise InstallFailed(f"Unreadable {MANIFEST} in {archive.name}") from exc
        if not isinstance(data, dict):
            raise InstallFailed(f"Unexpected {MANIFEST} root in {archive.name}")
        return data

    def _installed_manifest(self, package_id: str) -> dict[str, Any] | None:
        path = self.package_dir(package_id) / MANIFEST
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            LOGGER.warning("Ignoring unreadable installed manifest %s", path)
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _manifest_version(manifest: dict[str, Any]) -> str | None:
        info = manifest.get("info")
        return _description(info, "version") if isinstance(info, dict) else None

    def _compare_with_installed(self, archive: Path) -> int | None:
        """<0 downgrade, 0 same version, >0 upgrade; None when not installed."""

        installed = self._installed_manifest(derive_package_id(archive.name))
        if installed is None:
            return None
        new_version = self._manifest_version(self.read_manifest(archive)) or "0"
        old_version = self._manifest_version(installed) or "0"
        new_key, old_key = version_key(new_version), version_key(old_version)
        return (new_key > old_key) - (new_key < old_key)

    def is_downgrade(self, archive: Path) -> bool:
        cmp = self._compare_with_installed(archive)
        return cmp is not None and cmp < 0

    def is_same_version(self, archive: Path) -> bool:
        return self._compare_with_installed(archive) == 0

    def get_package_name(self, archive: Path) -> str:
        package_id = derive_package_id(archive.name)
        try:
            info = self.read_manifest(archive).get("info")
        except InstallFailed:
            return package_id
        name = _description(info, "name") if isinstance(info, dict) else None
        return name or package_id

    def get_package_version(self, archive: Path, *, installed: bool) -> str:
        if installed:
            manifest = self._installed_manifest(derive_package_id(archive.name))
            if manifest is None:
                raise InstallFailed(f"{archive.name} is not installed")
        else:
            manifest = self.read_manifest(archive)
        version = self._manifest_version(manifest)
        if not version:
            raise InstallFailed(f"No version information for {archive.name}")
        return version

    # -- install ------------------------------------------------------------

    def process_kmp(self, archive: Path, *, force: bool = False) -> list[InstalledKeyboard]:
        package_id = derive_package_id(archive.name)
        manifest = self.read_manifest(archive)

        if not force:
            cmp = self._compare_with_installed(archive)
            if cmp is not None and cmp <= 0:
                LOGGER.info("Package %s already installed at same or newer version", package_id)
                return []

        records = self._keyboard_records(package_id, manifest)
        if not records and not force:
            LOGGER.warning("Package %s contains no installable keyboards", package_id)
            return []

        temp_dir = self.extraction_dir(archive)
        if temp_dir.exists():
            shutil.rmtree(temp_dir)
        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(temp_dir)
        except (zipfile.BadZipFile, OSError) as exc:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise InstallFailed(f"Could not extract {archive.name}: {exc}") from exc

        target = self.package_dir(package_id)
        if target.exists():
            shutil.rmtree(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(temp_dir), str(target))

        LOGGER.info("Installed package %s (%d keyboard records)", package_id, len(records))
        return records

    def _keyboard_records(self, package_id: str, manifest: dict[str, Any]) -> list[InstalledKeyboard]:
        package_version = self._manifest_version(manifest) or "1.0"
        records: list[InstalledKeyboard] = []
        keyboards = manifest.get("keyboards")
        if not isinstance(keyboards, list):
            return records

        for kb in keyboards:
            if not isinstance(kb, dict) or not kb.get("id"):
                continue
            languages = kb.get("languages")
            if not isinstance(languages, list):
                continue
            for lang in languages:
                if not isinstance(lang, dict) or not lang.get("id"):
                    continue
                records.append(
                    {
                        "packageID": package_id,
                        "keyboardId": str(kb["id"]),
                        "keyboardName": str(kb.get("name") or kb["id"]),
                        "languageId": str(lang["id"]).lower(),
                        "languageName": str(lang.get("name") or lang["id"]),
                        "version": str(kb.get("version") or package_version),
                        "isCustom": "N",
                        "font": str(kb.get("displayFont") or ""),
                        "oskFont": str(kb.get("oskFont") or ""),
                    }
                )
        return records
