"""Almacén de preferencias en un fichero JSON.

Equivalente mínimo a un key/value store de plataforma: cada escritura
reescribe el fichero completo con formato estable.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

LOGGER = logging.getLogger(__name__)


class JsonPreferenceStore:
    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except ValueError:
            LOGGER.warning("Preferences file %s is not valid JSON; starting empty", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )

    def get_int(self, key: str, default: int) -> int:
        value = self._load().get(key, default)
        return value if isinstance(value, int) and not isinstance(value, bool) else default

    def put_int(self, key: str, value: int) -> None:
        data = self._load()
        data[key] = int(value)
        self._save(data)

    def remove(self, *keys: str) -> None:
        data = self._load()
        for key in keys:
            data.pop(key, None)
        self._save(data)
