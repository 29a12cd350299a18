"""Contrato de almacenamiento clave/valor para preferencias de usuario."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PreferenceStore(Protocol):
    def get_int(self, key: str, default: int) -> int:
        ...

    def put_int(self, key: str, value: int) -> None:
        ...

    def remove(self, *keys: str) -> None:
        ...
