"""Contrato de la plataforma para el permiso de dibujar sobre otras apps."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class OverlayPlatform(Protocol):
    def requires_overlay_permission(self) -> bool:
        """False on platforms where overlays need no runtime permission."""

        ...

    def can_draw_overlays(self) -> bool:
        ...

    def request_overlay_permission(self, request_code: int) -> None:
        """Open the system settings screen; the answer arrives via `on_result`."""

        ...

    def finish(self) -> None:
        ...
