"""Overlay ("draw over other apps") permission request flow.

Two states: on start, either the permission is already available and the
flow finishes, or the system settings screen is requested. The answer for
that request code is logged and the flow finishes.
"""

from __future__ import annotations

import logging
from enum import Enum

from core.interfaces.overlay import OverlayPlatform

LOGGER = logging.getLogger(__name__)

OVERLAY_PERMISSION_REQUEST_CODE = 2323


class OverlayPermissionState(str, Enum):
    IDLE = "idle"
    REQUESTED = "requested"
    GRANTED = "granted"
    DENIED = "denied"
    NOT_NEEDED = "not_needed"


class OverlayPermissionFlow:
    def __init__(self, platform: OverlayPlatform) -> None:
        self._platform = platform
        self.state = OverlayPermissionState.IDLE

    def start(self) -> OverlayPermissionState:
        if self._platform.requires_overlay_permission() and not self._platform.can_draw_overlays():
            self._platform.request_overlay_permission(OVERLAY_PERMISSION_REQUEST_CODE)
            self.state = OverlayPermissionState.REQUESTED
        else:
            self.state = OverlayPermissionState.NOT_NEEDED
            self._platform.finish()
        return self.state

    def on_result(self, request_code: int) -> OverlayPermissionState:
        if request_code != OVERLAY_PERMISSION_REQUEST_CODE:
            return self.state

        if self._platform.requires_overlay_permission() and self._platform.can_draw_overlays():
            LOGGER.debug("Overlay permission granted")
            self.state = OverlayPermissionState.GRANTED
        else:
            LOGGER.debug("Overlay permission denied")
            self.state = OverlayPermissionState.DENIED
        self._platform.finish()
        return self.state
