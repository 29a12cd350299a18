"""Cooperative cancellation for acquisitions.

The token is checked before each network call. A transfer already in
flight is not interrupted.
"""

from __future__ import annotations

import threading

from core.domain.errors import AcquisitionCancelled


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AcquisitionCancelled("Download cancelled")
