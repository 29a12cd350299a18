"""Error taxonomy for keyboard acquisition.

Every failure raised by the catalog client, the downloader or the package
installer is an `AcquisitionError`. The orchestrator catches them at its
single exit path and turns them into a negative result code; `kind` is the
stable identifier that ends up in the DOWNLOAD_FINISHED payload.
"""

from __future__ import annotations

from core.domain.models import ConflictReason


class AcquisitionError(Exception):
    """Base class for failures that abort an acquisition."""

    kind = "acquisition_error"


class InvalidRequest(AcquisitionError):
    """Required identifiers are missing from the request."""

    kind = "invalid_request"


class ServerUnreachable(AcquisitionError):
    """The catalog could not be fetched or did not return a JSON object."""

    kind = "server_unreachable"


class MalformedResponse(AcquisitionError):
    """Required fields are absent from the catalog response."""

    kind = "malformed_response"


class InvalidPackageId(AcquisitionError):
    kind = "invalid_package_id"


class DownloadFailed(AcquisitionError):
    """A single resource transfer failed; the whole set is aborted."""

    kind = "download_failed"


class InstallConflict(AcquisitionError):
    """The package already exists at an equal or higher version."""

    kind = "install_conflict"

    def __init__(self, message: str, *, reason: ConflictReason) -> None:
        super().__init__(message)
        self.reason = reason


class InstallFailed(AcquisitionError):
    kind = "install_failed"


class AcquisitionCancelled(AcquisitionError):
    kind = "cancelled"
