"""Keyboard and package acquisition workflow.

One `KeyboardAcquirer.acquire()` call handles one `KeyboardRequest`:

- custom + direct URL ending in `.kmp`      -> download and install the package
- custom, indirect (remote redirect) `.kmp`  -> same
- anything else                              -> fetch the JSON descriptor and
                                                download the loose files

Every exit path (success, failure, cancellation, decision after a
reinstall/downgrade prompt) goes through `_finish`, which dismisses the
progress indicator, removes temporary files and emits DOWNLOAD_FINISHED.
The only exception is a result that needs confirmation: its archive stays
on disk inside a `PendingInstall` until `confirm()` or `decline()`.

Nothing here talks to a UI toolkit; presentation goes through
`AcquisitionHooks` and the prompt carried by the pending result.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import httpx

from adapters.catalog_client import CatalogClient, resolve_request_url
from adapters.font_resolver import resolve_font_urls
from adapters.http_client import build_async_client, download_file, filename_from_url
from adapters.kmp_installer import KMP_SUFFIX, KmpPackageInstaller, derive_package_id
from core.config import AppSettings
from core.domain.errors import (
    AcquisitionCancelled,
    AcquisitionError,
    InstallConflict,
    InstallFailed,
)
from core.domain.models import (
    AcquisitionResult,
    ConflictReason,
    DownloadOutcome,
    KeyboardDescriptor,
    KeyboardRequest,
    PendingInstall,
)
from core.interfaces.installer import PackageInstaller
from core.services.cancellation import CancellationToken
from core.services.conflict_resolver import build_confirmation_prompt
from core.services.event_bus import EventBus, EventType, default_bus

LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]


@dataclass
class AcquisitionHooks:
    """Optional callbacks for UI layers (progress indicator)."""

    progress_start: Callable[[str], None] | None = None
    progress_dismiss: Callable[[], None] | None = None


@dataclass
class _TaskState:
    """Mutable state owned by a single acquisition."""

    request: KeyboardRequest
    package_id: str | None = None
    descriptor: KeyboardDescriptor | None = None
    work_dir: Path | None = None
    archive: Path | None = None
    downloaded: list[Path] = field(default_factory=list)


def download_title(request: KeyboardRequest) -> str:
    """Title shown while a request is being downloaded."""

    if request.url is not None:
        return f"Custom Keyboard: {request.filename}"
    if (request.custom_keyboard or "").strip() and (request.custom_language or "").strip():
        return f"{request.custom_language}_{request.custom_keyboard}"
    return f"{request.language_name}: {request.keyboard_name}"


def script_filename(kb_filename: str, version: str) -> str:
    """Local name for a keyboard script: `{stem}-{version}.js` unless already versioned."""

    base = kb_filename.rsplit("/", 1)[-1]
    if "-" not in kb_filename and base.endswith(".js"):
        return f"{base[:-3]}-{version}.js"
    return base


def _font_text(font: Any) -> str:
    if font is None:
        return ""
    if isinstance(font, str):
        return font
    return json.dumps(font, ensure_ascii=False, sort_keys=True)


def keyboard_info(state: _TaskState) -> dict[str, str]:
    """Flat record describing the keyboard, sent with per-keyboard events."""

    request = state.request
    desc = state.descriptor
    info = {
        "packageID": state.package_id or request.package_id,
        "keyboardId": desc.keyboard_id if desc else (request.keyboard_id or ""),
        "languageId": desc.language_id if desc else (request.language_id or ""),
        "keyboardName": desc.name if desc else (request.keyboard_name or ""),
        "languageName": desc.language_name if desc else (request.language_name or ""),
        "version": desc.version if desc else "1.0",
        "isCustom": "Y" if request.is_custom else "N",
        "font": _font_text(desc.font) if desc else "",
    }
    if desc and desc.osk_font is not None:
        info["oskFont"] = _font_text(desc.osk_font)
    return info


class KeyboardAcquirer:
    """Downloads keyboards/packages and installs them."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        installer: PackageInstaller | None = None,
        bus: EventBus | None = None,
        client_factory: ClientFactory | None = None,
        hooks: AcquisitionHooks | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._installer = installer or KmpPackageInstaller(self._settings.packages_dir())
        self._bus = bus if bus is not None else default_bus
        self._client_factory = client_factory or (lambda: build_async_client(self._settings))
        self._hooks = hooks or AcquisitionHooks()

    @property
    def installer(self) -> PackageInstaller:
        return self._installer

    # -- public API ---------------------------------------------------------

    async def acquire(
        self,
        request: KeyboardRequest,
        token: CancellationToken | None = None,
    ) -> AcquisitionResult:
        token = token or CancellationToken()
        state = _TaskState(request=request)

        try:
            if self._hooks.progress_start:
                self._hooks.progress_start(download_title(request))
            token.raise_if_cancelled()
            url = resolve_request_url(request, self._settings)
            async with self._client_factory() as client:
                if request.is_custom and url.endswith(KMP_SUFFIX):
                    result = await self._download_kmp(client, url, state, token)
                else:
                    result = await self._download_loose(client, url, state, token)
        except InstallConflict as exc:
            if state.archive is not None and state.work_dir is not None and state.package_id:
                return self._pending(state, exc, state.archive, state.work_dir, state.package_id)
            failure = InstallFailed(f"Install conflict without a downloaded package: {exc}")
            LOGGER.warning("Keyboard download failed [%s]: %s", failure.kind, failure)
            result = self._failure(state, DownloadOutcome.FAILED, failure)
        except AcquisitionCancelled as exc:
            LOGGER.info("Download cancelled: %s", download_title(request))
            result = self._failure(state, DownloadOutcome.CANCELLED, exc)
        except AcquisitionError as exc:
            LOGGER.warning("Keyboard download failed [%s]: %s", exc.kind, exc)
            result = self._failure(state, DownloadOutcome.FAILED, exc)
        except asyncio.CancelledError:
            self._finish(state, self._failure(state, DownloadOutcome.CANCELLED, None))
            raise
        except Exception:
            self._finish(state, self._failure(state, DownloadOutcome.FAILED, None))
            raise

        self._finish(state, result)
        return result

    async def confirm(self, pending: PendingInstall) -> AcquisitionResult:
        """User accepted the reinstall/downgrade: force the installation."""

        state = self._state_from_pending(pending)
        try:
            installed = self._installer.process_kmp(pending.archive_path, force=True)
        except AcquisitionError as exc:
            LOGGER.warning("Forced install of %s failed [%s]: %s", pending.package_id, exc.kind, exc)
            result = self._failure(state, DownloadOutcome.FAILED, exc)
        else:
            # Zero records is fine here: the keyboards were already registered.
            self._bus.notify(EventType.PACKAGE_INSTALLED, installed, int(DownloadOutcome.SUCCESS))
            result = AcquisitionResult(
                outcome=DownloadOutcome.SUCCESS,
                package_id=pending.package_id,
                keyboard=keyboard_info(state),
                installed_keyboards=installed,
            )
        self._finish(state, result)
        return result

    async def decline(self, pending: PendingInstall) -> AcquisitionResult:
        state = self._state_from_pending(pending)
        result = AcquisitionResult(
            outcome=DownloadOutcome.CANCELLED,
            package_id=pending.package_id,
            keyboard=keyboard_info(state),
        )
        self._finish(state, result)
        return result

    # -- KMP packages -------------------------------------------------------

    async def _download_kmp(
        self,
        client: httpx.AsyncClient,
        url: str,
        state: _TaskState,
        token: CancellationToken,
    ) -> AcquisitionResult:
        source_filename = filename_from_url(url)
        state.package_id = derive_package_id(source_filename)

        state.work_dir = Path(tempfile.mkdtemp(prefix="keyman-dl-"))
        token.raise_if_cancelled()
        state.archive = await download_file(client, url, state.work_dir, source_filename)
        state.downloaded.append(state.archive)
        token.raise_if_cancelled()

        installed = self._installer.process_kmp(state.archive)
        if not installed:
            if self._installer.is_downgrade(state.archive):
                raise InstallConflict(
                    f"{state.package_id} is installed at a newer version",
                    reason=ConflictReason.DOWNGRADE,
                )
            if self._installer.is_same_version(state.archive):
                raise InstallConflict(
                    f"{state.package_id} is already installed",
                    reason=ConflictReason.REINSTALL,
                )
            raise InstallFailed(f"Package {state.package_id} installed no keyboards")

        self._bus.notify(EventType.PACKAGE_INSTALLED, installed, int(DownloadOutcome.SUCCESS))
        return AcquisitionResult(
            outcome=DownloadOutcome.SUCCESS,
            package_id=state.package_id,
            keyboard=keyboard_info(state),
            installed_keyboards=installed,
        )

    # -- loose keyboards ----------------------------------------------------

    def resource_urls(self, descriptor: KeyboardDescriptor) -> list[str]:
        """Keyboard script URL followed by de-duplicated font URLs."""

        strict = self._settings.strict_font_metadata
        urls = [descriptor.keyboard_url]
        font_urls = resolve_font_urls(descriptor.font, descriptor.font_base_uri, False, strict=strict)
        osk_urls = resolve_font_urls(descriptor.osk_font, descriptor.font_base_uri, True, strict=strict)
        for extra in (font_urls or [], osk_urls or []):
            for url in extra:
                if url not in urls:
                    urls.append(url)
        return urls

    async def _download_loose(
        self,
        client: httpx.AsyncClient,
        url: str,
        state: _TaskState,
        token: CancellationToken,
    ) -> AcquisitionResult:
        catalog = CatalogClient(client, self._settings)
        descriptor = await catalog.fetch_descriptor(url, is_custom=state.request.is_custom)
        state.descriptor = descriptor
        state.package_id = descriptor.package_id

        urls = self.resource_urls(descriptor)
        self._bus.notify(EventType.DOWNLOAD_STARTED, keyboard_info(state), 0)

        destination = self._settings.packages_dir() / descriptor.package_id
        for resource_url in urls:
            token.raise_if_cancelled()
            filename = None
            if resource_url.endswith(".js"):
                filename = script_filename(descriptor.filename, descriptor.version)
            path = await download_file(client, resource_url, destination, filename)
            state.downloaded.append(path)

        LOGGER.info("Downloaded %d files for %s", len(state.downloaded), descriptor.keyboard_id)
        return AcquisitionResult(
            outcome=DownloadOutcome.SUCCESS,
            package_id=descriptor.package_id,
            keyboard=keyboard_info(state),
            downloaded_files=list(state.downloaded),
        )

    # -- exit paths ---------------------------------------------------------

    @staticmethod
    def _state_from_pending(pending: PendingInstall) -> _TaskState:
        return _TaskState(
            request=pending.request,
            package_id=pending.package_id,
            work_dir=pending.work_dir,
            archive=pending.archive_path,
        )

    def _pending(
        self,
        state: _TaskState,
        conflict: InstallConflict,
        archive: Path,
        work_dir: Path,
        package_id: str,
    ) -> AcquisitionResult:
        self._dismiss_progress()
        prompt = build_confirmation_prompt(self._installer, archive, conflict.reason)
        LOGGER.info("Package %s needs confirmation (%s)", package_id, conflict.reason.value)
        return AcquisitionResult(
            outcome=DownloadOutcome.NEEDS_CONFIRMATION,
            package_id=package_id,
            keyboard=keyboard_info(state),
            error_kind=conflict.kind,
            error_message=str(conflict),
            pending=PendingInstall(
                request=state.request,
                package_id=package_id,
                archive_path=archive,
                work_dir=work_dir,
                reason=conflict.reason,
                prompt=prompt,
            ),
        )

    @staticmethod
    def _failure(
        state: _TaskState,
        outcome: DownloadOutcome,
        exc: AcquisitionError | None,
    ) -> AcquisitionResult:
        return AcquisitionResult(
            outcome=outcome,
            package_id=state.package_id,
            keyboard=keyboard_info(state),
            downloaded_files=list(state.downloaded),
            error_kind=exc.kind if exc is not None else (
                "cancelled" if outcome is DownloadOutcome.CANCELLED else "unexpected"
            ),
            error_message=str(exc) if exc is not None else None,
        )

    def _dismiss_progress(self) -> None:
        if self._hooks.progress_dismiss:
            try:
                self._hooks.progress_dismiss()
            except Exception:
                LOGGER.exception("Progress indicator could not be dismissed")

    def _cleanup(self, state: _TaskState) -> None:
        if state.work_dir is None:
            return
        try:
            shutil.rmtree(state.work_dir)
        except FileNotFoundError:
            pass
        except OSError as exc:
            LOGGER.error("Could not remove temporary files in %s: %s", state.work_dir, exc)

    def _finish(self, state: _TaskState, result: AcquisitionResult) -> None:
        self._dismiss_progress()
        self._cleanup(state)

        payload = dict(result.keyboard or keyboard_info(state))
        if result.error_kind:
            payload["error"] = result.error_kind
            payload["errorMessage"] = result.error_message or ""
        self._bus.notify(EventType.DOWNLOAD_FINISHED, payload, result.result_code)
