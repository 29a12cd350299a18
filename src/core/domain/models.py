"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Las peticiones son inmutables: cada descarga recibe su propio
  `KeyboardRequest` en lugar de compartir estado global.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

# Package ID used by keyboards that are not distributed in a .kmp package.
UNDEFINED_PACKAGE_ID = "cloud"

InstalledKeyboard = dict[str, str]


def is_safe_path_component(name: str) -> bool:
    """True when `name` can be joined under a directory without leaving it."""

    if not name or name in (".", ".."):
        return False
    return not any(sep in name for sep in ("/", "\\", "\x00"))


class DownloadOutcome(IntEnum):
    """Result codes carried by DOWNLOAD_FINISHED notifications."""

    SUCCESS = 1
    NO_CHANGE_EXISTS = 0
    NEEDS_CONFIRMATION = -1
    FAILED = -2
    CANCELLED = -3


class ConflictReason(str, Enum):
    DOWNGRADE = "downgrade"
    REINSTALL = "reinstall"


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"

    @classmethod
    def from_dimensions(cls, width: int, height: int) -> "Orientation":
        return cls.PORTRAIT if height > width else cls.LANDSCAPE


class KeyboardRequest(BaseModel):
    """Parameters of a single download invocation.

    Built once from caller input and passed explicitly through the whole
    pipeline, so concurrent downloads never see each other's fields.
    """

    model_config = ConfigDict(frozen=True)

    package_id: str = Field(
        default=UNDEFINED_PACKAGE_ID,
        description="Package identifier; blank input falls back to the undefined package.",
    )
    keyboard_id: str | None = None
    language_id: str | None = None
    keyboard_name: str | None = None
    language_name: str | None = None
    is_custom: bool = False

    custom_keyboard: str | None = None
    custom_language: str | None = None
    is_direct: bool = False
    url: str | None = None
    filename: str = Field(default="unknown")

    @field_validator("package_id", mode="before")
    @classmethod
    def _default_package_id(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value):
            return UNDEFINED_PACKAGE_ID
        return value

    @field_validator("filename", mode="before")
    @classmethod
    def _default_filename(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value):
            return "unknown"
        return value


class KeyboardDescriptor(BaseModel):
    """Keyboard metadata parsed from a catalog or legacy JSON response."""

    keyboard_id: str = Field(..., min_length=1)
    package_id: str = Field(default=UNDEFINED_PACKAGE_ID)
    name: str = Field(..., min_length=1)
    version: str = Field(default="1.0")
    filename: str = Field(..., min_length=1)
    language_id: str = Field(default="")
    language_name: str = Field(..., min_length=1)
    keyboard_base_uri: str = Field(..., min_length=1)
    font_base_uri: str = Field(default="")
    font: Any = Field(default=None, description="Raw font object (`{family, source}`) if present.")
    osk_font: Any = Field(default=None, description="Raw on-screen-keyboard font object if present.")

    @property
    def keyboard_url(self) -> str:
        return self.keyboard_base_uri + self.filename


class ConfirmationPrompt(BaseModel):
    """User-facing text for a reinstall/downgrade confirmation."""

    title: str
    text: str
    confirm_text: str
    cancel_text: str = "Cancel"
    reason: ConflictReason


class PendingInstall(BaseModel):
    """A downloaded archive waiting for the user's reinstall/downgrade decision."""

    request: KeyboardRequest
    package_id: str
    archive_path: Path
    work_dir: Path
    reason: ConflictReason
    prompt: ConfirmationPrompt


class AcquisitionResult(BaseModel):
    """Final (or pending) state of one acquisition."""

    outcome: DownloadOutcome
    package_id: str | None = None
    keyboard: dict[str, str] = Field(
        default_factory=dict,
        description="Flat keyboard record sent with per-keyboard notifications.",
    )
    installed_keyboards: list[InstalledKeyboard] = Field(default_factory=list)
    downloaded_files: list[Path] = Field(default_factory=list)
    error_kind: str | None = None
    error_message: str | None = None
    pending: PendingInstall | None = None

    @property
    def result_code(self) -> int:
        return int(self.outcome)

    @property
    def needs_confirmation(self) -> bool:
        return self.outcome is DownloadOutcome.NEEDS_CONFIRMATION and self.pending is not None


class KeyboardHeightPreference(BaseModel):
    """Persisted keyboard height (pixels) per orientation."""

    portrait: int | None = Field(default=None, ge=0)
    landscape: int | None = Field(default=None, ge=0)

    def for_orientation(self, orientation: Orientation) -> int | None:
        return self.portrait if orientation is Orientation.PORTRAIT else self.landscape
