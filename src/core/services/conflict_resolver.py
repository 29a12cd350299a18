"""Reinstall/downgrade confirmation.

Two pieces, kept apart from any UI toolkit:
- `required_decision`: given an outcome, which user decision (if any) is needed.
- `build_confirmation_prompt`: the text a presentation layer shows.

The forced reinstall itself lives in `KeyboardAcquirer.confirm`.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from core.domain.errors import AcquisitionError
from core.domain.models import ConfirmationPrompt, ConflictReason, DownloadOutcome
from core.interfaces.installer import PackageInstaller

LOGGER = logging.getLogger(__name__)


class UserDecision(str, Enum):
    NONE = "none"
    CONFIRM_DOWNGRADE = "confirm_downgrade"
    CONFIRM_REINSTALL = "confirm_reinstall"


def required_decision(outcome: DownloadOutcome, reason: ConflictReason | None) -> UserDecision:
    if outcome is not DownloadOutcome.NEEDS_CONFIRMATION or reason is None:
        return UserDecision.NONE
    if reason is ConflictReason.DOWNGRADE:
        return UserDecision.CONFIRM_DOWNGRADE
    return UserDecision.CONFIRM_REINSTALL


def build_confirmation_prompt(
    installer: PackageInstaller,
    archive: Path,
    reason: ConflictReason,
) -> ConfirmationPrompt:
    title = f"{installer.get_package_name(archive)} package already exists."
    is_downgrade = reason is ConflictReason.DOWNGRADE
    confirm_text = "Downgrade" if is_downgrade else "Reinstall"

    try:
        old_version = installer.get_package_version(archive, installed=True)
        new_version = installer.get_package_version(archive, installed=False)
    except (AcquisitionError, OSError) as exc:
        # Versions are only cosmetic here.
        LOGGER.debug("Could not read package versions for %s: %s", archive, exc)
        text = "Downgrade package version?" if is_downgrade else "Reinstall package?"
    else:
        if is_downgrade:
            text = f"Downgrade from version {old_version} to {new_version}?"
        else:
            text = f"Reinstall package version {old_version}?"

    return ConfirmationPrompt(title=title, text=text, confirm_text=confirm_text, reason=reason)
