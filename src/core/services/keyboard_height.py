"""Keyboard height adjustment.

Drag protocol for the resize bar: `press(y)` records the pointer position,
each `move(y)` recomputes the height (dragging up makes the keyboard
taller) clamped to the allowed range, and `release()` persists it.
Intermediate moves are never written to the store.
"""

from __future__ import annotations

import logging

from core.config import AppSettings
from core.domain.models import KeyboardHeightPreference, Orientation
from core.interfaces.preferences import PreferenceStore

LOGGER = logging.getLogger(__name__)

PREF_KEYBOARD_HEIGHT_PORTRAIT = "keyboard_height_portrait"
PREF_KEYBOARD_HEIGHT_LANDSCAPE = "keyboard_height_landscape"


def preference_key(orientation: Orientation) -> str:
    if orientation is Orientation.PORTRAIT:
        return PREF_KEYBOARD_HEIGHT_PORTRAIT
    return PREF_KEYBOARD_HEIGHT_LANDSCAPE


def get_keyboard_height(store: PreferenceStore, orientation: Orientation) -> int:
    """Saved height in pixels, or -1 if not set."""

    return store.get_int(preference_key(orientation), -1)


def save_keyboard_height(store: PreferenceStore, orientation: Orientation, height: int) -> None:
    store.put_int(preference_key(orientation), height)


def reset_keyboard_height(store: PreferenceStore) -> None:
    """Forget the saved height for both orientations."""

    store.remove(PREF_KEYBOARD_HEIGHT_PORTRAIT, PREF_KEYBOARD_HEIGHT_LANDSCAPE)


def load_preference(store: PreferenceStore) -> KeyboardHeightPreference:
    portrait = get_keyboard_height(store, Orientation.PORTRAIT)
    landscape = get_keyboard_height(store, Orientation.LANDSCAPE)
    return KeyboardHeightPreference(
        portrait=portrait if portrait > 0 else None,
        landscape=landscape if landscape > 0 else None,
    )


class KeyboardHeightAdjuster:
    """State of the resize bar for one orientation."""

    def __init__(
        self,
        store: PreferenceStore,
        *,
        orientation: Orientation,
        density: float = 1.0,
        settings: AppSettings | None = None,
        default_height: int | None = None,
    ) -> None:
        settings = settings or AppSettings()
        self._store = store
        self._orientation = orientation
        self._density = density
        self.min_height = int(settings.min_keyboard_height_dp * density)
        self.max_height = int(settings.max_keyboard_height_dp * density)
        self.default_height = (
            default_height if default_height is not None else int(settings.default_keyboard_height_dp * density)
        )

        saved = get_keyboard_height(store, orientation)
        self.current_height = self.clamp(saved if saved > 0 else self.default_height)

        self._initial_y: float | None = None
        self._initial_height = self.current_height

    @property
    def orientation(self) -> Orientation:
        return self._orientation

    @property
    def height_dp(self) -> int:
        return int(self.current_height / self._density)

    def clamp(self, height: int) -> int:
        return max(self.min_height, min(self.max_height, height))

    def press(self, y: float) -> None:
        self._initial_y = y
        self._initial_height = self.current_height

    def move(self, y: float) -> int:
        if self._initial_y is None:
            return self.current_height
        delta = self._initial_y - y
        self.current_height = self.clamp(int(self._initial_height + delta))
        return self.current_height

    def release(self) -> int:
        self._initial_y = None
        save_keyboard_height(self._store, self._orientation, self.current_height)
        LOGGER.debug("Saved %s keyboard height %dpx", self._orientation.value, self.current_height)
        return self.current_height

    def reset(self) -> int:
        self._initial_y = None
        self.current_height = self.default_height
        save_keyboard_height(self._store, self._orientation, self.current_height)
        return self.current_height
