'''
Test cases for keyboard height adjustment and the JSON preference store.
'''

import tempfile
import unittest
from pathlib import Path
from typing import Dict, List

import testutils

# pylint: disable=wrong-import-order
from adapters.preferences import JsonPreferenceStore
from core.domain.models import Orientation
from core.services.keyboard_height import (
    PREF_KEYBOARD_HEIGHT_LANDSCAPE,
    PREF_KEYBOARD_HEIGHT_PORTRAIT,
    KeyboardHeightAdjuster,
    get_keyboard_height,
    load_preference,
    reset_keyboard_height,
    save_keyboard_height,
)


class RecordingStore:
    '''In-memory PreferenceStore that counts writes.'''

    def __init__(self) -> None:
        self.data: Dict[str, int] = {}
        self.writes: List[tuple] = []

    def get_int(self, key: str, default: int) -> int:
        return self.data.get(key, default)

    def put_int(self, key: str, value: int) -> None:
        self.writes.append((key, value))
        self.data[key] = value

    def remove(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)


class KeyboardHeightTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.settings = testutils.make_settings(Path(self._tmp.name))
        self.store = RecordingStore()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _adjuster(self, density: float = 2.0) -> KeyboardHeightAdjuster:
        return KeyboardHeightAdjuster(
            self.store, orientation=Orientation.PORTRAIT, density=density, settings=self.settings)

    def test_bounds_scale_with_density(self) -> None:
        adjuster = self._adjuster(2.0)
        self.assertEqual(300, adjuster.min_height)
        self.assertEqual(800, adjuster.max_height)
        self.assertEqual(520, adjuster.current_height)

    def test_drag_clamps_and_persists_only_on_release(self) -> None:
        adjuster = self._adjuster(2.0)
        adjuster.press(1000)
        self.assertEqual(620, adjuster.move(900))
        self.assertEqual(800, adjuster.move(-5000))
        self.assertEqual(300, adjuster.move(5000))
        self.assertEqual([], self.store.writes)
        self.assertEqual(300, adjuster.release())
        self.assertEqual([(PREF_KEYBOARD_HEIGHT_PORTRAIT, 300)], self.store.writes)
        self.assertEqual(150, adjuster.height_dp)

    def test_move_without_press_is_ignored(self) -> None:
        adjuster = self._adjuster(1.0)
        self.assertEqual(260, adjuster.move(10))

    def test_saved_height_is_clamped_on_load(self) -> None:
        self.store.data[PREF_KEYBOARD_HEIGHT_PORTRAIT] = 5000
        self.assertEqual(800, self._adjuster(2.0).current_height)

    def test_reset(self) -> None:
        adjuster = self._adjuster(1.0)
        adjuster.press(0)
        adjuster.move(-50)
        adjuster.release()
        self.assertEqual(260, adjuster.reset())
        self.assertEqual(260, get_keyboard_height(self.store, Orientation.PORTRAIT))

    def test_orientations_are_independent(self) -> None:
        save_keyboard_height(self.store, Orientation.LANDSCAPE, 222)
        self.assertEqual(-1, get_keyboard_height(self.store, Orientation.PORTRAIT))
        self.assertEqual(222, get_keyboard_height(self.store, Orientation.LANDSCAPE))
        pref = load_preference(self.store)
        self.assertIsNone(pref.portrait)
        self.assertEqual(222, pref.for_orientation(Orientation.LANDSCAPE))
        reset_keyboard_height(self.store)
        self.assertEqual({}, self.store.data)

    def test_orientation_from_dimensions(self) -> None:
        self.assertIs(Orientation.PORTRAIT, Orientation.from_dimensions(1080, 1920))
        self.assertIs(Orientation.LANDSCAPE, Orientation.from_dimensions(1920, 1080))


class JsonPreferenceStoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / 'nested' / 'prefs.json'

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_round_trip_and_remove(self) -> None:
        store = JsonPreferenceStore(self.path)
        self.assertEqual(-1, store.get_int(PREF_KEYBOARD_HEIGHT_PORTRAIT, -1))
        store.put_int(PREF_KEYBOARD_HEIGHT_PORTRAIT, 400)
        store.put_int(PREF_KEYBOARD_HEIGHT_LANDSCAPE, 300)
        self.assertEqual(400, JsonPreferenceStore(self.path).get_int(PREF_KEYBOARD_HEIGHT_PORTRAIT, -1))
        store.remove(PREF_KEYBOARD_HEIGHT_PORTRAIT, PREF_KEYBOARD_HEIGHT_LANDSCAPE)
        self.assertEqual(-1, store.get_int(PREF_KEYBOARD_HEIGHT_LANDSCAPE, -1))

    def test_corrupt_file_reads_as_empty(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text('{not json', encoding='utf-8')
        with self.assertLogs('adapters.preferences', level='WARNING'):
            self.assertEqual(7, JsonPreferenceStore(self.path).get_int('x', 7))


if __name__ == '__main__':
    unittest.main()
