'''
Test cases for URL building and descriptor parsing in the catalog client.
'''

import copy
import tempfile
import unittest
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import testutils

# pylint: disable=wrong-import-order
from adapters.catalog_client import (
    build_cloud_url,
    build_remote_url,
    is_custom_url,
    parse_keyboard_descriptor,
    resolve_request_url,
)
from core.domain.errors import InvalidRequest, MalformedResponse
from core.domain.models import UNDEFINED_PACKAGE_ID, KeyboardRequest

LEGACY = {
    'options': {'keyboardBaseUri': 'https://example.org/kb/', 'fontBaseUri': 'https://example.org/font/'},
    'keyboard': {
        'id': 'my_kb',
        'name': 'My Keyboard',
        'filename': 'my_kb.js',
        'languages': [{'id': 'fr', 'name': 'French'}, {'id': 'de', 'name': 'German'}],
        'font': {'family': 'f', 'source': 'my.ttf'},
    },
}


class CatalogClientTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.settings = testutils.make_settings(Path(self._tmp.name))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_cloud_url(self) -> None:
        self.assertEqual(
            'https://r.keymanweb.com/api/3.0/languages/en/sil_euro_latin?device=androidphone',
            build_cloud_url(self.settings, 'en', 'sil_euro_latin'))
        tablet = testutils.make_settings(Path(self._tmp.name), device_type='tablet')
        self.assertTrue(build_cloud_url(tablet, 'en', 'x').endswith('?device=androidtablet'))

    def test_remote_url_encodes_filename(self) -> None:
        url = build_remote_url(self.settings, 'https://example.org/my kb.json?a=1')
        self.assertTrue(url.startswith('https://r.keymanweb.com/api/2.0/remote?url='))
        query = parse_qs(urlsplit(url).query)
        self.assertEqual(['https://example.org/my kb.json?a=1'], query['url'])
        self.assertEqual(['androidphone'], query['device'])

    def test_resolve_request_url(self) -> None:
        cloud = KeyboardRequest(language_id='en', keyboard_id='sil_euro_latin')
        self.assertIn('/languages/en/sil_euro_latin', resolve_request_url(cloud, self.settings))

        direct = KeyboardRequest(is_custom=True, is_direct=True, url='https://example.org/pkg1.kmp')
        self.assertEqual('https://example.org/pkg1.kmp', resolve_request_url(direct, self.settings))

        remote = KeyboardRequest(is_custom=True, filename='https://example.org/kb.json')
        self.assertTrue(resolve_request_url(remote, self.settings).startswith(self.settings.api_remote_url))

    def test_invalid_requests(self) -> None:
        with self.assertRaises(InvalidRequest):
            resolve_request_url(KeyboardRequest(language_id='en'), self.settings)
        with self.assertRaises(InvalidRequest):
            resolve_request_url(KeyboardRequest(language_id=' ', keyboard_id='kb'), self.settings)
        with self.assertRaises(InvalidRequest):
            resolve_request_url(
                KeyboardRequest(package_id='  ', is_custom=True, is_direct=True, url='x.kmp'),
                self.settings)

    def test_package_id_defaults(self) -> None:
        self.assertEqual(UNDEFINED_PACKAGE_ID, KeyboardRequest().package_id)
        self.assertEqual(UNDEFINED_PACKAGE_ID, KeyboardRequest(package_id='').package_id)
        self.assertEqual('unknown', KeyboardRequest(filename=None).filename)

    def test_is_custom_url(self) -> None:
        self.assertFalse(is_custom_url(None, self.settings))
        self.assertFalse(is_custom_url(build_cloud_url(self.settings, 'en', 'kb'), self.settings))
        self.assertTrue(is_custom_url('https://example.org/pkg.kmp', self.settings))

    def test_parse_cloud_descriptor(self) -> None:
        data = testutils.catalog_response(font={'family': 'x', 'source': 'a.ttf'})
        desc = parse_keyboard_descriptor(data, is_custom=False)
        self.assertEqual('sil_euro_latin', desc.keyboard_id)
        self.assertEqual('English', desc.language_name)
        self.assertEqual('en', desc.language_id)
        self.assertEqual('1.9.1', desc.version)
        self.assertEqual(UNDEFINED_PACKAGE_ID, desc.package_id)
        self.assertEqual(testutils.KEYBOARD_BASE + 'sil_euro_latin-1.9.1.js', desc.keyboard_url)
        self.assertEqual({'family': 'x', 'source': 'a.ttf'}, desc.font)

    def test_parse_legacy_descriptor_joins_languages(self) -> None:
        desc = parse_keyboard_descriptor(LEGACY, is_custom=True)
        self.assertEqual('fr;de', desc.language_id)
        self.assertEqual('French;German', desc.language_name)
        self.assertEqual('1.0', desc.version)

    def test_missing_keyboard_base_uri(self) -> None:
        with self.assertRaises(MalformedResponse):
            parse_keyboard_descriptor(testutils.catalog_response(keyboard_base=None), is_custom=False)
        with self.assertRaises(MalformedResponse):
            parse_keyboard_descriptor({'language': {}}, is_custom=False)

    def test_incomplete_entries(self) -> None:
        data = copy.deepcopy(LEGACY)
        data['keyboard']['filename'] = ''
        with self.assertRaises(MalformedResponse):
            parse_keyboard_descriptor(data, is_custom=True)

        data = copy.deepcopy(LEGACY)
        del data['keyboard']['languages']
        with self.assertRaises(MalformedResponse):
            parse_keyboard_descriptor(data, is_custom=True)

        data = testutils.catalog_response()
        data['language']['keyboards'] = []
        with self.assertRaises(MalformedResponse):
            parse_keyboard_descriptor(data, is_custom=False)

    def test_package_id_must_be_a_plain_name(self) -> None:
        for package_id in ('../../outside', '..', 'a\\b'):
            data = testutils.catalog_response()
            data['language']['keyboards'][0]['packageID'] = package_id
            with self.subTest(package_id=package_id):
                with self.assertRaises(MalformedResponse):
                    parse_keyboard_descriptor(data, is_custom=False)


if __name__ == '__main__':
    unittest.main()
