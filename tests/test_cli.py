'''
Test cases for the typer CLI (height commands, download failure path and
the reinstall prompt).

XDG_CONFIG_HOME points at a temporary directory so preferences never touch
the real user configuration.
'''

import json
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import testutils  # pylint: disable=unused-import

# pylint: disable=wrong-import-order
import typer
from typer.testing import CliRunner

from cli.main import app
from core.domain.models import (
    AcquisitionResult,
    ConfirmationPrompt,
    ConflictReason,
    DownloadOutcome,
    KeyboardRequest,
    PendingInstall,
)

PKG_URL = 'https://example.org/pkg1.kmp'


class ReinstallAcquirer:
    '''Replaces KeyboardAcquirer: every download needs a reinstall decision.'''

    instances: list = []

    def __init__(self, settings=None, **kwargs) -> None:
        self.confirmed = []
        self.declined = []
        self.pending: PendingInstall | None = None
        ReinstallAcquirer.instances.append(self)

    async def acquire(self, request: KeyboardRequest) -> AcquisitionResult:
        work_dir = Path(tempfile.mkdtemp())
        self.pending = PendingInstall(
            request=request,
            package_id='pkg1',
            archive_path=work_dir / 'pkg1.kmp',
            work_dir=work_dir,
            reason=ConflictReason.REINSTALL,
            prompt=ConfirmationPrompt(
                title='Test Package package already exists.',
                text='Reinstall package version 1.0?',
                confirm_text='Reinstall',
                reason=ConflictReason.REINSTALL,
            ),
        )
        return AcquisitionResult(
            outcome=DownloadOutcome.NEEDS_CONFIRMATION, package_id='pkg1', pending=self.pending)

    async def confirm(self, pending: PendingInstall) -> AcquisitionResult:
        self.confirmed.append(pending)
        return AcquisitionResult(outcome=DownloadOutcome.SUCCESS, package_id='pkg1')

    async def decline(self, pending: PendingInstall) -> AcquisitionResult:
        self.declined.append(pending)
        shutil.rmtree(pending.work_dir, ignore_errors=True)
        return AcquisitionResult(outcome=DownloadOutcome.CANCELLED, package_id='pkg1')


@unittest.skipUnless(sys.platform.startswith('linux'), 'relies on XDG_CONFIG_HOME')
class CliTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        env = {
            'XDG_CONFIG_HOME': str(self.root / 'config'),
            'KEYMAN_DL_DATA_DIR': str(self.root / 'data'),
        }
        patcher = mock.patch.dict(os.environ, env)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.prefs = self.root / 'config' / 'keyman-dl' / 'preferences.json'
        self.runner = CliRunner()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_height_set_clamps_show_and_reset(self) -> None:
        result = self.runner.invoke(app, ['height', 'set', '9999', '--orientation', 'landscape'])
        self.assertEqual(0, result.exit_code, result.output)
        self.assertIn('400px', result.output)
        self.assertEqual(
            {'keyboard_height_landscape': 400},
            json.loads(self.prefs.read_text(encoding='utf-8')))

        result = self.runner.invoke(app, ['height', 'show'])
        self.assertEqual(0, result.exit_code, result.output)
        self.assertIn('400', result.output)

        result = self.runner.invoke(app, ['height', 'reset'])
        self.assertEqual(0, result.exit_code, result.output)
        self.assertEqual({}, json.loads(self.prefs.read_text(encoding='utf-8')))

    def test_height_bad_orientation(self) -> None:
        result = self.runner.invoke(app, ['height', 'set', '200', '--orientation', 'sideways'])
        self.assertNotEqual(0, result.exit_code)

    def test_download_invalid_request_exits_nonzero(self) -> None:
        result = self.runner.invoke(app, ['download', '--quiet', '--language', 'en'])
        self.assertEqual(1, result.exit_code, result.output)
        self.assertIn('invalid_request', result.output)

    def _download_with_prompt(self, *args: str, **kwargs) -> tuple:
        ReinstallAcquirer.instances.clear()
        with mock.patch('cli.main.KeyboardAcquirer', ReinstallAcquirer), \
                mock.patch('tempfile.tempdir', str(self.root)):
            result = self.runner.invoke(
                app, ['download', '--quiet', '--direct', '--url', PKG_URL, *args], **kwargs)
        self.assertEqual(1, len(ReinstallAcquirer.instances))
        return result, ReinstallAcquirer.instances[0]

    def test_aborted_prompt_declines_pending_install(self) -> None:
        with mock.patch('typer.confirm', side_effect=typer.Abort()):
            result, acquirer = self._download_with_prompt()
        self.assertEqual(1, result.exit_code, result.output)
        self.assertEqual([acquirer.pending], acquirer.declined)
        self.assertEqual([], acquirer.confirmed)
        self.assertFalse(acquirer.pending.work_dir.exists())

    def test_answered_prompt(self) -> None:
        result, acquirer = self._download_with_prompt(input='n\n')
        self.assertEqual(0, result.exit_code, result.output)
        self.assertEqual([acquirer.pending], acquirer.declined)

        result, acquirer = self._download_with_prompt('--yes')
        self.assertEqual(0, result.exit_code, result.output)
        self.assertEqual([acquirer.pending], acquirer.confirmed)
        self.assertEqual([], acquirer.declined)


if __name__ == '__main__':
    unittest.main()
