"""
Tests for service/workspace.py
"""
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import patch
import os
import tempfile
import time

from django.test import TestCase

from sender.service.outcomes import WorkspaceInitError
from sender.service.workspace import (
    ID_SIZE,
    Workspace,
    WorkspaceScope,
    normalize_extension,
)


class NormalizeExtensionTest(TestCase):
    """Tests for extension hint handling"""

    def test_with_dot(self):
        self.assertEqual(normalize_extension('.mp4'), '.mp4')

    def test_without_dot(self):
        self.assertEqual(normalize_extension('mkv'), '.mkv')

    def test_lowercases(self):
        self.assertEqual(normalize_extension('.MOV'), '.mov')

    def test_missing_hint_uses_placeholder(self):
        self.assertEqual(normalize_extension(None), '.tmp')
        self.assertEqual(normalize_extension(''), '.tmp')

    def test_malformed_hints_use_placeholder(self):
        for hint in ['.', '../etc', '.mp4/x', '.m p4', '.mp4?x=1', 'a' * 20, 42]:
            with self.subTest(hint=hint):
                self.assertEqual(normalize_extension(hint), '.tmp')


class WorkspaceTest(TestCase):
    """Tests for the workspace base directory and path allocation"""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.workspace = Workspace(self.root / 'data' / 'videoTemp')

    def tearDown(self):
        self._tmp.cleanup()

    def test_ensure_base_creates_parents(self):
        """ensure_base creates the directory and its parents"""
        self.workspace.ensure_base()
        self.assertTrue(self.workspace.base_dir.is_dir())

    def test_ensure_base_is_idempotent(self):
        """Calling ensure_base twice is not an error"""
        self.workspace.ensure_base()
        self.workspace.ensure_base()
        self.assertTrue(self.workspace.base_dir.is_dir())

    def test_ensure_base_concurrent(self):
        """Concurrent creation is treated as success"""
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: self.workspace.ensure_base(), range(16)))
        self.assertTrue(all(r == self.workspace.base_dir for r in results))

    def test_ensure_base_fails_when_path_is_a_file(self):
        """A regular file at the base path raises WorkspaceInitError"""
        blocker = self.root / 'blocker'
        blocker.write_text('not a directory')

        with self.assertRaises(WorkspaceInitError):
            Workspace(blocker).ensure_base()

    def test_ensure_base_wraps_os_errors(self):
        """Permission errors raise WorkspaceInitError"""
        with patch('pathlib.Path.mkdir', side_effect=PermissionError('Permission denied')):
            with self.assertRaises(WorkspaceInitError) as ctx:
                self.workspace.ensure_base()
        self.assertIn('Permission denied', str(ctx.exception))

    def test_allocate_is_under_base_and_not_created(self):
        """Allocated paths live in the base dir and are not touched on disk"""
        path = self.workspace.allocate('.mp4')
        self.assertEqual(path.parent, self.workspace.base_dir)
        self.assertEqual(path.suffix, '.mp4')
        self.assertEqual(len(path.stem), ID_SIZE)
        self.assertFalse(path.exists())

    def test_allocate_without_hint_uses_placeholder(self):
        self.assertEqual(self.workspace.allocate().suffix, '.tmp')

    def test_allocate_concurrently_never_collides(self):
        """1000 concurrent allocations yield 1000 distinct paths"""
        with ThreadPoolExecutor(max_workers=16) as pool:
            paths = list(pool.map(lambda _: self.workspace.allocate('.mkv'), range(1000)))
        self.assertEqual(len(set(paths)), 1000)

    def test_release_deletes_file(self):
        self.workspace.ensure_base()
        path = self.workspace.allocate('.mp4')
        path.write_bytes(b'data')

        self.assertTrue(self.workspace.release(path))
        self.assertFalse(path.exists())

    def test_release_missing_file_is_noop(self):
        self.workspace.ensure_base()
        self.assertTrue(self.workspace.release(self.workspace.allocate()))

    def test_release_failure_is_logged_not_raised(self):
        """Deletion errors go to the logger and return False"""
        self.workspace.ensure_base()
        path = self.workspace.allocate('.mp4')
        path.write_bytes(b'data')
        logs = []

        with patch('pathlib.Path.unlink', side_effect=PermissionError('busy')):
            released = self.workspace.release(path, logger=logs.append)

        self.assertFalse(released)
        self.assertEqual(len(logs), 1)
        self.assertIn('busy', logs[0])

    def test_find_stale(self):
        """Only files older than the limit are reported"""
        self.workspace.ensure_base()
        old = self.workspace.base_dir / 'old.mp4'
        new = self.workspace.base_dir / 'new.mp4'
        old.write_bytes(b'12345')
        new.write_bytes(b'1')
        two_hours_ago = time.time() - 7200
        os.utime(old, (two_hours_ago, two_hours_ago))

        stale = self.workspace.find_stale(3600)

        self.assertEqual([s[0] for s in stale], [old])
        self.assertEqual(stale[0][2], 5)

    def test_list_files_on_missing_dir(self):
        self.assertEqual(self.workspace.list_files(), [])


class WorkspaceScopeTest(TestCase):
    """Tests for per-request scopes"""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.workspace = Workspace(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_scope_releases_all_paths(self):
        with self.workspace.scope() as scope:
            first = scope.allocate('.mp4')
            second = scope.allocate('.mkv')
            first.write_bytes(b'a')
            second.write_bytes(b'b')

        self.assertEqual(scope.paths, [first, second])
        self.assertEqual(os.listdir(self._tmp.name), [])

    def test_scope_releases_on_exception(self):
        with self.assertRaises(RuntimeError):
            with self.workspace.scope() as scope:
                scope.allocate('.mp4').write_bytes(b'a')
                raise RuntimeError('stage blew up')

        self.assertEqual(os.listdir(self._tmp.name), [])

    def test_scope_releases_on_keyboard_interrupt(self):
        with self.assertRaises(KeyboardInterrupt):
            with self.workspace.scope() as scope:
                scope.allocate('.mp4').write_bytes(b'a')
                raise KeyboardInterrupt

        self.assertEqual(os.listdir(self._tmp.name), [])

    def test_release_all_runs_once(self):
        """Each path is released exactly once"""
        scope = WorkspaceScope(self.workspace)
        scope.allocate('.mp4')

        with patch.object(self.workspace, 'release', return_value=True) as mock_release:
            scope.release_all()
            scope.release_all()

        self.assertEqual(mock_release.call_count, 1)

    def test_failed_releases_are_recorded(self):
        scope = WorkspaceScope(self.workspace)
        path = scope.allocate('.mp4')

        with patch.object(self.workspace, 'release', return_value=False):
            scope.release_all()

        self.assertEqual(scope.failed_releases, [path])
