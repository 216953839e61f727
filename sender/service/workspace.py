"""
Temporary workspace for in-flight downloads and remuxes.

Every file lives directly under a single base directory and is named with a
nanoid, so concurrent requests never collide and need no locking. A
WorkspaceScope tracks the paths one request allocated and releases all of
them when the request finishes, however it finishes.
"""
import re
import time
from contextlib import contextmanager
from pathlib import Path

from nanoid import generate

from sender.service.constants import MAX_EXTENSION_LENGTH, PLACEHOLDER_EXTENSION
from sender.service.outcomes import WorkspaceInitError

# URL-safe alphabet and the default nanoid length (~126 bits of randomness)
ID_ALPHABET = '0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_-'
ID_SIZE = 21

_EXTENSION_RE = re.compile(r'^\.[A-Za-z0-9]+$')


def normalize_extension(hint):
    """
    Turn an extension hint into a safe '.ext' suffix.

    Args:
        hint: 'mp4', '.mp4', '.MP4', or None

    Returns:
        str: Lowercase extension with leading dot, or the placeholder
             extension if the hint is missing or malformed
    """
    if not hint or not isinstance(hint, str):
        return PLACEHOLDER_EXTENSION

    ext = hint.strip()
    if not ext.startswith('.'):
        ext = f".{ext}"

    if len(ext) > MAX_EXTENSION_LENGTH or not _EXTENSION_RE.match(ext):
        return PLACEHOLDER_EXTENSION

    return ext.lower()


def generate_file_id():
    """Generate a collision-free file identifier"""
    return generate(ID_ALPHABET, size=ID_SIZE)


class Workspace:
    """Owns the base directory for transient files"""

    def __init__(self, base_dir):
        self.base_dir = Path(base_dir)

    def ensure_base(self):
        """
        Create the base directory (and parents) if it does not exist.

        Safe to call repeatedly and from concurrent requests.

        Raises:
            WorkspaceInitError: If the directory cannot be created
        """
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except FileExistsError as e:
            raise WorkspaceInitError(f"{self.base_dir} exists and is not a directory") from e
        except OSError as e:
            raise WorkspaceInitError(f"Cannot create {self.base_dir}: {e}") from e
        return self.base_dir

    def allocate(self, suffix_hint=None):
        """
        Allocate a unique path under the base directory.

        The file itself is not created.

        Args:
            suffix_hint: Extension hint such as '.mp4'; falls back to '.tmp'

        Returns:
            Path
        """
        return self.base_dir / f"{generate_file_id()}{normalize_extension(suffix_hint)}"

    def release(self, path, logger=None):
        """
        Delete a workspace file if present.

        Deletion errors are logged and reported through the return value,
        never raised.

        Returns:
            bool: False if the file existed and could not be removed
        """
        def log(message):
            if logger:
                logger(message)

        path = Path(path)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            log(f"Failed to clean up {path}: {e}")
            return False

        return True

    @contextmanager
    def scope(self, logger=None):
        """
        Per-request allocation scope.

        Every path allocated through the yielded WorkspaceScope is released
        when the block exits, on success, on error and on interrupt.
        """
        request_scope = WorkspaceScope(self, logger=logger)
        try:
            yield request_scope
        finally:
            request_scope.release_all()

    def list_files(self):
        """List regular files currently in the workspace"""
        if not self.base_dir.is_dir():
            return []
        return [p for p in self.base_dir.iterdir() if p.is_file()]

    def find_stale(self, max_age_seconds, now=None):
        """
        Find files older than max_age_seconds.

        Returns:
            list of (Path, age_seconds, size_bytes)
        """
        now = time.time() if now is None else now
        stale = []
        for path in self.list_files():
            try:
                stat = path.stat()
            except FileNotFoundError:
                # Released by a running request in the meantime
                continue
            age = now - stat.st_mtime
            if age > max_age_seconds:
                stale.append((path, age, stat.st_size))
        return stale


class WorkspaceScope:
    """Paths allocated by one request, released together"""

    def __init__(self, workspace, logger=None):
        self.workspace = workspace
        self.logger = logger
        self.paths = []
        self.failed_releases = []
        self._released = False

    def allocate(self, suffix_hint=None):
        path = self.workspace.allocate(suffix_hint)
        self.paths.append(path)
        return path

    def release_all(self):
        """Release every allocated path exactly once"""
        if self._released:
            return
        self._released = True

        for path in self.paths:
            if not self.workspace.release(path, logger=self.logger):
                self.failed_releases.append(path)
