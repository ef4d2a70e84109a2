"""Hosts file storage backends.

``FileStorage`` reads the target file and replaces it atomically: content is
written to a temporary file in the same directory, synced, and renamed over
the target with ``os.replace``.  Readers see either the old file or the new
one, never a partial write.

``MemoryStorage`` holds the content in memory and backs ``--dry-run`` and the
tests.

All failures surface as a ``HostsError`` subclass so the caller can pick an
exit code without inspecting ``OSError`` details.
"""

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Protocol

from hostm.constants import TEMP_PREFIX, TEMP_SUFFIX

logger = logging.getLogger(__name__)

# Keeps undecodable bytes intact across a read/write cycle.
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class HostsError(Exception):
    """Base class for every error the engine reports."""


class HostsNotFoundError(HostsError):
    """Raised when the hosts file does not exist or is not a regular file."""


class HostsPermissionError(HostsError):
    """Raised when the hosts file cannot be read or replaced for lack of rights."""


class HostsWriteError(HostsError):
    """Raised when the temporary file cannot be written or moved into place."""


class HostsStorage(Protocol):
    """Protocol that all hosts backends must satisfy."""

    @property
    def location(self) -> str:
        """Human-readable name of the backing store."""
        ...

    def read(self) -> str:
        """Return the full file content, line endings untouched."""
        ...

    def write(self, content: str) -> None:
        """Replace the full file content."""
        ...


class FileStorage:
    """Hosts storage backed by a file on disk.

    Args:
        path: Location of the hosts file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def location(self) -> str:
        return str(self._path)

    def read(self) -> str:
        """Return the file content. Raises HostsNotFoundError or HostsPermissionError."""
        try:
            with self._path.open("r", encoding=_ENCODING, errors=_ERRORS, newline="") as f:
                content = f.read()
        except FileNotFoundError as exc:
            raise HostsNotFoundError(f"hosts file does not exist: {self._path}") from exc
        except IsADirectoryError as exc:
            raise HostsNotFoundError(f"path is not a file: {self._path}") from exc
        except PermissionError as exc:
            raise HostsPermissionError(f"permission denied reading {self._path}") from exc
        except OSError as exc:
            raise HostsNotFoundError(f"cannot read {self._path}: {exc}") from exc
        logger.debug("Read %d bytes from %s", len(content), self._path)
        return content

    def write(self, content: str) -> None:
        """Atomically replace the file with ``content``.

        A symlinked path is resolved first, so the file it points to is
        replaced and the link itself survives.  The temporary file inherits
        the target's permission bits (and owner, when running as root) so
        ``/etc/hosts`` stays world-readable.  On any failure the temporary
        file is removed and the target is left as it was.
        """
        try:
            target = self._path.resolve()
        except (OSError, RuntimeError) as exc:
            raise HostsWriteError(f"cannot resolve {self._path}: {exc}") from exc
        directory = target.parent
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=directory
            )
        except PermissionError as exc:
            raise HostsPermissionError(
                f"permission denied creating a temporary file in {directory}"
            ) from exc
        except OSError as exc:
            raise HostsWriteError(
                f"cannot create a temporary file in {directory}: {exc}"
            ) from exc

        tmp = Path(tmp_name)
        logger.debug("Writing %s via %s", target, tmp)
        try:
            with os.fdopen(fd, "w", encoding=_ENCODING, errors=_ERRORS, newline="") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            _copy_metadata(target, tmp)
            os.replace(tmp, target)
        except PermissionError as exc:
            tmp.unlink(missing_ok=True)
            raise HostsPermissionError(f"permission denied writing {target}") from exc
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise HostsWriteError(f"cannot write {target}: {exc}") from exc
        logger.debug("Replaced %s (%d bytes)", target, len(content))


def _copy_metadata(target: Path, tmp: Path) -> None:
    """Give the temporary file the target's mode and, as root, its owner."""
    try:
        st = target.stat()
    except FileNotFoundError:
        return
    os.chmod(tmp, stat.S_IMODE(st.st_mode))
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        os.chown(tmp, st.st_uid, st.st_gid)


class MemoryStorage:
    """In-memory hosts storage. Records every write for inspection."""

    def __init__(self, content: str = "", location: str = "<memory>") -> None:
        self._content = content
        self._location = location
        self.writes: list[str] = []

    @property
    def location(self) -> str:
        return self._location

    def read(self) -> str:
        return self._content

    def write(self, content: str) -> None:
        self._content = content
        self.writes.append(content)
