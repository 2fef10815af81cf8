"""Filesystem helpers for atomic object creation, removal and locking."""
from __future__ import annotations

import fcntl
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Callable, Iterator, Optional

from ..config import LAYOUT
from ..errors import AlreadyExistsError, LockContentionError

logger = logging.getLogger(__name__)


def default_mode(base: int = 0o666) -> int:
    """Return the permission bits `base` reduced by the current umask."""
    # the umask can only be read by setting it
    mask = os.umask(0o022)
    os.umask(mask)
    return base & ~mask


def is_staging_name(name: str) -> bool:
    """Return whether a directory entry is a temporary staging entry."""
    return name.startswith(LAYOUT.staging_prefix)


@contextmanager
def staged_directory(target: Path) -> Iterator[Path]:
    """Prepare a directory under a temporary name and publish it as `target`.

    The body of the `with` block fills the yielded staging directory.
    When it completes, the staging directory is renamed to `target`,
    so `target` never becomes visible in a partially written state.
    If the body raises, the staging directory is removed again.
    """
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=LAYOUT.staging_prefix, dir=target.parent))
    try:
        yield staging
        # NOTE: rename would silently replace an empty directory on POSIX
        if target.exists() or target.is_symlink():
            raise AlreadyExistsError(f"{target}: already exists")
        # mkdtemp creates owner-only directories
        os.chmod(staging, default_mode(0o777))
        os.rename(staging, target)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise
    logger.debug("published %s", target)


def remove_tree(directory: Path) -> None:
    """Remove a directory tree.

    The tree is first moved to a staging name, so the original path disappears
    in one step instead of being emptied file by file.
    """
    directory = Path(directory)
    graveyard = Path(
        tempfile.mkdtemp(prefix=LAYOUT.staging_prefix, dir=directory.parent)
    )
    try:
        os.rename(directory, graveyard / directory.name)
    finally:
        shutil.rmtree(graveyard)
    logger.debug("removed %s", directory)


def atomic_write(path: Path, writer: Callable[[IO[bytes]], None]) -> None:
    """Write a file by calling `writer` on a temporary file, then move it into place."""
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(
        prefix=LAYOUT.staging_prefix, suffix=path.suffix, dir=path.parent
    )
    try:
        with os.fdopen(fd, "wb") as f:
            writer(f)
            f.flush()
            os.fchmod(f.fileno(), default_mode(0o666))
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class DirectoryLock:
    """Advisory exclusive lock on a directory (POSIX `flock`).

    The lock belongs to this instance, so two instances for the same directory
    exclude each other even within one process. The operating system drops the
    lock when the process exits.
    """

    _fd: Optional[int]

    def __init__(self, directory: Path, blocking: bool = False):
        self.directory = Path(directory)
        self.blocking = blocking
        self._fd = None

    @property
    def locked(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        if self._fd is not None:
            raise RuntimeError(f"{self.directory}: lock is already held")
        fd = os.open(self.directory, os.O_RDONLY | getattr(os, "O_DIRECTORY", 0))
        flags = fcntl.LOCK_EX if self.blocking else fcntl.LOCK_EX | fcntl.LOCK_NB
        try:
            fcntl.flock(fd, flags)
        except BlockingIOError as e:
            os.close(fd)
            logger.warning("write lock on %s is held by another handle", self.directory)
            msg = "store is already opened for writing by another handle"
            raise LockContentionError(f"{self.directory}: {msg}") from e
        except BaseException:
            os.close(fd)
            raise
        self._fd = fd
        logger.debug("acquired lock on %s", self.directory)

    def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug("released lock on %s", self.directory)

    def __enter__(self) -> DirectoryLock:
        self.acquire()
        return self

    def __exit__(self, ex_type, ex_value, ex_traceback):
        self.release()
