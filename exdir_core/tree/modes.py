"""Open mode state machine of a store root.

| mode      | requirement                     | effect                          |
| --------- | ------------------------------- | ------------------------------- |
| `r`       | store exists and is valid       | read-only                       |
| `r+`      | store exists and is valid       | read/write                      |
| `w`       | removal allowed, if it exists   | (remove and) create, read/write |
| `w-`, `x` | store does not exist            | create, read/write              |
| `a`       | -                               | create if missing, read/write   |

Removing an existing store with `w` is never implied by the mode alone,
it must be confirmed by passing `allow_remove=True`.

A writable controller holds an exclusive advisory lock on the root directory
until it is closed, so at most one writable handle exists per store at a time.
Read-only handles take no lock.
"""
from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from ..config import LAYOUT, ObjectType, OpenMode
from ..errors import (
    AlreadyExistsError,
    ClosedError,
    InvalidArgumentError,
    InvalidFormatError,
    NotFoundError,
    ReadOnlyError,
)
from ..meta import envelope
from ..util.fs import DirectoryLock, remove_tree
from .naming import NameValidator, get_validator

logger = logging.getLogger(__name__)


class OpenState(str, Enum):
    """Process-local state of a store handle."""

    CLOSED = "closed"
    READ_ONLY = "r"
    READ_WRITE = "r+"


class ModeController:
    """Interprets an open mode against the current state of a store root."""

    root_directory: Path
    validator: NameValidator
    _state: OpenState
    _lock: Optional[DirectoryLock]

    def __init__(self, root_directory: Path, validator: Optional[NameValidator] = None):
        self.root_directory = Path(root_directory)
        self.validator = validator or get_validator()
        self._state = OpenState.CLOSED
        self._lock = None

    @property
    def state(self) -> OpenState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state == OpenState.CLOSED

    @property
    def writable(self) -> bool:
        return self._state == OpenState.READ_WRITE

    def _check_existing(self) -> bool:
        """Return whether the store exists, failing if something invalid is there."""
        directory = self.root_directory
        if not (directory.exists() or directory.is_symlink()):
            return False
        if envelope.object_type(directory) != ObjectType.FILE:
            msg = "path already exists, but is not a valid exdir file"
            raise InvalidFormatError(f"{directory}: {msg}")
        return True

    def _validate_root_name(self) -> None:
        """Check the store name (without suffix) against the naming rule."""
        directory = self.root_directory
        stem = directory.name
        if stem.endswith(LAYOUT.extension):
            stem = stem[: -len(LAYOUT.extension)]
        self.validator(directory.parent, stem)

    def _create(self) -> None:
        directory = self.root_directory
        envelope.write(directory, ObjectType.FILE)
        logger.info("created store %s", directory)

    def _remove(self) -> None:
        # make sure no other writer is active before destroying anything
        with DirectoryLock(self.root_directory):
            pass
        remove_tree(self.root_directory)
        logger.info("removed store %s", self.root_directory)

    def _lock_for_writing(self) -> None:
        lock = DirectoryLock(self.root_directory)
        lock.acquire()
        self._lock = lock

    def open(self, mode: OpenMode = LAYOUT.default_mode, allow_remove: bool = False):
        """Validate or prepare the store root according to the mode.

        On success the controller is in state READ_ONLY or READ_WRITE.
        On failure it stays CLOSED and the filesystem is unchanged.
        """
        if not self.closed:
            raise ValueError(f"{self.root_directory}: already open")
        if mode not in LAYOUT.open_modes:
            msg = f"IO mode {mode!r} not recognized, must be one of {LAYOUT.open_modes}"
            raise InvalidArgumentError(msg)

        exists = self._check_existing()
        if mode in ("r", "r+"):
            if not exists:
                raise NotFoundError(f"{self.root_directory}: no such exdir file")
        elif mode == "w":
            if exists and not allow_remove:
                msg = "file exists, removal must be confirmed with allow_remove=True"
                raise AlreadyExistsError(f"{self.root_directory}: {msg}")
            # reject the name before anything is removed
            self._validate_root_name()
            if exists:
                self._remove()
            self._create()
        elif mode in ("w-", "x"):
            if exists:
                raise AlreadyExistsError(f"{self.root_directory}: file already exists")
            self._validate_root_name()
            self._create()
        elif mode == "a":
            if not exists:
                self._validate_root_name()
                self._create()

        if mode == "r":
            self._state = OpenState.READ_ONLY
        else:
            self._lock_for_writing()
            self._state = OpenState.READ_WRITE
        logger.debug("opened %s in mode %s", self.root_directory, mode)
        return self._state

    def close(self) -> None:
        if self._lock is not None:
            self._lock.release()
            self._lock = None
        self._state = OpenState.CLOSED

    def assert_open(self) -> None:
        if self.closed:
            raise ClosedError(f"{self.root_directory}: file is closed")

    def assert_writable(self) -> None:
        self.assert_open()
        if not self.writable:
            msg = "cannot change data on file in read only 'r' mode"
            raise ReadOnlyError(f"{self.root_directory}: {msg}")

    def validate_name(self, parent_directory: Path, name: str) -> None:
        self.validator(parent_directory, name)
