"""Root object of a store, owning its open/close lifecycle."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Tuple, Union

from typing_extensions import Literal

from ..config import LAYOUT, NamingRule, OpenMode
from .identity import find_root, split_path
from .modes import ModeController, OpenState
from .naming import NameValidator, get_validator
from .objects import Group, Object

logger = logging.getLogger(__name__)


def with_extension(directory: Union[Path, str]) -> Path:
    """Return the store directory path, appending the store suffix if missing."""
    directory = Path(directory)
    if directory.suffix != LAYOUT.extension:
        directory = directory.with_name(directory.name + LAYOUT.extension)
    return directory


class File(Group):
    """
    An exdir store, i.e. a directory tree of groups and datasets.

    The file acts as the root group of the store. The open mode semantics
    follow h5py.File, except that `w` only replaces an existing store
    if `allow_remove=True` is passed explicitly.

    Opening a store writable (any mode except `r`) locks it for other writers
    until `close()` is called, so you SHOULD use it as a context manager:

    ```python
    with File("experiment", "w") as f:
        grp = f.create_group("session_1")
        grp.create_dataset("trace", data=[1.0, 2.0, 3.0])
        grp.attrs["subject"] = "mouse_42"
    ```
    """

    def __init__(
        self,
        directory: Union[Path, str],
        mode: Optional[OpenMode] = None,
        allow_remove: bool = False,
        name_validation: Optional[Union[NamingRule, str, NameValidator]] = None,
    ):
        directory = with_extension(os.path.abspath(directory))
        controller = ModeController(directory, get_validator(name_validation))
        controller.open(
            LAYOUT.default_mode if mode is None else mode, allow_remove=allow_remove
        )
        super().__init__(controller, ".", "")

    @classmethod
    def open(
        cls,
        directory: Union[Path, str],
        mode: Optional[OpenMode] = None,
        **kwargs,
    ) -> File:
        """Open or create a store (same as calling the constructor)."""
        return cls(directory, mode, **kwargs)

    @property
    def mode(self) -> Literal["r", "r+"]:
        self._assert_open()
        return "r+" if self._controller.writable else "r"

    @property
    def closed(self) -> bool:
        return self._controller.closed

    def close(self) -> None:
        """Close the store and release the write lock.

        After this, the file object and all nodes obtained from it may not be
        used anymore. Calling it again has no effect.
        """
        if self._controller.state == OpenState.CLOSED:
            return
        self._controller.close()
        logger.debug("closed %s", self.directory)

    def __repr__(self):
        if self.closed:
            return "<Closed exdir File>"
        return f"<exdir File '{self.directory}' (mode {self.mode})>"

    # ---- context manager support (i.e. to use `with`) ----

    def __enter__(self) -> File:
        return self

    def __exit__(self, ex_type, ex_value, ex_traceback):
        self.close()


def open_object(path: Union[Path, str], mode: OpenMode = "r") -> Tuple[File, Object]:
    """Open the object stored at an arbitrary directory inside a store.

    The store root is found by walking up from `path`. Returns the opened file
    together with the node. The caller is responsible for closing the file,
    which for `mode="r+"` also releases the write lock:

    ```python
    f, node = open_object("experiment.exdir/session_1/trace", "r+")
    with f:
        node.attrs["checked"] = True
    ```
    """
    path = Path(os.path.abspath(path))
    root = find_root(path)
    f = File(root, mode)
    rel = path.relative_to(root).as_posix()
    _, segs = split_path(rel)
    try:
        return f, (f["/".join(segs)] if segs else f)
    except BaseException:
        f.close()
        raise
