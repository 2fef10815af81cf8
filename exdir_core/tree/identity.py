"""Identity of store objects: purely syntactic path computations."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Tuple, Union

from ..config import LAYOUT, ObjectType
from ..errors import InvalidArgumentError, NotFoundError
from ..meta import envelope


@dataclass(frozen=True)
class ObjectIdentity:
    """Location of an object inside a store.

    `relative_path` is relative to the store root, `name` is the absolute
    in-store name (the root itself is called "/").

    `relative_name` is the normalized string form of `relative_path`, which is
    empty for the root. `PurePosixPath` cannot hold an empty path, so the
    `relative_path` of the root is `PurePosixPath(".")` (equal to
    `PurePosixPath("")`). Use `relative_name` or `is_root` to test for it.
    """

    root_directory: Path
    object_name: str
    parent_path: PurePosixPath
    relative_path: PurePosixPath
    relative_name: str
    name: str

    @property
    def directory(self) -> Path:
        """Filesystem location of the object."""
        return self.root_directory / self.relative_name

    @property
    def is_root(self) -> bool:
        return self.relative_name == ""


def resolve(
    root_directory: Union[Path, str],
    parent_path: Union[PurePosixPath, str],
    object_name: str,
) -> ObjectIdentity:
    """Compute the identity of an object given its parent path and local name.

    Does not touch the filesystem.
    """
    if "/" in object_name or "\\" in object_name:
        msg = f"Object name must be a single path segment: '{object_name}'"
        raise InvalidArgumentError(msg)
    parent_path = PurePosixPath(parent_path)
    relative_path = parent_path / object_name
    relative_name = str(relative_path)
    if relative_name == ".":
        relative_name = ""
    return ObjectIdentity(
        root_directory=Path(root_directory),
        object_name=object_name,
        parent_path=parent_path,
        relative_path=relative_path,
        relative_name=relative_name,
        name=str(PurePosixPath("/") / relative_name),
    )


def split_path(path: str) -> Tuple[bool, List[str]]:
    """Split an in-store path into (is_absolute, segments).

    Empty and "." segments are dropped, ".." is rejected.
    """
    segs = [s for s in path.split("/") if s not in ("", ".")]
    if ".." in segs:
        raise InvalidArgumentError(f"Parent references are not allowed: '{path}'")
    return path.startswith("/"), segs


def find_root(path: Union[Path, str]) -> Path:
    """Return the root directory of the store containing `path`.

    Walks upwards until a directory with a File envelope is found.
    """
    start = Path(path).absolute()
    for candidate in [start, *start.parents]:
        if envelope.object_type(candidate) == ObjectType.FILE:
            return candidate
    raise NotFoundError(f"{start}: not inside an exdir store ({LAYOUT.extension})")
