r"""
Node classes of the store hierarchy.

The nodes mirror the h5py API:

| exdir_core | h5py          |
| ---------- | ------------- |
| `File`     | `h5py.File`   |
| `Group`    | `h5py.Group`  |
| `Dataset`  | `h5py.Dataset`|
| `Raw`      | -             |

A node is a lightweight handle: the store root plus the in-store path of the
object. Nodes do not reference their parent node, the parent is looked up by
path when requested. All nodes of a store share the `ModeController` owned by
the `File` they were obtained from, so closing the file invalidates them.
"""
from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Iterator, List, Optional, Tuple, TypeVar, Union

import numpy as np

from ..config import LAYOUT, ObjectType
from ..errors import AlreadyExistsError, InvalidArgumentError, InvalidFormatError
from ..meta import envelope
from ..meta.attributes import Attribute
from ..util import list_entries
from ..util.fs import is_staging_name, remove_tree
from . import codec
from .identity import ObjectIdentity, resolve, split_path
from .modes import ModeController

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Object:
    """Base class of everything that lives in a store."""

    _controller: ModeController
    _identity: ObjectIdentity

    def __init__(
        self,
        controller: ModeController,
        parent_path: Union[PurePosixPath, str],
        object_name: str,
    ):
        self._controller = controller
        self._identity = resolve(controller.root_directory, parent_path, object_name)

    # ---- identity ----

    @property
    def root_directory(self) -> Path:
        return self._identity.root_directory

    @property
    def object_name(self) -> str:
        return self._identity.object_name

    @property
    def parent_path(self) -> PurePosixPath:
        return self._identity.parent_path

    @property
    def relative_path(self) -> PurePosixPath:
        return self._identity.relative_path

    @property
    def name(self) -> str:
        """Absolute path of the object inside the store."""
        return self._identity.name

    @property
    def directory(self) -> Path:
        return self._identity.directory

    @property
    def meta_filename(self) -> Path:
        return self.directory / LAYOUT.meta_filename

    @property
    def attributes_filename(self) -> Path:
        return self.directory / LAYOUT.attributes_filename

    @property
    def raw_directory(self) -> Path:
        """Conventional folder for unmanaged files of this object."""
        return self.directory / LAYOUT.raw_folder_name

    # ---- state checks ----

    def _assert_open(self) -> None:
        self._controller.assert_open()

    def _assert_writable(self) -> None:
        self._controller.assert_writable()

    @property
    def file_writable(self) -> bool:
        return self._controller.writable

    def __bool__(self) -> bool:
        return not self._controller.closed and self.directory.is_dir()

    # ---- metadata ----

    @property
    def attrs(self) -> Attribute:
        """Key-value attributes stored alongside the object."""
        self._assert_open()
        return Attribute(self.attributes_filename, guard=self._assert_writable)

    @attrs.setter
    def attrs(self, value) -> None:
        self._assert_writable()
        self.attrs.clear()
        self.attrs.update(value)

    @property
    def meta(self) -> Optional[envelope.Envelope]:
        """Envelope of the object (None for raw directories)."""
        self._assert_open()
        return envelope.read(self.directory)

    @property
    def parent(self) -> Optional[Group]:
        """Parent group (None for the store root)."""
        if self._identity.is_root:
            return None
        return _open_object(self._controller, str(self.parent_path))

    # ---- raw folders ----

    def create_raw(self, name: str) -> Raw:
        """Create an unmanaged directory inside this object."""
        self._assert_writable()
        if name != LAYOUT.raw_folder_name:
            self._controller.validate_name(self.directory, name)
        raw = Raw(self._controller, self.relative_path, name)
        if raw.directory.exists() or raw.directory.is_symlink():
            raise AlreadyExistsError(f"{raw.directory}: already exists")
        raw.directory.mkdir()
        logger.debug("created raw directory %s", raw.directory)
        return raw

    def require_raw(self, name: str) -> Raw:
        self._assert_open()
        if (self.directory / name).exists():
            node = Raw(self._controller, self.relative_path, name)
            if envelope.read(node.directory) is not None:
                raise TypeError(f"'{name}' exists, but is not a raw directory.")
            return node
        return self.create_raw(name)

    # ---- python protocols ----

    def __eq__(self, other) -> bool:
        if not isinstance(other, Object):
            return False
        return (self.root_directory, self.name) == (other.root_directory, other.name)

    def __hash__(self) -> int:
        return hash((self.root_directory, self.name))

    def __repr__(self) -> str:
        if self._controller.closed:
            return f"<Closed exdir {type(self).__name__}>"
        return f"<exdir {type(self).__name__} '{self.name}' ({self._controller.state.value})>"


class Raw(Object):
    """Unmanaged directory whose contents are not interpreted by the store."""


class ParentObject(Object):
    """Objects that can contain groups and datasets."""

    # ---- lookup ----

    def _child_names(self) -> List[str]:
        self._assert_open()
        return [
            n
            for n in list_entries(self.directory)
            if n not in LAYOUT.reserved_names and (self.directory / n).is_dir()
        ]

    def _child(self, name: str) -> Object:
        """Return the direct child with given name, or raise KeyError."""
        self._assert_open()
        if name in LAYOUT.reserved_names or is_staging_name(name):
            raise KeyError(name)
        directory = self.directory / name
        if not directory.is_dir():
            raise KeyError(f"No such object: '{name}' in {self.name}")
        return _node_for(self._controller, self.relative_path, name)

    def _root(self) -> ParentObject:
        return _open_object(self._controller, "/")

    def _walk(self, path: str) -> Object:
        """Resolve a (nested, possibly absolute) path to an object."""
        is_abs, segs = split_path(path)
        node: Object = self._root() if is_abs else self
        for seg in segs:
            if not isinstance(node, ParentObject):
                raise KeyError(f"'{node.name}' cannot contain '{seg}'")
            node = node._child(seg)
        return node

    def _parent_for(self, path: str) -> Tuple[ParentObject, str, Optional[Group]]:
        """Return the direct parent of a path (creating missing groups) and leaf name.

        The third element is the topmost group created on the way, if any.
        """
        is_abs, segs = split_path(path)
        if not segs:
            raise InvalidArgumentError(f"Invalid object name: '{path}'")
        node: ParentObject = self._root() if is_abs else self
        # validate all names to be created first, so a rejected name creates nothing
        directory = node.directory
        for seg in segs:
            directory = directory / seg
            if not directory.exists():
                self._controller.validate_name(directory.parent, seg)
        created: Optional[Group] = None
        for seg in segs[:-1]:
            if seg in node._child_names():
                nxt = node._child(seg)
                if not isinstance(nxt, ParentObject):
                    raise TypeError(f"'{nxt.name}' cannot contain other objects")
                node = nxt
            else:
                node = node._create_child(seg, ObjectType.GROUP)
                if created is None:
                    created = node
        return node, segs[-1], created

    # ---- creation ----

    def _create_child(self, name: str, objtype: ObjectType) -> Object:
        self._assert_writable()
        self._controller.validate_name(self.directory, name)
        identity = resolve(self.root_directory, self.relative_path, name)
        # any entry counts, no matter if object, raw directory or plain file
        if identity.directory.exists() or identity.directory.is_symlink():
            msg = f"An object with name '{name}' already exists in '{self.name}'"
            raise AlreadyExistsError(msg)
        envelope.write(identity.directory, objtype)
        return _node_for(self._controller, self.relative_path, name, objtype)

    def create_group(self, name: str) -> Group:
        """Create a new group (intermediate groups of nested names are created)."""
        self._assert_writable()
        parent, leaf, _ = self._parent_for(name)
        return parent._create_child(leaf, ObjectType.GROUP)

    def create_dataset(
        self,
        name: str,
        shape: Optional[Tuple[int, ...]] = None,
        dtype: Any = None,
        data: Any = None,
        fillvalue: Any = None,
    ) -> Dataset:
        """Create a new dataset holding an array.

        Either `data` or `shape` must be given. If writing the array fails,
        the new dataset (and any group created for it) is removed again.
        """
        self._assert_writable()
        arr = codec.prepare(shape=shape, dtype=dtype, data=data, fillvalue=fillvalue)
        parent, leaf, created = self._parent_for(name)
        ds = parent._create_child(leaf, ObjectType.DATASET)
        try:
            codec.write(ds.directory, arr)
        except Exception:
            # also drop the intermediate groups created for this dataset
            rollback = created if created is not None else ds
            logger.warning("writing data of %s failed, removing %s", ds.name, rollback.name)
            remove_tree(rollback.directory)
            raise
        return ds

    def require_group(self, name: str) -> Group:
        """Return existing group with given name, or create it."""
        try:
            node = self._walk(name)
        except KeyError:
            return self.create_group(name)
        if type(node) is not Group:
            raise TypeError(f"'{node.name}' exists, but is not a group.")
        return node

    def require_dataset(
        self,
        name: str,
        shape: Optional[Tuple[int, ...]] = None,
        dtype: Any = None,
        data: Any = None,
        fillvalue: Any = None,
        exact: bool = False,
    ) -> Dataset:
        """Return existing compatible dataset with given name, or create it.

        Existing datasets must have the requested shape and a dtype the requested
        one can be safely cast to (or the exact dtype, if `exact` is set).
        """
        try:
            node = self._walk(name)
        except KeyError:
            return self.create_dataset(
                name, shape=shape, dtype=dtype, data=data, fillvalue=fillvalue
            )
        if not isinstance(node, Dataset):
            raise TypeError(f"'{node.name}' exists, but is not a dataset.")
        if data is not None and shape is None:
            shape = np.shape(data)
        if shape is not None and tuple(shape) != node.shape:
            raise TypeError(f"Shapes do not match (existing {node.shape} vs new {shape})")
        if dtype is not None:
            dtype = np.dtype(dtype)
            if exact and dtype != node.dtype:
                raise TypeError(f"Datatypes do not exactly match ({node.dtype} vs {dtype})")
            if not np.can_cast(dtype, node.dtype):
                raise TypeError(f"Cannot safely cast from {dtype} to {node.dtype}")
        return node

    # ---- traversal ----

    def visititems(self, func: Callable[[str, Object], Optional[T]]) -> Optional[T]:
        """Call `func(name, object)` for all objects below, depth-first.

        Names are relative to this object. Stops and returns the first
        value returned by `func` that is not None.
        """

        def walk(node: ParentObject, prefix: str) -> Optional[T]:
            for n in node._child_names():
                child = node._child(n)
                path = f"{prefix}{n}"
                if (ret := func(path, child)) is not None:
                    return ret
                if isinstance(child, ParentObject):
                    if (ret := walk(child, f"{path}/")) is not None:
                        return ret
            return None

        return walk(self, "")

    def visit(self, func: Callable[[str], Optional[T]]) -> Optional[T]:
        """Like `visititems`, but `func` only gets the name."""
        return self.visititems(lambda name, _: func(name))


class Group(ParentObject):
    """Container for other objects, with a dict-like interface."""

    def __getitem__(self, name: str) -> Object:
        return self._walk(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._assert_writable()
        if name in self:
            node = self[name]
            if not isinstance(node, Dataset):
                msg = f"'{node.name}' exists and is not a dataset, cannot assign"
                raise AlreadyExistsError(msg)
            node.value = value
        else:
            self.create_dataset(name, data=value)

    def __delitem__(self, name: str) -> None:
        self._assert_writable()
        node = self[name]
        if node._identity.is_root:
            raise InvalidArgumentError("Cannot delete the root of a store")
        remove_tree(node.directory)
        logger.debug("deleted %s", node.name)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        try:
            self._walk(name)
        except KeyError:
            return False
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(self._child_names())

    def __len__(self) -> int:
        return len(self._child_names())

    def keys(self) -> List[str]:
        return self._child_names()

    def values(self) -> List[Object]:
        return [self._child(n) for n in self._child_names()]

    def items(self) -> List[Tuple[str, Object]]:
        return [(n, self._child(n)) for n in self._child_names()]

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except KeyError:
            return default


class Dataset(ParentObject):
    """Array-valued object; the array is stored with the numpy `.npy` format."""

    @property
    def data(self) -> np.ndarray:
        """The stored array (memory-mapped, read-only unless the file is writable)."""
        self._assert_open()
        arr = codec.read(self.directory, writable=self.file_writable)
        if arr is None:
            raise InvalidFormatError(f"{self.directory}: dataset has no data")
        return arr

    @data.setter
    def data(self, value: Any) -> None:
        self.value = value

    @property
    def value(self) -> np.ndarray:
        """In-memory copy of the whole array. Assigning replaces the array."""
        return np.array(self.data)

    @value.setter
    def value(self, value: Any) -> None:
        self._assert_writable()
        codec.write(self.directory, codec.prepare(data=value))

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.data.shape

    @property
    def dtype(self) -> np.dtype:
        return self.data.dtype

    @property
    def size(self) -> int:
        return self.data.size

    @property
    def ndim(self) -> int:
        return self.data.ndim

    def __getitem__(self, key: Any) -> Any:
        return self.data[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        self._assert_writable()
        codec.write_slice(self.directory, key, value)

    def __len__(self) -> int:
        if self.ndim == 0:
            raise TypeError("len() of unsized object")
        return self.shape[0]

    def __iter__(self) -> Iterator[Any]:
        if self.ndim == 0:
            raise TypeError("Can't iterate over a scalar dataset")
        return iter(self.data)

    def __array__(self, dtype=None, copy=None):
        arr = self.value
        return arr if dtype is None else arr.astype(dtype)


_NODE_CLASSES = {
    ObjectType.FILE: Group,
    ObjectType.GROUP: Group,
    ObjectType.DATASET: Dataset,
}


def _node_for(
    controller: ModeController,
    parent_path: Union[PurePosixPath, str],
    name: str,
    objtype: Optional[ObjectType] = None,
) -> Object:
    """Return node of the class matching the envelope of the object."""
    if objtype is None:
        identity = resolve(controller.root_directory, parent_path, name)
        objtype = envelope.object_type(identity.directory)
    if objtype is None:
        return Raw(controller, parent_path, name)
    if objtype == ObjectType.FILE and name:
        raise InvalidFormatError(f"{parent_path}/{name}: nested exdir file")
    return _NODE_CLASSES[objtype](controller, parent_path, name)


def _open_object(controller: ModeController, path: str) -> ParentObject:
    """Return the node at an absolute in-store path."""
    _, segs = split_path(path)
    node: Object = Group(controller, ".", "")
    for seg in segs:
        node = node._child(seg)  # type: ignore
    return node  # type: ignore
