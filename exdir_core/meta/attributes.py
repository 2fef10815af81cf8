"""Dict-like access to the attributes file of a store object."""
from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, MutableMapping, Optional, Tuple

import numpy as np

from .yamlio import load_file, save_file


def to_plain(value: Any) -> Any:
    """Convert a value into something the YAML serializer accepts."""
    if isinstance(value, Attribute):
        return value.to_dict()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


class Attribute(MutableMapping):
    """View on (a nested mapping inside) an `attributes.yaml` file.

    Values are read from and written to the file on every access, so several
    views on the same object stay consistent. Nested mappings are returned as
    nested `Attribute` views writing through to the same file.
    """

    def __init__(
        self,
        filename: Path,
        path: Tuple[str, ...] = (),
        guard: Optional[Callable[[], None]] = None,
    ):
        self.filename = Path(filename)
        self.path = path
        self._guard = guard

    def _load_all(self) -> Dict[str, Any]:
        if not self.filename.is_file():
            return {}
        return load_file(self.filename) or {}

    def _load(self) -> Dict[str, Any]:
        data = self._load_all()
        for key in self.path:
            data = data.get(key, {})
            if not isinstance(data, dict):
                raise self._stale(key)
        return data

    def _stale(self, key: str) -> KeyError:
        # the mapping this view points to was replaced by a plain value
        return KeyError(f"{self.filename}: '{'/'.join(self.path)}' is not a mapping ({key})")

    def _store(self, update: Callable[[Dict[str, Any]], None]) -> None:
        if self._guard is not None:
            self._guard()
        root = self._load_all()
        node = root
        for key in self.path:
            node = node.setdefault(key, {})
            if not isinstance(node, dict):
                raise self._stale(key)
        update(node)
        save_file(self.filename, root)

    def __getitem__(self, name: str) -> Any:
        value = self._load()[name]
        if isinstance(value, dict):
            return Attribute(self.filename, self.path + (name,), self._guard)
        return value

    def __setitem__(self, name: str, value: Any) -> None:
        plain = to_plain(value)

        def update(node):
            node[str(name)] = plain

        self._store(update)

    def __delitem__(self, name: str) -> None:
        if name not in self._load():
            raise KeyError(name)

        def update(node):
            del node[name]

        self._store(update)

    def __iter__(self) -> Iterator[str]:
        return iter(self._load())

    def __len__(self) -> int:
        return len(self._load())

    def __contains__(self, name: object) -> bool:
        try:
            return name in self._load()
        except KeyError:
            return False

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain (deep) copy of the attribute values."""
        return self._load()

    def update(self, *args, **kwargs) -> None:
        # one file write for the whole batch
        plain = to_plain(dict(*args, **kwargs))
        self._store(lambda node: node.update(plain))

    def __eq__(self, other) -> bool:
        if isinstance(other, Attribute):
            other = other.to_dict()
        return self.to_dict() == other

    def __repr__(self) -> str:
        return f"<Attribute {'/'.join(self.path) or '/'} of {self.filename}>"
