"""Protocols shared by the node classes.

Files, groups and datasets can all hold children. Only files have an
open/close lifecycle.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class HasChildren(Protocol):  # pragma: no cover
    """Nodes that can create child groups and datasets."""

    def create_group(self, name: str) -> Any:
        ...

    def create_dataset(self, name: str, *args, **kwargs) -> Any:
        ...


@runtime_checkable
class Lifecycle(Protocol):  # pragma: no cover
    """Nodes that own an open store handle."""

    @classmethod
    def open(cls, directory, mode=None, **kwargs) -> Any:
        ...

    def close(self) -> None:
        ...

    def __enter__(self) -> Any:
        ...

    def __exit__(self, ex_type, ex_value, ex_traceback) -> None:
        ...


__all__ = ["HasChildren", "Lifecycle"]
