"""Hierarchy of store objects mapped onto directories."""
from .file import File, open_object
from .identity import ObjectIdentity, find_root, resolve
from .modes import ModeController, OpenState
from .objects import Dataset, Group, Object, ParentObject, Raw
from .protocols import HasChildren, Lifecycle

__all__ = [
    "Dataset",
    "File",
    "Group",
    "HasChildren",
    "Lifecycle",
    "ModeController",
    "Object",
    "ObjectIdentity",
    "OpenState",
    "ParentObject",
    "Raw",
    "find_root",
    "open_object",
    "resolve",
]
