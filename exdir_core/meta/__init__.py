"""Envelope and attribute files of store objects."""
from .attributes import Attribute
from .envelope import (
    Envelope,
    is_exdir_object,
    is_nonraw_object_directory,
    is_raw_object_directory,
)

__all__ = [
    "Attribute",
    "Envelope",
    "is_exdir_object",
    "is_nonraw_object_directory",
    "is_raw_object_directory",
]
