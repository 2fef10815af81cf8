"""
Constants describing the on-disk layout of an exdir store.

All reserved file names, mode tokens and schema versions live in one immutable
record, `LAYOUT`, which is created once at import time.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict
from typing_extensions import Final, Literal, get_args


class ObjectType(str, Enum):
    """Kind of a store-managed directory, as recorded in its envelope."""

    FILE = "file"
    GROUP = "group"
    DATASET = "dataset"


class NamingRule(str, Enum):
    """Policy deciding which object names are acceptable."""

    NONE = "none"
    SIMPLE = "simple"
    STRICT = "strict"
    THOROUGH = "thorough"


OpenMode = Literal["r", "r+", "w", "w-", "x", "a"]
"""User open modes that can be passed during initialization."""


class ExdirLayout(BaseModel):
    """Reserved names and versions of the directory format."""

    model_config = ConfigDict(frozen=True)

    meta_filename: str = "exdir.yaml"
    """Envelope file that marks a directory as a store object."""

    attributes_filename: str = "attributes.yaml"
    """Optional key-value metadata of an object."""

    raw_folder_name: str = "__raw__"
    """Conventional unmanaged passthrough folder of an object."""

    data_filename: str = "data.npy"
    """Array payload of a dataset."""

    meta_key: str = "exdir"
    type_key: str = "type"
    version_key: str = "version"

    extension: str = ".exdir"
    """Suffix of the root directory of a store."""

    staging_prefix: str = ".exdir-staging-"
    """Prefix of temporary directories used while an object is being created."""

    versions: Dict[ObjectType, int] = {
        ObjectType.FILE: 1,
        ObjectType.GROUP: 1,
        ObjectType.DATASET: 1,
    }
    """Current envelope schema version per object type."""

    open_modes: Tuple[str, ...] = tuple(get_args(OpenMode))
    default_mode: OpenMode = "a"
    default_naming_rule: NamingRule = NamingRule.STRICT

    @property
    def reserved_names(self) -> Tuple[str, ...]:
        """Names inside an object directory that never denote a child object."""
        return (self.meta_filename, self.attributes_filename, self.raw_folder_name)

    def version_of(self, objtype: ObjectType) -> int:
        return self.versions[ObjectType(objtype)]


LAYOUT: Final[ExdirLayout] = ExdirLayout()
"""The layout used by this package."""
