"""
Metadata envelope of store-managed directories.

Every directory that is a File, Group or Dataset carries an envelope file
(`exdir.yaml`) at its top level, looking like this:

```yaml
exdir:
  type: group
  version: 1
```

The presence of a parseable envelope is the only thing that distinguishes a
store object from an unmanaged (raw) directory. The object type is always taken
from the envelope, never guessed from the contents of the directory.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..config import LAYOUT, ObjectType
from ..errors import AlreadyExistsError, InvalidFormatError
from ..util.fs import staged_directory
from .yamlio import YAMLError, dump_bytes, load_file

logger = logging.getLogger(__name__)


class EnvelopeBody(BaseModel):
    """Type and schema version of a store object."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    type: ObjectType = Field(alias=LAYOUT.type_key)
    version: int = Field(alias=LAYOUT.version_key, ge=1)

    @model_validator(mode="after")
    def check_known_version(self) -> EnvelopeBody:
        current = LAYOUT.version_of(self.type)
        if self.version > current:
            msg = f"{self.type.value} envelope version {self.version} is unknown"
            raise ValueError(f"{msg} (newest supported: {current})")
        return self


class Envelope(BaseModel):
    """Content of the metadata file of a store object."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    body: EnvelopeBody = Field(alias=LAYOUT.meta_key)

    @property
    def type(self) -> ObjectType:
        return self.body.type

    @property
    def version(self) -> int:
        return self.body.version

    @classmethod
    def create(cls, objtype: Union[ObjectType, str]) -> Envelope:
        """Return a fresh envelope with the current schema version for the type."""
        objtype = ObjectType(objtype)
        return cls(body=EnvelopeBody(type=objtype, version=LAYOUT.version_of(objtype)))

    def __bytes__(self) -> bytes:
        """Serialize to YAML and return UTF-8 encoded bytes to be written in a file."""
        return dump_bytes(self.model_dump(mode="json", by_alias=True))


def meta_filename(directory: Path) -> Path:
    return Path(directory) / LAYOUT.meta_filename


def write(directory: Path, objtype: Union[ObjectType, str]) -> Envelope:
    """Create a new object directory with an envelope of the given type.

    Missing parent directories are created. The object directory becomes visible
    only together with its completely written envelope. Fails if anything
    already exists at the target path.
    """
    directory = Path(directory)
    if directory.exists() or directory.is_symlink():
        raise AlreadyExistsError(f"{directory}: already exists")

    env = Envelope.create(objtype)
    with staged_directory(directory) as staging:
        with open(meta_filename(staging), "wb") as f:
            f.write(bytes(env))
            f.flush()
            os.fsync(f.fileno())
    logger.debug("created %s object at %s", env.type.value, directory)
    return env


def read(directory: Path) -> Optional[Envelope]:
    """Return the envelope of a directory, or None if it has no valid one."""
    path = meta_filename(directory)
    if not path.is_file():
        return None
    try:
        return Envelope.model_validate(load_file(path))
    except (ValidationError, YAMLError, UnicodeDecodeError) as e:
        logger.debug("ignoring invalid envelope %s: %s", path, e)
        return None


def load(directory: Path, expected: Optional[ObjectType] = None) -> Envelope:
    """Return the envelope of a directory, failing if it is missing or of wrong type."""
    env = read(directory)
    if env is None:
        raise InvalidFormatError(f"{directory}: not a valid exdir object")
    if expected is not None and env.type != expected:
        msg = f"expected object of type {expected.value}, found {env.type.value}"
        raise InvalidFormatError(f"{directory}: {msg}")
    return env


def object_type(directory: Path) -> Optional[ObjectType]:
    """Return the type of a store object, or None for unmanaged directories."""
    env = read(directory)
    return env.type if env is not None else None


def is_nonraw_object_directory(directory: Path) -> bool:
    """Return whether the directory is a store object (File, Group or Dataset)."""
    return Path(directory).is_dir() and read(directory) is not None


def is_raw_object_directory(directory: Path) -> bool:
    """Return whether the directory is unmanaged, i.e. has no valid envelope."""
    return Path(directory).is_dir() and read(directory) is None


is_exdir_object = is_nonraw_object_directory
