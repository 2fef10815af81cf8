"""
Hierarchical HDF5-like data stores on top of plain directories.

A store is a directory tree in which every managed directory carries a small
YAML envelope file stating whether it is a file (the root), a group or a
dataset. Attributes live in an optional `attributes.yaml` next to the
envelope, array data of datasets in a `.npy` file, and any other files can be
kept in unmanaged `__raw__` folders.

```
experiment.exdir/
  exdir.yaml          # {exdir: {type: file, version: 1}}
  attributes.yaml
  session_1/
    exdir.yaml        # {exdir: {type: group, version: 1}}
    trace/
      exdir.yaml      # {exdir: {type: dataset, version: 1}}
      data.npy
      __raw__/
```

## Getting Started

```python
from exdir_core import File

with File("experiment", "w") as f:
    grp = f.create_group("session_1")
    ds = grp.create_dataset("trace", data=[1.0, 2.0, 3.0])
    ds.attrs["unit"] = "mV"

with File("experiment", "r") as f:
    print(f["session_1/trace"][:])
```
"""

from .config import LAYOUT, NamingRule, ObjectType, OpenMode
from .errors import (
    AlreadyExistsError,
    ClosedError,
    ExdirError,
    InvalidArgumentError,
    InvalidFormatError,
    LockContentionError,
    NotFoundError,
    ReadOnlyError,
)
from .meta import Attribute, Envelope
from .tree import Dataset, File, Group, Object, Raw, open_object

__all__ = [
    "LAYOUT",
    "AlreadyExistsError",
    "Attribute",
    "ClosedError",
    "Dataset",
    "Envelope",
    "ExdirError",
    "File",
    "Group",
    "InvalidArgumentError",
    "InvalidFormatError",
    "LockContentionError",
    "NamingRule",
    "NotFoundError",
    "Object",
    "ObjectType",
    "OpenMode",
    "Raw",
    "ReadOnlyError",
    "open_object",
]
