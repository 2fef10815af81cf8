"""Array payload of datasets, stored as a single `.npy` file."""
import logging
from pathlib import Path
from typing import Any, Optional, Tuple

import numpy as np

from ..config import LAYOUT
from ..util.fs import DirectoryLock, atomic_write

logger = logging.getLogger(__name__)


def data_filename(directory: Path) -> Path:
    return Path(directory) / LAYOUT.data_filename


def prepare(
    shape: Optional[Tuple[int, ...]] = None,
    dtype: Any = None,
    data: Any = None,
    fillvalue: Any = None,
) -> np.ndarray:
    """Build the array to be stored from the arguments of `create_dataset`.

    Runs before anything is written, so invalid arguments leave no trace.
    """
    if data is None:
        if shape is None:
            raise TypeError("Cannot create dataset, missing shape or data.")
        if fillvalue is None:
            arr = np.zeros(shape, dtype=dtype)
        else:
            arr = np.full(shape, fillvalue, dtype=dtype)
    else:
        arr = np.asarray(data, dtype=dtype)
        if shape is not None and tuple(shape) != arr.shape:
            if int(np.prod(shape)) != arr.size:
                msg = f"Shape {tuple(shape)} does not fit data of shape {arr.shape}"
                raise ValueError(msg)
            arr = arr.reshape(shape)
    if arr.dtype.hasobject:
        raise TypeError(f"Data type {arr.dtype} cannot be stored (Python objects).")
    return arr


def write(directory: Path, arr: np.ndarray) -> None:
    """Replace the payload of a dataset.

    Holds a lock on the dataset directory only for the duration of the write.
    """
    arr = np.asarray(arr)
    with DirectoryLock(directory, blocking=True):
        atomic_write(data_filename(directory), lambda f: np.save(f, arr))
    logger.debug("wrote %s %s array to %s", arr.shape, arr.dtype, directory)


def read(directory: Path, writable: bool = False) -> Optional[np.ndarray]:
    """Return the payload of a dataset, memory-mapped where possible.

    An empty dataset (no payload written) yields None.
    """
    path = data_filename(directory)
    if not path.is_file():
        return None
    try:
        return np.load(path, mmap_mode="r+" if writable else "r", allow_pickle=False)
    except ValueError:
        # e.g. zero-sized arrays cannot be memory-mapped
        arr = np.load(path, allow_pickle=False)
        arr.flags.writeable = writable
        return arr


def write_slice(directory: Path, key: Any, value: Any) -> None:
    """Assign to a part of the payload, in place where possible."""
    with DirectoryLock(directory, blocking=True):
        data = read(directory, writable=True)
        if data is None:
            raise KeyError(f"{directory}: dataset has no data to update")
        data[key] = value
        if isinstance(data, np.memmap):
            data.flush()
            return
    write(directory, data)
