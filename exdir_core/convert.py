"""Import of HDF5 files and subtrees into exdir stores."""
import logging
from pathlib import Path
from typing import Union

import h5py
import numpy as np

from .config import OpenMode
from .tree import File
from .tree.objects import ParentObject

logger = logging.getLogger(__name__)


def _copy_attrs(src_node, target) -> None:
    if len(src_node.attrs):
        target.attrs.update({k: v for k, v in src_node.attrs.items()})


def _dataset_value(source: h5py.Dataset):
    value = source[()]
    if isinstance(value, np.ndarray) and value.dtype.hasobject:
        # variable-length strings, not storable as .npy without pickling
        value = np.array(source.asstr()[()].tolist())
    return value


def _copy_children(source_group: h5py.Group, target: ParentObject) -> None:
    for name in source_group.keys():
        link = source_group.get(name, getlink=True)
        if not isinstance(link, h5py.HardLink):
            msg = f"{source_group.name}/{name}: links are not supported"
            raise ValueError(msg)
        from_hdf5(source_group[name], target, name)


def from_hdf5(source_node, target_group: ParentObject, target_path: str):
    """Copy an HDF5 group or dataset (with attributes) into a store.

    Source node must be a h5py group or dataset, the target must be an existing
    group of a writable store and `target_path` a fresh relative path in it.
    Soft and external links are not supported.
    """
    if not target_path or target_path[0] == "/":
        raise ValueError("Target path must be non-empty and relative!")

    if isinstance(source_node, h5py.Dataset):
        node = target_group.create_dataset(target_path, data=_dataset_value(source_node))
        _copy_attrs(source_node, node)
        return node
    if not isinstance(source_node, h5py.Group):
        raise ValueError(f"Can only copy from a group or dataset, got {source_node}")

    trg_root = target_group.create_group(target_path)
    _copy_attrs(source_node, trg_root)
    _copy_children(source_node, trg_root)
    return trg_root


def hdf5_to_exdir(
    h5_path: Union[Path, str],
    exdir_path: Union[Path, str],
    mode: OpenMode = "w-",
    **kwargs,
) -> Path:
    """Convert a whole HDF5 file into a new exdir store.

    Additional keyword arguments (e.g. `allow_remove`, `name_validation`)
    are passed on to `File`. Returns the directory of the created store.
    """
    with h5py.File(h5_path, "r") as h5, File(exdir_path, mode, **kwargs) as ex:
        _copy_attrs(h5, ex)
        _copy_children(h5, ex)
        logger.info("converted %s into %s", h5_path, ex.directory)
        return ex.directory
