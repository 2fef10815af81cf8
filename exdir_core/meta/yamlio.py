"""YAML reading and writing for envelope and attribute files."""
from io import BytesIO
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..util.fs import atomic_write

__all__ = ["YAMLError", "dump_bytes", "load_file", "save_file"]


def _yaml() -> YAML:
    # instances are not thread-safe, so every call gets its own
    yaml = YAML(typ="safe", pure=True)
    yaml.default_flow_style = False
    return yaml


def dump_bytes(data: Any) -> bytes:
    """Serialize plain data (dicts, lists, scalars) into UTF-8 encoded YAML."""
    buf = BytesIO()
    _yaml().dump(data, buf)
    return buf.getvalue()


def load_file(path: Path) -> Any:
    """Parse a YAML file. An empty file yields None."""
    with open(path, "rb") as f:
        return _yaml().load(f)


def save_file(path: Path, data: Any) -> None:
    """Atomically replace a YAML file with the serialized data."""
    dat = dump_bytes(data)
    atomic_write(Path(path), lambda f: f.write(dat))
