from pathlib import Path
from typing import List

from .fs import is_staging_name


def list_entries(directory: Path) -> List[str]:
    """Return sorted names of entries in a directory, hiding staging entries."""
    return sorted(p.name for p in Path(directory).iterdir() if not is_staging_name(p.name))
