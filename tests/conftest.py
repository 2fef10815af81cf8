import secrets
import shutil
from pathlib import Path

import pytest

from exdir_core import File


@pytest.fixture(scope="session")
def ds_dir(tmpdir_factory):
    """Create a fresh temporary directory for stores created in the tests."""
    return Path(tmpdir_factory.mktemp("exdir_tests"))


@pytest.fixture
def tmp_ds_path_factory(ds_dir):
    """Return a store path generator to be used for creating stores.

    All stores created under these paths will be cleaned up after the test.
    """
    names = []

    def fresh_name() -> Path:
        name = secrets.token_hex(4)
        names.append(name)
        return ds_dir / name

    yield fresh_name

    # clean up
    for name in names:
        for path in ds_dir.glob(f"{name}*"):
            if path.is_file() or path.is_symlink():
                path.unlink()
            elif path.is_dir():
                shutil.rmtree(path)


@pytest.fixture
def tmp_ds_path(tmp_ds_path_factory):
    """Generate a store path (without the .exdir suffix) for creating a store."""
    return tmp_ds_path_factory()


@pytest.fixture
def fresh_file(tmp_ds_path):
    """Return a fresh writable store. It is closed after the test."""
    with File(tmp_ds_path, "w") as f:
        yield f


@pytest.fixture
def fresh_dir(tmp_ds_path):
    """Return an empty plain directory."""
    tmp_ds_path.mkdir()
    return tmp_ds_path
