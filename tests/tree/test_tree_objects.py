"""Test creation and navigation of groups, datasets and raw directories."""
from pathlib import PurePosixPath

import pytest

from exdir_core import Dataset, File, Group, Raw, open_object
from exdir_core.config import LAYOUT, ObjectType
from exdir_core.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    InvalidFormatError,
    LockContentionError,
    NotFoundError,
    ReadOnlyError,
)
from exdir_core.meta import envelope


def test_create_group(fresh_file):
    grp = fresh_file.create_group("test")
    assert isinstance(grp, Group)
    assert grp.name == "/test"
    assert grp.object_name == "test"
    assert grp.relative_path == PurePosixPath("test")
    assert grp.directory == fresh_file.directory / "test"
    assert grp.meta.type == ObjectType.GROUP
    assert grp.meta.version == 1

    grp2 = grp.create_group("test2")
    assert grp2.name == "/test/test2"
    assert grp2.parent_path == PurePosixPath("test")
    assert envelope.object_type(grp2.directory) == ObjectType.GROUP


def test_root_identity(fresh_file):
    assert fresh_file.name == "/"
    assert fresh_file.parent is None
    assert fresh_file.meta.type == ObjectType.FILE


@pytest.mark.parametrize(
    "first,second",
    [("group", "group"), ("group", "dataset"), ("dataset", "group"),
     ("dataset", "dataset"), ("raw", "group"), ("raw", "dataset"),
     ("group", "raw")],
)
def test_sibling_names_unique(fresh_file, first, second):
    def make(kind, parent):
        if kind == "group":
            return parent.create_group("name")
        if kind == "dataset":
            return parent.create_dataset("name", data=[1, 2, 3])
        return parent.create_raw("name")

    for parent in [fresh_file, fresh_file.create_group("sub")]:
        make(first, parent)
        with pytest.raises(AlreadyExistsError):
            make(second, parent)
        assert envelope.object_type(parent.directory / "name") == (
            None if first == "raw" else ObjectType(first)
        )


def test_plain_file_blocks_name(fresh_file):
    (fresh_file.directory / "notes").write_text("hi")
    with pytest.raises(AlreadyExistsError):
        fresh_file.create_group("notes")
    assert "notes" not in fresh_file


def test_nested_creation(fresh_file):
    grp = fresh_file.create_group("a/b/c")
    assert grp.name == "/a/b/c"
    assert isinstance(fresh_file["a"], Group)
    assert isinstance(fresh_file["a/b"], Group)

    ds = grp.create_dataset("/x/y", data=[1])  # absolute: from the root
    assert ds.name == "/x/y"
    assert "x/y" in fresh_file

    with pytest.raises(AlreadyExistsError):
        fresh_file.create_group("a/b")
    with pytest.raises(InvalidArgumentError):
        fresh_file.create_group("a/../b")
    with pytest.raises(InvalidArgumentError):
        fresh_file.create_group("")


def test_getitem_dispatch_by_envelope(fresh_file):
    fresh_file.create_group("grp")
    fresh_file.create_dataset("ds", data=[1, 2])
    fresh_file.create_raw("raw")

    assert type(fresh_file["grp"]) is Group
    assert type(fresh_file["ds"]) is Dataset
    assert type(fresh_file["raw"]) is Raw
    assert fresh_file["/grp"] == fresh_file["grp"]

    with pytest.raises(KeyError):
        fresh_file["missing"]
    with pytest.raises(KeyError):
        fresh_file[LAYOUT.meta_filename]
    with pytest.raises(KeyError):
        fresh_file["raw/inner"]  # raw directories are opaque
    assert fresh_file.get("missing") is None


def test_type_from_envelope_not_shape(fresh_file):
    # looks like a dataset, but the envelope says group
    grp = fresh_file.create_group("grp")
    (grp.directory / LAYOUT.data_filename).write_bytes(b"junk")
    assert type(fresh_file["grp"]) is Group

    # envelope of a nested file is rejected
    envelope.write(fresh_file.directory / "inner", ObjectType.FILE)
    with pytest.raises(InvalidFormatError):
        fresh_file["inner"]


def test_iteration(fresh_file):
    fresh_file.create_group("b")
    fresh_file.create_dataset("a", data=[0])
    fresh_file.create_raw("c")
    fresh_file.create_raw(LAYOUT.raw_folder_name)
    fresh_file.attrs["x"] = 1

    assert list(fresh_file) == ["a", "b", "c"]
    assert fresh_file.keys() == ["a", "b", "c"]
    assert len(fresh_file) == 3
    assert [v.name for v in fresh_file.values()] == ["/a", "/b", "/c"]
    assert [k for k, _ in fresh_file.items()] == ["a", "b", "c"]


def test_parent_lookup(fresh_file):
    grp = fresh_file.create_group("a/b")
    assert grp.parent == fresh_file["a"]
    assert grp.parent.parent == fresh_file
    assert isinstance(grp.parent.parent, Group)


def test_require_group(fresh_file):
    grp = fresh_file.require_group("g")
    assert fresh_file.require_group("g") == grp
    fresh_file.create_dataset("d", data=[1])
    with pytest.raises(TypeError):
        fresh_file.require_group("d")


def test_require_dataset(fresh_file):
    ds = fresh_file.require_dataset("d", shape=(2, 3), dtype="int32")
    assert ds.shape == (2, 3)
    assert fresh_file.require_dataset("d", shape=(2, 3), dtype="int16") == ds
    with pytest.raises(TypeError):
        fresh_file.require_dataset("d", shape=(3, 2))
    with pytest.raises(TypeError):
        fresh_file.require_dataset("d", shape=(2, 3), dtype="float64")
    with pytest.raises(TypeError):
        fresh_file.require_dataset("d", shape=(2, 3), dtype="int16", exact=True)
    fresh_file.create_group("g")
    with pytest.raises(TypeError):
        fresh_file.require_dataset("g", shape=(1,))


def test_raw(fresh_file):
    ds = fresh_file.create_dataset("ds", data=[1])
    raw = ds.create_raw(LAYOUT.raw_folder_name)
    assert isinstance(raw, Raw)
    assert raw.directory == ds.raw_directory
    (raw.directory / "video.avi").write_bytes(b"\x00\x01")
    assert ds.require_raw(LAYOUT.raw_folder_name) == raw
    with pytest.raises(AlreadyExistsError):
        ds.create_raw(LAYOUT.raw_folder_name)
    with pytest.raises(TypeError):
        fresh_file.require_raw("ds")

    # metadata, attributes and raw folder do not collide
    ds.attrs["a"] = 1
    names = {ds.meta_filename, ds.attributes_filename, ds.raw_directory}
    assert len(names) == 3
    assert all(p.parent == ds.directory for p in names)
    assert all(p.exists() for p in names)


def test_delete(fresh_file):
    fresh_file.create_group("a/b/c")
    fresh_file.create_dataset("d", data=[1])
    del fresh_file["a"]
    del fresh_file["d"]
    assert "a" not in fresh_file
    assert "d" not in fresh_file
    assert list(fresh_file.directory.iterdir()) == [fresh_file.meta_filename]
    with pytest.raises(KeyError):
        del fresh_file["a"]
    with pytest.raises(InvalidArgumentError):
        del fresh_file["/"]


def test_read_only_objects(tmp_ds_path):
    with File(tmp_ds_path, "w") as f:
        f.create_group("grp")
        f["ds"] = [1, 2, 3]
    with File(tmp_ds_path, "r") as f:
        grp = f["grp"]
        for op in [
            lambda: grp.create_group("x"),
            lambda: grp.create_dataset("x", data=[1]),
            lambda: grp.create_raw("x"),
            lambda: f.__setitem__("new", [1]),
            lambda: f.__delitem__("grp"),
            lambda: f["ds"].__setitem__(0, 5),
        ]:
            with pytest.raises(ReadOnlyError):
                op()
        assert list(f["ds"][:]) == [1, 2, 3]


def test_visit(fresh_file):
    fresh_file.create_group("a/b")
    fresh_file.create_dataset("a/d", data=[1])
    fresh_file.create_group("c")

    seen = []
    assert fresh_file.visit(seen.append) is None
    assert seen == ["a", "a/b", "a/d", "c"]

    found = fresh_file.visititems(
        lambda name, obj: name if isinstance(obj, Dataset) else None
    )
    assert found == "a/d"

    seen = []
    fresh_file["a"].visit(seen.append)
    assert seen == ["b", "d"]


def test_staging_entries_hidden(fresh_file):
    (fresh_file.directory / f"{LAYOUT.staging_prefix}abc").mkdir()
    assert len(fresh_file) == 0
    assert f"{LAYOUT.staging_prefix}abc" not in fresh_file


def test_equality(fresh_file):
    a = fresh_file.create_group("a")
    assert a == fresh_file["a"]
    assert hash(a) == hash(fresh_file["a"])
    assert a != fresh_file.create_group("b")
    assert a != "a"


def test_open_object(tmp_ds_path):
    with File(tmp_ds_path, "w") as f:
        directory = f.create_dataset("a/b", data=[1, 2]).directory
        root = f.directory
    f, ds = open_object(directory)
    with f:
        assert isinstance(ds, Dataset)
        assert ds.name == "/a/b"
        assert not ds.file_writable
    assert f.closed
    assert not ds

    f, ds = open_object(directory, "r+")
    with f:
        assert ds.file_writable
        ds.attrs["checked"] = True
        with pytest.raises(LockContentionError):
            File(root, "r+")
    # closing the returned file releases the write lock
    f, node = open_object(root, "r+")
    with f:
        assert node == f
        assert node["a/b"].attrs["checked"] is True
    with pytest.raises(NotFoundError):
        open_object(root.parent)
