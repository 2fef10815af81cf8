import numpy as np
import pytest

from exdir_core import Dataset, File
from exdir_core.config import LAYOUT
from exdir_core.errors import InvalidFormatError
from exdir_core.tree import codec


def test_create_from_data(fresh_file):
    ds = fresh_file.create_dataset("ds", data=[[1, 2, 3], [4, 5, 6]])
    assert isinstance(ds, Dataset)
    assert ds.shape == (2, 3)
    assert ds.ndim == 2
    assert ds.size == 6
    assert len(ds) == 2
    assert (ds.directory / LAYOUT.data_filename).is_file()
    np.testing.assert_array_equal(ds.value, [[1, 2, 3], [4, 5, 6]])
    np.testing.assert_array_equal(ds[1, 1:], [5, 6])
    np.testing.assert_array_equal(np.asarray(ds), ds.value)
    assert [list(row) for row in ds] == [[1, 2, 3], [4, 5, 6]]


def test_create_from_shape(fresh_file):
    ds = fresh_file.create_dataset("zeros", shape=(3, 2), dtype="int16")
    assert ds.dtype == np.dtype("int16")
    assert not ds.value.any()

    ds = fresh_file.create_dataset("filled", shape=(2, 2), fillvalue=7.5)
    assert ds.dtype == np.dtype("float64")
    assert (ds.value == 7.5).all()

    ds = fresh_file.create_dataset("reshaped", shape=(2, 2), data=[1, 2, 3, 4])
    assert ds.shape == (2, 2)

    ds = fresh_file.create_dataset("strings", data=np.array(["a", "bc"]))
    assert list(ds.value) == ["a", "bc"]


def test_scalar_dataset(fresh_file):
    ds = fresh_file.create_dataset("scalar", data=42)
    assert ds.shape == ()
    assert ds[()] == 42
    assert ds.value == 42
    with pytest.raises(TypeError):
        len(ds)
    with pytest.raises(TypeError):
        iter(ds)


@pytest.mark.parametrize(
    "kwargs,error",
    [
        ({}, TypeError),  # neither shape nor data
        ({"data": [1, 2, 3], "shape": (2, 2)}, ValueError),
        ({"data": np.array([object(), None], dtype=object)}, TypeError),
    ],
)
def test_invalid_arguments_create_nothing(fresh_file, kwargs, error):
    with pytest.raises(error):
        fresh_file.create_dataset("ds", **kwargs)
    assert "ds" not in fresh_file
    assert len(fresh_file) == 0


def test_failed_write_rolls_back(fresh_file, monkeypatch):
    def fail(directory, arr):
        raise OSError("disk full")

    fresh_file.create_group("grp")
    monkeypatch.setattr(codec, "write", fail)
    for name in ["ds", "grp/ds", "a/b/ds", "grp/x/y/ds"]:
        with pytest.raises(OSError):
            fresh_file.create_dataset(name, data=[1, 2, 3])
        assert name not in fresh_file
    # groups created for the dataset are gone, existing ones are kept
    assert fresh_file.keys() == ["grp"]
    assert fresh_file["grp"].keys() == []
    assert sorted(p.name for p in fresh_file.directory.iterdir()) == sorted(
        [LAYOUT.meta_filename, "grp"]
    )


def test_replace_value(fresh_file):
    ds = fresh_file.create_dataset("ds", data=[1, 2, 3])
    ds.value = np.arange(10.0)
    assert ds.shape == (10,)
    assert ds.dtype == np.dtype("float64")

    ds.data = [[1]]
    assert ds.shape == (1, 1)

    fresh_file["ds"] = [7, 8]
    np.testing.assert_array_equal(fresh_file["ds"].value, [7, 8])

    fresh_file["new"] = np.ones(3)
    assert isinstance(fresh_file["new"], Dataset)


def test_slice_assignment(fresh_file):
    ds = fresh_file.create_dataset("ds", data=np.zeros((3, 3)))
    ds[1, :] = 5
    ds[0, 0] = 1
    expected = np.zeros((3, 3))
    expected[1, :] = 5
    expected[0, 0] = 1
    np.testing.assert_array_equal(ds.value, expected)


def test_read_only_data(tmp_ds_path):
    with File(tmp_ds_path, "w") as f:
        f.create_dataset("ds", data=[1, 2, 3])
    with File(tmp_ds_path, "r") as f:
        ds = f["ds"]
        assert not ds.data.flags.writeable
        with pytest.raises(ValueError):
            ds.data[0] = 5
        np.testing.assert_array_equal(ds.value, [1, 2, 3])


def test_value_survives_reopen(tmp_ds_path):
    arr = np.random.default_rng(0).normal(size=(4, 5))
    with File(tmp_ds_path, "w") as f:
        f.create_dataset("a/b/ds", data=arr)
    with File(tmp_ds_path, "r") as f:
        np.testing.assert_array_equal(f["a/b/ds"].value, arr)


def test_missing_payload(fresh_file):
    ds = fresh_file.create_dataset("ds", data=[1])
    (ds.directory / LAYOUT.data_filename).unlink()
    with pytest.raises(InvalidFormatError):
        ds.data


def test_dataset_children(fresh_file):
    ds = fresh_file.create_dataset("ds", data=[1])
    ds.create_group("meta")
    ds.create_dataset("meta/error", data=[0.1])
    assert isinstance(fresh_file["ds/meta/error"], Dataset)
    # integer indexing goes to the array, not to children
    assert ds[0] == 1
