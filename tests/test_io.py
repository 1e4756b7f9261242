import numpy as np
import pytest

from cnt_exciton import ExcitonBranches, RangeTable
from cnt_exciton.io import (
    load_arrays, load_exciton_branches, load_folded_bands, load_range_table, output_path,
    prepare_output_directory, save_arrays, save_exciton_branches, save_folded_bands, save_geometry,
    save_range_table,
)


def test_prepare_output_directory_empties_existing(tmp_path):
    out = tmp_path / "run"
    (out / "sub").mkdir(parents=True)
    (out / "old.npz").write_text("stale")
    (out / "sub" / "deep.txt").write_text("stale")
    assert prepare_output_directory(out) == out
    assert out.is_dir()
    assert list(out.iterdir()) == []


def test_prepare_output_directory_creates_missing(tmp_path):
    out = prepare_output_directory(tmp_path / "a" / "b")
    assert out.is_dir()


def test_output_path():
    assert str(output_path("out", "cnt", "vq")).endswith("cnt.vq.npz")


def test_arrays_and_meta_round_trip(tmp_path):
    rng = np.random.default_rng(3)
    a = rng.normal(size=(4, 3))
    path = save_arrays(tmp_path / "x.npz", meta={"n": 4, "label": "test"}, a=a)
    arrays, meta = load_arrays(path)
    assert np.array_equal(arrays["a"], a)
    assert meta == {"n": 4, "label": "test"}


def test_range_table_round_trip_is_exact(tmp_path):
    rng = np.random.default_rng(7)
    data = rng.normal(size=(5, 3, 4)) + 1j * rng.normal(size=(5, 3, 4))
    table = RangeTable(data=data, iq_range=(-2, 3), mu_range=(-1, 2), q_vec=np.arange(-2, 3) * 0.1)
    loaded = load_range_table(save_range_table(tmp_path / "vq.npz", table))
    assert loaded.iq_range == (-2, 3)
    assert loaded.mu_range == (-1, 2)
    assert isinstance(loaded.iq_range[0], int)
    assert loaded.data.dtype == np.complex128
    assert np.array_equal(loaded.data, data)
    assert np.array_equal(loaded.q_vec, table.q_vec)


def test_bands_round_trip(tmp_path, bands42):
    loaded = load_folded_bands(save_folded_bands(tmp_path / "bands.npz", bands42))
    assert loaded.representation == "K2"
    assert loaded.ik_range == bands42.ik_range
    assert np.array_equal(loaded.energy, bands42.energy)
    assert np.array_equal(loaded.psi, bands42.psi)


def test_exciton_round_trip(tmp_path):
    rng = np.random.default_rng(11)
    branches = ExcitonBranches(k_cm_vec=np.arange(-2, 2) * 0.05, ik_cm_range=(-2, 2),
                               A1=rng.normal(size=(4, 3)), A2_triplet=rng.normal(size=(4, 3)),
                               A2_singlet=rng.normal(size=(4, 3)))
    loaded = load_exciton_branches(save_exciton_branches(tmp_path / "ex.npz", branches))
    assert loaded.ik_cm_range == (-2, 2)
    for name in ("k_cm_vec", "A1", "A2_triplet", "A2_singlet"):
        assert np.array_equal(getattr(loaded, name), getattr(branches, name))


def test_geometry_file(tmp_path, lat42):
    arrays, meta = load_arrays(save_geometry(tmp_path / "atoms.npz", lat42, meta={"n": 4}))
    assert arrays["pos_a"].shape == (28, 2)
    assert arrays["pos_3d"].shape == (56, 3)
    assert meta["n"] == 4


def test_range_table_shape_is_checked():
    with pytest.raises(ValueError):
        RangeTable(data=np.zeros((3, 2)), iq_range=(0, 2), mu_range=(0, 2), q_vec=np.zeros(2))
