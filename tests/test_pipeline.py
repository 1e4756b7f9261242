import numpy as np
import pytest

from cnt_exciton import CNT, CNTParameters, RangeDependencyError, SimulationParameters
from cnt_exciton.io import load_exciton_branches, load_range_table


def test_stages_refuse_to_run_out_of_order():
    cnt = CNT(SimulationParameters(n=4, m=2, number_of_cnt_unit_cells=6))
    with pytest.raises(RangeDependencyError):
        cnt.find_valleys()
    with pytest.raises(RangeDependencyError):
        cnt.calculate_polarization((0, 1), (0, 1))
    with pytest.raises(RangeDependencyError):
        cnt.calculate_dielectric((0, 1), (0, 1))
    cnt.calculate_vq((0, 1), (0, 1))
    with pytest.raises(RangeDependencyError):
        cnt.calculate_dielectric((0, 1), (0, 1))
    with pytest.raises(RangeDependencyError):
        cnt.calculate_exciton_energy((0, 1))


def test_4_2_end_to_end(tmp_path):
    out = tmp_path / "out"
    sim = SimulationParameters(name="t42", n=4, m=2, number_of_cnt_unit_cells=10, vq_cells=11,
                               output_directory=str(out))
    cnt = CNT(sim=sim, params=CNTParameters(), save=True)
    assert cnt.lat.Nu == 28
    assert cnt.lat.pos_a.shape == (28, 2)

    full = cnt.electron_full()
    assert full.energy.shape == (56, 10)

    branches = cnt.calculate_exciton_dispersion()
    n_relev = len(cnt.window)
    assert branches.A1.shape == (2 * n_relev, n_relev)
    assert branches.ik_cm_range == (-n_relev, n_relev)
    assert np.all(np.isfinite(branches.A1))

    iq_range, mu_range = cnt.zone.default_q_ranges()
    assert cnt.eps.iq_range == iq_range
    assert cnt.eps.mu_range == mu_range

    for table in ("atoms", "el_energy_full", "el_energy_K2", "vq", "PI", "eps", "exciton"):
        assert (out / f"t42.{table}.npz").exists()
    assert np.array_equal(load_range_table(out / "t42.eps.npz").data, cnt.eps.data)
    assert np.array_equal(load_exciton_branches(out / "t42.exciton.npz").A1, branches.A1)


def test_subband_index_selects_another_valley_pair():
    cnt = CNT(SimulationParameters(n=4, m=2, number_of_cnt_unit_cells=10, i_sub=1))
    cnt.electron_K2_extended()
    valleys = cnt.find_valleys()
    window = cnt.find_relev_ik_range(0.5)
    assert list(valleys[1].valley_1) in window.valley_1.tolist()
    assert np.all(window.valley_1[:, 1] == valleys[1].valley_1[1])
    assert window.i_sub == 1


def test_window_spanning_the_whole_line_stays_inside_vq():
    cnt = CNT(SimulationParameters(n=5, m=0, number_of_cnt_unit_cells=4, vq_cells=3, delta_energy_eV=50.0))
    branches = cnt.calculate_exciton_dispersion()
    nk_K2 = cnt.zone.nk_K2
    assert len(cnt.window) == nk_K2
    assert branches.ik_cm_range == (-(nk_K2 - 1), nk_K2)
    assert branches.A1.shape == (2 * nk_K2 - 1, nk_K2)
    assert np.all(np.isfinite(branches.A2_singlet))


def test_full_bands_use_the_cache_directory(tmp_path):
    sim = SimulationParameters(n=4, m=2, number_of_cnt_unit_cells=6, cache_directory=str(tmp_path))
    first = CNT(sim).electron_full()
    cached = list(tmp_path.glob("full_eigs_*.npz"))
    assert len(cached) == 1
    again = CNT(sim).electron_full()
    assert np.array_equal(again.energy, first.energy)
    assert list(tmp_path.glob("full_eigs_*.npz")) == cached
