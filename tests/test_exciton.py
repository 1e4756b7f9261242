import numpy as np
import pytest
import scipy.linalg
from numpy.testing import assert_allclose

from cnt_exciton import (
    CNT, ConfigurationError, ExcitonSolver, InvalidRangeError, RangeDependencyError,
    RangeTable, RelevantWindow, SimulationParameters,
)
from cnt_exciton.solver import IC, IV
from cnt_exciton.utils import max_antihermitian


@pytest.fixture(scope="module")
def cnt42():
    cnt = CNT(SimulationParameters(n=4, m=2, number_of_cnt_unit_cells=10, vq_cells=11))
    cnt.electron_K2_extended()
    cnt.find_valleys()
    cnt.find_relev_ik_range(1.0)
    iq_range, mu_range = cnt.zone.default_q_ranges()
    cnt.calculate_vq(iq_range, mu_range)
    cnt.calculate_polarization(iq_range, mu_range)
    cnt.calculate_dielectric(iq_range, mu_range)
    return cnt


@pytest.fixture(scope="module")
def solver42(cnt42):
    return ExcitonSolver(cnt42.bands_K2, cnt42.zone, cnt42.window, cnt42.vq, cnt42.eps)


@pytest.mark.parametrize("ik_cm", [0, 1, -2])
def test_kernels_are_hermitian(solver42, ik_cm):
    K = solver42.build_kernels(ik_cm)
    n = solver42.n_relev
    for M in (K.K11, K.K12, K.KX):
        assert M.shape == (n, n)
        assert max_antihermitian(M) < 1e-10


def test_branches_shape_and_order(cnt42):
    n = len(cnt42.window)
    branches = cnt42.calculate_exciton_energy((-2, 3))
    assert branches.ik_cm_range == (-2, 3)
    assert_allclose(branches.k_cm_vec, np.arange(-2, 3) * cnt42.zone.dk)
    for energies in (branches.A1, branches.A2_triplet, branches.A2_singlet):
        assert energies.shape == (5, n)
        assert np.isrealobj(energies)
        assert np.all(np.diff(energies, axis=1) >= -1e-12)


def test_branches_are_eigenvalues_of_kernel_combinations(solver42):
    K = solver42.build_kernels(1)
    branches = solver42.calculate((1, 2))
    assert_allclose(branches.A1[0], scipy.linalg.eigvalsh(K.K11 - K.K12), atol=1e-12)
    assert_allclose(branches.A2_triplet[0], scipy.linalg.eigvalsh(K.K11 + K.K12), atol=1e-12)
    assert_allclose(branches.A2_singlet[0], scipy.linalg.eigvalsh(K.K11 + K.K12 + 2 * K.KX), atol=1e-12)


def test_bound_exciton_lies_below_free_gap(solver42, cnt42):
    K = solver42.build_kernels(0)
    states = cnt42.window.valley_1
    free = (cnt42.bands_K2.energy_at(states[:, 0], states[:, 1], IC)
            - cnt42.bands_K2.energy_at(states[:, 0], states[:, 1], IV))
    assert_allclose(np.diag(K.K11).imag, 0.0, atol=1e-12)
    assert np.all(np.diag(K.K11).real < free)
    assert scipy.linalg.eigvalsh(K.K11)[0] < free.min()
    assert scipy.linalg.eigvalsh(K.K11 - K.K12)[0] <= free.min()

    branches = solver42.calculate((0, 1))
    assert branches.A1[0, 0] <= free.min()


def test_unequal_windows_are_rejected(cnt42):
    w = cnt42.window
    lopsided = RelevantWindow(valley_1=w.valley_1, valley_2=w.valley_2[:-1], i_sub=0, delta_energy=1.0)
    with pytest.raises(ConfigurationError):
        ExcitonSolver(cnt42.bands_K2, cnt42.zone, lopsided, cnt42.vq, cnt42.eps)


def test_empty_centre_of_mass_range(solver42):
    with pytest.raises(InvalidRangeError):
        solver42.calculate((0, 0))


def test_missing_dielectric_entries(cnt42):
    narrow_eps = RangeTable(
        data=cnt42.eps.sub((0, 1), (0, 1)), iq_range=(0, 1), mu_range=(0, 1), q_vec=cnt42.eps.q_vec[:1],
    )
    solver = ExcitonSolver(cnt42.bands_K2, cnt42.zone, cnt42.window, cnt42.vq, narrow_eps)
    with pytest.raises(RangeDependencyError):
        solver.calculate((0, 1))
