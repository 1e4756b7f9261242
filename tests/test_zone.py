import numpy as np
import pytest
from numpy.testing import assert_allclose

from cnt_exciton import CNTLattice, ExtendedZone
from cnt_exciton.tight_binding import structure_factor
from cnt_exciton.zone import find_M_Q

CHIRALITIES = [(n, m) for n in range(1, 11) for m in range(0, n + 1)]


def _in_reciprocal_lattice(lat, v, atol=1e-8):
    coeffs = np.linalg.solve(np.stack([lat.b1, lat.b2], axis=1), v)
    return np.allclose(coeffs, np.round(coeffs), atol=atol)


@pytest.mark.parametrize("n,m", CHIRALITIES)
def test_Q_divides_Nu(n, m):
    lat = CNTLattice.build(n, m)
    M, Q = find_M_Q(n, m, lat.t1, lat.t2, lat.Nu)
    assert Q >= 1
    assert lat.Nu % Q == 0


def test_4_2_folded_zone(zone42):
    assert (zone42.M, zone42.Q) == (6, 2)
    assert (zone42.ik_min, zone42.ik_max) == (0, 140)
    assert (zone42.mu_min, zone42.mu_max) == (0, 2)
    assert zone42.nk_K2 == 140
    assert zone42.fold_shift == 5


@pytest.mark.parametrize("n", [3, 5, 6, 8])
def test_zigzag_folded_zone(n):
    zone = ExtendedZone.build(CNTLattice.build(n, 0), nk=4)
    assert zone.Q == n
    assert zone.M == n


def test_K1_K2_duality(lat42, zone42):
    assert np.dot(zone42.K1, lat42.ch_vec) == pytest.approx(2 * np.pi)
    assert np.dot(zone42.K1, lat42.t_vec) == pytest.approx(0.0, abs=1e-12)
    assert np.dot(zone42.K2, lat42.ch_vec) == pytest.approx(0.0, abs=1e-12)
    assert np.dot(zone42.K2, lat42.t_vec) == pytest.approx(2 * np.pi)


@pytest.mark.parametrize("n,m", [(4, 2), (5, 0), (6, 0), (6, 5), (7, 5), (10, 3)])
def test_fold_periods_are_reciprocal_lattice_vectors(n, m):
    lat = CNTLattice.build(n, m)
    zone = ExtendedZone.build(lat, nk=4)
    # one full ik period, and one mu fold with its ik shift
    assert _in_reciprocal_lattice(lat, zone.nk_K2 * zone.dk_l)
    assert _in_reciprocal_lattice(lat, zone.Q * zone.K1 - zone.fold_shift * zone.K2)


def test_wrap_is_identity_inside_zone(zone42):
    ik, mu = np.meshgrid(np.arange(zone42.ik_max), np.arange(zone42.mu_max), indexing="ij")
    ik_w, mu_w, shift = zone42.wrap(ik, mu)
    assert np.array_equal(ik_w, ik)
    assert np.array_equal(mu_w, mu)
    assert np.all(shift == 0)


def test_wrap_lands_inside_zone_on_equivalent_k(lat42, zone42):
    ik = np.arange(-300, 300, 7)
    mu = np.arange(-5, 5)
    ik, mu = np.meshgrid(ik, mu, indexing="ij")
    ik_w, mu_w, _ = zone42.wrap(ik, mu)
    assert ik_w.min() >= zone42.ik_min and ik_w.max() < zone42.ik_max
    assert mu_w.min() >= zone42.mu_min and mu_w.max() < zone42.mu_max

    f = structure_factor(zone42.k_vector(ik, mu), lat42)
    f_w = structure_factor(zone42.k_vector(ik_w, mu_w), lat42)
    assert_allclose(np.abs(f_w), np.abs(f), atol=1e-9)


def test_q_axis(zone42):
    q = zone42.q_axis((-3, 2))
    assert_allclose(q, np.arange(-3, 2) * zone42.dk)


def test_default_q_ranges_cover_state_differences(zone42):
    iq_range, mu_range = zone42.default_q_ranges()
    assert iq_range == (-(zone42.ik_max - 1), zone42.ik_max)
    assert mu_range == (-(zone42.Q - 1), zone42.Q)
