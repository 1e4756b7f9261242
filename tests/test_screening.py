import numpy as np
import pytest
from numpy.testing import assert_allclose

from cnt_exciton import (
    CoulombKernel, InvalidRangeError, RangeDependencyError, calculate_dielectric,
    calculate_polarization, electron_K1_extended,
)

IQ_RANGE = (-3, 4)
MU_RANGE = (-1, 2)


@pytest.fixture(scope="module")
def vq42(lat42, zone42, params):
    return CoulombKernel(lat42, zone42, params).calculate(IQ_RANGE, MU_RANGE, 5)


@pytest.fixture(scope="module")
def PI42(bands42, zone42):
    return calculate_polarization(bands42, zone42, IQ_RANGE, MU_RANGE)


def test_polarization_shape_and_sign(PI42, zone42):
    assert PI42.data.shape == (7, 3)
    assert np.isrealobj(PI42.data)
    assert np.all(np.isfinite(PI42.data))
    # every denominator is a positive interband energy for a semiconducting tube
    assert np.all(PI42.data >= 0)
    assert_allclose(PI42.q_vec, np.arange(*IQ_RANGE) * zone42.dk)


def test_polarization_vanishes_at_zero_momentum(PI42):
    # valence and conduction states at the same k are orthogonal
    assert PI42.at(0, 0) == pytest.approx(0.0, abs=1e-12)
    assert PI42.at(1, 0) > 0


def test_polarization_with_worker_processes_matches_serial(bands42, zone42, PI42):
    pooled = calculate_polarization(bands42, zone42, IQ_RANGE, MU_RANGE, processes=2)
    assert_allclose(pooled.data, PI42.data, rtol=1e-13)


def test_polarization_needs_K2_bands(lat42, zone42, params):
    bands_K1 = electron_K1_extended(lat42, zone42, params)
    with pytest.raises(ValueError):
        calculate_polarization(bands_K1, zone42, IQ_RANGE, MU_RANGE)


@pytest.mark.parametrize("iq_range,mu_range", [((0, 0), (0, 1)), ((0, 1), (2, 1))])
def test_polarization_rejects_empty_ranges(bands42, zone42, iq_range, mu_range):
    with pytest.raises(InvalidRangeError):
        calculate_polarization(bands42, zone42, iq_range, mu_range)


def test_dielectric_on_covered_sub_range(vq42, PI42):
    eps = calculate_dielectric(vq42, PI42, (-2, 3), (0, 2))
    assert eps.data.shape == (5, 2)
    expected = 1.0 + np.mean(vq42.sub((-2, 3), (0, 2)).real, axis=-1) * PI42.sub((-2, 3), (0, 2))
    assert_allclose(eps.data, expected)
    assert_allclose(eps.q_vec, vq42.q_vec[1:6])
    assert eps.at(0, 0) == pytest.approx(1.0)


@pytest.mark.parametrize("iq_range,mu_range", [((-5, 2), (0, 1)), ((0, 5), (0, 1)), ((0, 1), (-2, 0))])
def test_dielectric_outside_computed_range(vq42, PI42, iq_range, mu_range):
    with pytest.raises(RangeDependencyError):
        calculate_dielectric(vq42, PI42, iq_range, mu_range)


def test_dielectric_needs_polarization_over_the_range(vq42, bands42, zone42):
    narrow_PI = calculate_polarization(bands42, zone42, (0, 2), (0, 1))
    with pytest.raises(RangeDependencyError):
        calculate_dielectric(vq42, narrow_PI, (-1, 2), (0, 1))
