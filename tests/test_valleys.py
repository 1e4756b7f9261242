import numpy as np
import pytest

from cnt_exciton import (
    CNTLattice, CNTParameters, ConfigurationError, ExtendedZone, FoldedBands, ValleyRecord,
    electron_K2_extended, find_valleys, relevant_window,
)
from cnt_exciton.valleys import find_local_minima


def _line_bands(conduction):
    """FoldedBands with the given (n_mu, nk) conduction band and a mirrored valence band."""
    Ec = np.asarray(conduction, dtype=float)
    energy = np.stack([-Ec, Ec], axis=-1)
    psi = np.zeros(Ec.shape + (2, 2), dtype=complex)
    return FoldedBands(energy=energy, psi=psi, ik_range=(0, Ec.shape[1]), mu_range=(0, Ec.shape[0]))


def test_minima_are_listed_ik_major():
    bands = _line_bands([[5, 1, 5, 5], [1, 5, 5, 5]])
    assert find_local_minima(bands) == [(0, 1), (1, 0)]
    (rec,) = find_valleys(bands)
    assert rec.valley_1 == (0, 1)
    assert rec.valley_2 == (1, 0)


def test_odd_minimum_is_dropped():
    bands = _line_bands([[5, 1, 5, 1, 5, 2, 5]])
    records = find_valleys(bands)
    assert len(records) == 1
    assert (records[0].valley_1, records[0].valley_2) == ((1, 0), (3, 0))
    assert records[0].energy_1 == records[0].energy_2 == 1.0


def test_minimum_is_found_across_the_periodic_boundary():
    bands = _line_bands([[1, 4, 5, 4, 3]])
    assert find_local_minima(bands) == [(0, 0)]


def test_4_2_valleys_are_degenerate_pairs(bands42):
    records = find_valleys(bands42)
    assert len(records) == 3
    energies = [rec.energy_1 for rec in records]
    assert energies == sorted(energies)
    for rec in records:
        assert rec.energy_1 == pytest.approx(rec.energy_2, abs=1e-9)
        assert rec.valley_1 != rec.valley_2


@pytest.mark.parametrize("n", [5, 7])
def test_zigzag_valleys_pair_up(n, params):
    lat = CNTLattice.build(n, 0, params)
    bands = electron_K2_extended(lat, ExtendedZone.build(lat, nk=10), params)
    minima = find_local_minima(bands)
    records = find_valleys(bands)
    assert len(records) == len(minima) // 2
    for rec in records:
        assert rec.energy_1 == pytest.approx(rec.energy_2, abs=1e-9)


def test_window_walks_each_side_independently():
    bands = _line_bands([[9, 1, 5, 2, 9, 9, 2, 9]])
    rec = ValleyRecord(valley_1=(1, 0), valley_2=(1, 0), energy_1=1.0, energy_2=1.0)
    window = relevant_window(bands, [rec], 0, 1.5)
    assert window.valley_1.tolist() == [[1, 0]]

    bands = _line_bands([[5, 3, 1, 2, 4, 6]])
    rec = ValleyRecord(valley_1=(2, 0), valley_2=(2, 0), energy_1=1.0, energy_2=1.0)
    window = relevant_window(bands, [rec], 0, 2.5)
    assert window.valley_1[:, 0].tolist() == [1, 2, 3]


def test_window_wraps_and_stops_at_full_line():
    bands = _line_bands([[0.5, 3, 3, 3, 0.2]])
    rec = ValleyRecord(valley_1=(4, 0), valley_2=(4, 0), energy_1=0.2, energy_2=0.2)
    window = relevant_window(bands, [rec], 0, 1.0)
    assert window.valley_1[:, 0].tolist() == [4, 0]

    flat = _line_bands([[1.0] * 5])
    rec = ValleyRecord(valley_1=(2, 0), valley_2=(2, 0), energy_1=1.0, energy_2=1.0)
    window = relevant_window(flat, [rec], 0, 1.0)
    assert len(window) == 5
    assert sorted(window.valley_1[:, 0].tolist()) == [0, 1, 2, 3, 4]


def test_4_2_window(bands42):
    records = find_valleys(bands42)
    window = relevant_window(bands42, records, 0, 1.0)
    assert len(window.valley_1) == len(window.valley_2) == len(window)
    Emin = records[0].energy_1
    for states in (window.valley_1, window.valley_2):
        Ec = bands42.energy_at(states[:, 0], states[:, 1], 1)
        assert np.all(Ec < Emin + 1.0 + 1e-12)
        assert len(set(states[:, 1].tolist())) == 1


def test_window_needs_enough_valleys(bands42):
    records = find_valleys(bands42)
    with pytest.raises(ConfigurationError):
        relevant_window(bands42, records, len(records), 1.0)
