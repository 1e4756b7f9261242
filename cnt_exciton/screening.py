"""
Static screening: non-interacting polarization PI(q) and the dielectric
function eps(q) = 1 + <Re v(q)> PI(q) built from it.

PI(iq, mu_q) = 2 * sum_k [ |<v_k|c_k+q>|^2 / (Ec(k+q) - Ev(k))
                          + |<c_k|v_k+q>|^2 / (Ec(k) - Ev(k+q)) ]

where k runs over the whole K2-extended zone and k+q is folded back with
`ExtendedZone.wrap`. The factor 2 is the spin degeneracy.
"""
from __future__ import annotations

import logging

import numpy as np

from .grids import IndexRange, RangeTable, validate_range
from .parallel import map_iq_chunks
from .solver import IC, IV, FoldedBands
from .zone import ExtendedZone

logger = logging.getLogger(__name__)


def _polarization_rows(iq_values: np.ndarray, *, mu_values: np.ndarray, energy: np.ndarray,
                       psi: np.ndarray, zone: ExtendedZone) -> np.ndarray:
    """PI rows (before the spin factor) for a block of iq values."""
    mu_k, ik = np.meshgrid(np.arange(zone.mu_min, zone.mu_max),
                           np.arange(zone.ik_min, zone.ik_max), indexing="ij")
    i_mu = mu_k - zone.mu_min
    i_k = ik - zone.ik_min

    ev_k = energy[i_mu, i_k, IV]
    ec_k = energy[i_mu, i_k, IC]
    psi_v_k = psi[i_mu, i_k, :, IV]
    psi_c_k = psi[i_mu, i_k, :, IC]

    out = np.zeros((len(iq_values), len(mu_values)))
    for row, iq in enumerate(iq_values):
        for col, mu_q in enumerate(mu_values):
            ikq, mu_kq, _ = zone.wrap(ik + iq, mu_k + mu_q)
            j_mu = mu_kq - zone.mu_min
            j_k = ikq - zone.ik_min

            vc = np.abs(np.sum(np.conj(psi_v_k) * psi[j_mu, j_k, :, IC], axis=-1)) ** 2
            cv = np.abs(np.sum(np.conj(psi_c_k) * psi[j_mu, j_k, :, IV], axis=-1)) ** 2
            out[row, col] = np.sum(vc / (energy[j_mu, j_k, IC] - ev_k)
                                   + cv / (ec_k - energy[j_mu, j_k, IV]))
    return out


def calculate_polarization(
    bands: FoldedBands,
    zone: ExtendedZone,
    iq_range: IndexRange,
    mu_range: IndexRange,
    processes: int = 1,
) -> RangeTable:
    """
    Polarization over iq in [iq_range) and mu in [mu_range).

    `bands` must be the K2-extended folded bands of `zone`.

    Raises
    ------
    InvalidRangeError
        If either range has non-positive width.
    """
    validate_range(iq_range, "iq")
    validate_range(mu_range, "mu_q")
    if bands.ik_range != (zone.ik_min, zone.ik_max) or bands.mu_range != (zone.mu_min, zone.mu_max):
        raise ValueError("Polarization needs the K2-extended bands of the same zone.")

    iq_values = np.arange(iq_range[0], iq_range[1])
    PI = map_iq_chunks(
        _polarization_rows, iq_values, processes,
        mu_values=np.arange(mu_range[0], mu_range[1]),
        energy=bands.energy,
        psi=bands.psi,
        zone=zone,
    )
    PI = 2.0 * PI

    if not np.all(np.isfinite(PI)):
        logger.warning("Polarization has non-finite entries; the band gap closes on the k grid")
    logger.info("Calculated polarization over iq %s, mu %s", list(iq_range), list(mu_range))
    return RangeTable(data=PI, iq_range=tuple(iq_range), mu_range=tuple(mu_range),
                      q_vec=zone.q_axis(iq_range))


def calculate_dielectric(
    vq: RangeTable,
    PI: RangeTable,
    iq_range: IndexRange,
    mu_range: IndexRange,
) -> RangeTable:
    """
    eps = 1 + mean over the four channels of Re(vq), times PI, on a sub-range
    covered by both tables.

    Raises
    ------
    InvalidRangeError
        If either range has non-positive width.
    RangeDependencyError
        If vq or PI was not computed over a superset of the requested range.
    """
    validate_range(iq_range, "iq")
    validate_range(mu_range, "mu_q")
    vq.require(iq_range, mu_range, "vq")
    PI.require(iq_range, mu_range, "PI")

    v_mean = np.mean(np.real(vq.sub(iq_range, mu_range)), axis=-1)
    eps = 1.0 + v_mean * PI.sub(iq_range, mu_range)

    i0 = iq_range[0] - vq.iq_range[0]
    q_vec = vq.q_vec[i0:i0 + iq_range[1] - iq_range[0]]
    logger.info("Calculated dielectric function over iq %s, mu %s", list(iq_range), list(mu_range))
    return RangeTable(data=eps, iq_range=tuple(iq_range), mu_range=tuple(mu_range), q_vec=q_vec)
