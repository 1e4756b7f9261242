"""
Fourier-transformed Ohno interaction v(q) between the pi orbitals of a
nanotube.

For each sublattice pair s = (AA, AB, BA, BB),

    v_s(q) = 1/(2 Nu N) * sum_R  Upp exp(i q.R) / sqrt(coeff |R|^2 + 1)

where R runs over the relative positions (on the unrolled sheet) between the
reference atom of the first sublattice in the home cell and every atom of
the second sublattice in N replicated unit cells, and q = iq dk_l + mu K1.
"""
from __future__ import annotations

from typing import Optional, Tuple
import logging

import numpy as np
import numpy.typing as npt

from .config import CNTParameters
from .grids import IndexRange, RangeTable, validate_range
from .lattice import CNTLattice
from .parallel import map_iq_chunks
from .zone import ExtendedZone

logger = logging.getLogger(__name__)

CHANNELS: Tuple[str, ...] = ("AA", "AB", "BA", "BB")


def relative_positions(lat: CNTLattice, n_cells: int) -> npt.NDArray[np.float64]:
    """
    Relative positions of all atom pairs used in the Coulomb sum.

    Circumferential components are wrapped into (-|ch|/2, |ch|/2] before the
    cells are replicated along t_vec for i in [-N//2, N//2].

    Returns
    -------
    rel_pos : (4, Nu*n_cells, 2) one block per channel in CHANNELS order
    """
    pos_a, pos_b = lat.pos_a, lat.pos_b
    cell = np.stack([
        pos_a - pos_a[0],
        pos_a - pos_b[0],
        pos_b - pos_a[0],
        pos_b - pos_b[0],
    ])
    cell[..., 0] = lat.wrap_circumference(cell[..., 0])

    half = n_cells // 2
    shifts = np.arange(-half, half + 1)[:, None] * lat.t_vec[None, :]  # (n_cells, 2)
    rel_pos = cell[:, None, :, :] + shifts[None, :, None, :]
    return rel_pos.reshape(4, n_cells * lat.Nu, 2)


def ohno_potential(rel_pos: np.ndarray, params: CNTParameters) -> np.ndarray:
    """Upp / sqrt(coeff |R|^2 + 1) in eV."""
    r2 = np.sum(rel_pos * rel_pos, axis=-1)
    return params.Upp_eV / np.sqrt(params.ohno_coeff * r2 + 1.0)


def _vq_rows(iq_values: np.ndarray, *, mu_values: np.ndarray, rel_pos: np.ndarray,
             weights: np.ndarray, dk_l: np.ndarray, K1: np.ndarray) -> np.ndarray:
    """Unnormalized sums for a block of iq rows, shape (len(iq_values), n_mu, 4)."""
    out = np.zeros((len(iq_values), len(mu_values), 4), dtype=complex)
    q_mu = mu_values[:, None] * K1[None, :]  # (n_mu, 2)
    for row, iq in enumerate(iq_values):
        q = iq * dk_l[None, :] + q_mu  # (n_mu, 2)
        # phase[mu, s, R] = exp(i q_mu . R_s)
        phase = np.exp(1j * np.einsum("md,srd->msr", q, rel_pos))
        out[row] = np.einsum("msr,sr->ms", phase, weights)
    return out


class CoulombKernel:
    """
    Evaluator of v(q) on (iq, mu) grids.

    The replicated relative positions and the Ohno weights do not depend on q
    and are built once per number of replicated cells.
    """

    def __init__(self, lat: CNTLattice, zone: ExtendedZone, params: CNTParameters):
        self.lat = lat
        self.zone = zone
        self.params = params
        self._n_cells: Optional[int] = None
        self._rel_pos: Optional[np.ndarray] = None
        self._weights: Optional[np.ndarray] = None

    def _ensure_positions(self, n_cells: int) -> None:
        if self._n_cells == n_cells:
            return
        self._rel_pos = relative_positions(self.lat, n_cells)
        self._weights = ohno_potential(self._rel_pos, self.params)
        self._n_cells = n_cells

    def calculate(
        self,
        iq_range: IndexRange,
        mu_range: IndexRange,
        no_of_cnt_unit_cells: int,
        processes: int = 1,
    ) -> RangeTable:
        """
        Compute v(q) for iq in [iq_range) and mu in [mu_range).

        An even `no_of_cnt_unit_cells` is bumped to the next odd number so the
        replicas are symmetric around the home cell.

        Raises
        ------
        InvalidRangeError
            If either range has non-positive width.
        """
        validate_range(iq_range, "iq")
        validate_range(mu_range, "mu_q")
        if no_of_cnt_unit_cells < 1:
            raise ValueError("no_of_cnt_unit_cells must be positive.")
        n_cells = no_of_cnt_unit_cells if no_of_cnt_unit_cells % 2 == 1 else no_of_cnt_unit_cells + 1
        self._ensure_positions(n_cells)
        assert self._rel_pos is not None and self._weights is not None

        iq_values = np.arange(iq_range[0], iq_range[1])
        vq = map_iq_chunks(
            _vq_rows, iq_values, processes,
            mu_values=np.arange(mu_range[0], mu_range[1]),
            rel_pos=self._rel_pos,
            weights=self._weights,
            dk_l=self.zone.dk_l,
            K1=self.zone.K1,
        )
        vq /= 2 * self.lat.Nu * n_cells

        logger.info("Calculated vq over iq %s, mu %s with %d replicated cells",
                    list(iq_range), list(mu_range), n_cells)
        return RangeTable(data=vq, iq_range=tuple(iq_range), mu_range=tuple(mu_range),
                          q_vec=self.zone.q_axis(iq_range))
