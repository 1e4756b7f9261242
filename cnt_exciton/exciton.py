"""
Bethe-Salpeter-like exciton kernel restricted to the relevant window of one
valley pair.

For a centre-of-mass index ik_cm (with mu_cm = 0) an electron-hole pair is
labelled by the conduction state c = (ik_c, mu_c) of valley 1, with the
hole in v = (ik_c - ik_cm, mu_c). Three matrices are built over the window:

- K11: band-energy differences minus the screened direct interaction
  between pairs of valley 1.
- K12: the screened direct interaction coupling valley 1 to the time-reversal
  partner states of valley 2.
- KX: the unscreened exchange interaction at q = (ik_cm, 0).

Only the lower triangle of each matrix is evaluated; the upper triangle
follows from Hermiticity. The three symmetry branches are

    A1         : eig(K11 - K12)
    A2 triplet : eig(K11 + K12)
    A2 singlet : eig(K11 + K12 + 2 KX)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple
import logging

import numpy as np
import scipy.linalg

from .errors import ConfigurationError
from .grids import IndexRange, RangeTable, validate_range
from .solver import IC, IV, FoldedBands
from .utils import hermitize_lower
from .valleys import RelevantWindow
from .zone import ExtendedZone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExcitonBranches:
    """
    Exciton energies per centre-of-mass wavevector.

    k_cm_vec : (nk_cm,) ik_cm |dk_l|
    A1, A2_triplet, A2_singlet : (nk_cm, n_relev) ascending eigenvalues
    """
    k_cm_vec: np.ndarray
    ik_cm_range: IndexRange
    A1: np.ndarray
    A2_triplet: np.ndarray
    A2_singlet: np.ndarray


@dataclass(frozen=True)
class ExcitonKernels:
    K11: np.ndarray
    K12: np.ndarray
    KX: np.ndarray


class ExcitonSolver:
    """
    Builds and diagonalizes the exciton kernels.

    `vq` and `eps` are addressed at wrapped ik differences in
    [ik_min, ik_max) and mu differences in (-Q, Q); `vq` must also hold the
    rows iq = ik_cm, mu = 0 for every requested centre-of-mass index.
    """

    def __init__(self, bands: FoldedBands, zone: ExtendedZone, window: RelevantWindow,
                 vq: RangeTable, eps: RangeTable):
        if len(window.valley_1) != len(window.valley_2):
            raise ConfigurationError(
                f"Relevant windows of the two valleys differ in size: "
                f"{len(window.valley_1)} vs {len(window.valley_2)}."
            )
        self.bands = bands
        self.zone = zone
        self.window = window
        self.vq = vq
        self.eps = eps

    @property
    def n_relev(self) -> int:
        return len(self.window)

    def _pair_states(self, ik_c: np.ndarray, mu_c: np.ndarray, ik_v: np.ndarray
                     ) -> Tuple[np.ndarray, np.ndarray]:
        return self.bands.state(ik_c, mu_c, IC), self.bands.state(ik_v, mu_c, IV)

    def _direct(self, ik_c, mu_c, psi_c, psi_v, ik_cp, mu_cp, psi_cp, psi_vp) -> np.ndarray:
        """
        Screened direct matrix element between the pairs (c, v) on the rows
        and (c', v') on the columns.

        W[a, b] = sum_ij conj(c_a[i]) v_a[j] c'_b[i] conj(v'_b[j]) v(dk, 2i+j) / eps(dk)
        """
        dik = self.zone.wrap_ik(ik_c[:, None] - ik_cp[None, :])
        dmu = mu_c[:, None] - mu_cp[None, :]
        vq = self.vq.at(dik, dmu)    # (n, n, 4)
        eps = self.eps.at(dik, dmu)  # (n, n)

        overlap = np.einsum("ai,bi,aj,bj->abij", np.conj(psi_c), psi_cp, psi_v, np.conj(psi_vp))
        n_a, n_b = overlap.shape[:2]
        return np.sum(overlap.reshape(n_a, n_b, 4) * vq, axis=-1) / eps

    def _exchange(self, ik_cm: int, psi_c, psi_v) -> np.ndarray:
        """2 sum_ij conj(c_a[i]) v_a[i] c_b[j] conj(v_b[j]) v(ik_cm, 0, 2i+j)"""
        vq = self.vq.at(ik_cm, 0).reshape(2, 2)
        x = np.conj(psi_c) * psi_v
        y = psi_c * np.conj(psi_v)
        return 2.0 * (x @ vq @ y.T)

    def build_kernels(self, ik_cm: int) -> ExcitonKernels:
        """Hermitian K11, K12 and KX at one centre-of-mass index."""
        n = self.n_relev
        wrap_ik = self.zone.wrap_ik

        ik_c = self.window.valley_1[:, 0]
        mu_c = self.window.valley_1[:, 1]
        ik_v = wrap_ik(ik_c - ik_cm)
        psi_c, psi_v = self._pair_states(ik_c, mu_c, ik_v)

        # column b of K12 couples to the valley-2 state mirrored around the window centre
        partner = self.window.valley_2[::-1]
        ik_vp = partner[:, 0]
        mu_vp = partner[:, 1]
        ik_cp = wrap_ik(ik_vp + ik_cm)
        psi_cp, psi_vp = self._pair_states(ik_cp, mu_vp, ik_vp)

        lower = np.tril(np.ones((n, n), dtype=bool))
        free = self.bands.energy_at(ik_c, mu_c, IC) - self.bands.energy_at(ik_v, mu_c, IV)

        K11 = np.diag(free.astype(complex))
        K11 -= np.where(lower, self._direct(ik_c, mu_c, psi_c, psi_v, ik_c, mu_c, psi_c, psi_v), 0.0)
        K12 = -np.where(lower, self._direct(ik_c, mu_c, psi_c, psi_v, ik_cp, mu_vp, psi_cp, psi_vp), 0.0)
        KX = np.where(lower, self._exchange(ik_cm, psi_c, psi_v), 0.0)

        return ExcitonKernels(K11=hermitize_lower(K11), K12=hermitize_lower(K12), KX=hermitize_lower(KX))

    def calculate(self, ik_cm_range: IndexRange) -> ExcitonBranches:
        """
        Exciton energies for ik_cm in [ik_cm_range).

        Raises
        ------
        InvalidRangeError
            If the range has non-positive width.
        RangeDependencyError
            If vq or eps lack an entry the kernels need.
        """
        nk_cm = validate_range(ik_cm_range, "ik_cm")
        n = self.n_relev

        A1 = np.zeros((nk_cm, n))
        A2_triplet = np.zeros((nk_cm, n))
        A2_singlet = np.zeros((nk_cm, n))
        ik_cm_values = np.arange(ik_cm_range[0], ik_cm_range[1])
        for idx, ik_cm in enumerate(ik_cm_values):
            K = self.build_kernels(int(ik_cm))
            A1[idx] = scipy.linalg.eigvalsh(K.K11 - K.K12)
            A2_triplet[idx] = scipy.linalg.eigvalsh(K.K11 + K.K12)
            A2_singlet[idx] = scipy.linalg.eigvalsh(K.K11 + K.K12 + 2.0 * K.KX)
            logger.debug("ik_cm=%d: lowest A1 %.6f eV", ik_cm, A1[idx, 0])

        logger.info("Calculated exciton dispersion for %d centre-of-mass points over %d states",
                    nk_cm, n)
        return ExcitonBranches(k_cm_vec=ik_cm_values * self.zone.dk, ik_cm_range=tuple(ik_cm_range),
                               A1=A1, A2_triplet=A2_triplet, A2_singlet=A2_singlet)


def calculate_exciton_energy(bands: FoldedBands, zone: ExtendedZone, window: RelevantWindow,
                             vq: RangeTable, eps: RangeTable, ik_cm_range: IndexRange) -> ExcitonBranches:
    return ExcitonSolver(bands, zone, window, vq, eps).calculate(ik_cm_range)
