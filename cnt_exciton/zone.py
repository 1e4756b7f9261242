"""
Cutting-line sampling of the graphene Brillouin zone for a nanotube.

Two equivalent layouts of the same Nu*nk k points are used:

- K1-extended: k = mu K1 + ik dk_l with mu in [0, Nu) and ik in [0, nk).
- K2-extended: k = mu K1 + ik dk_l with mu in [0, Q) and ik in
  [0, nk Nu/Q). Cutting lines are joined end-to-end so that the valleys lie
  on few long lines. Every later stage indexes states this way.

`ExtendedZone.wrap` is the single place where an arbitrary (ik, mu) pair is
folded back into the K2-extended zone.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple
import logging
import math

import numpy as np

from .errors import ConfigurationError
from .lattice import CNTLattice
from .utils import wrap_index

logger = logging.getLogger(__name__)


def find_M_Q(n: int, m: int, t1: int, t2: int, Nu: int) -> Tuple[int, int]:
    """
    Search integers (p, q) with t1 q - t2 p = 1 and return
    M = m p - n q, Q = gcd(Nu, M).

    The search window for p comes from requiring the lattice point p a1 + q a2
    to lie inside the unit cell.

    Raises
    ------
    ConfigurationError
        If no solution exists inside the search window.
    """
    slope = m / n - t2 / t1
    p_min = (1.0 / t1 + 1.0 / n) / slope
    p_max = (1.0 / t1 + Nu / n) / slope

    for p in range(math.ceil(p_min), math.ceil(p_max)):
        if (1 + t2 * p) % t1 == 0:
            q = (1 + t2 * p) // t1
            M = m * p - n * q
            return M, math.gcd(Nu, M)

    raise ConfigurationError(
        f"No integer solution for the K2-extended parameters of ({n},{m}) "
        f"with p in [{p_min:.3f}, {p_max:.3f})."
    )


@dataclass(frozen=True)
class ExtendedZone:
    K1: np.ndarray      # (2,) circumferential reciprocal vector
    K2: np.ndarray      # (2,) axial reciprocal vector
    dk_l: np.ndarray    # (2,) axial sampling step K2/nk
    nk: int             # number of k points per K1-extended cutting line
    Nu: int
    M: int
    Q: int

    @staticmethod
    def build(lat: CNTLattice, nk: int) -> "ExtendedZone":
        if nk <= 0:
            raise ValueError("nk must be positive.")
        n, m, Nu = lat.n, lat.m, lat.Nu
        K1 = (-lat.t2 * lat.b1 + lat.t1 * lat.b2) / Nu
        K2 = (m * lat.b1 - n * lat.b2) / Nu
        M, Q = find_M_Q(n, m, lat.t1, lat.t2, Nu)
        zone = ExtendedZone(K1=K1, K2=K2, dk_l=K2 / nk, nk=nk, Nu=Nu, M=M, Q=Q)
        logger.info("K2-extended zone: M=%d, Q=%d, ik in [0,%d), mu in [0,%d)",
                    M, Q, zone.ik_max, zone.mu_max)
        return zone

    # K2-extended bounds; lower bounds are zero by construction
    @property
    def ik_min(self) -> int:
        return 0

    @property
    def ik_max(self) -> int:
        return self.Nu // self.Q * self.nk

    @property
    def nk_K2(self) -> int:
        return self.ik_max - self.ik_min

    @property
    def mu_min(self) -> int:
        return 0

    @property
    def mu_max(self) -> int:
        return self.Q

    @property
    def n_mu(self) -> int:
        return self.mu_max - self.mu_min

    @property
    def fold_shift(self) -> int:
        """
        Number of K2 steps s equivalent to Q cutting lines, Q K1 = s K2 mod G.

        From K2 = M K1 mod G, s solves s M = Q (mod Nu).
        """
        period = self.Nu // self.Q
        if period == 1:
            return 0
        return pow(self.M // self.Q, -1, period)

    @property
    def dk(self) -> float:
        """|dk_l|, spacing of the 1D wavevector axis."""
        return float(np.linalg.norm(self.dk_l))

    def k_vector(self, ik, mu) -> np.ndarray:
        """k = mu K1 + ik dk_l, broadcasting over array-valued ik and mu."""
        ik = np.asarray(ik, dtype=float)
        mu = np.asarray(mu, dtype=float)
        return mu[..., None] * self.K1 + ik[..., None] * self.dk_l

    def wrap_ik(self, ik):
        """Fold ik periodically into [ik_min, ik_max) at fixed mu."""
        return wrap_index(ik, self.ik_min, self.ik_max)

    def wrap(self, ik, mu):
        """
        Fold (ik, mu) into the K2-extended zone.

        Every time mu is brought back by one period Q, ik is shifted by
        nk*fold_shift so that the folded point is equivalent to the input
        one up to a reciprocal lattice vector.

        Returns
        -------
        ik_w, mu_w : canonical indices in [ik_min, ik_max) x [mu_min, mu_max)
        shift : ik shift carried by the mu fold (before the final ik wrap)
        """
        ik = np.asarray(ik)
        mu = np.asarray(mu)
        n_fold = np.floor_divide(mu - self.mu_min, self.n_mu)
        mu_w = mu - n_fold * self.n_mu
        shift = n_fold * self.nk * self.fold_shift
        ik_w = self.wrap_ik(ik + shift)
        return ik_w, mu_w, shift

    def q_axis(self, iq_range: Tuple[int, int]) -> np.ndarray:
        """|q| = iq |dk_l| for iq in the half-open range."""
        return np.arange(iq_range[0], iq_range[1]) * self.dk

    def default_q_ranges(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        """iq and mu ranges that hold every difference of two K2-extended states."""
        return (-(self.ik_max - 1), self.ik_max), (-(self.Q - 1), self.Q)
