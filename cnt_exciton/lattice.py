"""
Nanotube lattice: graphene basis vectors, chirality/translation vectors and
the atoms of one 1D unit cell.

This module constructs:
- graphene real-space basis (a1,a2) and reciprocal basis (b1,b2)
- chirality vector ch_vec (circumference) and translation vector t_vec
- the Nu A-sublattice and Nu B-sublattice atoms of the unit cell, in the
  unrolled sheet (2d) and on the cylinder (3d)

Conventions
-----------
All 2d vectors are rotated so that ch_vec lies along +x. The tube axis is
then the y direction, both on the unrolled sheet and in 3d, where the sheet
is wrapped as (x, y) -> (R cos(x/R), y, R sin(x/R)).
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import math

import numpy as np

from .config import CNTParameters
from .errors import ConfigurationError
from .utils import rot2

logger = logging.getLogger(__name__)


def translation_indices(n: int, m: int) -> tuple[int, int, int]:
    """Return (t1, t2, dR) with t_vec = t1 a1 + t2 a2."""
    dR = math.gcd(2 * n + m, n + 2 * m)
    t1 = (2 * m + n) // dR
    t2 = -(2 * n + m) // dR
    return t1, t2, dR


def number_of_hexagons(n: int, m: int) -> int:
    """Nu = 2(n^2+m^2+nm)/dR, the number of A (or B) atoms in the unit cell."""
    _, _, dR = translation_indices(n, m)
    return 2 * (n * n + m * m + n * m) // dR


@dataclass(frozen=True)
class CNTLattice:
    n: int
    m: int
    a1: np.ndarray        # (2,)
    a2: np.ndarray        # (2,)
    b1: np.ndarray        # (2,)
    b2: np.ndarray        # (2,)
    aCC_vec: np.ndarray   # (2,) A -> B offset
    ch_vec: np.ndarray    # (2,)
    t_vec: np.ndarray     # (2,)
    t_vec_3d: np.ndarray  # (3,)
    t1: int
    t2: int
    Nu: int
    pos_a: np.ndarray     # (Nu,2)
    pos_b: np.ndarray     # (Nu,2)
    pos_3d: np.ndarray    # (2Nu,3) A atoms first, then B atoms

    @property
    def ch_len(self) -> float:
        return float(np.linalg.norm(self.ch_vec))

    @property
    def radius(self) -> float:
        return self.ch_len / (2.0 * np.pi)

    @property
    def t_len(self) -> float:
        return float(np.linalg.norm(self.t_vec))

    @property
    def pos_2d(self) -> np.ndarray:
        return np.concatenate([self.pos_a, self.pos_b], axis=0)

    @staticmethod
    def build(n: int, m: int, params: CNTParameters | None = None) -> "CNTLattice":
        """
        Construct the lattice of an (n,m) nanotube.

        Raises
        ------
        ConfigurationError
            If the unit-cell enumeration does not find exactly Nu atoms.
        """
        if params is None:
            params = CNTParameters()
        if n < 0 or m < 0 or m > n or n == 0:
            raise ValueError(f"Invalid chirality ({n},{m}); need n >= m >= 0 and n > 0.")

        a_l = params.a_l
        a1 = np.array([a_l * np.sqrt(3.0) / 2.0, +a_l / 2.0])
        a2 = np.array([a_l * np.sqrt(3.0) / 2.0, -a_l / 2.0])
        b1 = np.array([2.0 * np.pi / (np.sqrt(3.0) * a_l), +2.0 * np.pi / a_l])
        b2 = np.array([2.0 * np.pi / (np.sqrt(3.0) * a_l), -2.0 * np.pi / a_l])
        aCC_vec = (a1 + a2) / 3.0

        ch_vec = n * a1 + m * a2
        t1, t2, _ = translation_indices(n, m)
        t_vec = t1 * a1 + t2 * a2
        Nu = number_of_hexagons(n, m)

        # rotate everything so that ch_vec is along x and t_vec along y
        R = rot2(-math.atan2(ch_vec[1], ch_vec[0]))
        a1, a2, b1, b2 = R @ a1, R @ a2, R @ b1, R @ b2
        aCC_vec, ch_vec, t_vec = R @ aCC_vec, R @ ch_vec, R @ t_vec
        t_vec_3d = np.array([0.0, t_vec[1], 0.0])

        pos_a, pos_b = enumerate_unit_cell(n, m, t1, t2, a1, a2, aCC_vec, ch_vec[0])
        if pos_a.shape[0] != Nu:
            raise ConfigurationError(
                f"Found {pos_a.shape[0]} atoms in the ({n},{m}) unit cell, expected Nu = {Nu}."
            )

        radius = np.linalg.norm(ch_vec) / (2.0 * np.pi)
        pos_2d = np.concatenate([pos_a, pos_b], axis=0)
        pos_3d = np.stack([
            radius * np.cos(pos_2d[:, 0] / radius),
            pos_2d[:, 1],
            radius * np.sin(pos_2d[:, 0] / radius),
        ], axis=1)

        logger.info("(%d,%d) lattice: Nu=%d, |ch|=%.6f A, |t|=%.6f A, radius=%.6f A",
                    n, m, Nu, np.linalg.norm(ch_vec), np.linalg.norm(t_vec), radius)

        return CNTLattice(
            n=n,
            m=m,
            a1=a1,
            a2=a2,
            b1=b1,
            b2=b2,
            aCC_vec=aCC_vec,
            ch_vec=ch_vec,
            t_vec=t_vec,
            t_vec_3d=t_vec_3d,
            t1=t1,
            t2=t2,
            Nu=Nu,
            pos_a=pos_a,
            pos_b=pos_b,
            pos_3d=pos_3d,
        )

    def wrap_circumference(self, x: np.ndarray) -> np.ndarray:
        """Wrap circumferential coordinates into (-|ch|/2, |ch|/2]."""
        half = self.ch_len / 2.0
        return half - np.mod(half - x, self.ch_len)


def enumerate_unit_cell(
    n: int, m: int, t1: int, t2: int,
    a1: np.ndarray, a2: np.ndarray, aCC_vec: np.ndarray, ch_x: float,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Graphene lattice points i a1 + j a2 inside the parallelogram spanned by
    ch_vec = n a1 + m a2 and t_vec = t1 a1 + t2 a2.

    The four half-plane tests keep the lower/left edges and drop the
    upper/right ones so each lattice point of the unit cell is counted once.
    A atoms sit on the lattice points, B atoms are shifted by aCC_vec; both
    are wrapped into [0, ch_x) along the circumference.
    """
    i = np.arange(0, t1 + n + 1)
    j = np.arange(t2, m + 1)
    ii, jj = np.meshgrid(i, j, indexing="ij")
    ii, jj = ii.ravel(), jj.ravel()

    flag1 = (t2 * ii) / t1 <= jj
    flag2 = (m * ii) / n >= jj
    flag3 = (t2 * (ii - n)) / t1 > (jj - m)
    flag4 = (m * (ii - t1)) / n < (jj - t2)
    keep = flag1 & flag2 & flag3 & flag4

    pos_a = ii[keep, None] * a1[None, :] + jj[keep, None] * a2[None, :]
    pos_b = pos_a + aCC_vec[None, :]
    for pos in (pos_a, pos_b):
        x = np.mod(pos[:, 0], ch_x)
        # np.mod can round a tiny negative x up to exactly ch_x
        pos[:, 0] = np.where(x >= ch_x, 0.0, x)
    return pos_a, pos_b
