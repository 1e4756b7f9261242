"""
Nearest-neighbour pi-orbital tight-binding Hamiltonian of a nanotube.

Core objects
------------
- TightBindingModel: wraps the parameters and lattice and exposes H(k), S(k)
  for the full 2Nu-atom unit cell.
- structure_factor: graphene f(k) used by the closed-form two-band solution.

Implementation notes
--------------------
Basis ordering: the Nu A atoms of the unit cell, then the Nu B atoms
(same order as `CNTLattice.pos_3d`).

Sign convention: the hopping matrix element is -t0, so for graphene
H_AB(k) = -t0 f(k) and the conduction band is +t0 |f(k)|.

The neighbour search runs once per model. Each bond i-j is tagged with the
unit cell l in {-1,0,1} the partner lives in, and the Bloch phase of that
bond is exp(i k l |t_vec|).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple
import logging

import numpy as np
import scipy.sparse as sp

from .config import CNTParameters
from .errors import ConfigurationError
from .lattice import CNTLattice

logger = logging.getLogger(__name__)

CELL_SHIFTS = (-1, 0, 1)


def nearest_neighbors(lat: CNTLattice, cutoff: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Neighbour table of shape (2Nu, 3).

    Returns
    -------
    nn_list : index j of each neighbour of atom i
    nn_cell : unit-cell shift l of that neighbour

    Raises
    ------
    ConfigurationError
        If any atom does not have exactly three neighbours within `cutoff`.
    """
    pos = lat.pos_3d
    natoms = pos.shape[0]
    shifts = np.array(CELL_SHIFTS, dtype=float)
    # d[i, j, l] = |r_i - r_j + l t|
    diff = pos[:, None, None, :] - pos[None, :, None, :] + shifts[None, None, :, None] * lat.t_vec_3d
    dist = np.linalg.norm(diff, axis=-1)
    mask = dist < cutoff
    mask[np.arange(natoms), np.arange(natoms), :] = False

    counts = mask.sum(axis=(1, 2))
    bad = np.flatnonzero(counts != 3)
    if bad.size:
        raise ConfigurationError(
            f"Atoms {bad.tolist()} of the ({lat.n},{lat.m}) tube have "
            f"{counts[bad].tolist()} neighbours within {cutoff:.4f} A, expected 3."
        )

    _, jj, ll = np.nonzero(mask)
    nn_list = jj.reshape(natoms, 3)
    nn_cell = np.asarray(CELL_SHIFTS)[ll].reshape(natoms, 3)
    return nn_list, nn_cell


def structure_factor(k: np.ndarray, lat: CNTLattice) -> np.ndarray:
    """
    f(k) = sum of exp(i k.delta) over the three A->B bond vectors.

    Parameters
    ----------
    k : (..., 2) wavevectors

    Returns
    -------
    fk : (...) complex
    """
    a1, a2 = lat.a1, lat.a2
    deltas = np.stack([(a1 + a2) / 3.0, (a1 - 2.0 * a2) / 3.0, (a2 - 2.0 * a1) / 3.0])
    return np.exp(1j * (k @ deltas.T)).sum(axis=-1)


@dataclass
class TightBindingModel:
    params: CNTParameters
    lat: CNTLattice
    nn_list: np.ndarray = field(init=False)
    nn_cell: np.ndarray = field(init=False)
    _bonds: Dict[int, sp.csr_matrix] = field(init=False, repr=False)

    def __post_init__(self):
        # Precompute k-independent bond connectivity, one matrix per cell shift.
        self.nn_list, self.nn_cell = nearest_neighbors(self.lat, self.params.nn_cutoff)
        self._bonds = self._build_bonds()
        logger.info("Found 3 nearest neighbours for each of the %d atoms", self.dim)

    @property
    def dim(self) -> int:
        return 2 * self.lat.Nu

    def _build_bonds(self) -> Dict[int, sp.csr_matrix]:
        rows = np.repeat(np.arange(self.dim), 3)
        cols = self.nn_list.ravel()
        cells = self.nn_cell.ravel()
        bonds = {}
        for l in CELL_SHIFTS:
            sel = cells == l
            bonds[l] = sp.csr_matrix(
                (np.ones(sel.sum()), (rows[sel], cols[sel])), shape=(self.dim, self.dim)
            )
        return bonds

    def _bloch_sum(self, k: float) -> sp.csr_matrix:
        """sum over bonds of exp(i k l |t|), as a sparse (dim, dim) matrix."""
        t_len = self.lat.t_len
        out = sp.csr_matrix((self.dim, self.dim), dtype=complex)
        for l, B in self._bonds.items():
            out = out + B * complex(np.exp(1j * k * l * t_len))
        return out

    def H(self, k: float) -> np.ndarray:
        """Dense Hamiltonian at axial wavevector k (1/A)."""
        p = self.params
        Hk = p.e2p_eV * sp.identity(self.dim, dtype=complex, format="csr") - p.t0_eV * self._bloch_sum(k)
        return Hk.toarray()

    def S(self, k: float) -> np.ndarray:
        """Dense overlap matrix at axial wavevector k (1/A)."""
        Sk = sp.identity(self.dim, dtype=complex, format="csr") + self.params.s0 * self._bloch_sum(k)
        return Sk.toarray()
