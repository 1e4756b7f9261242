"""
Band-structure solvers.

Two routes to the electronic states are provided:

- `solve_kpoints`: dense generalized eigenproblem H C = E S C of the full
  2Nu-atom unit cell on nk axial wavevectors.
- `electron_K1_extended` / `electron_K2_extended`: closed-form two-band
  graphene solution evaluated on the cutting lines of the folded zone. The
  K2-extended result is what every later stage consumes.

Storage layout of folded bands
------------------------------
Both arrays are indexed by cutting line first so that one line (one mu) is a
contiguous block:

    energy[mu, ik, band]         band: 0 = valence, 1 = conduction
    psi[mu, ik, atom, band]      atom: 0 = A, 1 = B

Indices are offsets from the lower ends of `ik_range` / `mu_range`.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Tuple
import hashlib
import logging
import os

import numpy as np
import scipy.linalg

from .config import CNTParameters
from .lattice import CNTLattice
from .tight_binding import TightBindingModel, structure_factor
from .utils import fix_phase
from .zone import ExtendedZone

logger = logging.getLogger(__name__)

IV, IC = 0, 1   # band index: valence, conduction
IA, IB = 0, 1   # sublattice index


@dataclass(frozen=True)
class FullBands:
    """Eigenpairs of the full tight-binding Hamiltonian.

    energy : (2Nu, nk) ascending at each k
    psi    : (nk, 2Nu, 2Nu), columns are eigenvectors
    k_vec  : (nk,) axial wavevectors
    """
    energy: np.ndarray
    psi: np.ndarray
    k_vec: np.ndarray


@dataclass(frozen=True)
class FoldedBands:
    energy: np.ndarray
    psi: np.ndarray
    ik_range: Tuple[int, int]
    mu_range: Tuple[int, int]
    representation: str = "K2"

    @property
    def nk(self) -> int:
        return self.ik_range[1] - self.ik_range[0]

    @property
    def n_mu(self) -> int:
        return self.mu_range[1] - self.mu_range[0]

    @property
    def conduction(self) -> np.ndarray:
        """(n_mu, nk) conduction-band energies."""
        return self.energy[:, :, IC]

    @property
    def valence(self) -> np.ndarray:
        return self.energy[:, :, IV]

    def energy_at(self, ik, mu, band: int) -> np.ndarray:
        return self.energy[np.asarray(mu) - self.mu_range[0], np.asarray(ik) - self.ik_range[0], band]

    def state(self, ik, mu, band: int) -> np.ndarray:
        """Two-component eigenvector(s) (..., 2) of `band` at (ik, mu)."""
        return self.psi[np.asarray(mu) - self.mu_range[0], np.asarray(ik) - self.ik_range[0], :, band]


def solve_one_k(model: TightBindingModel, k: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Solve for eigenpairs at a single axial k.

    Eigenvectors are rotated so that their first component is real and
    non-negative, which makes the output independent of the LAPACK phase
    convention.

    Returns
    -------
    evals : (dim,) float
    evecs : (dim, dim) complex
    """
    evals, evecs = scipy.linalg.eigh(model.H(k), model.S(k))
    return evals, fix_phase(evecs)


def full_k_axis(zone: ExtendedZone) -> np.ndarray:
    """Axial wavevectors (n - nk/2) |dk_l| for n in [0, nk)."""
    return (np.arange(zone.nk) - zone.nk // 2) * zone.dk


def solve_kpoints(model: TightBindingModel, zone: ExtendedZone) -> FullBands:
    """
    Solve for eigenpairs of the full unit cell on the nk axial k points.
    """
    k_vec = full_k_axis(zone)
    evals_all = []
    evecs_all = []
    for k in k_vec:
        ev, U = solve_one_k(model, k)
        evals_all.append(ev)
        evecs_all.append(U)
    energy = np.stack(evals_all, axis=1)
    psi = np.stack(evecs_all, axis=0)
    logger.info("Solved full tight-binding model: %d bands x %d k points", *energy.shape)
    return FullBands(energy=energy, psi=psi, k_vec=k_vec)


def two_band_solution(fk: np.ndarray, t0: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Closed-form graphene states for the structure factor(s) `fk`.

    E_v = -t0|f|, E_c = +t0|f|
    psi_v = (1, +phi)/sqrt(2), psi_c = (1, -phi)/sqrt(2), phi = conj(f)/|f|

    At |f| = 0 (a Dirac point on the grid) phi is set to 1.

    Returns
    -------
    energy : (..., 2)
    psi    : (..., 2, 2) indexed [atom, band]
    """
    absf = np.abs(fk)
    phi = np.where(absf > 0, np.conj(fk) / np.where(absf > 0, absf, 1.0), 1.0)

    energy = np.stack([-t0 * absf, +t0 * absf], axis=-1)
    psi = np.empty(fk.shape + (2, 2), dtype=complex)
    psi[..., IA, IV] = 1.0 / np.sqrt(2.0)
    psi[..., IA, IC] = 1.0 / np.sqrt(2.0)
    psi[..., IB, IV] = +phi / np.sqrt(2.0)
    psi[..., IB, IC] = -phi / np.sqrt(2.0)
    return energy, psi


def _folded_bands(lat: CNTLattice, zone: ExtendedZone, params: CNTParameters,
                  ik_range: Tuple[int, int], mu_range: Tuple[int, int],
                  representation: str) -> FoldedBands:
    mu = np.arange(*mu_range)
    ik = np.arange(*ik_range)
    mm, kk = np.meshgrid(mu, ik, indexing="ij")
    fk = structure_factor(zone.k_vector(kk, mm), lat)
    if np.any(np.abs(fk) < 1e-12):
        logger.warning("A Dirac point lies on the %s-extended k grid; the tube is metallic", representation)
    energy, psi = two_band_solution(fk, params.t0_eV)
    return FoldedBands(energy=energy, psi=psi, ik_range=ik_range, mu_range=mu_range,
                       representation=representation)


def electron_K1_extended(lat: CNTLattice, zone: ExtendedZone, params: CNTParameters) -> FoldedBands:
    """Folded bands on Nu cutting lines of nk points each."""
    bands = _folded_bands(lat, zone, params, (0, zone.nk), (0, zone.Nu), "K1")
    logger.info("Calculated K1-extended electron dispersion: %d lines x %d k points", zone.Nu, zone.nk)
    return bands


def electron_K2_extended(lat: CNTLattice, zone: ExtendedZone, params: CNTParameters) -> FoldedBands:
    """Folded bands on Q cutting lines of nk Nu/Q points each."""
    bands = _folded_bands(lat, zone, params, (zone.ik_min, zone.ik_max), (zone.mu_min, zone.mu_max), "K2")
    logger.info("Calculated K2-extended electron dispersion: %d lines x %d k points", zone.n_mu, zone.nk_K2)
    return bands


def _hash_array(a: np.ndarray, nhex: int = 10) -> str:
    """Short stable hash of array bytes (for filenames)."""
    h = hashlib.sha1(np.ascontiguousarray(a).view(np.uint8)).hexdigest()
    return h[:nhex]


def _safe_float(x: float) -> str:
    """Filename-friendly float formatting."""
    # e.g. 2.7 -> "2p7", -0.1 -> "m0p1"
    s = f"{x:g}"
    return s.replace(".", "p").replace("-", "m")


def default_full_bands_cache_path(
    model: TightBindingModel,
    zone: ExtendedZone,
    *,
    cache_dir: str | os.PathLike = "cache",
) -> Path:
    """Construct a descriptive cache filename for the full eigensystem."""
    p = model.params
    lat = model.lat
    k_hash = _hash_array(full_k_axis(zone))
    fname = (
        f"full_eigs_"
        f"n{lat.n}_m{lat.m}_"
        f"nk{zone.nk}_"
        f"t{_safe_float(p.t0_eV)}_"
        f"s{_safe_float(p.s0)}_"
        f"e{_safe_float(p.e2p_eV)}_"
        f"k{k_hash}.npz"
    )
    return Path(cache_dir) / fname


def get_full_bands_cached(
    model: TightBindingModel,
    zone: ExtendedZone,
    *,
    cache_dir: str | os.PathLike = "cache",
    force_recompute: bool = False,
) -> Tuple[FullBands, Path]:
    """Load the full eigensystem from cache or compute + store it."""
    from .io import load_arrays, save_arrays

    path = default_full_bands_cache_path(model, zone, cache_dir=cache_dir)
    if (not force_recompute) and path.exists():
        logger.info("Cache file found, loading %s", path)
        arrays, _ = load_arrays(path)
        return FullBands(energy=arrays["energy"], psi=arrays["psi"], k_vec=arrays["k_vec"]), path

    logger.info("Cache file not found, computing")
    bands = solve_kpoints(model, zone)
    meta = {"params": asdict(model.params), "chirality": [model.lat.n, model.lat.m], "nk": zone.nk}
    save_arrays(path, meta=meta, energy=bands.energy, psi=bands.psi, k_vec=bands.k_vec)
    return bands, path
