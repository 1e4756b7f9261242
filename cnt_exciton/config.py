"""
Configuration and parameter objects.

This module is intentionally "dumb": it only defines dataclasses and light
validation. No physics is computed here.

Design goals
------------
- Avoid hidden globals: material constants travel as one immutable object
  that every stage receives by reference.
- Make runs reproducible: parameters can be saved/loaded as JSON.
- Keep parameters grouped by responsibility (material model vs simulation).
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Tuple
import json
import math

from scipy import constants


def coulomb_constant_eV_Ang() -> float:
    """e^2 / (4 pi eps0) in eV*Angstrom (about 14.3996)."""
    return constants.e / (4.0 * constants.pi * constants.epsilon_0) * 1e10


@dataclass(frozen=True)
class CNTParameters:
    """
    Material constants of the nearest-neighbour tight-binding model.

    Notes on units
    --------------
    - Energies are in eV.
    - Lengths are in Angstrom.
    - Momenta are in 1/Angstrom.
    """
    # carbon-carbon bond length
    a_cc_Ang: float = 1.42
    # on-site energy, hopping and overlap integrals of the 2p_z orbital
    e2p_eV: float = 0.0
    t0_eV: float = 2.7
    s0: float = 0.0
    # Ohno on-site repulsion
    Upp_eV: float = 11.3
    # nearest neighbours are atoms closer than nn_factor * a_cc
    nn_factor: float = 1.4

    @property
    def a_l(self) -> float:
        """Graphene lattice constant."""
        return math.sqrt(3.0) * self.a_cc_Ang

    @property
    def nn_cutoff(self) -> float:
        return self.nn_factor * self.a_cc_Ang

    @property
    def ohno_coeff(self) -> float:
        """(Upp / (e^2/4 pi eps0))^2 in 1/Angstrom^2."""
        return (self.Upp_eV / coulomb_constant_eV_Ang()) ** 2

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, path: str) -> None:
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, sort_keys=True)

    @staticmethod
    def from_json(path: str) -> "CNTParameters":
        with open(path, "r") as f:
            d = json.load(f)
        return CNTParameters(**d)


@dataclass(frozen=True)
class SimulationParameters:
    """
    Parameters of one nanotube run.

    Parameters
    ----------
    name : str
        Prefix of every output file.
    n, m : int
        Chirality, n >= m >= 0 and not both zero.
    number_of_cnt_unit_cells : int
        Number of 1D unit cells along the tube axis (nk). Sets the k sampling.
    delta_energy_eV : float
        Energy window above a valley minimum whose states enter the exciton
        kernel.
    i_sub : int
        Which valley pair (0 = lowest in energy) the exciton is built from.
    vq_cells : int, optional
        Number of replicated unit cells in the Coulomb sum. Defaults to
        `number_of_cnt_unit_cells`. Even numbers are bumped to the next odd.
    output_directory : str
        Where the collaborator layer writes result tables.
    processes : int
        Worker processes for the Coulomb and polarization sweeps.
    cache_directory : str, optional
        If set, the full tight-binding eigensystem is cached there and reused
        by later runs with the same chirality, nk and material constants.
    """
    name: str = "cnt"
    n: int = 4
    m: int = 2
    number_of_cnt_unit_cells: int = 100
    delta_energy_eV: float = 1.0
    i_sub: int = 0
    vq_cells: Optional[int] = None
    output_directory: str = "output"
    processes: int = 1
    cache_directory: Optional[str] = None

    def __post_init__(self):
        if self.n < 0 or self.m < 0:
            raise ValueError(f"Chirality indices must be non-negative, got ({self.n},{self.m}).")
        if self.m > self.n:
            raise ValueError(f"Chirality must satisfy n >= m, got ({self.n},{self.m}).")
        if self.n == 0 and self.m == 0:
            raise ValueError("Chirality (0,0) does not define a nanotube.")
        if self.number_of_cnt_unit_cells <= 0:
            raise ValueError("number_of_cnt_unit_cells must be positive.")
        if self.delta_energy_eV <= 0:
            raise ValueError("delta_energy_eV must be positive.")
        if self.i_sub < 0:
            raise ValueError("i_sub must be non-negative.")
        if self.processes < 1:
            raise ValueError("processes must be >= 1.")

    @property
    def chirality(self) -> Tuple[int, int]:
        return (self.n, self.m)

    @property
    def replicated_cells(self) -> int:
        ncells = self.number_of_cnt_unit_cells if self.vq_cells is None else self.vq_cells
        return ncells if ncells % 2 == 1 else ncells + 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, path: str) -> None:
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, sort_keys=True)

    @staticmethod
    def from_json(path: str) -> "SimulationParameters":
        with open(path, "r") as f:
            d = json.load(f)
        return SimulationParameters(**d)
