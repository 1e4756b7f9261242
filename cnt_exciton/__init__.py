"""
cnt_exciton: tight-binding bands, static screening and exciton dispersion of
single-wall carbon nanotubes.

Modules:
- config: parameter dataclasses
- errors: exceptions for failed consistency checks and bad ranges
- lattice: graphene vectors and the atoms of the nanotube unit cell
- zone: K1/K2-extended cutting-line sampling and the k wrap rule
- tight_binding: full-cell Hamiltonian and the graphene structure factor
- solver: full and folded (closed-form) band structures
- valleys: conduction-band valleys and the relevant window around them
- grids: range-tagged (iq, mu) tables
- interaction: Ohno Coulomb kernel v(q)
- screening: polarization and dielectric function
- exciton: exciton kernels and their eigenvalues
- pipeline: the CNT driver running every stage in order
- io, plotting: persistence and matplotlib helpers
"""
from .config import CNTParameters, SimulationParameters
from .errors import ConfigurationError, InvalidRangeError, RangeDependencyError
from .lattice import CNTLattice
from .zone import ExtendedZone
from .tight_binding import TightBindingModel
from .solver import (FoldedBands, FullBands, solve_one_k, solve_kpoints, electron_K1_extended,
                     electron_K2_extended, get_full_bands_cached)
from .valleys import ValleyRecord, RelevantWindow, find_valleys, relevant_window
from .grids import RangeTable
from .interaction import CoulombKernel
from .screening import calculate_polarization, calculate_dielectric
from .exciton import ExcitonBranches, ExcitonSolver, calculate_exciton_energy
from .pipeline import CNT

__all__ = [
    "CNTParameters", "SimulationParameters",
    "ConfigurationError", "InvalidRangeError", "RangeDependencyError",
    "CNTLattice", "ExtendedZone", "TightBindingModel",
    "FoldedBands", "FullBands", "solve_one_k", "solve_kpoints",
    "electron_K1_extended", "electron_K2_extended", "get_full_bands_cached",
    "ValleyRecord", "RelevantWindow", "find_valleys", "relevant_window",
    "RangeTable", "CoulombKernel",
    "calculate_polarization", "calculate_dielectric",
    "ExcitonBranches", "ExcitonSolver", "calculate_exciton_energy",
    "CNT",
]
