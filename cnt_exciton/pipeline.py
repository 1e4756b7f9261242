"""
End-to-end driver for one nanotube.

`CNT` holds the configuration and the output of every stage. Stages must be
run in order (geometry -> bands -> valleys -> window -> vq, PI -> eps ->
exciton); calling a stage before its inputs exist raises
RangeDependencyError. `calculate_exciton_dispersion` runs the whole chain
with the default sweep ranges.

Example
-------
>>> cnt = CNT(SimulationParameters(n=4, m=2, number_of_cnt_unit_cells=20))
>>> branches = cnt.calculate_exciton_dispersion()
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import logging

from .config import CNTParameters, SimulationParameters
from .errors import RangeDependencyError
from .exciton import ExcitonBranches, ExcitonSolver
from .grids import IndexRange, RangeTable
from .interaction import CoulombKernel
from .lattice import CNTLattice
from .screening import calculate_dielectric, calculate_polarization
from .solver import (
    FoldedBands, FullBands, electron_K1_extended, electron_K2_extended, get_full_bands_cached,
    solve_kpoints,
)
from .tight_binding import TightBindingModel
from .valleys import RelevantWindow, ValleyRecord, find_valleys, relevant_window
from .zone import ExtendedZone
from . import io

logger = logging.getLogger(__name__)


@dataclass
class CNT:
    sim: SimulationParameters = field(default_factory=SimulationParameters)
    params: CNTParameters = field(default_factory=CNTParameters)
    save: bool = False

    lat: CNTLattice = field(init=False)
    zone: ExtendedZone = field(init=False)
    full_bands: Optional[FullBands] = field(default=None, init=False)
    bands_K1: Optional[FoldedBands] = field(default=None, init=False)
    bands_K2: Optional[FoldedBands] = field(default=None, init=False)
    valleys: Optional[List[ValleyRecord]] = field(default=None, init=False)
    window: Optional[RelevantWindow] = field(default=None, init=False)
    vq: Optional[RangeTable] = field(default=None, init=False)
    PI: Optional[RangeTable] = field(default=None, init=False)
    eps: Optional[RangeTable] = field(default=None, init=False)
    exciton: Optional[ExcitonBranches] = field(default=None, init=False)
    _coulomb: CoulombKernel = field(init=False, repr=False)

    def __post_init__(self):
        self.lat = CNTLattice.build(self.sim.n, self.sim.m, self.params)
        self.zone = ExtendedZone.build(self.lat, self.sim.number_of_cnt_unit_cells)
        self._coulomb = CoulombKernel(self.lat, self.zone, self.params)
        if self.save:
            io.prepare_output_directory(self.sim.output_directory)
            io.save_geometry(self._path("atoms"), self.lat, meta=self._meta())

    def _path(self, table: str) -> Path:
        return io.output_path(self.sim.output_directory, self.sim.name, table)

    def _meta(self) -> dict:
        return {"simulation": self.sim.to_dict(), "params": self.params.to_dict()}

    @staticmethod
    def _need(value, stage: str, prerequisite: str):
        if value is None:
            raise RangeDependencyError(f"{stage} needs {prerequisite}; run that stage first.")
        return value

    def electron_full(self) -> FullBands:
        """Diagonalize the full 2Nu x 2Nu tight-binding model."""
        model = TightBindingModel(self.params, self.lat)
        if self.sim.cache_directory is None:
            self.full_bands = solve_kpoints(model, self.zone)
        else:
            self.full_bands, _ = get_full_bands_cached(model, self.zone, cache_dir=self.sim.cache_directory)
        if self.save:
            io.save_full_bands(self._path("el_energy_full"), self.full_bands, meta=self._meta())
        return self.full_bands

    def electron_K1_extended(self) -> FoldedBands:
        self.bands_K1 = electron_K1_extended(self.lat, self.zone, self.params)
        if self.save:
            io.save_folded_bands(self._path("el_energy_K1"), self.bands_K1, meta=self._meta())
        return self.bands_K1

    def electron_K2_extended(self) -> FoldedBands:
        self.bands_K2 = electron_K2_extended(self.lat, self.zone, self.params)
        if self.save:
            io.save_folded_bands(self._path("el_energy_K2"), self.bands_K2, meta=self._meta())
        return self.bands_K2

    def find_valleys(self) -> List[ValleyRecord]:
        bands = self._need(self.bands_K2, "find_valleys", "electron_K2_extended")
        self.valleys = find_valleys(bands)
        return self.valleys

    def find_relev_ik_range(self, delta_energy: Optional[float] = None) -> RelevantWindow:
        bands = self._need(self.bands_K2, "find_relev_ik_range", "electron_K2_extended")
        valleys = self._need(self.valleys, "find_relev_ik_range", "find_valleys")
        delta = self.sim.delta_energy_eV if delta_energy is None else delta_energy
        self.window = relevant_window(bands, valleys, self.sim.i_sub, delta)
        return self.window

    def calculate_vq(self, iq_range: IndexRange, mu_range: IndexRange,
                     no_of_cnt_unit_cells: Optional[int] = None) -> RangeTable:
        ncells = self.sim.replicated_cells if no_of_cnt_unit_cells is None else no_of_cnt_unit_cells
        self.vq = self._coulomb.calculate(iq_range, mu_range, ncells, processes=self.sim.processes)
        if self.save:
            io.save_range_table(self._path("vq"), self.vq, meta=self._meta())
        return self.vq

    def calculate_polarization(self, iq_range: IndexRange, mu_range: IndexRange) -> RangeTable:
        bands = self._need(self.bands_K2, "calculate_polarization", "electron_K2_extended")
        self.PI = calculate_polarization(bands, self.zone, iq_range, mu_range,
                                         processes=self.sim.processes)
        if self.save:
            io.save_range_table(self._path("PI"), self.PI, meta=self._meta())
        return self.PI

    def calculate_dielectric(self, iq_range: IndexRange, mu_range: IndexRange) -> RangeTable:
        vq = self._need(self.vq, "calculate_dielectric", "calculate_vq")
        PI = self._need(self.PI, "calculate_dielectric", "calculate_polarization")
        self.eps = calculate_dielectric(vq, PI, iq_range, mu_range)
        if self.save:
            io.save_range_table(self._path("eps"), self.eps, meta=self._meta())
        return self.eps

    def calculate_exciton_energy(self, ik_cm_range: IndexRange) -> ExcitonBranches:
        solver = ExcitonSolver(
            self._need(self.bands_K2, "calculate_exciton_energy", "electron_K2_extended"),
            self.zone,
            self._need(self.window, "calculate_exciton_energy", "find_relev_ik_range"),
            self._need(self.vq, "calculate_exciton_energy", "calculate_vq"),
            self._need(self.eps, "calculate_exciton_energy", "calculate_dielectric"),
        )
        self.exciton = solver.calculate(ik_cm_range)
        if self.save:
            io.save_exciton_branches(self._path("exciton"), self.exciton, meta=self._meta())
        return self.exciton

    def default_ik_cm_range(self) -> IndexRange:
        """
        [-n_relev, n_relev), with the lower end clipped to the default vq sweep.

        The exchange kernel reads vq at iq = ik_cm, and the default iq sweep
        starts at -(nk_K2 - 1); a window spanning a whole cutting line would
        otherwise ask for iq = -nk_K2.
        """
        n_relev = len(self._need(self.window, "default_ik_cm_range", "find_relev_ik_range"))
        return (-min(n_relev, self.zone.nk_K2 - 1), n_relev)

    def calculate_exciton_dispersion(self) -> ExcitonBranches:
        """Run every stage with the default ranges."""
        self.electron_K2_extended()
        self.find_valleys()
        self.find_relev_ik_range()

        iq_range, mu_range = self.zone.default_q_ranges()
        self.calculate_vq(iq_range, mu_range)
        self.calculate_polarization(iq_range, mu_range)
        self.calculate_dielectric(iq_range, mu_range)
        return self.calculate_exciton_energy(self.default_ik_cm_range())
