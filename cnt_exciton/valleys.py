"""
Conduction-band valleys of the K2-extended folded bands and the window of
states around a valley that enters the exciton kernel.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple
import logging

import numpy as np

from .errors import ConfigurationError
from .solver import IC, FoldedBands

logger = logging.getLogger(__name__)

State = Tuple[int, int]  # (ik, mu)


@dataclass(frozen=True)
class ValleyRecord:
    """Two degenerate conduction-band minima, each as an absolute (ik, mu)."""
    valley_1: State
    valley_2: State
    energy_1: float
    energy_2: float


@dataclass(frozen=True)
class RelevantWindow:
    """
    (ik, mu) states within delta_energy of the bottom of each valley of a
    pair, ordered by increasing ik around the minimum.

    valley_1, valley_2 : (n, 2) int arrays of absolute (ik, mu)
    """
    valley_1: np.ndarray
    valley_2: np.ndarray
    i_sub: int
    delta_energy: float

    def __len__(self) -> int:
        return len(self.valley_1)


def find_local_minima(bands: FoldedBands) -> List[State]:
    """
    Strict minima of the conduction band along ik (periodic) at fixed mu,
    listed ik-major.
    """
    Ec = bands.conduction  # (n_mu, nk)
    lower_than_left = Ec < np.roll(Ec, 1, axis=1)
    lower_than_right = Ec < np.roll(Ec, -1, axis=1)
    # nonzero on the transpose walks ik first, then mu
    i_k, i_mu = np.nonzero((lower_than_left & lower_than_right).T)
    return [(int(k) + bands.ik_range[0], int(mu) + bands.mu_range[0]) for k, mu in zip(i_k, i_mu)]


def find_valleys(bands: FoldedBands) -> List[ValleyRecord]:
    """
    Locate the conduction-band minima and group them in degenerate pairs.

    The minima are sorted by energy (stable) and paired consecutively. With
    an odd number of minima the highest unpaired one is dropped.
    """
    minima = find_local_minima(bands)
    energies = np.array([bands.energy_at(ik, mu, IC) for ik, mu in minima])
    order = np.argsort(energies, kind="stable")
    minima = [minima[i] for i in order]
    energies = energies[order]

    if len(minima) % 2:
        logger.warning("Found an odd number (%d) of conduction-band minima; dropping the one at %.6f eV",
                       len(minima), energies[-1])

    records = [
        ValleyRecord(valley_1=minima[2 * i], valley_2=minima[2 * i + 1],
                     energy_1=float(energies[2 * i]), energy_2=float(energies[2 * i + 1]))
        for i in range(len(minima) // 2)
    ]
    logger.info("Found %d valley pairs", len(records))
    for rec in records:
        logger.debug("valley pair %s , %s at %.6f eV", rec.valley_1, rec.valley_2, rec.energy_1)
    return records


def _window_around(bands: FoldedBands, bottom: State, delta_energy: float) -> np.ndarray:
    ik0, mu = bottom
    lo, hi = bands.ik_range
    nk = hi - lo
    Ec = bands.conduction[mu - bands.mu_range[0]]
    max_energy = Ec[ik0 - lo] + delta_energy

    def below(ik: int) -> bool:
        return Ec[(ik - lo) % nk] < max_energy

    right = []
    while len(right) < nk - 1 and below(ik0 + len(right) + 1):
        right.append(lo + (ik0 + len(right) + 1 - lo) % nk)
    left = []
    while len(left) + len(right) < nk - 1 and below(ik0 - len(left) - 1):
        left.append(lo + (ik0 - len(left) - 1 - lo) % nk)

    iks = left[::-1] + [ik0] + right
    return np.array([(ik, mu) for ik in iks], dtype=int)


def relevant_window(bands: FoldedBands, valleys: List[ValleyRecord], i_sub: int,
                    delta_energy: float) -> RelevantWindow:
    """
    Walk outward in ik from both minima of valley pair `i_sub` while the
    conduction energy stays below E_min + delta_energy.

    Raises
    ------
    ConfigurationError
        If fewer than i_sub + 1 valley pairs were found.
    """
    if delta_energy <= 0:
        raise ValueError("delta_energy must be positive.")
    if i_sub >= len(valleys):
        raise ConfigurationError(
            f"Valley pair {i_sub} requested but only {len(valleys)} pairs were found.")

    rec = valleys[i_sub]
    window = RelevantWindow(
        valley_1=_window_around(bands, rec.valley_1, delta_energy),
        valley_2=_window_around(bands, rec.valley_2, delta_energy),
        i_sub=i_sub,
        delta_energy=delta_energy,
    )
    logger.info("Relevant window has %d states in valley 1 and %d in valley 2",
                len(window.valley_1), len(window.valley_2))
    return window
