"""
Range-tagged tables over (iq, mu) momentum-transfer grids.

The Coulomb kernel, the polarization and the dielectric function are all
stored as a `RangeTable`: the values plus the half-open index ranges they
were computed over. Consumers address entries by absolute (iq, mu) indices
and must check coverage before combining tables.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import InvalidRangeError, RangeDependencyError

IndexRange = Tuple[int, int]


def validate_range(index_range: IndexRange, label: str) -> int:
    """Return the width of a half-open range, raising if it is not positive."""
    lo, hi = int(index_range[0]), int(index_range[1])
    width = hi - lo
    if width <= 0:
        raise InvalidRangeError(f"Incorrect range for {label}: [{lo}, {hi}) has width {width}.")
    return width


def range_covers(outer: IndexRange, inner: IndexRange) -> bool:
    """True if [inner) is a subset of [outer)."""
    return outer[0] <= inner[0] and inner[1] <= outer[1]


@dataclass(frozen=True)
class RangeTable:
    """
    data     : (nq, n_mu, ...) values; trailing axes are table specific
               (the Coulomb kernel has one of length 4 for AA, AB, BA, BB)
    iq_range : [iq_min, iq_max)
    mu_range : [mu_min, mu_max)
    q_vec    : (nq,) |q| = iq |dk_l|
    """
    data: np.ndarray
    iq_range: IndexRange
    mu_range: IndexRange
    q_vec: np.ndarray

    def __post_init__(self):
        expected = (self.nq, self.n_mu)
        if tuple(self.data.shape[:2]) != expected:
            raise ValueError(f"Table shape {self.data.shape[:2]} does not match ranges {expected}.")

    @property
    def nq(self) -> int:
        return self.iq_range[1] - self.iq_range[0]

    @property
    def n_mu(self) -> int:
        return self.mu_range[1] - self.mu_range[0]

    def covers(self, iq_range: IndexRange, mu_range: IndexRange) -> bool:
        return range_covers(self.iq_range, iq_range) and range_covers(self.mu_range, mu_range)

    def require(self, iq_range: IndexRange, mu_range: IndexRange, label: str) -> None:
        """Raise RangeDependencyError unless this table covers both ranges."""
        if not self.covers(iq_range, mu_range):
            raise RangeDependencyError(
                f"{label} was computed over iq {list(self.iq_range)}, mu {list(self.mu_range)}; "
                f"requested iq {list(iq_range)}, mu {list(mu_range)}."
            )

    def sub(self, iq_range: IndexRange, mu_range: IndexRange) -> np.ndarray:
        """Slice of `data` over a covered sub-range."""
        self.require(iq_range, mu_range, "table")
        i0 = iq_range[0] - self.iq_range[0]
        m0 = mu_range[0] - self.mu_range[0]
        return self.data[i0:i0 + iq_range[1] - iq_range[0], m0:m0 + mu_range[1] - mu_range[0]]

    def at(self, iq, mu) -> np.ndarray:
        """Entries at absolute indices (broadcasting over arrays)."""
        iq = np.asarray(iq)
        mu = np.asarray(mu)
        if iq.size and (iq.min() < self.iq_range[0] or iq.max() >= self.iq_range[1]
                        or mu.min() < self.mu_range[0] or mu.max() >= self.mu_range[1]):
            raise RangeDependencyError(
                f"Index outside the computed range iq {list(self.iq_range)}, mu {list(self.mu_range)}."
            )
        return self.data[iq - self.iq_range[0], mu - self.mu_range[0]]
