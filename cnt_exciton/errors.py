"""
Exceptions raised by the nanotube pipeline.

Nothing in the package catches these; they propagate to whoever drives the
calculation.
"""
from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A geometric or band-structure consistency check fails for this chirality.

    Examples: the unit cell enumeration found a number of atoms different from
    Nu, an atom without exactly three nearest neighbours, or no integer
    solution for the K2-extended parameters (M, Q).
    """


class InvalidRangeError(ValueError):
    """A half-open index range has zero or negative width."""


class RangeDependencyError(RuntimeError):
    """A stage was asked for a range its input tables were not computed over."""
