"""
Small linear-algebra and geometry utilities used across the package.
"""
from __future__ import annotations

import numpy as np
from typing import Tuple


def rot2(theta: float) -> np.ndarray:
    """2D rotation matrix."""
    c, s = np.cos(theta), np.sin(theta)
    return np.array([[c, -s], [s, c]], dtype=float)


def real_to_reciprocal(a1: np.ndarray, a2: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Given 2D real-space basis (a1,a2), return reciprocal basis (b1,b2)
    such that a_i · b_j = 2π δ_ij.
    """
    A = np.stack([a1, a2], axis=1)  # 2x2
    B = 2 * np.pi * np.linalg.inv(A).T
    return B[:, 0], B[:, 1]


def wrap_index(i, lo: int, hi: int):
    """Wrap integer(s) `i` periodically into the half-open range [lo, hi)."""
    return lo + np.mod(np.asarray(i) - lo, hi - lo)


def fix_phase(C: np.ndarray, tol: float = 1e-14) -> np.ndarray:
    """
    Rotate every eigenvector column so that its first component is real and
    non-negative. Columns whose first component vanishes are left untouched.

    Parameters
    ----------
    C : (..., dim, nb) complex
    """
    c0 = C[..., 0:1, :]
    amp = np.abs(c0)
    phase = np.where(amp > tol, np.conj(c0) / np.where(amp > tol, amp, 1.0), 1.0)
    return C * phase


def hermitize_lower(K: np.ndarray) -> np.ndarray:
    """
    Complete a matrix whose lower triangle (diagonal included) is filled:
    K + K^H with the diagonal halved.
    """
    out = K + K.conj().T
    idx = np.diag_indices_from(out)
    out[idx] = out[idx] / 2.0
    return out


def max_antihermitian(K: np.ndarray) -> float:
    """max |K - K^H|, zero for a Hermitian matrix."""
    return float(np.max(np.abs(K - K.conj().T))) if K.size else 0.0
