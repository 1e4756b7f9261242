"""
Process-parallel evaluation of row-independent sweeps.

The Coulomb kernel and the polarization are computed row by row in iq, and
every row only writes its own output. The iq values are split into
contiguous chunks, each chunk is handed to a worker of a
`multiprocessing.Pool`, and the rows are concatenated in order once all
workers have returned.
"""
from __future__ import annotations

from functools import partial
from multiprocessing import Pool
from typing import Callable
import logging

import numpy as np

logger = logging.getLogger(__name__)


def map_iq_chunks(func: Callable[..., np.ndarray], iq_values: np.ndarray,
                  processes: int = 1, **kwargs) -> np.ndarray:
    """
    Evaluate `func(iq_chunk, **kwargs)` over chunks of `iq_values`.

    `func` must be a module-level function returning an array whose first
    axis matches the chunk length; the keyword arguments must be picklable.
    """
    iq_values = np.asarray(iq_values)
    task = partial(func, **kwargs)
    if processes <= 1 or iq_values.size <= 1:
        return task(iq_values)

    nchunks = min(int(processes) * 4, iq_values.size)
    chunks = np.array_split(iq_values, nchunks)
    logger.debug("Splitting %d rows into %d chunks on %d processes", iq_values.size, nchunks, processes)
    with Pool(processes=processes) as pool:
        rows = pool.map(task, chunks)
    return np.concatenate(rows, axis=0)
