"""
On-disk storage of pipeline results.

Every table is written as `<directory>/<name>.<table>.npz` with
`numpy.savez_compressed`. Besides the arrays each file holds a `meta_json`
string with the run parameters. Values are stored as float64/complex128 so
loading gives back the in-memory arrays bit for bit.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import json
import logging
import os
import shutil

import numpy as np

from .exciton import ExcitonBranches
from .grids import RangeTable
from .lattice import CNTLattice
from .solver import FoldedBands, FullBands

logger = logging.getLogger(__name__)


def prepare_output_directory(directory: str | os.PathLike) -> Path:
    """
    Create `directory`, emptying it first if it already holds files.
    """
    directory = Path(directory)
    if directory.exists() and any(directory.iterdir()):
        logger.warning("Output directory %s is not empty, removing its contents", directory)
        for child in directory.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def output_path(directory: str | os.PathLike, name: str, table: str) -> Path:
    return Path(directory) / f"{name}.{table}.npz"


def save_arrays(path: str | os.PathLike, *, meta: Optional[dict] = None, **arrays: np.ndarray) -> Path:
    """Save named arrays plus a JSON metadata string to a compressed .npz."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    meta_json = json.dumps({} if meta is None else meta, sort_keys=True)
    np.savez_compressed(path, meta_json=np.array(meta_json), **{k: np.asarray(v) for k, v in arrays.items()})
    logger.debug("Saved %s", path)
    return path


def load_arrays(path: str | os.PathLike) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
    """Inverse of `save_arrays`: (arrays, meta)."""
    with np.load(Path(path), allow_pickle=False) as data:
        arrays = {k: data[k] for k in data.files if k != "meta_json"}
        meta_json = str(data["meta_json"]) if "meta_json" in data.files else ""
    meta = json.loads(meta_json) if meta_json else {}
    return arrays, meta


def _as_range(a: np.ndarray) -> Tuple[int, int]:
    return int(a[0]), int(a[1])


def save_range_table(path: str | os.PathLike, table: RangeTable, meta: Optional[dict] = None) -> Path:
    return save_arrays(path, meta=meta, data=table.data, iq_range=np.asarray(table.iq_range),
                       mu_range=np.asarray(table.mu_range), q_vec=table.q_vec)


def load_range_table(path: str | os.PathLike) -> RangeTable:
    arrays, _ = load_arrays(path)
    return RangeTable(data=arrays["data"], iq_range=_as_range(arrays["iq_range"]),
                      mu_range=_as_range(arrays["mu_range"]), q_vec=arrays["q_vec"])


def save_folded_bands(path: str | os.PathLike, bands: FoldedBands, meta: Optional[dict] = None) -> Path:
    return save_arrays(path, meta=meta, energy=bands.energy, psi=bands.psi,
                       ik_range=np.asarray(bands.ik_range), mu_range=np.asarray(bands.mu_range),
                       representation=np.array(bands.representation))


def load_folded_bands(path: str | os.PathLike) -> FoldedBands:
    arrays, _ = load_arrays(path)
    return FoldedBands(energy=arrays["energy"], psi=arrays["psi"],
                       ik_range=_as_range(arrays["ik_range"]), mu_range=_as_range(arrays["mu_range"]),
                       representation=str(arrays["representation"]))


def save_full_bands(path: str | os.PathLike, bands: FullBands, meta: Optional[dict] = None) -> Path:
    return save_arrays(path, meta=meta, energy=bands.energy, psi=bands.psi, k_vec=bands.k_vec)


def save_exciton_branches(path: str | os.PathLike, branches: ExcitonBranches,
                          meta: Optional[dict] = None) -> Path:
    return save_arrays(path, meta=meta, k_cm_vec=branches.k_cm_vec,
                       ik_cm_range=np.asarray(branches.ik_cm_range), A1=branches.A1,
                       A2_triplet=branches.A2_triplet, A2_singlet=branches.A2_singlet)


def load_exciton_branches(path: str | os.PathLike) -> ExcitonBranches:
    arrays, _ = load_arrays(path)
    return ExcitonBranches(k_cm_vec=arrays["k_cm_vec"], ik_cm_range=_as_range(arrays["ik_cm_range"]),
                           A1=arrays["A1"], A2_triplet=arrays["A2_triplet"], A2_singlet=arrays["A2_singlet"])


def save_geometry(path: str | os.PathLike, lat: CNTLattice, meta: Optional[dict] = None) -> Path:
    """Atom coordinates of the unit cell, 2d (unrolled) and 3d."""
    return save_arrays(path, meta=meta, pos_a=lat.pos_a, pos_b=lat.pos_b, pos_3d=lat.pos_3d,
                       ch_vec=lat.ch_vec, t_vec=lat.t_vec)
