"""
Matplotlib plotting helpers.

We keep plotting separate from the computation so the package can be used
headless on clusters and only imports matplotlib when needed.
"""
from __future__ import annotations

from typing import Optional

import numpy as np
import matplotlib.pyplot as plt

from .exciton import ExcitonBranches
from .grids import RangeTable
from .lattice import CNTLattice
from .solver import FoldedBands, FullBands


def plot_full_bands(bands: FullBands, savepath: str | None = None):
    """Subbands of the full tight-binding model along the tube axis."""
    fig, ax = plt.subplots()
    ax.plot(bands.k_vec, bands.energy.T, color="k", linewidth=0.7)
    ax.set_xlabel(r"k (1/$\AA$)")
    ax.set_ylabel("Energy (eV)")
    ax.grid(True, alpha=0.3)
    if savepath is not None:
        fig.savefig(savepath)
    return fig, ax


def plot_folded_bands(bands: FoldedBands, dk: float, *, valleys_only: bool = False,
                      savepath: str | None = None):
    """
    Valence and conduction bands of every cutting line, one color per mu.

    Parameters
    ----------
    dk : |dk_l|, the spacing of the ik axis
    """
    k = np.arange(bands.ik_range[0], bands.ik_range[1]) * dk
    fig, ax = plt.subplots()
    colors = plt.cm.viridis(np.linspace(0, 1, max(bands.n_mu, 2)))
    for i_mu in range(bands.n_mu):
        mu = bands.mu_range[0] + i_mu
        ax.plot(k, bands.conduction[i_mu], color=colors[i_mu], linewidth=0.8, label=f"mu={mu}")
        if not valleys_only:
            ax.plot(k, bands.valence[i_mu], color=colors[i_mu], linewidth=0.8)
    ax.set_xlabel(r"k (1/$\AA$)")
    ax.set_ylabel("Energy (eV)")
    ax.set_title(f"{bands.representation}-extended bands")
    if bands.n_mu <= 10:
        ax.legend(fontsize="small")
    ax.grid(True, alpha=0.3)
    if savepath is not None:
        fig.savefig(savepath)
    return fig, ax


def plot_range_table(table: RangeTable, *, channel: Optional[int] = None, title: str = "",
                     savepath: str | None = None):
    """
    Color map of a (q, mu) table. Complex tables show the real part of
    `channel` (or the channel mean when None).
    """
    data = table.data
    if data.ndim == 3:
        data = data.mean(axis=-1) if channel is None else data[..., channel]
    data = np.real(data)

    fig, ax = plt.subplots()
    im = ax.imshow(data.T, origin="lower", aspect="auto",
                   extent=[table.q_vec[0], table.q_vec[-1], table.mu_range[0] - 0.5, table.mu_range[1] - 0.5])
    ax.set_xlabel(r"q (1/$\AA$)")
    ax.set_ylabel(r"$\mu_q$")
    ax.set_title(title)
    plt.colorbar(im, ax=ax)
    if savepath is not None:
        fig.savefig(savepath)
    return fig, ax


def plot_exciton_dispersion(branches: ExcitonBranches, *, nlowest: int = 3,
                            savepath: str | None = None):
    """The `nlowest` states of each symmetry branch against k_cm."""
    fig, ax = plt.subplots()
    styles = (("A1", branches.A1, "C0"),
              ("A2 triplet", branches.A2_triplet, "C1"),
              ("A2 singlet", branches.A2_singlet, "C2"))
    for label, energies, color in styles:
        n = min(nlowest, energies.shape[1])
        ax.plot(branches.k_cm_vec, energies[:, :n], color=color, linewidth=1.0)
        ax.plot([], [], color=color, label=label)
    ax.set_xlabel(r"$k_{cm}$ (1/$\AA$)")
    ax.set_ylabel("Exciton energy (eV)")
    ax.legend()
    ax.grid(True, alpha=0.3)
    if savepath is not None:
        fig.savefig(savepath)
    return fig, ax


def plot_atoms(lat: CNTLattice, *, rolled: bool = False, savepath: str | None = None):
    """Unit-cell atoms, unrolled (2d) or on the cylinder (3d)."""
    Nu = lat.Nu
    if rolled:
        fig = plt.figure()
        ax = fig.add_subplot(projection="3d")
        p = lat.pos_3d
        ax.scatter(p[:Nu, 0], p[:Nu, 1], p[:Nu, 2], s=8, label="A")
        ax.scatter(p[Nu:, 0], p[Nu:, 1], p[Nu:, 2], s=8, label="B")
        ax.set_xlabel(r"x ($\AA$)")
        ax.set_ylabel(r"y ($\AA$)")
        ax.set_zlabel(r"z ($\AA$)")
    else:
        fig, ax = plt.subplots()
        ax.scatter(lat.pos_a[:, 0], lat.pos_a[:, 1], s=8, label="A")
        ax.scatter(lat.pos_b[:, 0], lat.pos_b[:, 1], s=8, label="B")
        ax.axvline(lat.ch_len, color="k", linestyle="--", linewidth=0.7)
        ax.set_xlabel(r"circumference ($\AA$)")
        ax.set_ylabel(r"axis ($\AA$)")
        ax.set_aspect("equal")
    ax.set_title(f"({lat.n},{lat.m}) unit cell")
    ax.legend()
    if savepath is not None:
        fig.savefig(savepath)
    return fig, ax
