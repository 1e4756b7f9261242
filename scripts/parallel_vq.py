"""
parallel_vq.py

Compute the Coulomb kernel v(q) of a nanotube in parallel with MPI (mpi4py).

Usage (example):
  mpirun -n 8 python parallel_vq.py --n 4 --m 2 --nk 100 --out vq_4_2.npz

Every rank builds the lattice and zone independently, takes a contiguous
chunk of the iq axis, and computes its rows. Rank 0 gathers the rows, saves
the full table and plots the channel-averaged real part.
"""
import argparse
import logging

import numpy as np
from mpi4py import MPI
import matplotlib.pyplot as plt

from cnt_exciton import CNTLattice, CNTParameters, CoulombKernel, ExtendedZone, RangeTable
from cnt_exciton.io import save_range_table
from cnt_exciton.plotting import plot_range_table


def parse_args():
    p = argparse.ArgumentParser()
    p.add_argument("--n", type=int, default=4, help="Chirality index n")
    p.add_argument("--m", type=int, default=2, help="Chirality index m")
    p.add_argument("--nk", type=int, default=100, help="Number of CNT unit cells (k points per cutting line)")
    p.add_argument("--ncells", type=int, default=None, help="Replicated unit cells in the Coulomb sum (default: nk)")
    p.add_argument("--out", default="vq_parallel.npz", help="Output npz file")
    p.add_argument("--plot", default=None, help="Optional path of a png with Re v(q)")
    return p.parse_args()


def main():
    args = parse_args()
    comm = MPI.COMM_WORLD
    rank = comm.Get_rank()
    size = comm.Get_size()

    logging.basicConfig(level=logging.INFO if rank == 0 else logging.WARNING,
                        format=f"[rank {rank}] %(name)s: %(message)s")

    params = CNTParameters()
    lat = CNTLattice.build(args.n, args.m, params)
    zone = ExtendedZone.build(lat, args.nk)
    kernel = CoulombKernel(lat, zone, params)
    iq_range, mu_range = zone.default_q_ranges()
    ncells = args.nk if args.ncells is None else args.ncells

    if rank == 0:
        print(f"[rank {rank}] MPI size: {size}. ({args.n},{args.m}) tube, Nu={lat.Nu}, "
              f"iq in {list(iq_range)}, mu in {list(mu_range)}", flush=True)

    # split the iq axis among ranks
    all_iq = np.arange(iq_range[0], iq_range[1])
    my_iq = np.array_split(all_iq, size)[rank]
    print(f"[rank {rank}] computing {len(my_iq)} iq rows", flush=True)

    if len(my_iq):
        my_table = kernel.calculate((int(my_iq[0]), int(my_iq[-1]) + 1), mu_range, ncells)
        my_rows = my_table.data
    else:
        my_rows = np.zeros((0, mu_range[1] - mu_range[0], 4), dtype=complex)

    gathered_rows = comm.gather(my_rows, root=0)

    if rank == 0:
        vq = RangeTable(data=np.concatenate(gathered_rows, axis=0), iq_range=iq_range,
                        mu_range=mu_range, q_vec=zone.q_axis(iq_range))
        save_range_table(args.out, vq, meta={"chirality": [args.n, args.m], "nk": args.nk,
                                             "ncells": ncells, "params": params.to_dict()})
        print(f"[rank {rank}] Saved vq to {args.out}", flush=True)

        if args.plot is not None:
            plot_range_table(vq, title=f"Re v(q), ({args.n},{args.m}), {size} ranks", savepath=args.plot)
            plt.close("all")
            print(f"[rank {rank}] Saved plot to {args.plot}", flush=True)


if __name__ == "__main__":
    main()
