"""
Run the full nanotube exciton calculation for one chirality.

Usage:
    python run_cnt.py --n 4 --m 2 --nk 100 --out output_4_2
    python run_cnt.py --config sim.json [--params material.json]

Every stage writes its table to the output directory as
<name>.<table>.npz; with --plot the band structure, the dielectric function
and the exciton dispersion are saved as png files next to them.
"""
import argparse
import logging
import os
import time
from pathlib import Path

# limit BLAS threads per process
os.environ.setdefault("OMP_NUM_THREADS", "1")
os.environ.setdefault("MKL_NUM_THREADS", "1")
os.environ.setdefault("OPENBLAS_NUM_THREADS", "1")

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from cnt_exciton import CNT, CNTParameters, SimulationParameters
from cnt_exciton.plotting import (
    plot_atoms, plot_exciton_dispersion, plot_folded_bands, plot_range_table,
)


def parse_args():
    p = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    p.add_argument("--config", default=None, help="JSON file with SimulationParameters")
    p.add_argument("--params", default=None, help="JSON file with CNTParameters")
    p.add_argument("--name", default="cnt")
    p.add_argument("--n", type=int, default=4)
    p.add_argument("--m", type=int, default=2)
    p.add_argument("--nk", type=int, default=100, help="Number of CNT unit cells")
    p.add_argument("--delta", type=float, default=1.0, help="Relevant-window energy offset [eV]")
    p.add_argument("--i-sub", type=int, default=0, help="Valley pair index")
    p.add_argument("--ncells", type=int, default=None, help="Replicated cells for v(q)")
    p.add_argument("--processes", type=int, default=1)
    p.add_argument("--out", default="output", help="Output directory (emptied if it exists)")
    p.add_argument("--cache", default=None,
                   help="Also diagonalize the full model, caching the eigensystem here")
    p.add_argument("--plot", action="store_true")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args()


def main():
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(name)s: %(message)s")

    if args.config is not None:
        sim = SimulationParameters.from_json(args.config)
    else:
        sim = SimulationParameters(
            name=args.name, n=args.n, m=args.m,
            number_of_cnt_unit_cells=args.nk,
            delta_energy_eV=args.delta,
            i_sub=args.i_sub,
            vq_cells=args.ncells,
            output_directory=args.out,
            processes=args.processes,
            cache_directory=args.cache,
        )
    params = CNTParameters.from_json(args.params) if args.params is not None else CNTParameters()

    print("=" * 70)
    print(f"cnt_exciton: ({sim.n},{sim.m}) nanotube, nk={sim.number_of_cnt_unit_cells}")
    print("=" * 70)

    t0 = time.time()
    cnt = CNT(sim=sim, params=params, save=True)
    sim.to_json(str(Path(sim.output_directory) / f"{sim.name}.simulation.json"))
    params.to_json(str(Path(sim.output_directory) / f"{sim.name}.params.json"))
    print(f"Nu = {cnt.lat.Nu}, M = {cnt.zone.M}, Q = {cnt.zone.Q}, radius = {cnt.lat.radius:.4f} A")

    cnt.electron_K1_extended()
    if sim.cache_directory is not None:
        cnt.electron_full()
    branches = cnt.calculate_exciton_dispersion()
    print(f"Valley pairs found: {len(cnt.valleys)}")
    print(f"Relevant states per valley: {len(cnt.window)}")
    print(f"Lowest A1 exciton at k_cm=0: {branches.A1[-branches.ik_cm_range[0], 0]:.6f} eV")

    if args.plot:
        out = Path(sim.output_directory)
        plot_atoms(cnt.lat, savepath=out / f"{sim.name}.atoms.png")
        plot_folded_bands(cnt.bands_K2, cnt.zone.dk, savepath=out / f"{sim.name}.el_energy_K2.png")
        plot_range_table(cnt.eps, title="eps(q)", savepath=out / f"{sim.name}.eps.png")
        plot_exciton_dispersion(branches, savepath=out / f"{sim.name}.exciton.png")
        plt.close("all")
        print(f"Saved plots to {out}/")

    print(f"Done. walltime={time.time() - t0:.1f}s, results in {sim.output_directory}/")


if __name__ == "__main__":
    main()
