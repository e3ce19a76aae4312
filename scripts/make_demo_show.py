from __future__ import annotations

import argparse
import json
import os

import numpy as np


def main() -> int:
    p = argparse.ArgumentParser(description="Write a synthetic show: a grid takes off, swaps rows and lands")
    p.add_argument("--N", type=int, default=25, help="Number of drones")
    p.add_argument("--spacing", type=float, default=4.0, help="Grid spacing (m)")
    p.add_argument("--altitude", type=float, default=20.0)
    p.add_argument("--T", type=float, default=30.0, help="Show duration (s)")
    p.add_argument("--jitter", type=float, default=0.0, help="Random XY jitter of the home grid (m)")
    p.add_argument("--interpolation", type=str, default="spline", choices=["linear", "spline"])
    p.add_argument("--environment", type=str, default="outdoor", choices=["outdoor", "indoor"])
    p.add_argument("--seed", type=int, default=0)
    p.add_argument("--out", type=str, default="results/demo_show.json")
    args = p.parse_args()

    rng = np.random.default_rng(args.seed)
    side = int(np.ceil(np.sqrt(args.N)))
    ij = np.array([(i // side, i % side) for i in range(args.N)], dtype=float)
    home = np.zeros((args.N, 3), dtype=float)
    home[:, :2] = ij * args.spacing + rng.uniform(-args.jitter, args.jitter, size=(args.N, 2))

    # mirrored rows: drones pass each other half way through the swap
    swapped = home.copy()
    swapped[:, 0] = (side - 1) * args.spacing - home[:, 0]

    T = float(args.T)
    drones = []
    for i in range(args.N):
        up = home[i] + [0.0, 0.0, args.altitude]
        over = swapped[i] + [0.0, 0.0, args.altitude]
        keyframes = [
            [0.0, *home[i]],
            [0.25 * T, *up],
            [0.60 * T, *over],
            [0.80 * T, *up],
            [T, *home[i]],
        ]
        drones.append({"keyframes": keyframes, "interpolation": args.interpolation})

    show = {"duration": T, "environment": args.environment, "drones": drones}

    out_dir = os.path.dirname(args.out)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(show, f, indent=1)

    print("Saved:", args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
