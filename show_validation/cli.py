from __future__ import annotations

import argparse
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from show_validation.config import AnalysisConfig
from show_validation.constants import BRUTE_FORCE_MAX_POINTS, SAMPLES_PER_SECOND
from show_validation.pipeline import run_validation_analysis
from show_validation.trajectories import TrajectoryPlayer, trajectory_from_keyframes

logger = logging.getLogger(__name__)


def load_show_description(path: str) -> Dict[str, Any]:
    """
    JSON layout:
      {
        "duration": 30.0,
        "environment": "outdoor",
        "validation": {...},                      # canonical or legacy keys, optional
        "drones": [{"keyframes": [[t, x, y, z], ...], "interpolation": "linear"}, ...]
      }
    When "duration" is missing, the latest keyframe time is used.
    """
    with open(path, "r", encoding="utf-8") as f:
        show = json.load(f)

    drones = show.get("drones")
    if not isinstance(drones, list):
        raise ValueError(f"{path}: 'drones' must be a list")

    players: List[TrajectoryPlayer] = []
    last_t = 0.0
    for i, drone in enumerate(drones):
        if not isinstance(drone, dict):
            raise ValueError(f"{path}: drone {i} must be an object")
        keyframes = drone.get("keyframes") or []
        if not keyframes:
            raise ValueError(f"{path}: drone {i} has no keyframes")
        players.append(trajectory_from_keyframes(keyframes, drone.get("interpolation", "linear")))
        last_t = max(last_t, float(keyframes[-1][0]))

    duration = float(show.get("duration", last_t))
    return {
        "players": players,
        "duration": duration,
        "environment": show.get("environment", "outdoor"),
        "validation": show.get("validation"),
    }


def _print_summary(run: Dict[str, Any]) -> None:
    metrics = run["metrics"]
    settings = run["settings"]

    for k, v in metrics.items():
        if isinstance(v, (float, int, str, tuple)) or v is None:
            print(f"{k}: {v}")
    print("thresholds:", json.dumps(settings.to_dict(), sort_keys=True))

    too_close = [
        (t, d) for t, d in zip(run["formatted_times"], run["min_distances"])
        if d is not None and d < settings.min_distance
    ]
    print(f"frames closer than {settings.min_distance} m: {len(too_close)}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Sample a drone show and report altitude, speed and proximity metrics")
    p.add_argument("show", type=str, help="Show description (JSON)")
    p.add_argument("--rate", type=float, default=SAMPLES_PER_SECOND, help="Samples per second")
    p.add_argument("--brute-force-max", type=int, default=BRUTE_FORCE_MAX_POINTS,
                   help="Largest frame scanned pairwise; larger frames use divide and conquer")
    p.add_argument("--clamp", action="store_true", help="Clamp out-of-range sample times instead of failing")
    p.add_argument("--workers", type=int, default=None, help="Threads used for the per-frame scan")
    p.add_argument("--json", action="store_true", help="Print metrics as JSON")
    p.add_argument("-v", "--verbose", action="store_true")

    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = AnalysisConfig(
        samples_per_second=args.rate,
        brute_force_max=args.brute_force_max,
        boundary="clamp" if args.clamp else "raise",
        max_workers=args.workers,
    )

    show = load_show_description(args.show)
    run = run_validation_analysis(config=config, **show)

    if args.json:
        out = dict(run["metrics"])
        out["settings"] = run["settings"].to_dict()
        print(json.dumps(out, indent=2, sort_keys=True))
    else:
        _print_summary(run)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
