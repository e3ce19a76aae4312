from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np

from show_validation.closest_pair import ClosestPairResult, closest_pairs_for_frames, nearest_neighbor_distances
from show_validation.config import AnalysisConfig
from show_validation.constants import EnvironmentType
from show_validation.derived import derive_all
from show_validation.sampling import formatted_time_instants, sample_time_instants
from show_validation.thresholds import resolve_validation_settings
from show_validation.trajectories import TrajectoryEvaluator, TrajectoryPlayer

logger = logging.getLogger(__name__)


def _max_or_none(values: np.ndarray) -> Optional[float]:
    return float(np.max(values)) if values.size > 0 else None


def summarize_run(
    times: np.ndarray,
    derived: Mapping[str, np.ndarray],
    closest_pairs: Sequence[ClosestPairResult],
) -> Dict[str, Any]:
    """
    Show-wide extremes of the sampled sequences. No threshold comparison here;
    consumers do that against the resolved settings.
    """
    alt = derived["altitudes"]
    metrics: Dict[str, Any] = {
        "num_drones": int(alt.shape[0]),
        "num_samples": int(times.shape[0]),
        "max_altitude": _max_or_none(alt),
        "max_horizontal_speed": _max_or_none(derived["horizontal_speeds"]),
        "max_abs_vertical_speed": _max_or_none(np.abs(derived["vertical_speeds"])),
        "min_distance": None,
        "min_distance_frame": None,
        "min_distance_time": None,
        "min_distance_pair": None,
    }

    best_k = None
    for k, r in enumerate(closest_pairs):
        # strict < keeps the earliest frame among equal minima
        if r.has_pair and (best_k is None or r.distance < closest_pairs[best_k].distance):
            best_k = k
    if best_k is not None:
        r = closest_pairs[best_k]
        metrics["min_distance"] = r.distance
        metrics["min_distance_frame"] = best_k
        metrics["min_distance_time"] = float(times[best_k])
        metrics["min_distance_pair"] = (r.index_a, r.index_b)

    return metrics


def run_validation_analysis(
    *,
    players: Sequence[TrajectoryPlayer],
    duration: float,
    environment: Union[str, EnvironmentType, None] = EnvironmentType.OUTDOOR,
    validation: Optional[Mapping[str, Any]] = None,
    config: Optional[AnalysisConfig] = None,
    executor: Optional[Executor] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> Dict[str, Any]:
    """
    duration -> sample grid -> per-drone samples -> derived sequences,
    and per-frame positions -> closest pairs.

    Sequences in the result are aligned index-for-index with "times";
    per-drone arrays are (D,K). should_cancel is polled between drones and
    between frame chunks and raises AnalysisCancelled when it returns True.
    """
    if config is None:
        config = AnalysisConfig()

    settings = resolve_validation_settings(environment, validation)
    times = sample_time_instants(duration, config.samples_per_second)

    evaluator = TrajectoryEvaluator(players, duration, boundary=config.boundary)
    positions, velocities = evaluator.evaluate(times, should_cancel=should_cancel)
    derived = derive_all(positions, velocities)

    logger.debug("sampled %d drones at %d instants", evaluator.num_drones, times.shape[0])

    if executor is None and config.max_workers is not None:
        with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
            closest: List[ClosestPairResult] = closest_pairs_for_frames(
                positions, brute_force_max=config.brute_force_max, executor=pool, should_cancel=should_cancel
            )
    else:
        closest = closest_pairs_for_frames(
            positions, brute_force_max=config.brute_force_max, executor=executor, should_cancel=should_cancel
        )

    metrics = summarize_run(times, derived, closest)
    metrics["duration"] = float(duration)

    return {
        "times": times,
        "formatted_times": formatted_time_instants(times),
        "positions": positions,
        "velocities": velocities,
        "altitudes": derived["altitudes"],
        "horizontal_speeds": derived["horizontal_speeds"],
        "vertical_speeds": derived["vertical_speeds"],
        "closest_pairs": closest,
        "min_distances": nearest_neighbor_distances(closest),
        "settings": settings,
        "metrics": metrics,
    }
