from __future__ import annotations

import logging
import math
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from show_validation.constants import BRUTE_FORCE_MAX_POINTS
from show_validation.errors import AnalysisCancelled

logger = logging.getLogger(__name__)

# (squared distance, index_a, index_b) with index_a < index_b.
# Comparing these tuples gives the smallest distance first, then the
# lexicographically smallest index pair, which is the tie-break rule.
_Best = Tuple[float, int, int]
_NO_BEST: _Best = (math.inf, -1, -1)

# (x, y, z, index)
_Pt = Tuple[float, float, float, int]


@dataclass(frozen=True)
class ClosestPairResult:
    distance: Optional[float]  # None iff the frame has fewer than two points
    index_a: Optional[int]
    index_b: Optional[int]

    @property
    def has_pair(self) -> bool:
        return self.distance is not None


NO_PAIR = ClosestPairResult(distance=None, index_a=None, index_b=None)


def _check_points(points) -> np.ndarray:
    X = np.asarray(points, dtype=float)
    if X.size == 0:
        return X.reshape(0, 3)
    if X.ndim != 2 or X.shape[1] != 3:
        raise ValueError("points must have shape (N,3)")
    if not np.all(np.isfinite(X)):
        raise ValueError("points must be finite")
    return X


def _result(best: _Best) -> ClosestPairResult:
    return ClosestPairResult(distance=math.sqrt(best[0]), index_a=best[1], index_b=best[2])


def closest_pair_brute_force(points) -> ClosestPairResult:
    """
    Scan all N(N-1)/2 pairs. Best choice for the usual tens of drones.
    points: (N,3)
    """
    X = _check_points(points)
    N = X.shape[0]
    if N < 2:
        return NO_PAIR

    # diff[i,j] = xi - xj; summed in x, y, z order like _sq_dist below
    diff = X[:, None, :] - X[None, :, :]
    dist2 = diff[..., 0] * diff[..., 0] + diff[..., 1] * diff[..., 1] + diff[..., 2] * diff[..., 2]

    # row-major upper triangle, so argmin picks the smallest (i, j) among ties
    ii, jj = np.triu_indices(N, k=1)
    d2 = dist2[ii, jj]
    m = int(np.argmin(d2))
    return _result((float(d2[m]), int(ii[m]), int(jj[m])))


def _sq_dist(a: _Pt, b: _Pt) -> float:
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    dz = a[2] - b[2]
    return dx * dx + dy * dy + dz * dz


def _pair(a: _Pt, b: _Pt) -> _Best:
    d2 = _sq_dist(a, b)
    if a[3] < b[3]:
        return (d2, a[3], b[3])
    return (d2, b[3], a[3])


# neighbouring (y, z) cells scanned around a strip point; +-2 instead of +-1
# absorbs rounding of the cell index division
_CELL_REACH = 2


def _cell(p: _Pt, delta: float) -> Tuple[int, int]:
    return (math.floor(p[1] / delta), math.floor(p[2] / delta))


def _closest_across(left: List[_Pt], right: List[_Pt], best: _Best) -> _Best:
    """
    Best pair with one point from each side of the split, or best if none is
    at least as close. Points within one side are at least sqrt(best[0])
    apart, so every (y, z) cell of side delta holds a bounded number of them.
    """
    if best[0] == 0.0:
        # only coincident points can tie; keep the lowest left index per position
        first: Dict[Tuple[float, float, float], _Pt] = {}
        for p in left:
            key = p[:3]
            if key not in first or p[3] < first[key][3]:
                first[key] = p
        for q in right:
            p = first.get(q[:3])
            if p is not None:
                cand = _pair(p, q)
                if cand < best:
                    best = cand
        return best

    delta = math.sqrt(best[0])
    cells: Dict[Tuple[int, int], List[_Pt]] = {}
    for p in left:
        cells.setdefault(_cell(p, delta), []).append(p)

    reach = range(-_CELL_REACH, _CELL_REACH + 1)
    for q in right:
        cy, cz = _cell(q, delta)
        for oy in reach:
            for oz in reach:
                for p in cells.get((cy + oy, cz + oz), ()):
                    cand = _pair(p, q)
                    if cand < best:
                        best = cand
    return best


def _closest_recursive(px: List[_Pt]) -> _Best:
    """
    px: points sorted by x (len >= 2)
    """
    n = len(px)
    if n <= 3:
        best = _NO_BEST
        for a in range(n):
            for b in range(a + 1, n):
                cand = _pair(px[a], px[b])
                if cand < best:
                    best = cand
        return best

    mid = n // 2
    mid_x = px[mid][0]
    best = min(_closest_recursive(px[:mid]), _closest_recursive(px[mid:]))

    # strip of half-width delta around the split line; <= keeps equally
    # distant pairs so the tie-break sees them too
    left = [p for p in px[:mid] if (p[0] - mid_x) * (p[0] - mid_x) <= best[0]]
    right = [p for p in px[mid:] if (p[0] - mid_x) * (p[0] - mid_x) <= best[0]]
    if not left or not right:
        return best
    return _closest_across(left, right, best)


def closest_pair_divide_and_conquer(points) -> ClosestPairResult:
    """
    Sort by x, split in halves, solve recursively and check the strip of
    width 2*delta around the split line by bucketing it into a (y, z) grid
    of cell size delta. O(n log n).
    points: (N,3)
    """
    X = _check_points(points)
    N = X.shape[0]
    if N < 2:
        return NO_PAIR

    pts: List[_Pt] = [(float(x), float(y), float(z), i) for i, (x, y, z) in enumerate(X)]
    pts.sort(key=lambda p: (p[0], p[3]))
    return _result(_closest_recursive(pts))


def closest_pair(points, brute_force_max: int = BRUTE_FORCE_MAX_POINTS) -> ClosestPairResult:
    """
    Closest pair of a single frame.

    Returns the exact minimum Euclidean distance and the index pair (a < b)
    achieving it; among equally close pairs the lexicographically smallest
    (a, b) is returned. Frames with fewer than two points give NO_PAIR.
    The strategy depends only on the number of points and never changes
    the result.
    """
    X = _check_points(points)
    if X.shape[0] <= brute_force_max:
        return closest_pair_brute_force(X)
    return closest_pair_divide_and_conquer(X)


def _closest_pairs_chunk(frames: np.ndarray, brute_force_max: int) -> List[ClosestPairResult]:
    # frames: (C,D,3)
    return [closest_pair(frame, brute_force_max) for frame in frames]


def closest_pairs_for_frames(
    positions: np.ndarray,
    *,
    brute_force_max: int = BRUTE_FORCE_MAX_POINTS,
    executor: Optional[Executor] = None,
    chunk_size: int = 64,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> List[ClosestPairResult]:
    """
    Closest pair for every sampled frame.

    positions: (D,K,3), drone-major as produced by TrajectoryEvaluator
    Returns a list of K results, one per sample index.

    Frames are independent; when an executor is given, chunks of frames are
    mapped onto it (threads or processes both work).
    """
    P = np.asarray(positions, dtype=float)
    if P.ndim != 3 or P.shape[2] != 3:
        raise ValueError("positions must have shape (D,K,3)")
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")

    D, K = P.shape[0], P.shape[1]
    if D < 2:
        return [NO_PAIR] * K

    frames = np.ascontiguousarray(P.transpose(1, 0, 2))  # (K,D,3)
    chunks = [frames[s:s + chunk_size] for s in range(0, K, chunk_size)]
    out: List[ClosestPairResult] = []

    if executor is None:
        for chunk in chunks:
            if should_cancel is not None and should_cancel():
                raise AnalysisCancelled()
            out.extend(_closest_pairs_chunk(chunk, brute_force_max))
        return out

    logger.debug("scanning %d frames of %d drones in %d chunks", K, D, len(chunks))
    futures = [executor.submit(_closest_pairs_chunk, chunk, brute_force_max) for chunk in chunks]
    try:
        for fut in futures:
            if should_cancel is not None and should_cancel():
                raise AnalysisCancelled()
            out.extend(fut.result())
    except BaseException:
        for fut in futures:
            fut.cancel()
        raise
    return out


def nearest_neighbor_distances(results: Sequence[ClosestPairResult]) -> List[Optional[float]]:
    """
    Distance of the closest drone pair per frame, None where a frame has at most one drone.
    """
    return [r.distance for r in results]
