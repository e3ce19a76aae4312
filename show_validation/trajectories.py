from __future__ import annotations

import hashlib
import logging
from typing import Callable, Iterator, NamedTuple, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np
from scipy.interpolate import CubicSpline

from show_validation.errors import AnalysisCancelled, TrajectoryBoundaryError

logger = logging.getLogger(__name__)


@runtime_checkable
class TrajectoryPlayer(Protocol):
    """
    Anything that can tell where a drone is, and how fast it moves, at show time t.
    Both methods return a length-3 (x, y, z) array in meters / meters per second.
    """

    def position_at(self, t: float) -> np.ndarray: ...

    def velocity_at(self, t: float) -> np.ndarray: ...


class DroneSample(NamedTuple):
    drone_index: int
    sample_index: int
    position: np.ndarray  # (3,)
    velocity: np.ndarray  # (3,)


def _check_keyframes(times: np.ndarray, points: np.ndarray, min_count: int) -> Tuple[np.ndarray, np.ndarray]:
    t = np.asarray(times, dtype=float).reshape(-1)
    P = np.asarray(points, dtype=float)
    if P.ndim != 2 or P.shape[1] != 3:
        raise ValueError("points must have shape (M,3)")
    if t.shape[0] != P.shape[0]:
        raise ValueError(f"times and points must have same length, got {t.shape[0]} and {P.shape[0]}")
    if t.shape[0] < min_count:
        raise ValueError(f"need at least {min_count} keyframe(s)")
    if not (np.all(np.isfinite(t)) and np.all(np.isfinite(P))):
        raise ValueError("keyframes must be finite")
    if np.any(np.diff(t) <= 0):
        raise ValueError("keyframe times must be strictly increasing")
    return t, P


def _keyframe_digest(kind: str, t: np.ndarray, P: np.ndarray) -> str:
    h = hashlib.sha256(kind.encode("ascii"))
    h.update(np.ascontiguousarray(t).tobytes())
    h.update(np.ascontiguousarray(P).tobytes())
    return h.hexdigest()


class PiecewiseLinearTrajectory:
    """
    Keyframed trajectory with straight segments between keyframes.

    Before the first / after the last keyframe the drone holds its position
    and the velocity is zero.
    """

    def __init__(self, times: np.ndarray, points: np.ndarray):
        self.times, self.points = _check_keyframes(times, points, min_count=1)

    def position_at(self, t: float) -> np.ndarray:
        t = float(t)
        return np.array([np.interp(t, self.times, self.points[:, k]) for k in range(3)], dtype=float)

    def velocity_at(self, t: float) -> np.ndarray:
        t = float(t)
        n = self.times.shape[0]
        if n < 2 or t < self.times[0] or t > self.times[-1]:
            return np.zeros(3, dtype=float)

        # at a keyframe the outgoing segment wins, except at the very end
        seg = int(np.searchsorted(self.times, t, side="right")) - 1
        seg = max(0, min(n - 2, seg))
        dt = self.times[seg + 1] - self.times[seg]
        return (self.points[seg + 1] - self.points[seg]) / dt

    def fingerprint(self) -> str:
        return _keyframe_digest("linear", self.times, self.points)


class SplineTrajectory:
    """
    Cubic spline through the keyframes with zero velocity at both ends
    (scipy CubicSpline, bc_type="clamped").
    Outside the keyframe range the drone holds position.
    """

    def __init__(self, times: np.ndarray, points: np.ndarray):
        self.times, self.points = _check_keyframes(times, points, min_count=2)
        self._spline = CubicSpline(self.times, self.points, axis=0, bc_type="clamped")
        self._dspline = self._spline.derivative(1)

    def position_at(self, t: float) -> np.ndarray:
        t = min(max(float(t), self.times[0]), self.times[-1])
        return np.asarray(self._spline(t), dtype=float)

    def velocity_at(self, t: float) -> np.ndarray:
        t = float(t)
        if t < self.times[0] or t > self.times[-1]:
            return np.zeros(3, dtype=float)
        return np.asarray(self._dspline(t), dtype=float)

    def fingerprint(self) -> str:
        return _keyframe_digest("spline", self.times, self.points)


class TrajectoryEvaluator:
    """
    Samples a fixed, ordered set of trajectory players over [0, duration].

    The evaluator does no interpolation of its own. Times outside the show
    range either raise TrajectoryBoundaryError (boundary="raise") or are
    clamped into it (boundary="clamp"). The check happens once for the whole
    time grid before any drone is evaluated, so a run yields either complete
    frames or nothing.
    """

    def __init__(self, players: Sequence[TrajectoryPlayer], duration: float, boundary: str = "raise"):
        if boundary not in ("raise", "clamp"):
            raise ValueError("boundary must be 'raise' or 'clamp'")
        duration = float(duration)
        if not np.isfinite(duration) or duration < 0:
            raise ValueError(f"duration must be a finite number >= 0, got {duration}")
        self.players = list(players)
        self.duration = duration
        self.boundary = boundary

    @property
    def num_drones(self) -> int:
        return len(self.players)

    def _guard_times(self, times: np.ndarray) -> np.ndarray:
        t = np.asarray(times, dtype=float).reshape(-1)
        outside = (t < 0.0) | (t > self.duration) | ~np.isfinite(t)
        if not np.any(outside):
            return t
        if self.boundary == "clamp" and np.all(np.isfinite(t)):
            logger.debug("clamping %d sample time(s) into [0, %s]", int(outside.sum()), self.duration)
            return np.clip(t, 0.0, self.duration)
        raise TrajectoryBoundaryError(float(t[np.argmax(outside)]), self.duration)

    @staticmethod
    def _as_vec3(value, what: str, drone_index: int) -> np.ndarray:
        v = np.asarray(value, dtype=float).reshape(-1)
        if v.shape[0] != 3:
            raise ValueError(f"{what} of drone {drone_index} must have 3 components, got {v.shape[0]}")
        return v

    def evaluate(
        self,
        times: np.ndarray,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Evaluate every player at every time instant.

        Returns:
          positions:  (D,K,3)
          velocities: (D,K,3)
        """
        t = self._guard_times(times)
        D, K = self.num_drones, t.shape[0]
        positions = np.zeros((D, K, 3), dtype=float)
        velocities = np.zeros((D, K, 3), dtype=float)

        for d, player in enumerate(self.players):
            if should_cancel is not None and should_cancel():
                raise AnalysisCancelled()
            for k in range(K):
                positions[d, k] = self._as_vec3(player.position_at(t[k]), "position", d)
                velocities[d, k] = self._as_vec3(player.velocity_at(t[k]), "velocity", d)

        return positions, velocities

    def iter_samples(self, times: np.ndarray) -> Iterator[DroneSample]:
        t = self._guard_times(times)
        for d, player in enumerate(self.players):
            for k in range(t.shape[0]):
                yield DroneSample(
                    drone_index=d,
                    sample_index=k,
                    position=self._as_vec3(player.position_at(t[k]), "position", d),
                    velocity=self._as_vec3(player.velocity_at(t[k]), "velocity", d),
                )


def trajectory_from_keyframes(keyframes: Sequence[Sequence[float]], interpolation: str = "linear") -> TrajectoryPlayer:
    """
    keyframes: rows of (t, x, y, z)
    interpolation: "linear" or "spline"
    """
    K = np.asarray(keyframes, dtype=float)
    if K.ndim != 2 or K.shape[1] != 4:
        raise ValueError("keyframes must have shape (M,4) with rows (t,x,y,z)")
    if interpolation == "linear":
        return PiecewiseLinearTrajectory(K[:, 0], K[:, 1:])
    if interpolation == "spline":
        return SplineTrajectory(K[:, 0], K[:, 1:])
    raise ValueError("interpolation must be 'linear' or 'spline'")
