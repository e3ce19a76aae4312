from __future__ import annotations

from typing import Dict, Tuple

import numpy as np


def _check_samples(a: np.ndarray, name: str) -> np.ndarray:
    a = np.asarray(a, dtype=float)
    if a.ndim < 1 or a.shape[-1] != 3:
        raise ValueError(f"{name} must have shape (...,3)")
    return a


def altitudes(positions: np.ndarray) -> np.ndarray:
    """
    Altitude of each sample: the z coordinate of the position, verbatim.
    positions: (D,K,3) -> (D,K)
    """
    P = _check_samples(positions, "positions")
    return P[..., 2].copy()


def horizontal_speeds(velocities: np.ndarray) -> np.ndarray:
    """
    ||(vx, vy)|| of each sample.
    velocities: (D,K,3) -> (D,K)
    """
    V = _check_samples(velocities, "velocities")
    return np.hypot(V[..., 0], V[..., 1])


def vertical_speeds(velocities: np.ndarray) -> np.ndarray:
    """
    Signed vz of each sample (positive = climbing).
    velocities: (D,K,3) -> (D,K)
    """
    V = _check_samples(velocities, "velocities")
    return V[..., 2].copy()


def derive_all(positions: np.ndarray, velocities: np.ndarray) -> Dict[str, np.ndarray]:
    P = _check_samples(positions, "positions")
    V = _check_samples(velocities, "velocities")
    if P.shape != V.shape:
        raise ValueError(f"positions and velocities must match, got {P.shape} and {V.shape}")
    return {
        "altitudes": altitudes(P),
        "horizontal_speeds": horizontal_speeds(V),
        "vertical_speeds": vertical_speeds(V),
    }


def sequence_extrema(values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Per-drone (min, max) of a (D,K) sequence. Drones with K == 0 get NaN.
    """
    X = np.asarray(values, dtype=float)
    if X.ndim != 2:
        raise ValueError("values must have shape (D,K)")
    if X.shape[1] == 0:
        nan = np.full(X.shape[0], np.nan)
        return nan, nan.copy()
    return X.min(axis=1), X.max(axis=1)
