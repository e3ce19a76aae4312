from __future__ import annotations

from typing import Optional


class TrajectoryBoundaryError(ValueError):
    """
    Raised when a trajectory is evaluated outside [0, duration].
    """

    def __init__(self, t: float, duration: float, drone_index: Optional[int] = None):
        self.t = float(t)
        self.duration = float(duration)
        self.drone_index = drone_index
        who = "" if drone_index is None else f" (drone {drone_index})"
        super().__init__(f"time {self.t} is outside the show range [0, {self.duration}]{who}")


class AnalysisCancelled(Exception):
    """
    Raised inside a run when a newer run has superseded it.
    """

    def __init__(self, run_id: Optional[int] = None):
        self.run_id = run_id
        super().__init__("analysis cancelled" if run_id is None else f"analysis run {run_id} cancelled")
