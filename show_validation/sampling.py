from __future__ import annotations

import math
from typing import Iterable, List

import numpy as np

from show_validation.constants import SAMPLES_PER_SECOND


def sample_time_instants(duration: float, samples_per_second: float = SAMPLES_PER_SECOND) -> np.ndarray:
    """
    Time instants at which the trajectories are sampled during validation.

    Instants are i / rate for i in [0, ceil(duration * rate)). When the last
    one falls short of the duration, the duration itself is appended so the
    grid always covers the full show; the last interval may therefore be
    shorter than the others.

    Returns a read-only (K,) float array. duration == 0 gives an empty grid.
    """
    duration = float(duration)
    rate = float(samples_per_second)
    if not math.isfinite(duration) or duration < 0:
        raise ValueError(f"duration must be a finite number >= 0, got {duration}")
    if not math.isfinite(rate) or rate <= 0:
        raise ValueError(f"samples_per_second must be a finite number > 0, got {rate}")

    n = int(math.ceil(duration * rate))
    times = np.arange(n, dtype=float) / rate

    # i / rate may round onto or past the duration; the end is always the duration itself
    if n > 0:
        times = np.append(times[times < duration], duration)

    times.setflags(write=False)
    return times


def format_playback_timestamp(seconds: float) -> str:
    """
    m:ss.cc below one hour, h:mm:ss.cc above.
    """
    seconds = float(seconds)
    if not math.isfinite(seconds):
        return "-:--.--"

    sign = "-" if seconds < 0 else ""
    centis = int(round(abs(seconds) * 100))
    minutes, centis = divmod(centis, 6000)
    hours, minutes = divmod(minutes, 60)
    secs, centis = divmod(centis, 100)

    if hours:
        return f"{sign}{hours}:{minutes:02d}:{secs:02d}.{centis:02d}"
    return f"{sign}{minutes}:{secs:02d}.{centis:02d}"


def formatted_time_instants(times: Iterable[float]) -> List[str]:
    return [format_playback_timestamp(t) for t in times]
