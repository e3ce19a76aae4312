from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from show_validation.constants import BRUTE_FORCE_MAX_POINTS, SAMPLES_PER_SECOND


@dataclass(frozen=True)
class AnalysisConfig:
    samples_per_second: float = SAMPLES_PER_SECOND
    brute_force_max: int = BRUTE_FORCE_MAX_POINTS  # closest-pair strategy switch
    boundary: str = "raise"                        # "raise" or "clamp"
    max_workers: Optional[int] = None              # None -> frames are scanned sequentially

    def __post_init__(self) -> None:
        rate = float(self.samples_per_second)
        if not math.isfinite(rate) or rate <= 0:
            raise ValueError("samples_per_second must be a finite number > 0")
        if self.brute_force_max < 2:
            raise ValueError("brute_force_max must be >= 2")
        if self.boundary not in ("raise", "clamp"):
            raise ValueError("boundary must be 'raise' or 'clamp'")
        if self.max_workers is not None and self.max_workers <= 0:
            raise ValueError("max_workers must be > 0 when given")
