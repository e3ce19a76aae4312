from __future__ import annotations

import hashlib
import json
import logging
from collections import OrderedDict
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from show_validation.constants import SAMPLES_PER_SECOND
from show_validation.thresholds import ValidationSettings
from show_validation.trajectories import TrajectoryPlayer

logger = logging.getLogger(__name__)


def trajectory_set_fingerprint(players: Sequence[TrajectoryPlayer]) -> str:
    """
    Content hash of an ordered trajectory set.

    Every player must expose fingerprint() (the keyframe trajectories do).
    Object identity is never part of the key; for other players pass a
    version tag of your own to analysis_key instead.
    """
    h = hashlib.sha256()
    for i, player in enumerate(players):
        fp = getattr(player, "fingerprint", None)
        if not callable(fp):
            raise ValueError(
                f"player {i} ({type(player).__name__}) has no fingerprint(); "
                "pass an explicit trajectory_set_version to analysis_key"
            )
        h.update(f"{i}:{fp()};".encode("utf-8"))
    return h.hexdigest()


def analysis_key(
    duration: float,
    trajectory_set_version: str,
    settings: Union[ValidationSettings, Mapping[str, Any], None] = None,
    samples_per_second: float = SAMPLES_PER_SECOND,
    environment: Optional[str] = None,
) -> str:
    """
    SHA-256 over the declared inputs of an analysis run.
    """
    if isinstance(settings, ValidationSettings):
        settings = settings.to_dict()
    payload = {
        "duration": float(duration),
        "trajectories": str(trajectory_set_version),
        "settings": dict(settings) if settings is not None else None,
        "rate": float(samples_per_second),
        "environment": None if environment is None else str(getattr(environment, "value", environment)),
    }
    blob = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


class AnalysisCache:
    """
    Small LRU of analysis results, owned by whoever runs the analyses.
    """

    def __init__(self, max_entries: int = 8):
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self.max_entries = int(max_entries)
        self._entries: "OrderedDict[str, Any]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._entries:
            return default
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: str, value: Any) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("evicted analysis %s", evicted[:12])

    def get_or_compute(self, key: str, compute: Callable[[], Any]) -> Any:
        if key in self._entries:
            self.hits += 1
            return self.get(key)
        self.misses += 1
        value = compute()
        self.put(key, value)
        return value

    def clear(self) -> None:
        self._entries.clear()
