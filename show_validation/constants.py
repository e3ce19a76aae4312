from __future__ import annotations

from enum import Enum
from typing import Dict

# Number of sampled frames per second of show time during validation
SAMPLES_PER_SECOND = 4

# Frames with at most this many drones are scanned pairwise
BRUTE_FORCE_MAX_POINTS = 64


class EnvironmentType(str, Enum):
    OUTDOOR = "outdoor"
    INDOOR = "indoor"


# Canonical (camelCase) keys of the validation settings record
CANONICAL_KEYS = ("maxAltitude", "maxVelocityXY", "maxVelocityZ", "minDistance")

# Underscore keys found in older show files, mapped to their canonical names
LEGACY_KEY_MAP = {
    "max_altitude": "maxAltitude",
    "max_velocity_xy": "maxVelocityXY",
    "max_velocity_z": "maxVelocityZ",
    "min_distance": "minDistance",
}

# Presence of this key marks a settings record as legacy-shaped
LEGACY_MARKER_KEY = "max_altitude"

DEFAULT_VALIDATION_SETTINGS: Dict[str, Dict[str, float]] = {
    EnvironmentType.OUTDOOR.value: {
        "maxAltitude": 150.0,
        "maxVelocityXY": 8.0,
        "maxVelocityZ": 3.0,
        "minDistance": 3.0,
    },
    EnvironmentType.INDOOR.value: {
        "maxAltitude": 10.0,
        "maxVelocityXY": 2.0,
        "maxVelocityZ": 1.5,
        "minDistance": 0.2,
    },
}
