from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from show_validation.constants import (
    CANONICAL_KEYS,
    DEFAULT_VALIDATION_SETTINGS,
    LEGACY_KEY_MAP,
    LEGACY_MARKER_KEY,
    EnvironmentType,
)

logger = logging.getLogger(__name__)

# canonical wire key -> dataclass field
_FIELD_FOR_KEY = {
    "maxAltitude": "max_altitude",
    "maxVelocityXY": "max_velocity_xy",
    "maxVelocityZ": "max_velocity_z",
    "minDistance": "min_distance",
}


@dataclass(frozen=True)
class ValidationSettings:
    max_altitude: float     # m
    max_velocity_xy: float  # m/s
    max_velocity_z: float   # m/s
    min_distance: float     # m

    def to_dict(self) -> Dict[str, float]:
        """Canonical camelCase wire shape."""
        return {key: getattr(self, field) for key, field in _FIELD_FOR_KEY.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ValidationSettings":
        """
        Strict reader for a complete canonical record. Use
        resolve_validation_settings for partial or legacy input.
        """
        missing = [k for k in CANONICAL_KEYS if k not in data]
        if missing:
            raise ValueError(f"missing validation settings: {', '.join(missing)}")
        values = {}
        for key in CANONICAL_KEYS:
            value = _positive_number(data[key])
            if value is None:
                raise ValueError(f"{key} must be a positive finite number, got {data[key]!r}")
            values[_FIELD_FOR_KEY[key]] = value
        return cls(**values)


def _positive_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        x = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(x) or x <= 0:
        return None
    return x


def _environment_key(environment: Union[str, EnvironmentType, None]) -> str:
    key = environment.value if isinstance(environment, EnvironmentType) else environment
    if key in DEFAULT_VALIDATION_SETTINGS:
        return key
    logger.warning("unknown environment type %r, using outdoor validation defaults", environment)
    return EnvironmentType.OUTDOOR.value


def default_validation_settings(environment: Union[str, EnvironmentType, None]) -> ValidationSettings:
    return ValidationSettings.from_dict(DEFAULT_VALIDATION_SETTINGS[_environment_key(environment)])


def is_legacy_shape(raw: Optional[Mapping[str, Any]]) -> bool:
    return raw is not None and LEGACY_MARKER_KEY in raw


def resolve_validation_settings(
    environment: Union[str, EnvironmentType, None],
    raw: Optional[Mapping[str, Any]] = None,
) -> ValidationSettings:
    """
    Merge the show's validation settings over the environment defaults.

    raw may use the canonical camelCase keys or the underscore keys of older
    show files. A record with a "max_altitude" key is read as legacy-shaped and
    only its four underscore keys count; anything else is shallow-merged by
    canonical key. Missing keys, None, and values that are not positive
    numbers keep the default. Unknown environments use the outdoor defaults.
    """
    merged: Dict[str, Any] = dict(DEFAULT_VALIDATION_SETTINGS[_environment_key(environment)])
    if not raw:
        return ValidationSettings.from_dict(merged)

    if is_legacy_shape(raw):
        overrides = {canonical: raw.get(legacy) for legacy, canonical in LEGACY_KEY_MAP.items()}
    else:
        overrides = {key: raw[key] for key in CANONICAL_KEYS if key in raw}
        ignored = sorted(str(k) for k in raw if k not in _FIELD_FOR_KEY)
        if ignored:
            logger.debug("ignoring unknown validation setting keys: %s", ", ".join(ignored))

    for key, value in overrides.items():
        if value is None:
            continue
        x = _positive_number(value)
        if x is None:
            logger.warning("invalid value %r for %s, keeping default %s", value, key, merged[key])
            continue
        merged[key] = x

    return ValidationSettings.from_dict(merged)
