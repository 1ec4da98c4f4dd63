"""Latest-known device state assembled from partial telemetry frames."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional

SPEED_MIN = 0
SPEED_MAX = 100


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Most recent value of every field the device has reported."""

    rpm: Optional[float] = None
    temperature: Optional[float] = None
    voltage: Optional[float] = None
    speed_setting: Optional[int] = None
    motor_active: Optional[bool] = None

    def is_empty(self) -> bool:
        return self == EMPTY_SNAPSHOT


EMPTY_SNAPSHOT = TelemetrySnapshot()


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_speed(value: Any) -> Optional[int]:
    number = _as_float(value)
    if number is None:
        return None
    return max(SPEED_MIN, min(SPEED_MAX, int(number)))


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    return None


# frame key -> (snapshot attribute, converter)
_FIELDS = {
    "rpm": ("rpm", _as_float),
    "temperature": ("temperature", _as_float),
    "voltage": ("voltage", _as_float),
    "speed": ("speed_setting", _as_speed),
    "motor_active": ("motor_active", _as_bool),
}


def merge(previous: TelemetrySnapshot, frame: Mapping[str, Any]) -> TelemetrySnapshot:
    """Fold a normalized frame into ``previous``.

    A key present in the frame always overwrites, even when its value is
    ``False`` or ``0``; absent keys leave the previous value untouched.
    Values that cannot be converted overwrite with ``None``.
    """
    changes: Dict[str, Any] = {}
    for key, (attribute, convert) in _FIELDS.items():
        if key in frame:
            changes[attribute] = convert(frame[key])
    if not changes:
        return previous
    return replace(previous, **changes)
