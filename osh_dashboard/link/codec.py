"""Wire codec for the controller's JSON WebSocket frames."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

TelemetryFrame = Dict[str, Any]

# alias -> canonical
FIELD_ALIASES: Mapping[str, str] = {
    "temp": "temperature",
    "battery": "voltage",
}

SPEED_MIN = 0
SPEED_MAX = 100


class DecodeError(ValueError):
    """Raised when an inbound payload is not a JSON object."""

    def __init__(self, message: str, payload: Union[bytes, str]) -> None:
        super().__init__(message)
        self.payload = payload


@dataclass(frozen=True)
class SetSpeed:
    speed: int

    def to_payload(self) -> Dict[str, Any]:
        return {"speed": clamp_speed(self.speed)}


@dataclass(frozen=True)
class MotorCommand:
    """Named command understood by the firmware (``motor_start``, ``heartbeat``...)."""

    name: str

    def to_payload(self) -> Dict[str, Any]:
        return {"command": self.name}


MOTOR_START = MotorCommand("motor_start")
MOTOR_STOP = MotorCommand("motor_stop")
HEARTBEAT = MotorCommand("heartbeat")

Command = Union[SetSpeed, MotorCommand]


def clamp_speed(value: float) -> int:
    return max(SPEED_MIN, min(SPEED_MAX, int(round(value))))


def encode(command: Command) -> bytes:
    """Serialise a command to its UTF-8 JSON wire form."""
    return json.dumps(command.to_payload(), separators=(",", ":")).encode("utf-8")


def normalize(frame: Mapping[str, Any]) -> TelemetryFrame:
    """Rewrite aliased field names to their canonical key.

    An alias wins over the canonical name when both are present.
    """
    normalized = dict(frame)
    for alias, canonical in FIELD_ALIASES.items():
        if alias in normalized:
            normalized[canonical] = normalized.pop(alias)
    return normalized


def decode(payload: Union[bytes, str]) -> TelemetryFrame:
    """Parse one inbound message into a normalized telemetry frame."""
    if isinstance(payload, (bytes, bytearray)):
        try:
            text = bytes(payload).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"frame is not valid UTF-8: {exc}", payload) from exc
    else:
        text = payload
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"invalid JSON: {exc}", payload) from exc
    if not isinstance(data, dict):
        raise DecodeError(f"expected a JSON object, got {type(data).__name__}", payload)
    return normalize(data)
