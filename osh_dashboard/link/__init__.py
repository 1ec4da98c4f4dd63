"""Device link: wire codec and connection state machine."""

from .codec import (
    HEARTBEAT,
    MOTOR_START,
    MOTOR_STOP,
    DecodeError,
    MotorCommand,
    SetSpeed,
    clamp_speed,
    decode,
    encode,
)
from .device_link import (
    ConfigurationError,
    DeviceLink,
    TransportCallbacks,
    build_url,
    validate_address,
)
from .state import NORMAL_CLOSURE, LinkState

__all__ = [
    "HEARTBEAT",
    "MOTOR_START",
    "MOTOR_STOP",
    "NORMAL_CLOSURE",
    "ConfigurationError",
    "DecodeError",
    "DeviceLink",
    "LinkState",
    "MotorCommand",
    "SetSpeed",
    "TransportCallbacks",
    "build_url",
    "clamp_speed",
    "decode",
    "encode",
    "validate_address",
]
