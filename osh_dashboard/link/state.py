"""Link states and the typed events consumed by :class:`DeviceLink`."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Union

NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006


class LinkState(Enum):
    """Lifecycle of the single device link."""

    IDLE = auto()
    CONNECTING = auto()
    OPEN = auto()
    CLOSING = auto()
    CLOSED = auto()


@dataclass(frozen=True)
class ConnectRequested:
    target: str


@dataclass(frozen=True)
class DisconnectRequested:
    pass


@dataclass(frozen=True)
class ReconnectRequested:
    pass


@dataclass(frozen=True)
class Opened:
    token: int


@dataclass(frozen=True)
class FrameReceived:
    token: int
    payload: Union[bytes, str]


@dataclass(frozen=True)
class Closed:
    token: int
    code: int = ABNORMAL_CLOSURE
    reason: str = ""


LinkEvent = Union[ConnectRequested, DisconnectRequested, ReconnectRequested, Opened, FrameReceived, Closed]
