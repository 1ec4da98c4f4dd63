"""Bounded operator console fed by the device link."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime
from typing import Callable, Deque, Iterator, List, Optional

log = logging.getLogger("osh_dashboard.console")

ConsoleListener = Callable[[str], None]

DEFAULT_MAX_LINES = 1000


def _wall_clock() -> str:
    return datetime.now().strftime("%H:%M:%S")


class ConsoleLog:
    """Timestamped, human-readable lifecycle messages.

    Entries are never edited. Only the newest ``max_lines`` are retained,
    older ones are discarded as new lines arrive. The log is a side channel only;
    nothing in the link reads it back.
    """

    def __init__(self, timestamp: Callable[[], str] = _wall_clock, max_lines: int = DEFAULT_MAX_LINES) -> None:
        if max_lines < 1:
            raise ValueError("max_lines must be at least 1")
        self._timestamp = timestamp
        self._lines: Deque[str] = deque(maxlen=max_lines)
        self._listeners: List[ConsoleListener] = []

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[str]:
        return iter(self._lines)

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    def subscribe(self, listener: ConsoleListener) -> None:
        self._listeners.append(listener)

    def append(self, message: str, level: int = logging.INFO) -> str:
        line = f"{self._timestamp()}: {message}"
        self._lines.append(line)
        log.log(level, message)
        for listener in self._listeners:
            listener(line)
        return line

    def warning(self, message: str) -> str:
        return self.append(message, level=logging.WARNING)

    def tail(self, count: int) -> List[str]:
        return list(self._lines)[-count:] if count > 0 else []

    def last(self) -> Optional[str]:
        return self._lines[-1] if self._lines else None

    @property
    def max_lines(self) -> int:
        return self._lines.maxlen
