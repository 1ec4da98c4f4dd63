"""Qt implementations of the link transport and timers (QtWebSockets, QTimer)."""

from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, QUrl
from PySide6.QtWebSockets import QWebSocket, QWebSocketProtocol

from osh_dashboard.link.device_link import TransportCallbacks
from osh_dashboard.link.state import ABNORMAL_CLOSURE, NORMAL_CLOSURE


def _code_value(code) -> int:
    return int(getattr(code, "value", code))


class QtWebSocketTransport:
    """Wraps one QWebSocket; reports lifecycle through TransportCallbacks."""

    def __init__(self, url: str, callbacks: TransportCallbacks, parent: Optional[QObject] = None) -> None:
        self.url = url
        self._callbacks = callbacks
        self._opened = False
        self._errored = False
        self._requested_close: Optional[tuple] = None
        self._closed = False

        self._socket = QWebSocket(parent=parent)
        self._socket.connected.connect(self._on_connected)
        self._socket.disconnected.connect(self._on_disconnected)
        self._socket.textMessageReceived.connect(self._callbacks.on_message)
        self._socket.binaryMessageReceived.connect(lambda data: self._callbacks.on_message(bytes(data)))
        self._socket.errorOccurred.connect(self._on_error)

    def open(self) -> None:
        self._socket.open(QUrl(self.url))

    def send(self, payload: bytes) -> None:
        self._socket.sendTextMessage(payload.decode("utf-8"))

    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        self._requested_close = (code, reason)
        self._socket.close(QWebSocketProtocol.CloseCode(code), reason)

    def _on_connected(self) -> None:
        self._opened = True
        self._callbacks.on_open()

    def _on_error(self, _error) -> None:
        self._errored = True
        if not self._opened and not self._closed:
            # A failed handshake may never emit ``disconnected``
            self._finish(ABNORMAL_CLOSURE, self._socket.errorString())

    def _on_disconnected(self) -> None:
        if self._requested_close is not None:
            code, reason = self._requested_close
        elif self._errored:
            code, reason = ABNORMAL_CLOSURE, self._socket.errorString()
        else:
            code, reason = _code_value(self._socket.closeCode()), self._socket.closeReason()
        self._finish(code, reason)

    def _finish(self, code: int, reason: str) -> None:
        if self._closed:
            return
        self._closed = True
        self._callbacks.on_close(code, reason)
        self._socket.deleteLater()


class QtTimerHandle:
    def __init__(self, timer: QTimer) -> None:
        self._timer = timer
        self.done = False

    def release(self) -> None:
        if self.done:
            return
        self.done = True
        self._timer.stop()
        self._timer.deleteLater()

    def cancel(self) -> None:
        self.release()


class QtScheduler:
    """Scheduler backed by QTimer; callbacks run on the Qt event loop.

    Single-shot timers delete themselves once their callback has run.
    """

    def __init__(self, parent: Optional[QObject] = None) -> None:
        self._parent = parent

    def _start(self, seconds: float, callback: Callable[[], None], single_shot: bool) -> QtTimerHandle:
        timer = QTimer(self._parent)
        timer.setSingleShot(single_shot)
        handle = QtTimerHandle(timer)
        if single_shot:
            def fire() -> None:
                try:
                    callback()
                finally:
                    handle.release()

            timer.timeout.connect(fire)
        else:
            timer.timeout.connect(callback)
        timer.start(max(0, int(seconds * 1000)))
        return handle

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> QtTimerHandle:
        return self._start(delay_s, callback, single_shot=True)

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> QtTimerHandle:
        return self._start(interval_s, callback, single_shot=False)


def qt_transport_factory(parent: Optional[QObject] = None):
    """Build a DeviceLink transport factory producing QtWebSocketTransport objects."""

    def factory(url: str, callbacks: TransportCallbacks) -> QtWebSocketTransport:
        return QtWebSocketTransport(url, callbacks, parent=parent)

    return factory
