"""
device_link.py
--------------
Owns the single connection to the motor controller.

The link is a single-threaded actor: public commands and transport callbacks
are turned into typed events and processed one at a time, in order, from an
inbound queue. Every transport is tagged with a creation token and callbacks
carrying a token other than the current one are ignored, so a superseded
transport can never change the link state.

Transport and timers are injected (see :mod:`osh_dashboard.link.qt_transport`
for the Qt implementations), which keeps this module free of any event-loop
dependency.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional, Protocol, Set, Union

from osh_dashboard.link.codec import HEARTBEAT, Command, DecodeError, decode, encode
from osh_dashboard.link.state import (
    ABNORMAL_CLOSURE,
    NORMAL_CLOSURE,
    Closed,
    ConnectRequested,
    DisconnectRequested,
    FrameReceived,
    LinkEvent,
    LinkState,
    Opened,
    ReconnectRequested,
)
from osh_dashboard.telemetry.console import ConsoleLog
from osh_dashboard.telemetry.merger import EMPTY_SNAPSHOT, TelemetrySnapshot, merge

log = logging.getLogger(__name__)

DEFAULT_PORT = 81
RECONNECT_DELAY_S = 3.0
HEARTBEAT_INTERVAL_S = 1.0


class ConfigurationError(ValueError):
    """Raised synchronously for an unusable device address."""


# ----------------------------- Collaborators -------------------------------

@dataclass(frozen=True)
class TransportCallbacks:
    on_open: Callable[[], None]
    on_message: Callable[[Union[bytes, str]], None]
    on_close: Callable[[int, str], None]


class Transport(Protocol):
    """One physical duplex connection."""

    def open(self) -> None:
        ...

    def send(self, payload: bytes) -> None:
        ...

    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        ...


TransportFactory = Callable[[str, TransportCallbacks], Transport]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AddressMemory(Protocol):
    def load(self) -> str:
        ...

    def save(self, address: str) -> None:
        ...


# ------------------------------- Helpers -----------------------------------

def validate_address(target: str) -> str:
    """Return the trimmed address or raise :class:`ConfigurationError`."""
    if not isinstance(target, str) or not target.strip():
        raise ConfigurationError("Device address must not be empty")
    address = target.strip()
    if "://" in address or "/" in address:
        raise ConfigurationError(f"Device address must be a host name or IP, got {address!r}")
    if any(ch.isspace() for ch in address):
        raise ConfigurationError(f"Device address must not contain whitespace, got {address!r}")
    return address


def endpoint(address: str, port: int = DEFAULT_PORT) -> str:
    """``host:port`` for an address that may already carry its own port."""
    host, sep, maybe_port = address.rpartition(":")
    if sep and host and ":" not in host and maybe_port.isdigit():
        return address
    return f"{address}:{port}"


def build_url(address: str, port: int = DEFAULT_PORT) -> str:
    return f"ws://{endpoint(address, port)}"


# ------------------------------- The link ----------------------------------

class DeviceLink:
    """Connection state machine with heartbeat and auto-reconnect."""

    def __init__(self,
                 transport_factory: TransportFactory,
                 scheduler: Scheduler,
                 console: Optional[ConsoleLog] = None,
                 address_store: Optional[AddressMemory] = None,
                 port: int = DEFAULT_PORT,
                 reconnect_delay_s: float = RECONNECT_DELAY_S,
                 heartbeat_interval_s: float = HEARTBEAT_INTERVAL_S,
                 echo_frames: bool = True,
                 on_connection_changed: Optional[Callable[[bool], None]] = None,
                 on_snapshot: Optional[Callable[[TelemetrySnapshot], None]] = None,
                 on_state_changed: Optional[Callable[[LinkState], None]] = None,
                 ):
        self._factory = transport_factory
        self._scheduler = scheduler
        self.console = console or ConsoleLog()
        self.address_store = address_store
        self.port = port
        self.reconnect_delay_s = reconnect_delay_s
        self.heartbeat_interval_s = heartbeat_interval_s
        self.echo_frames = echo_frames
        self.on_connection_changed = on_connection_changed
        self.on_snapshot = on_snapshot
        self.on_state_changed = on_state_changed

        self._state = LinkState.IDLE
        self._connected = False
        self._snapshot = EMPTY_SNAPSHOT

        self._queue: Deque[LinkEvent] = deque()
        self._draining = False

        self._tokens = itertools.count(1)
        self._token: Optional[int] = None
        self._transport: Optional[Transport] = None
        self._opened: Set[int] = set()

        # Remembered for auto-reconnect; cleared by disconnect()
        self._target = ""
        self._reconnect_timer: Optional[TimerHandle] = None
        self._heartbeat_timer: Optional[TimerHandle] = None
        self._auto_connect_timer: Optional[TimerHandle] = None
        self.reconnect_attempts = 0

    # ------------------------------ Properties -------------------------------

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def snapshot(self) -> TelemetrySnapshot:
        return self._snapshot

    @property
    def target(self) -> str:
        return self._target

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    @property
    def has_transport(self) -> bool:
        return self._transport is not None

    # --------------------------- Public commands -----------------------------

    def connect(self, target: str) -> None:
        """Request a connection to ``target``; raises ConfigurationError if invalid."""
        self.post(ConnectRequested(validate_address(target)))

    def disconnect(self) -> None:
        self.post(DisconnectRequested())

    def reconnect(self) -> None:
        self.post(ReconnectRequested())

    def send(self, command: Command, quiet: bool = False) -> bool:
        """Send a command if the link is open. Returns False when rejected."""
        if self._transport is None or self._state is not LinkState.OPEN:
            if not quiet:
                self.console.append(f"Cannot send: link not open (state: {self._state.name})")
            return False
        payload = encode(command)
        self._transport.send(payload)
        if quiet:
            log.debug("sent %s", payload)
        else:
            self.console.append(f"Sent: {payload.decode('utf-8')}")
        return True

    def auto_connect(self, delay_s: float = 0.5) -> bool:
        """Schedule a connection to the persisted address, if there is one."""
        if self.address_store is None or not self.address_store.load():
            return False

        def _fire() -> None:
            self._auto_connect_timer = None
            address = self.address_store.load()
            if not address or self._transport is not None or self._connected:
                return
            self.console.append("Auto-connecting to last known IP...")
            self._connect_stored(address)

        self._auto_connect_timer = self._scheduler.call_later(delay_s, _fire)
        return True

    def close(self) -> None:
        """Tear down timers and the transport at application shutdown."""
        self._cancel(self._auto_connect_timer)
        self._auto_connect_timer = None
        self._cancel_reconnect()
        self._stop_heartbeat()
        self._target = ""
        transport, self._transport, self._token = self._transport, None, None
        if transport is not None:
            transport.close(NORMAL_CLOSURE, "Application closed")

    # ----------------------------- Event queue -------------------------------

    def post(self, event: LinkEvent) -> None:
        """Enqueue an event and process the queue unless already doing so."""
        self._queue.append(event)
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                self._dispatch(self._queue.popleft())
        finally:
            self._draining = False

    def _dispatch(self, event: LinkEvent) -> None:
        if isinstance(event, FrameReceived):
            self._handle_frame(event)
        elif isinstance(event, Opened):
            self._handle_opened(event)
        elif isinstance(event, Closed):
            self._handle_closed(event)
        elif isinstance(event, ConnectRequested):
            self._handle_connect(event.target)
        elif isinstance(event, DisconnectRequested):
            self._handle_disconnect()
        elif isinstance(event, ReconnectRequested):
            self._handle_reconnect()
        else:
            raise TypeError(f"Unknown link event: {event!r}")

    def _callbacks(self, token: int) -> TransportCallbacks:
        return TransportCallbacks(
            on_open=lambda: self.post(Opened(token)),
            on_message=lambda payload: self.post(FrameReceived(token, payload)),
            on_close=lambda code, reason: self.post(Closed(token, code, reason)),
        )

    # ------------------------------ Handlers ---------------------------------

    def _handle_connect(self, target: str) -> None:
        self._cancel_reconnect()
        if self._transport is not None:
            if self._state is LinkState.OPEN:
                log.debug("connect(%s) ignored: link already open", target)
                return
            stale, self._transport, self._token = self._transport, None, None
            stale.close(NORMAL_CLOSURE, "Superseded by a new connection")

        self._target = target
        self.console.append(f"Trying to connect to {target}...")
        self._set_connected(False)

        url = build_url(target, self.port)
        self.console.append(f"Connecting to {url}...")
        token = next(self._tokens)
        self._token = token
        self._set_state(LinkState.CONNECTING)
        try:
            self._transport = self._factory(url, self._callbacks(token))
            self._transport.open()
        except (OSError, RuntimeError, ValueError) as exc:
            self.console.warning(f"Failed to connect: {exc}")
            self._transport, self._token = None, None
            self._set_state(LinkState.CLOSED)

    def _handle_opened(self, event: Opened) -> None:
        if event.token != self._token or self._state is not LinkState.CONNECTING:
            log.debug("ignoring open from stale transport %s", event.token)
            return
        self._opened.add(event.token)
        self.reconnect_attempts = 0
        self._set_state(LinkState.OPEN)
        self.console.append("Connected to device")
        if self.address_store is not None:
            self.address_store.save(self._target)
        self._set_connected(True)
        self._heartbeat_timer = self._scheduler.call_every(self.heartbeat_interval_s, self._send_heartbeat)

    def _handle_frame(self, event: FrameReceived) -> None:
        if event.token != self._token or self._state is not LinkState.OPEN:
            return
        raw = event.payload
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, (bytes, bytearray)) else raw
        try:
            frame = decode(raw)
        except DecodeError:
            self.console.warning(f"Error parsing message: {text}")
            return
        self._snapshot = merge(self._snapshot, frame)
        if self.echo_frames:
            self.console.append(f"Received: {text}")
        if self.on_snapshot:
            self.on_snapshot(self._snapshot)

    def _handle_closed(self, event: Closed) -> None:
        was_current = event.token == self._token
        was_open = event.token in self._opened
        self._opened.discard(event.token)

        if was_current:
            self._transport, self._token = None, None
            self._stop_heartbeat()
            self._set_state(LinkState.CLOSED)
            self._set_connected(False)

        suffix = f", reason: {event.reason}" if event.reason else ""
        if was_open:
            self.console.append(f"Disconnected from device (code: {event.code}{suffix})")
            if was_current and event.code != NORMAL_CLOSURE and self._target:
                self._schedule_reconnect()
        elif was_current:
            if event.code == ABNORMAL_CLOSURE:
                self.console.warning(
                    f"Connection failed: Unable to reach {endpoint(self._target, self.port)} "
                    f"(abnormal closure, code {ABNORMAL_CLOSURE})."
                )
            elif event.code == NORMAL_CLOSURE:
                self.console.append(f"Connection closed normally (code: {event.code})")
            else:
                self.console.warning(f"Connection failed: Error code {event.code}{suffix}.")

    def _handle_disconnect(self) -> None:
        self._cancel_reconnect()
        self._target = ""
        self._stop_heartbeat()
        if self._transport is not None:
            self._set_state(LinkState.CLOSING)
            self._transport.close(NORMAL_CLOSURE, "User disconnected")
        self._set_connected(False)
        self.console.append("Disconnecting...")

    def _handle_reconnect(self) -> None:
        if self._target:
            self.console.append("Reconnecting...")
            self.reconnect_attempts = 0
            self._handle_connect(self._target)
            return
        stored = self.address_store.load() if self.address_store is not None else ""
        if not stored:
            self.console.append("No previous connection to reconnect to")
            return
        self.console.append("Reconnecting to last known IP...")
        self.reconnect_attempts = 0
        self._connect_stored(stored)

    def _connect_stored(self, address: str) -> None:
        try:
            target = validate_address(address)
        except ConfigurationError as exc:
            self.console.warning(f"Stored address rejected: {exc}")
            return
        self.post(ConnectRequested(target))

    # ------------------------- Reconnect / heartbeat -------------------------

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()
        self.console.append(f"Attempting to reconnect in {self.reconnect_delay_s:g} seconds...")
        self._reconnect_timer = self._scheduler.call_later(self.reconnect_delay_s, self._reconnect_due)

    def _reconnect_due(self) -> None:
        self._reconnect_timer = None
        # A newer connect or a disconnect since scheduling wins
        if not self._target or self._transport is not None:
            return
        self.reconnect_attempts += 1
        self.post(ConnectRequested(self._target))

    def _cancel_reconnect(self) -> None:
        self._cancel(self._reconnect_timer)
        self._reconnect_timer = None

    def _send_heartbeat(self) -> None:
        try:
            self.send(HEARTBEAT, quiet=True)
        except (OSError, RuntimeError) as exc:
            log.debug("heartbeat failed: %s", exc)

    def _stop_heartbeat(self) -> None:
        self._cancel(self._heartbeat_timer)
        self._heartbeat_timer = None

    @staticmethod
    def _cancel(handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()

    # ------------------------------ Observables ------------------------------

    def _set_state(self, state: LinkState) -> None:
        previous, self._state = self._state, state
        if previous is state:
            return
        log.debug("link state %s -> %s", previous.name, state.name)
        if previous is LinkState.OPEN:
            # Values from a closed link must not be shown as live
            self._snapshot = EMPTY_SNAPSHOT
            if self.on_snapshot:
                self.on_snapshot(self._snapshot)
        if self.on_state_changed:
            self.on_state_changed(state)

    def _set_connected(self, connected: bool) -> None:
        if self._connected == connected:
            return
        self._connected = connected
        if self.on_connection_changed:
            self.on_connection_changed(connected)
