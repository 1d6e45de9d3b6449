from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable, Protocol, Sequence

from crane_commander import kinematics, protocol
from crane_commander.common.logging_config import trace
from crane_commander.errors import (
    CraneError,
    DecodeError,
    SubmitRejected,
    TransportError,
)
from crane_commander.types import Command, JointState

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from crane_commander.kinematics import LinkGeometry, Pose

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class Channel(Protocol):
    """Transport collaborator: an async context manager around one connection."""

    async def __aenter__(self) -> "Channel": ...

    async def __aexit__(self, exc_type, exc, tb) -> None: ...

    def send(self, frame: str) -> None: ...

    def frames(self) -> AsyncIterator[str]: ...


TelemetryListener = Callable[[JointState], None]
ErrorObserver = Callable[[CraneError], None]
StateObserver = Callable[[SessionState], None]


class ConnectionSession:
    """
    One logical session over a duplex channel.

    Connecting -> Open -> Closed, with Closed terminal. The session owns the
    retained JointState and replaces it only when a telemetry frame decodes
    cleanly; malformed frames are reported and dropped.
    """

    def __init__(
        self,
        initial: JointState | None = None,
        geometry: Sequence[LinkGeometry] = kinematics.CRANE_GEOMETRY,
        on_error: ErrorObserver | None = None,
        on_state_change: StateObserver | None = None,
    ) -> None:
        self.geometry = tuple(geometry)
        self.on_error = on_error
        self.on_state_change = on_state_change
        self.decode_errors = 0
        self.frames_received = 0
        self.was_open = False

        self._state = SessionState.CONNECTING
        self._joint_state = initial if initial is not None else JointState()
        self._listeners: list[TelemetryListener] = []
        self._sink: Callable[[str], None] | None = None
        self._task: asyncio.Task | None = None
        self._close_requested = False
        self._pose_cache: tuple[JointState, list[Pose]] | None = None

    # ---- Read side ----

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def joint_state(self) -> JointState:
        return self._joint_state

    @property
    def poses(self) -> list[Pose]:
        snapshot = self._joint_state
        cached = self._pose_cache
        if cached is None or cached[0] is not snapshot:
            cached = (snapshot, kinematics.compute(snapshot, self.geometry))
            self._pose_cache = cached
        return list(cached[1])

    def add_listener(self, callback: TelemetryListener) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: TelemetryListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ---- Write side ----

    def attach_sink(self, sink: Callable[[str], None] | None) -> None:
        self._sink = sink

    def submit(self, command: Command) -> None:
        """Encode and send `command`; raises SubmitRejected unless the session is open."""
        if self._state is not SessionState.OPEN or self._sink is None:
            raise SubmitRejected(f"Cannot submit while session is {self._state.value}")
        frame = protocol.encode(command)
        self._sink(frame)
        logger.debug("Sent %s", frame)

    # ---- Lifecycle events ----

    def handle_open(self) -> None:
        if self._state is not SessionState.CONNECTING:
            logger.debug("Ignoring open event in state %s", self._state.value)
            return
        self.was_open = True
        self._transition(SessionState.OPEN)

    def handle_frame(self, frame: str) -> None:
        if self._state is not SessionState.OPEN:
            logger.debug("Dropping frame received while %s", self._state.value)
            return
        self.frames_received += 1
        try:
            joint_state = protocol.decode(frame)
        except DecodeError as e:
            self.decode_errors += 1
            self._report(e)
            return
        trace(logger, "Telemetry %s", frame)
        # Frozen value: readers holding the previous snapshot are unaffected
        self._joint_state = joint_state
        for listener in list(self._listeners):
            try:
                listener(joint_state)
            except Exception:
                logger.exception("Telemetry listener %r failed", listener)

    def handle_error(self, error: CraneError) -> None:
        self._report(error)
        if isinstance(error, TransportError):
            self._transition(SessionState.CLOSED)

    def handle_close(self) -> None:
        self._sink = None
        self._transition(SessionState.CLOSED)

    def close(self) -> None:
        """Close locally. Cancels a running run() and leaves the session Closed."""
        self._close_requested = True
        task = self._task
        self.handle_close()
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # ---- Driver ----

    async def run(self, channel: Channel) -> None:
        """
        Drive the session over `channel` until it closes.

        The channel is entered as an async context manager, so it is released
        on remote close, transport failure and cancellation alike.
        """
        if self._state is not SessionState.CONNECTING or self._task is not None:
            raise RuntimeError("A ConnectionSession can only be run once")
        self._task = asyncio.current_task()
        try:
            async with channel:
                if self._close_requested:
                    return
                self.attach_sink(channel.send)
                self.handle_open()
                async for frame in channel.frames():
                    self.handle_frame(frame)
                    if self._state is SessionState.CLOSED:
                        break
            logger.info("Session closed by remote")
        except TransportError as e:
            self.handle_error(e)
        except asyncio.CancelledError:
            if not self._close_requested:
                raise
            logger.info("Session closed locally")
        finally:
            self.handle_close()
            self._task = None

    # ---- Internals ----

    def _transition(self, new_state: SessionState) -> None:
        if self._state is new_state:
            return
        if self._state is SessionState.CLOSED:
            return
        old = self._state
        self._state = new_state
        logger.info("Session %s -> %s", old.value, new_state.value)
        if self.on_state_change is not None:
            try:
                self.on_state_change(new_state)
            except Exception:
                logger.exception("State observer failed")

    def _report(self, error: CraneError) -> None:
        if isinstance(error, DecodeError):
            logger.warning("Dropped telemetry frame %r: %s", error.frame, error)
        else:
            logger.error("%s: %s", type(error).__name__, error)
        if self.on_error is not None:
            try:
                self.on_error(error)
            except Exception:
                logger.exception("Error observer failed")
