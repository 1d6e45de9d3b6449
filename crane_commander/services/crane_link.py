from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable, Sequence

from crane_commander import kinematics
from crane_commander.config import SessionConfig
from crane_commander.constants import DEFAULT_JOINT_STATE
from crane_commander.errors import CraneError, DecodeError, SubmitRejected
from crane_commander.kinematics import LinkGeometry, Pose
from crane_commander.services.session import (
    Channel,
    ConnectionSession,
    ErrorObserver,
    SessionState,
    StateObserver,
    TelemetryListener,
)
from crane_commander.services.transport import WebSocketChannel
from crane_commander.types import Command, JointState


class CraneLink:
    """
    Keeps the client attached to the crane controller.

    Every connection attempt gets a fresh ConnectionSession; a closed session
    is never reused. After a close the link retries up to
    `config.reconnect_attempts` times in a row with exponential backoff, and
    the retry budget is restored whenever a session reaches Open. The last
    JointState is kept across sessions so the view does not jump back to a
    default pose while reconnecting.
    """

    def __init__(
        self,
        config: SessionConfig,
        channel_factory: Callable[[], Channel] | None = None,
        geometry: Sequence[LinkGeometry] = kinematics.CRANE_GEOMETRY,
        initial: JointState = DEFAULT_JOINT_STATE,
    ) -> None:
        self.config = config
        self.geometry = tuple(geometry)
        self.channel_factory = channel_factory or self._websocket_channel
        self.session: ConnectionSession | None = None
        self.decode_errors = 0
        self._joint_state = initial
        self._task: asyncio.Task | None = None
        self._stopping = False
        self._telemetry_listeners: list[TelemetryListener] = []
        self._state_listeners: list[StateObserver] = []
        self._error_listeners: list[ErrorObserver] = []

    def _websocket_channel(self) -> Channel:
        return WebSocketChannel(self.config.url, open_timeout=self.config.open_timeout)

    # ---- Read side ----

    @property
    def state(self) -> SessionState:
        return self.session.state if self.session else SessionState.CLOSED

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def joint_state(self) -> JointState:
        if self.session is not None:
            return self.session.joint_state
        return self._joint_state

    @property
    def poses(self) -> list[Pose]:
        if self.session is not None:
            return self.session.poses
        return kinematics.compute(self._joint_state, self.geometry)

    def add_telemetry_listener(self, callback: TelemetryListener) -> None:
        self._telemetry_listeners.append(callback)

    def add_state_listener(self, callback: StateObserver) -> None:
        self._state_listeners.append(callback)

    def add_error_listener(self, callback: ErrorObserver) -> None:
        self._error_listeners.append(callback)

    # ---- Write side ----

    def submit(self, command: Command) -> None:
        if self.session is None:
            raise SubmitRejected("Not connected to the crane controller")
        self.session.submit(command)

    # ---- Lifecycle ----

    def start(self) -> asyncio.Task:
        """Start the connect/reconnect loop on the running event loop."""
        if self.running:
            assert self._task is not None
            return self._task
        self._stopping = False
        self._task = asyncio.create_task(self.run(), name="crane-link")
        return self._task

    async def stop(self) -> None:
        self._stopping = True
        if self.session is not None:
            self.session.close()
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logging.info("Crane link stopped")

    async def run(self) -> None:
        failures = 0
        while not self._stopping:
            session = self._new_session()
            self.session = session
            await session.run(self.channel_factory())
            self._joint_state = session.joint_state
            if self._stopping:
                break
            if session.was_open:
                failures = 0
            failures += 1
            if failures > self.config.reconnect_attempts:
                logging.error(
                    "Crane controller unreachable at %s; giving up after %d attempt(s)",
                    self.config.url,
                    failures,
                )
                break
            delay = self.config.backoff_delay(failures)
            logging.warning(
                "Reconnecting to %s in %.1fs (attempt %d/%d)",
                self.config.url,
                delay,
                failures,
                self.config.reconnect_attempts,
            )
            await asyncio.sleep(delay)

    def _new_session(self) -> ConnectionSession:
        session = ConnectionSession(
            initial=self.joint_state,
            geometry=self.geometry,
            on_error=self._on_error,
            on_state_change=self._on_state_change,
        )
        session.add_listener(self._on_telemetry)
        return session

    # ---- Fan-out ----

    def _on_telemetry(self, joint_state: JointState) -> None:
        self._joint_state = joint_state
        for callback in list(self._telemetry_listeners):
            callback(joint_state)

    def _on_state_change(self, state: SessionState) -> None:
        for callback in list(self._state_listeners):
            callback(state)

    def _on_error(self, error: CraneError) -> None:
        if isinstance(error, DecodeError):
            self.decode_errors += 1
        for callback in list(self._error_listeners):
            callback(error)


# Module-level singleton instance
link = CraneLink(SessionConfig.from_env())
