from __future__ import annotations

import asyncio
import math

import pytest

from crane_commander.errors import DecodeError, SubmitRejected, TransportError
from crane_commander.services.session import ConnectionSession, SessionState
from crane_commander.types import JointState, SetActuatorSetpoints, SetRefresh
from tests.utils.fakes import FakeChannel, wait_for


def _open_session(**kwargs) -> tuple[ConnectionSession, list[str]]:
    session = ConnectionSession(**kwargs)
    sent: list[str] = []
    session.attach_sink(sent.append)
    session.handle_open()
    return session, sent


@pytest.mark.unit
def test_new_session_is_connecting_with_default_state():
    session = ConnectionSession()
    assert session.state is SessionState.CONNECTING
    assert session.joint_state == JointState()
    assert len(session.poses) == 5


@pytest.mark.unit
def test_submit_rejected_unless_open():
    session = ConnectionSession()
    session.attach_sink(lambda frame: None)
    with pytest.raises(SubmitRejected):
        session.submit(SetRefresh(16))
    session.handle_open()
    session.handle_close()
    with pytest.raises(SubmitRejected):
        session.submit(SetRefresh(16))


@pytest.mark.unit
def test_submit_writes_encoded_frame_in_order():
    session, sent = _open_session()
    session.submit(SetActuatorSetpoints(JointState(10, 500, -5, 0, 20)))
    session.submit(SetRefresh(16))
    assert sent == ["setactuatorsetpoints 10 500 -5 0 20", "refresh 16"]


@pytest.mark.unit
def test_valid_frame_replaces_state_and_notifies():
    session, _ = _open_session()
    seen: list[JointState] = []
    session.add_listener(seen.append)
    session.handle_frame("10 500 -5 0 20")
    assert session.joint_state == JointState(10, 500, -5, 0, 20)
    assert seen == [session.joint_state]
    swing = math.radians(10.0)
    expected = (0.6 * math.cos(swing), 0.6 * math.sin(swing), 0.5)
    assert tuple(session.poses[1].position) == pytest.approx(expected)


@pytest.mark.unit
def test_snapshot_held_by_reader_is_not_mutated():
    session, _ = _open_session()
    session.handle_frame("1 2 3 4 5")
    held = session.joint_state
    session.handle_frame("6 7 8 9 10")
    assert held == JointState(1, 2, 3, 4, 5)
    assert session.joint_state == JointState(6, 7, 8, 9, 10)


@pytest.mark.unit
def test_malformed_frame_keeps_previous_state_and_reports():
    errors = []
    session, _ = _open_session(on_error=errors.append)
    session.handle_frame("1 2 3 4 5")
    before = session.joint_state
    session.handle_frame("1 2 3 4")
    session.handle_frame("1 2 3 4 nan")
    assert session.joint_state is before
    assert session.state is SessionState.OPEN
    assert session.decode_errors == 2
    assert [type(e) for e in errors] == [DecodeError, DecodeError]
    assert errors[0].frame == "1 2 3 4"


@pytest.mark.unit
def test_poses_follow_snapshot():
    session, _ = _open_session()
    first = session.poses
    assert session.poses[1].isclose(first[1])
    session.handle_frame("0 1000 0 0 0")
    assert tuple(session.poses[1].position) == pytest.approx((0.6, 0.0, 1.0))


@pytest.mark.unit
def test_frames_ignored_unless_open():
    session = ConnectionSession()
    session.handle_frame("1 2 3 4 5")
    assert session.joint_state == JointState()
    session.handle_open()
    session.handle_close()
    session.handle_frame("1 2 3 4 5")
    assert session.joint_state == JointState()
    assert session.frames_received == 0


@pytest.mark.unit
def test_closed_is_terminal():
    states: list[SessionState] = []
    session = ConnectionSession(on_state_change=states.append)
    session.handle_open()
    session.handle_close()
    session.handle_open()
    session.handle_close()
    assert session.state is SessionState.CLOSED
    assert states == [SessionState.OPEN, SessionState.CLOSED]


@pytest.mark.unit
def test_transport_error_closes_and_is_reported():
    errors = []
    session, _ = _open_session(on_error=errors.append)
    session.handle_error(TransportError("link lost"))
    assert session.state is SessionState.CLOSED
    assert len(errors) == 1 and isinstance(errors[0], TransportError)


@pytest.mark.unit
def test_listener_failure_does_not_break_the_session():
    session, _ = _open_session()
    seen = []

    def _boom(state):
        raise RuntimeError("listener bug")

    session.add_listener(_boom)
    session.add_listener(seen.append)
    session.handle_frame("1 2 3 4 5")
    assert len(seen) == 1
    session.remove_listener(_boom)
    session.handle_frame("1 2 3 4 6")
    assert len(seen) == 2


@pytest.mark.unit
async def test_run_applies_frames_until_remote_close():
    channel = FakeChannel(["1 2 3 4 5", "garbage", "6 7 8 9 10"])
    session = ConnectionSession()
    await session.run(channel)
    assert session.state is SessionState.CLOSED
    assert session.joint_state == JointState(6, 7, 8, 9, 10)
    assert session.decode_errors == 1
    assert session.was_open
    assert channel.entered and channel.exited


@pytest.mark.unit
async def test_run_sends_through_channel_while_open():
    channel = FakeChannel(hold_open=True)
    session = ConnectionSession()
    task = asyncio.create_task(session.run(channel))
    await wait_for(lambda: session.state is SessionState.OPEN)
    session.submit(SetRefresh(32))
    assert channel.sent == ["refresh 32"]
    channel.close_remote()
    await task
    with pytest.raises(SubmitRejected):
        session.submit(SetRefresh(32))


@pytest.mark.unit
async def test_run_open_failure_goes_straight_to_closed():
    states: list[SessionState] = []
    errors = []
    channel = FakeChannel(fail_on_enter=TransportError("refused"))
    session = ConnectionSession(on_state_change=states.append, on_error=errors.append)
    await session.run(channel)
    assert states == [SessionState.CLOSED]
    assert not session.was_open
    assert isinstance(errors[0], TransportError)


@pytest.mark.unit
async def test_run_mid_session_failure_keeps_last_state():
    channel = FakeChannel(["1 2 3 4 5"], hold_open=True)
    session = ConnectionSession()
    task = asyncio.create_task(session.run(channel))
    await wait_for(lambda: session.frames_received == 1)
    channel.fail(TransportError("reset by peer"))
    await task
    assert session.state is SessionState.CLOSED
    assert session.joint_state == JointState(1, 2, 3, 4, 5)
    assert channel.exited


@pytest.mark.unit
async def test_close_stops_running_session():
    channel = FakeChannel(hold_open=True)
    session = ConnectionSession()
    task = asyncio.create_task(session.run(channel))
    await wait_for(lambda: session.state is SessionState.OPEN)
    session.close()
    await asyncio.wait_for(task, timeout=1.0)
    assert session.state is SessionState.CLOSED
    assert channel.exited


@pytest.mark.unit
async def test_external_cancel_propagates():
    channel = FakeChannel(hold_open=True)
    session = ConnectionSession()
    task = asyncio.create_task(session.run(channel))
    await wait_for(lambda: session.state is SessionState.OPEN)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert session.state is SessionState.CLOSED


@pytest.mark.unit
async def test_session_runs_only_once():
    session = ConnectionSession()
    await session.run(FakeChannel())
    with pytest.raises(RuntimeError):
        await session.run(FakeChannel())
