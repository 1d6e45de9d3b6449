"""
Text wire protocol between the crane client and its controller.

Outbound commands are a keyword followed by space separated decimals:

    setactuatorsetpoints <swing> <lift> <elbow> <wrist> <gripper>
    setspeed <swing> <lift> <elbow> <wrist> <gripper>
    setpoint <x> <y> <z>
    refresh <ms>

Inbound telemetry is exactly five space separated decimals in JointState
field order. The positional mapping lives only in this module.
"""

from __future__ import annotations

import math
import re

from crane_commander.errors import DecodeError, EncodeError
from crane_commander.types import (
    JOINT_FIELDS,
    Command,
    JointState,
    SetActuatorSetpoints,
    SetPoint,
    SetRefresh,
    SetSpeed,
)

KW_SETPOINTS = "setactuatorsetpoints"
KW_SPEED = "setspeed"
KW_POINT = "setpoint"
KW_REFRESH = "refresh"

# Plain decimal numbers only: float() alone would also take "nan", "inf" and "1_0"
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_INT_RE = re.compile(r"^\+?\d+$")


def format_number(value: float) -> str:
    """Shortest decimal that parses back to `value`; integral values drop the '.0'."""
    v = float(value)
    if not math.isfinite(v):
        raise EncodeError(f"Cannot encode non-finite value {value!r}")
    if v == 0.0:
        return "0"
    text = repr(v)
    if text.endswith(".0"):
        text = text[:-2]
    return text


def _join(keyword: str, values) -> str:
    return " ".join([keyword, *(format_number(v) for v in values)])


def encode(command: Command) -> str:
    """Encode one Command to its outbound text frame."""
    if isinstance(command, SetActuatorSetpoints):
        return _join(KW_SETPOINTS, command.state.as_tuple())
    if isinstance(command, SetSpeed):
        return _join(KW_SPEED, command.rates.as_tuple())
    if isinstance(command, SetPoint):
        return _join(KW_POINT, (command.x, command.y, command.z))
    if isinstance(command, SetRefresh):
        return f"{KW_REFRESH} {int(command.ms)}"
    raise EncodeError(f"Unknown command type: {type(command).__name__}")


def parse_number(token: str, what: str = "value") -> float:
    if not _DECIMAL_RE.match(token):
        raise DecodeError(f"Invalid {what}: {token!r} is not a decimal number")
    value = float(token)
    if not math.isfinite(value):
        raise DecodeError(f"Invalid {what}: {token!r} is out of range")
    return value


def _parse_fields(tokens: list[str], frame: str) -> JointState:
    try:
        values = [
            parse_number(tok, f"{name} (pos. {idx})")
            for idx, (name, tok) in enumerate(zip(JOINT_FIELDS, tokens), start=1)
        ]
    except DecodeError as e:
        raise DecodeError(str(e), frame) from None
    return JointState.from_sequence(values)


def decode(frame: str) -> JointState:
    """
    Decode a telemetry frame into a JointState.

    Raises DecodeError when the frame does not hold exactly five decimal
    numbers. Never returns a partial or NaN-bearing state.
    """
    tokens = frame.split()
    if len(tokens) != len(JOINT_FIELDS):
        raise DecodeError(
            f"Telemetry needs {len(JOINT_FIELDS)} fields, got {len(tokens)}", frame
        )
    return _parse_fields(tokens, frame)


def encode_telemetry(state: JointState) -> str:
    """Inverse of decode(); what the controller sends every refresh period."""
    return " ".join(format_number(v) for v in state.as_tuple())


def decode_command(frame: str) -> Command:
    """Parse an outbound command frame back into a Command."""
    tokens = frame.split()
    if not tokens:
        raise DecodeError("Empty command frame", frame)
    keyword, args = tokens[0], tokens[1:]

    if keyword in (KW_SETPOINTS, KW_SPEED):
        if len(args) != len(JOINT_FIELDS):
            raise DecodeError(
                f"{keyword} needs {len(JOINT_FIELDS)} arguments, got {len(args)}", frame
            )
        state = _parse_fields(args, frame)
        return SetActuatorSetpoints(state) if keyword == KW_SETPOINTS else SetSpeed(state)

    if keyword == KW_POINT:
        if len(args) != 3:
            raise DecodeError(f"{KW_POINT} needs 3 arguments, got {len(args)}", frame)
        try:
            x, y, z = (parse_number(tok, f"{axis} coordinate") for tok, axis in zip(args, "xyz"))
        except DecodeError as e:
            raise DecodeError(str(e), frame) from None
        return SetPoint(x, y, z)

    if keyword == KW_REFRESH:
        if len(args) != 1 or not _INT_RE.match(args[0]) or int(args[0]) <= 0:
            raise DecodeError("Invalid ms refresh value", frame)
        return SetRefresh(int(args[0]))

    raise DecodeError(f"Invalid command: {keyword!r}", frame)
