from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

# Wire order of the five actuators. Telemetry frames carry no field names,
# so this order is shared with the controller.
JOINT_FIELDS: tuple[str, ...] = ("swing", "lift", "elbow", "wrist", "gripper")


@dataclass(frozen=True)
class JointState:
    """Actuator values: swing/elbow/wrist in degrees, lift/gripper in mm."""

    swing: float = 0.0
    lift: float = 0.0
    elbow: float = 0.0
    wrist: float = 0.0
    gripper: float = 0.0

    def __post_init__(self) -> None:
        for name in JOINT_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise TypeError(f"JointState.{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ValueError(f"JointState.{name} must be finite, got {value!r}")
            # Normalize ints so equality and formatting see floats only
            object.__setattr__(self, name, float(value))

    def as_tuple(self) -> tuple[float, float, float, float, float]:
        return (self.swing, self.lift, self.elbow, self.wrist, self.gripper)

    @classmethod
    def from_sequence(cls, values) -> "JointState":
        values = list(values)
        if len(values) != len(JOINT_FIELDS):
            raise ValueError(
                f"JointState needs {len(JOINT_FIELDS)} values, got {len(values)}"
            )
        return cls(*values)


@dataclass(frozen=True)
class SetActuatorSetpoints:
    """Absolute target for all five actuators."""

    state: JointState


@dataclass(frozen=True)
class SetSpeed:
    """Rate targets; same shape as JointState but deg/s and mm/s."""

    rates: JointState


@dataclass(frozen=True)
class SetPoint:
    """Cartesian end-effector target in meters, solved by the controller."""

    x: float
    y: float
    z: float


@dataclass(frozen=True)
class SetRefresh:
    """Telemetry period requested from the controller."""

    ms: int

    def __post_init__(self) -> None:
        if isinstance(self.ms, bool) or not isinstance(self.ms, int):
            raise TypeError(f"SetRefresh.ms must be an int, got {self.ms!r}")
        if self.ms <= 0:
            raise ValueError("SetRefresh.ms must be > 0")


Command = Union[SetActuatorSetpoints, SetSpeed, SetPoint, SetRefresh]
