"""
Forward kinematics for the five-link crane.

Each link is placed with a DH-style local transform

    Tz(d) . Rz(theta) . Tx(a) . Rx(alpha)

where a revolute joint adds its angle to theta and a prismatic joint adds its
displacement to d. Poses are chained from the base frame (identity), so a
joint only ever moves its own link and the links after it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np

from crane_commander.types import JointState

# Pillar height; also the upper end of lift travel
LIFT_TRAVEL_M: float = 2.0

_DEG_FIELDS = frozenset({"swing", "elbow", "wrist"})
_MM_FIELDS = frozenset({"lift", "gripper"})


@dataclass(frozen=True)
class LinkGeometry:
    """Fixed DH parameters of one link (meters / radians)."""

    name: str
    joint: str  # JointState field driving this link
    prismatic: bool = False
    offset: float = 0.0  # d, along previous z
    length: float = 0.0  # a, along common normal
    twist: float = 0.0  # alpha, about new x
    angle: float = 0.0  # theta offset, about previous z


CRANE_GEOMETRY: tuple[LinkGeometry, ...] = (
    LinkGeometry("pillar", "swing"),
    LinkGeometry("upper_arm", "lift", prismatic=True, length=0.6),
    LinkGeometry("forearm", "elbow", offset=-0.1, length=0.6),
    LinkGeometry("wrist", "wrist", offset=-0.5, twist=-math.pi / 2),
    LinkGeometry("gripper", "gripper", prismatic=True),
)


class Pose:
    """Homogeneous 4x4 transform of one link in the base frame."""

    __slots__ = ("matrix",)

    def __init__(self, matrix: np.ndarray) -> None:
        m = np.array(matrix, dtype=float)
        if m.shape != (4, 4):
            raise ValueError(f"Pose needs a 4x4 matrix, got shape {m.shape}")
        m.setflags(write=False)
        self.matrix = m

    @property
    def position(self) -> np.ndarray:
        return self.matrix[:3, 3]

    @property
    def rotation(self) -> np.ndarray:
        return self.matrix[:3, :3]

    def flatten(self) -> list[float]:
        """Row-major 16 floats."""
        return [float(v) for v in self.matrix.reshape(-1)]

    def rpy_deg(self) -> tuple[float, float, float]:
        """Roll/pitch/yaw (XYZ fixed axes) in degrees."""
        r = self.matrix
        sy = math.hypot(r[0, 0], r[1, 0])
        if sy > 1e-6:
            rx = math.atan2(r[2, 1], r[2, 2])
            ry = math.atan2(-r[2, 0], sy)
            rz = math.atan2(r[1, 0], r[0, 0])
        else:  # gimbal lock
            rx = math.atan2(-r[1, 2], r[1, 1])
            ry = math.atan2(-r[2, 0], sy)
            rz = 0.0
        return (math.degrees(rx), math.degrees(ry), math.degrees(rz))

    def isclose(self, other: "Pose", atol: float = 1e-9) -> bool:
        return bool(np.allclose(self.matrix, other.matrix, atol=atol))

    def __repr__(self) -> str:
        x, y, z = (round(float(v), 4) for v in self.position)
        return f"Pose(x={x}, y={y}, z={z})"


def joint_vector(state: JointState) -> dict[str, float]:
    """Convert a JointState to radians / meters. The only unit conversion in the chain."""
    values: dict[str, float] = {}
    for name in _DEG_FIELDS:
        values[name] = math.radians(getattr(state, name))
    for name in _MM_FIELDS:
        values[name] = getattr(state, name) / 1000.0
    return values


def _rot_z(theta: float) -> np.ndarray:
    c, s = math.cos(theta), math.sin(theta)
    return np.array(
        [[c, -s, 0.0, 0.0], [s, c, 0.0, 0.0], [0.0, 0.0, 1.0, 0.0], [0.0, 0.0, 0.0, 1.0]]
    )


def _rot_x(alpha: float) -> np.ndarray:
    c, s = math.cos(alpha), math.sin(alpha)
    return np.array(
        [[1.0, 0.0, 0.0, 0.0], [0.0, c, -s, 0.0], [0.0, s, c, 0.0], [0.0, 0.0, 0.0, 1.0]]
    )


def _trans(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> np.ndarray:
    t = np.eye(4)
    t[:3, 3] = (x, y, z)
    return t


def local_transform(link: LinkGeometry, q: float) -> np.ndarray:
    """Transform of `link` relative to its predecessor for joint value q (SI units)."""
    d = link.offset + (q if link.prismatic else 0.0)
    theta = link.angle + (0.0 if link.prismatic else q)
    return _trans(z=d) @ _rot_z(theta) @ _trans(x=link.length) @ _rot_x(link.twist)


def _walk(
    state: JointState, geometry: Sequence[LinkGeometry]
) -> Iterator[tuple[np.ndarray, float, np.ndarray]]:
    """Yield (previous cumulative, actual d, cumulative) per link."""
    q = joint_vector(state)
    cumulative = np.eye(4)
    for link in geometry:
        value = q[link.joint]
        local = local_transform(link, value)
        d = link.offset + (value if link.prismatic else 0.0)
        previous, cumulative = cumulative, cumulative @ local
        yield previous, d, cumulative


def compute(
    state: JointState, geometry: Sequence[LinkGeometry] = CRANE_GEOMETRY
) -> list[Pose]:
    """Pose of every link in the base frame, in chain order."""
    return [Pose(cumulative) for _, _, cumulative in _walk(state, geometry)]


def skeleton(
    state: JointState, geometry: Sequence[LinkGeometry] = CRANE_GEOMETRY
) -> list[tuple[np.ndarray, np.ndarray, np.ndarray]]:
    """
    Per link: (previous origin, knee, link origin) in the base frame.

    The knee is the previous origin shifted by d along the previous z axis,
    so the two segments trace the offset and the link length.
    """
    points = []
    for previous, d, cumulative in _walk(state, geometry):
        start = previous[:3, 3].copy()
        knee = start + previous[:3, 2] * d
        points.append((start, knee, cumulative[:3, 3].copy()))
    return points


def end_effector(poses: Sequence[Pose]) -> Pose:
    return poses[-1]
