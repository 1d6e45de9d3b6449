from __future__ import annotations

import math
from dataclasses import replace

import numpy as np
import pytest

from crane_commander import kinematics
from crane_commander.kinematics import CRANE_GEOMETRY, LinkGeometry, Pose
from crane_commander.types import JOINT_FIELDS, JointState


def _positions(state: JointState) -> list[tuple[float, float, float]]:
    return [tuple(float(v) for v in p.position) for p in kinematics.compute(state)]


@pytest.mark.unit
def test_one_pose_per_link_in_chain_order():
    poses = kinematics.compute(JointState())
    assert len(poses) == len(CRANE_GEOMETRY) == 5
    assert [link.joint for link in CRANE_GEOMETRY] == list(JOINT_FIELDS)


@pytest.mark.unit
def test_zero_state_positions():
    expected = [
        (0.0, 0.0, 0.0),
        (0.6, 0.0, 0.0),
        (1.2, 0.0, -0.1),
        (1.2, 0.0, -0.6),
        (1.2, 0.0, -0.6),
    ]
    for got, want in zip(_positions(JointState()), expected):
        assert got == pytest.approx(want, abs=1e-12)


@pytest.mark.unit
def test_first_pose_is_local_transform_of_base_link():
    state = JointState(swing=30.0)
    pose0 = kinematics.compute(state)[0]
    local0 = kinematics.local_transform(CRANE_GEOMETRY[0], math.radians(30.0))
    assert np.allclose(pose0.matrix, local0)


@pytest.mark.unit
def test_lift_is_given_in_millimetres():
    upper_arm = kinematics.compute(JointState(lift=1000.0))[1]
    assert tuple(upper_arm.position) == pytest.approx((0.6, 0.0, 1.0), abs=1e-12)


@pytest.mark.unit
def test_swing_elbow_example():
    poses = kinematics.compute(JointState(swing=90.0, lift=1000.0, elbow=90.0))
    assert tuple(poses[1].position) == pytest.approx((0.0, 0.6, 1.0), abs=1e-9)
    assert tuple(poses[2].position) == pytest.approx((-0.6, 0.6, 0.9), abs=1e-9)
    assert tuple(poses[3].position) == pytest.approx((-0.6, 0.6, 0.4), abs=1e-9)


@pytest.mark.unit
def test_gripper_extends_along_twisted_wrist_axis():
    poses = kinematics.compute(JointState(gripper=100.0))
    assert tuple(poses[4].position) == pytest.approx((1.2, 0.1, -0.6), abs=1e-9)
    # Rotating the wrist swings the gripper direction about the vertical
    poses = kinematics.compute(JointState(wrist=90.0, gripper=100.0))
    assert tuple(poses[4].position) == pytest.approx((1.1, 0.0, -0.6), abs=1e-9)


@pytest.mark.unit
@pytest.mark.parametrize("k", range(5))
def test_joint_moves_only_its_link_and_successors(k):
    base = JointState(swing=15.0, lift=800.0, elbow=-20.0, wrist=10.0, gripper=30.0)
    moved = replace(base, **{JOINT_FIELDS[k]: getattr(base, JOINT_FIELDS[k]) + 25.0})
    before = kinematics.compute(base)
    after = kinematics.compute(moved)
    for i in range(k):
        assert np.array_equal(before[i].matrix, after[i].matrix)
    assert not before[k].isclose(after[k])


@pytest.mark.unit
def test_compute_is_deterministic():
    state = JointState(12.5, 1234.0, -45.0, 60.0, 7.0)
    first = kinematics.compute(state)
    second = kinematics.compute(state)
    assert all(np.array_equal(a.matrix, b.matrix) for a, b in zip(first, second))


@pytest.mark.unit
def test_custom_geometry_is_honoured():
    geometry = (LinkGeometry("boom", "swing", length=2.0),)
    (pose,) = kinematics.compute(JointState(swing=90.0), geometry)
    assert tuple(pose.position) == pytest.approx((0.0, 2.0, 0.0), abs=1e-12)


@pytest.mark.unit
def test_skeleton_knee_traces_offset_then_length():
    points = kinematics.skeleton(JointState(lift=500.0))
    start, knee, end = points[1]
    assert tuple(start) == pytest.approx((0.0, 0.0, 0.0))
    assert tuple(knee) == pytest.approx((0.0, 0.0, 0.5))
    assert tuple(end) == pytest.approx((0.6, 0.0, 0.5))
    start, knee, end = points[3]
    assert tuple(start) == pytest.approx((1.2, 0.0, 0.4), abs=1e-12)
    assert tuple(knee) == pytest.approx((1.2, 0.0, -0.1), abs=1e-12)
    assert tuple(end) == pytest.approx(tuple(knee), abs=1e-12)


@pytest.mark.unit
def test_end_effector_orientation_at_zero_state():
    ee = kinematics.end_effector(kinematics.compute(JointState()))
    rx, ry, rz = ee.rpy_deg()
    assert (rx, ry, rz) == pytest.approx((-90.0, 0.0, 0.0), abs=1e-9)


@pytest.mark.unit
def test_pose_is_read_only_and_shape_checked():
    pose = kinematics.compute(JointState())[0]
    with pytest.raises(ValueError):
        pose.matrix[0, 3] = 1.0
    with pytest.raises(ValueError):
        Pose(np.eye(3))
    assert len(pose.flatten()) == 16
    assert "Pose(" in repr(pose)
