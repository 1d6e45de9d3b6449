from __future__ import annotations

import logging

import numpy as np
from nicegui import ui

from crane_commander import kinematics
from crane_commander.common.theme import get_palette, get_theme, resolve_mode
from crane_commander.services.crane_link import link
from crane_commander.state import crane_state
from crane_commander.types import JointState

_SEGMENT_RADIUS = 0.035


def _segment_placement(start: np.ndarray, end: np.ndarray):
    """Midpoint, rotation and length placing a unit y-cylinder from start to end."""
    vec = end - start
    length = float(np.linalg.norm(vec))
    mid = (start + end) / 2.0
    if length < 1e-9:
        return mid, np.eye(3), 0.0
    y = vec / length
    helper = np.array([1.0, 0.0, 0.0]) if abs(y[0]) < 0.9 else np.array([0.0, 0.0, 1.0])
    x = np.cross(y, helper)
    x /= np.linalg.norm(x)
    z = np.cross(x, y)
    return mid, np.column_stack([x, y, z]), length


class CraneViewPage:
    """3D view of the crane plus joint and end-effector readouts."""

    def __init__(self) -> None:
        self.scene: ui.scene | None = None
        self.pillar = None
        self.gripper = None
        # Per link: [offset segment, length segment, joint sphere]
        self.link_parts: list[list] = []
        self._drawn: JointState | None = None

    # ---- Scene ----

    def _place_segment(self, obj, start: np.ndarray, end: np.ndarray) -> None:
        mid, rot, length = _segment_placement(start, end)
        obj.move(*(float(v) for v in mid))
        obj.rotate_R(rot.tolist())
        obj.scale(1.0, max(length, 1e-6), 1.0)
        obj.visible(length > 1e-6)

    def refresh(self) -> None:
        """Redraw from the link's current snapshot if it changed."""
        if self.scene is None:
            return
        snapshot = link.joint_state
        if snapshot is self._drawn:
            return
        self._drawn = snapshot

        poses = link.poses
        points = kinematics.skeleton(snapshot, link.geometry)
        for parts, (start, knee, end) in zip(self.link_parts, points):
            offset_seg, length_seg, joint = parts
            self._place_segment(offset_seg, start, knee)
            self._place_segment(length_seg, knee, end)
            joint.move(*(float(v) for v in end))

        if self.pillar is not None:
            self.pillar.rotate_R(poses[0].rotation.tolist())
        if self.gripper is not None:
            grip = kinematics.end_effector(poses)
            self.gripper.move(*(float(v) for v in grip.position))
            self.gripper.rotate_R(grip.rotation.tolist())

    def build_scene(self) -> None:
        pal = get_palette(resolve_mode(get_theme()))
        with ui.scene(height=520, grid=(10, 20), background_color=pal["scene"]).classes(
            "w-full"
        ) as scene:
            self.scene = scene
            scene.box(0.3, 0.3, 0.15).move(z=0.075).material("#808080")
            with scene.group() as pillar:
                scene.box(0.12, 0.12, kinematics.LIFT_TRAVEL_M).move(
                    z=kinematics.LIFT_TRAVEL_M / 2
                ).material(pal["link"], opacity=0.6)
            self.pillar = pillar

            self.link_parts = []
            for _ in link.geometry:
                parts = [
                    scene.cylinder(_SEGMENT_RADIUS, _SEGMENT_RADIUS, 1.0).material(pal["primary"]),
                    scene.cylinder(_SEGMENT_RADIUS, _SEGMENT_RADIUS, 1.0).material(pal["primary"]),
                    scene.sphere(_SEGMENT_RADIUS * 1.6).material(pal["accent"]),
                ]
                self.link_parts.append(parts)

            self.gripper = scene.box(0.08, 0.16, 0.08).material(pal["negative"])
            scene.move_camera(x=2.5, y=-2.5, z=2.5, look_at_z=1.0)
        self._drawn = None
        self.refresh()
        logging.debug("Crane scene built with %d links", len(self.link_parts))

    # ---- Readouts ----

    def build_readouts(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Readouts").classes("text-md font-medium")
            with ui.element("div").classes("readouts-row"):
                with ui.element("div").classes("readouts-col"):
                    for name, unit in (
                        ("swing", "deg"),
                        ("lift", "mm"),
                        ("elbow", "deg"),
                        ("wrist", "deg"),
                        ("gripper", "mm"),
                    ):
                        ui.label().bind_text_from(
                            crane_state,
                            name,
                            backward=lambda v, n=name, u=unit: f"{n.capitalize()}: {v:.2f} {u}",
                        ).classes("text-sm")
                with ui.element("div").classes("readouts-col"):
                    for axis in ("x", "y", "z"):
                        ui.label().bind_text_from(
                            crane_state,
                            axis,
                            backward=lambda v, a=axis: f"{a.upper()}: {v:.3f} m",
                        ).classes("text-sm")
                    for axis in ("rx", "ry", "rz"):
                        ui.label().bind_text_from(
                            crane_state,
                            axis,
                            backward=lambda v, a=axis: f"{a.upper()}: {v:.1f} deg",
                        ).classes("text-sm")

    def build(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Crane").classes("text-md font-medium")
            self.build_scene()
        self.build_readouts()
