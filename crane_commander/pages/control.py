from __future__ import annotations

import logging

from nicegui import ui

from crane_commander.constants import JOINT_UI_RANGES
from crane_commander.errors import EncodeError, SubmitRejected
from crane_commander.services.crane_link import link
from crane_commander.state import crane_state
from crane_commander.types import (
    JOINT_FIELDS,
    Command,
    JointState,
    SetActuatorSetpoints,
    SetPoint,
    SetRefresh,
    SetSpeed,
)

SETPOINT_LABELS = {
    "swing": "Swing (deg.)",
    "lift": "Lift (mm)",
    "elbow": "Elbow (deg.)",
    "wrist": "Wrist (deg.)",
    "gripper": "Gripper (mm)",
}
SPEED_LABELS = {
    "swing": "Swing (deg./s)",
    "lift": "Lift (mm/s)",
    "elbow": "Elbow (deg./s)",
    "wrist": "Wrist (deg./s)",
    "gripper": "Gripper (mm/s)",
}
POINT_LABELS = {"x": "x (red, m)", "y": "y (green, m)", "z": "z (blue, m)"}


class ControlPage:
    """Command panels on the Crane tab."""

    def __init__(self) -> None:
        self.setpoint_inputs: dict[str, ui.number] = {}
        self.speed_inputs: dict[str, ui.number] = {}
        self.point_inputs: dict[str, ui.number] = {}
        self.refresh_input: ui.number | None = None

    # ---- Actions ----

    @staticmethod
    def _read(inputs: dict[str, ui.number]) -> list[float] | None:
        values = [inputs[name].value for name in inputs]
        if any(v is None for v in values):
            return None
        return [float(v) for v in values]

    def _submit(self, command: Command, label: str) -> bool:
        try:
            link.submit(command)
        except SubmitRejected as e:
            ui.notify(f"{label} not sent: {e}", color="warning")
            logging.warning("%s rejected: %s", label, e)
            return False
        except EncodeError as e:
            ui.notify(f"{label} not sent: {e}", color="negative")
            logging.error("%s encode failed: %s", label, e)
            return False
        ui.notify(f"Sent {label}", color="primary")
        logging.info("%s sent: %s", label, command)
        return True

    def send_setpoints(self) -> None:
        values = self._read(self.setpoint_inputs)
        if values is None:
            ui.notify("Fill in all five actuator setpoints", color="warning")
            return
        self._submit(SetActuatorSetpoints(JointState(*values)), "Actuator setpoints")

    def send_speeds(self) -> None:
        values = self._read(self.speed_inputs)
        if values is None:
            ui.notify("Fill in all five actuator speeds", color="warning")
            return
        self._submit(SetSpeed(JointState(*values)), "Actuator speeds")

    def send_point(self) -> None:
        values = self._read(self.point_inputs)
        if values is None:
            ui.notify("Fill in x, y and z", color="warning")
            return
        self._submit(SetPoint(*values), "Crane setpoint")

    def send_refresh(self) -> None:
        value = self.refresh_input.value if self.refresh_input else None
        if value is None or int(value) <= 0:
            ui.notify("Refresh period must be a positive number of ms", color="warning")
            return
        self._submit(SetRefresh(int(value)), "Telemetry refresh")

    def fill_from_current(self) -> None:
        """Copy the last reported actuator values into the setpoint fields."""
        for name in JOINT_FIELDS:
            self.setpoint_inputs[name].value = round(getattr(crane_state, name), 3)

    # ---- UI ----

    def _number_panel(
        self, title: str, labels: dict[str, str], target: dict[str, ui.number], ranges: bool
    ) -> None:
        ui.label(title).classes("text-md font-medium")
        with ui.column().classes("gap-1 w-full"):
            for name, label in labels.items():
                lo, hi = JOINT_UI_RANGES.get(name, (None, None)) if ranges else (None, None)
                target[name] = ui.number(label=label, min=lo, max=hi, format="%.3f").classes(
                    "w-full"
                )

    def build(self) -> None:
        with ui.card().classes("w-full"):
            self._number_panel("Actuator Setpoints", SETPOINT_LABELS, self.setpoint_inputs, True)
            with ui.row().classes("items-center gap-2"):
                ui.button("Send setpoints", on_click=self.send_setpoints).props(
                    "unelevated color=primary"
                )
                ui.button("Use current", on_click=self.fill_from_current).props("flat")

        with ui.card().classes("w-full"):
            self._number_panel("Actuator Speeds", SPEED_LABELS, self.speed_inputs, False)
            ui.button("Send speeds", on_click=self.send_speeds).props("unelevated color=primary")

        with ui.card().classes("w-full"):
            self._number_panel("Crane Setpoint", POINT_LABELS, self.point_inputs, False)
            ui.button("Send crane setpoint", on_click=self.send_point).props(
                "unelevated color=primary"
            )

        with ui.card().classes("w-full"):
            ui.label("Telemetry").classes("text-md font-medium")
            with ui.row().classes("items-center gap-2"):
                self.refresh_input = ui.number(
                    label="Refresh (ms)", value=16, min=1, step=1, format="%d"
                ).classes("w-32")
                ui.button("Apply", on_click=self.send_refresh).props("unelevated")
