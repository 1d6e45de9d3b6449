from __future__ import annotations

import logging
import os

from crane_commander.types import JointState

# Controller target (WebSocket endpoint streaming telemetry)
CONTROLLER_URL: str = os.getenv("CRANE_CONTROLLER_URL", "ws://127.0.0.1:8080")

# Webserver bind (NiceGUI host/port); 8080 is taken by the controller by default
SERVER_HOST: str = os.getenv("CRANE_SERVER_IP", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("CRANE_SERVER_PORT", "8081"))

# Scene refresh (Hz); telemetry may arrive faster than the browser needs it
VIEW_REFRESH_HZ: float = float(os.getenv("CRANE_VIEW_REFRESH_HZ", "30"))
VIEW_REFRESH_INTERVAL_S: float = 1.0 / max(1.0, VIEW_REFRESH_HZ)

# Pose shown until the first telemetry frame: arm raised to 1 m
DEFAULT_JOINT_STATE = JointState(swing=0.0, lift=1000.0, elbow=0.0, wrist=0.0, gripper=0.0)

# Input ranges for the control panel (display hints, not enforced on the wire)
JOINT_UI_RANGES: dict[str, tuple[float, float]] = {
    "swing": (-180.0, 180.0),
    "lift": (0.0, 2000.0),
    "elbow": (-180.0, 180.0),
    "wrist": (-180.0, 180.0),
    "gripper": (0.0, 100.0),
}


def _resolve_log_level() -> int:
    s = os.getenv("CRANE_LOG_LEVEL")
    if not s:
        return logging.WARNING
    mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return mapping.get(s.strip().upper(), logging.WARNING)


LOG_LEVEL: int = _resolve_log_level()
