from nicegui import binding


# UI mirror of the link; bound to labels, written only by main's listeners
@binding.bindable_dataclass
class CraneState:
    swing: float = 0.0  # deg
    lift: float = 0.0  # mm
    elbow: float = 0.0  # deg
    wrist: float = 0.0  # deg
    gripper: float = 0.0  # mm
    # End effector in the base frame
    x: float = 0.0  # m
    y: float = 0.0  # m
    z: float = 0.0  # m
    rx: float = 0.0  # deg
    ry: float = 0.0  # deg
    rz: float = 0.0  # deg
    link_state: str = "closed"
    decode_errors: int = 0
    last_update_ts: float = 0.0


# Module-level singleton
crane_state = CraneState()
