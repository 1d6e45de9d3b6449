from __future__ import annotations

import os
from dataclasses import dataclass

from crane_commander.constants import CONTROLLER_URL


@dataclass
class SessionConfig:
    """Controller connection and reconnect policy."""

    url: str = "ws://127.0.0.1:8080"
    open_timeout: float = 5.0
    # 0 keeps a closed session closed; N retries N times in a row before giving up
    reconnect_attempts: int = 3
    backoff_initial_s: float = 0.5
    backoff_max_s: float = 5.0

    def __post_init__(self) -> None:
        if self.open_timeout <= 0:
            raise ValueError("open_timeout must be > 0")
        if self.reconnect_attempts < 0:
            raise ValueError("reconnect_attempts must be >= 0")
        if self.backoff_initial_s < 0 or self.backoff_max_s < 0:
            raise ValueError("backoff delays must be >= 0")

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based), doubling up to backoff_max_s."""
        return min(self.backoff_max_s, self.backoff_initial_s * 2 ** max(0, attempt - 1))

    @classmethod
    def from_env(cls) -> "SessionConfig":
        return cls(
            url=CONTROLLER_URL,
            open_timeout=float(os.getenv("CRANE_OPEN_TIMEOUT", "5.0")),
            reconnect_attempts=int(os.getenv("CRANE_RECONNECT_ATTEMPTS", "3")),
            backoff_initial_s=float(os.getenv("CRANE_RECONNECT_BACKOFF", "0.5")),
            backoff_max_s=float(os.getenv("CRANE_RECONNECT_BACKOFF_MAX", "5.0")),
        )
