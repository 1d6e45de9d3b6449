from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from tests.utils.mock_controller import MockCraneController

pytest_plugins = ["nicegui.testing.user_plugin"]


if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@pytest.fixture
async def mock_controller() -> AsyncIterator[MockCraneController]:
    """
    Local WebSocket controller on an ephemeral port:
      - streams telemetry every refresh_ms
      - records every command frame it receives
    Stopped after the test even if it fails.
    """
    controller = MockCraneController(refresh_ms=5)
    await controller.start()
    try:
        yield controller
    finally:
        await controller.stop()


@pytest.fixture(scope="session", autouse=True)
def webapp_env_session() -> None:
    """
    Global test defaults for the NiceGUI webapp (set at session start via os.environ):
      - Do not connect to a controller at startup; UI tests patch the link instead
    Can still be overridden per-test with monkeypatch.setenv.
    """
    os.environ["CRANE_AUTO_CONNECT"] = "0"
