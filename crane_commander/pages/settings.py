from __future__ import annotations

import logging

from nicegui import ui

from crane_commander.common.theme import ThemeMode, get_theme, set_theme
from crane_commander.services.crane_link import link

_MODE_OPTIONS: dict[str, ThemeMode] = {"System": "system", "Light": "light", "Dark": "dark"}


class SettingsPage:
    """Settings tab page."""

    def _on_mode(self, label: str | None) -> None:
        mode = _MODE_OPTIONS.get(label or "System", "system")
        set_theme(mode)
        logging.debug("Set theme to mode: %s", mode)

    def build(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Settings").classes("text-md font-medium")
            saved_mode = get_theme()
            start_value = next(
                (label for label, mode in _MODE_OPTIONS.items() if mode == saved_mode), "System"
            )
            ui.toggle(
                options=list(_MODE_OPTIONS),
                value=start_value,
                on_change=lambda e: self._on_mode(e.value),
            ).props("dense")

        with ui.card().classes("w-full"):
            ui.label("Controller").classes("text-md font-medium")
            cfg = link.config
            ui.label(f"URL: {cfg.url}").classes("text-sm")
            ui.label(
                f"Reconnect: {cfg.reconnect_attempts} attempt(s), "
                f"backoff {cfg.backoff_initial_s:.1f}-{cfg.backoff_max_s:.1f}s"
            ).classes("text-sm")
