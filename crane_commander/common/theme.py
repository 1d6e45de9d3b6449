from __future__ import annotations

import logging
from typing import Literal, cast, get_args

from nicegui import app, ui

ThemeMode = Literal["light", "dark", "system"]


def get_palette(mode: ThemeMode) -> dict[str, str]:
    """Palette tokens for the given (resolved) mode."""
    common = {
        "accent": "#F59E0B",  # crane amber
        "positive": "#21BA45",
        "negative": "#DB2828",
        "info": "#31CCEC",
        "warning": "#F2C037",
    }
    if mode == "dark":
        return {
            "primary": "#2F6FB0",
            "primary_hover": "#1F4E7E",
            "background": "#17191C",
            "surface": "#22262B",
            "text": "#D6D9DD",
            "muted": "#8E959C",
            "scene": "#2A2E33",
            "link": "#C7CCD1",
            **common,
        }
    return {
        "primary": "#3B8ED0",
        "primary_hover": "#36719F",
        "background": "#ECEDEF",
        "surface": "#DCDEE1",
        "text": "#1A1A1A",
        "muted": "#8A9096",
        "scene": "#F3F4F6",
        "link": "#5B6470",
        **common,
    }


def resolve_mode(mode: ThemeMode) -> Literal["light", "dark"]:
    if mode == "system":
        choice = "dark" if ui.dark_mode().client.page.dark else "light"
        logging.debug(f"System theme: {choice}")
        return choice
    return mode


def apply_theme(mode: ThemeMode) -> None:
    """Set Quasar colors, dark mode and the CSS variables used by the pages."""
    choice = resolve_mode(mode)
    pal = get_palette(choice)

    ui.colors(
        primary=pal["primary"],
        secondary=pal["primary_hover"],
        accent=pal["accent"],
        positive=pal["positive"],
        negative=pal["negative"],
        info=pal["info"],
        warning=pal["warning"],
    )
    if choice == "dark":
        ui.dark_mode().enable()
    else:
        ui.dark_mode().disable()

    ui.add_css(
        f"""
:root {{
  --crane-bg: {pal["background"]};
  --crane-surface: {pal["surface"]};
  --crane-text: {pal["text"]};
  --crane-muted: {pal["muted"]};
}}
body, .q-page {{ background: var(--crane-bg); color: var(--crane-text); }}
.q-header, .q-footer, .q-card {{ background: var(--crane-surface); color: var(--crane-text); }}
.q-btn:not(.q-btn--round) {{ border-radius: 6px; }}
"""
    )


def set_theme(mode: ThemeMode) -> ThemeMode:
    """Persist and apply a theme mode."""
    app.storage.general["theme_mode"] = mode
    apply_theme(mode)
    return mode


def get_theme() -> ThemeMode:
    mode = app.storage.general.get("theme_mode", "system")
    if isinstance(mode, str) and mode in get_args(ThemeMode):
        return cast("ThemeMode", mode)
    return cast("ThemeMode", "system")


def inject_layout_css() -> None:
    """Two-column Crane tab layout that stacks on narrow screens."""
    ui.add_css(
        """
.crane-layout {
  display: grid;
  grid-template-columns: minmax(320px, 1fr) 2fr;
  gap: 1rem;
  width: 100%;
}
@media (max-width: 1060px) {
  .crane-layout { grid-template-columns: 1fr; }
}
.readouts-row {
  display: flex;
  gap: 2rem;
  flex-wrap: wrap;
}
.readouts-col {
  display: flex;
  flex-direction: column;
  gap: 0.25rem;
  min-width: 10rem;
}
"""
    )
