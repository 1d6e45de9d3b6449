import argparse
import contextlib
import logging
import os
import sys
import time

from nicegui import app as ng_app
from nicegui import ui
from nicegui.elements.tooltip import Tooltip

from crane_commander import kinematics
from crane_commander.common.logging_config import (
    TRACE,
    attach_ui_log,
    configure_logging,
    enable_trace,
)
from crane_commander.common.theme import apply_theme, get_theme, inject_layout_css
from crane_commander.constants import (
    LOG_LEVEL,
    SERVER_HOST,
    SERVER_PORT,
    VIEW_REFRESH_INTERVAL_S,
)
from crane_commander.errors import CraneError, DecodeError
from crane_commander.pages.control import ControlPage
from crane_commander.pages.crane_view import CraneViewPage
from crane_commander.pages.settings import SettingsPage
from crane_commander.services.crane_link import link
from crane_commander.services.session import SessionState
from crane_commander.state import crane_state
from crane_commander.types import JointState

# ------------------------ Global UI/state ------------------------

link_status_label: ui.label | None = None
link_tooltip: Tooltip | None = None
view_timer: ui.timer | None = None

_STATE_COLORS = {
    SessionState.CONNECTING: "#F2C037",
    SessionState.OPEN: "#21BA45",
    SessionState.CLOSED: "#DB2828",
}

# Page instances
control_page_instance = ControlPage()
view_page_instance = CraneViewPage()
settings_page_instance = SettingsPage()

# --------------- Link controls ---------------


async def start_link() -> None:
    if link.running:
        return
    link.start()
    logging.info("Connecting to crane controller at %s", link.config.url)


async def stop_link() -> None:
    try:
        await link.stop()
    except Exception as e:
        logging.error("Stop link failed: %s", e)


# --------------- Link listeners ---------------


def on_telemetry(joint_state: JointState) -> None:
    """Mirror the new snapshot into the bindable UI state."""
    crane_state.swing = joint_state.swing
    crane_state.lift = joint_state.lift
    crane_state.elbow = joint_state.elbow
    crane_state.wrist = joint_state.wrist
    crane_state.gripper = joint_state.gripper

    ee = kinematics.end_effector(link.poses)
    x, y, z = (float(v) for v in ee.position)
    crane_state.x, crane_state.y, crane_state.z = x, y, z
    crane_state.rx, crane_state.ry, crane_state.rz = ee.rpy_deg()
    crane_state.last_update_ts = time.time()


def on_link_state(state: SessionState) -> None:
    crane_state.link_state = state.value
    if link_status_label:
        link_status_label.style(f"color: {_STATE_COLORS[state]}")
        if link_tooltip:
            link_tooltip.text = f"{state.value} ({link.config.url})"


def on_link_error(error: CraneError) -> None:
    if isinstance(error, DecodeError):
        crane_state.decode_errors = link.decode_errors
        return
    with contextlib.suppress(Exception):
        ui.notify(f"Controller link: {error}", color="negative")


link.add_telemetry_listener(on_telemetry)
link.add_state_listener(on_link_state)
link.add_error_listener(on_link_error)

# --------------- Layout ---------------


def build_header_and_tabs() -> None:
    with (
        ui.header().classes("p-0"),
        ui.row().classes("w-full items-center justify-between"),
    ):
        with ui.tabs() as main_tabs:
            crane_tab = ui.tab("Crane")
            settings_tab = ui.tab("Settings")
        ui.label("Crane Commander").classes("text-sm text-center pr-4")

    with ui.tab_panels(main_tabs, value=crane_tab).classes("w-full"):
        with ui.tab_panel(crane_tab):
            with ui.element("div").classes("crane-layout"):
                with ui.column().classes("w-full"):
                    control_page_instance.build()
                with ui.column().classes("w-full"):
                    view_page_instance.build()
                    with ui.card().classes("w-full"):
                        ui.label("Log").classes("text-md font-medium")
                        response_log = ui.log(max_lines=200).classes("w-full h-40")
                        attach_ui_log(response_log)
        with ui.tab_panel(settings_tab):
            settings_page_instance.build()


def build_footer() -> None:
    global link_status_label, link_tooltip
    with ui.footer().classes("justify-between items-center px-3 py-1"):
        with ui.row().classes("items-center gap-4"):
            link_status_label = ui.label("LINK").classes("text-sm")
            with link_status_label:
                link_tooltip = ui.tooltip(link.state.value)
            link_status_label.style(f"color: {_STATE_COLORS[link.state]}")
            ui.label("|").classes("text-sm text-[var(--crane-muted)]")
            ui.label().bind_text_from(
                crane_state, "decode_errors", backward=lambda v: f"Bad frames: {v}"
            ).classes("text-sm")
        with ui.row().classes("items-center gap-2"):
            ui.button("Connect", on_click=start_link).props("color=primary")
            ui.button("Disconnect", on_click=stop_link).props("color=negative")


async def _app_startup() -> None:
    apply_theme(get_theme())
    ui.query(".nicegui-content").classes("p-0")
    inject_layout_css()

    build_header_and_tabs()
    build_footer()

    global view_timer
    view_timer = ui.timer(interval=VIEW_REFRESH_INTERVAL_S, callback=view_page_instance.refresh)

    # Evaluated at startup so tests can switch it off through the environment
    auto_connect = os.getenv("CRANE_AUTO_CONNECT", "1").lower() in ("1", "true", "yes", "on")
    if auto_connect:
        await start_link()


async def _app_shutdown() -> None:
    await stop_link()


ng_app.on_startup(_app_startup)
ng_app.on_shutdown(_app_shutdown)


if __name__ in {"__main__", "__mp_main__"}:
    parser = argparse.ArgumentParser(description="Crane Commander NiceGUI client")
    parser.add_argument("--host", default=SERVER_HOST, help="Webserver bind host")
    parser.add_argument("--port", type=int, default=SERVER_PORT, help="Webserver bind port")
    parser.add_argument(
        "--controller-url",
        default=link.config.url,
        help="WebSocket URL of the crane controller",
    )
    parser.add_argument(
        "--reconnect-attempts",
        type=int,
        default=link.config.reconnect_attempts,
        help="Retries after the link closes (0 = never reconnect)",
    )
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set log level",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity; -v=INFO, -vv=DEBUG",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings")
    parser.add_argument(
        "--no-auto-connect",
        action="store_true",
        help="Wait for the Connect button instead of connecting at startup",
    )
    args, _ = parser.parse_known_args()

    link.config.url = args.controller_url
    link.config.reconnect_attempts = max(0, int(args.reconnect_attempts))
    if args.no_auto_connect:
        os.environ["CRANE_AUTO_CONNECT"] = "0"

    # Priority: --log-level > -v/-q > CRANE_LOG_LEVEL
    if args.log_level:
        runtime_log_level = TRACE if args.log_level == "TRACE" else getattr(logging, args.log_level)
    elif args.verbose >= 2:
        runtime_log_level = logging.DEBUG
    elif args.verbose == 1:
        runtime_log_level = logging.INFO
    elif args.quiet:
        runtime_log_level = logging.WARNING
    else:
        runtime_log_level = LOG_LEVEL

    if runtime_log_level == TRACE:
        enable_trace()
    configure_logging(runtime_log_level)
    logging.info("Webserver bind: host=%s port=%s", args.host, args.port)
    logging.info("Controller target: %s", link.config.url)

    ui.run(
        title="Crane Commander",
        host=args.host,
        port=int(args.port),
        reload=False,
        show=False,
        loop="uvloop" if sys.platform != "win32" else "asyncio",
        http="httptools",
        ws="wsproto",
        binding_refresh_interval=0.05,
    )
