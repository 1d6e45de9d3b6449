from __future__ import annotations

import logging
import os
import sys
import threading
import weakref

from nicegui import ui

_LEVEL_COLORS = {
    "TRACE": "\033[32m",  # green
    "DEBUG": "\033[36m",  # cyan
    "INFO": "\033[37m",  # light gray
    "WARNING": "\033[33m",  # yellow
    "ERROR": "\033[31m",  # red
    "CRITICAL": "\033[41m",  # red background
}
_RESET = "\033[0m"
_DIM = "\033[2m"

# Below DEBUG; used for per-frame telemetry
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Per-frame tracing is skipped entirely unless CRANE_TRACE is set
TRACE_ENABLED = str(os.getenv("CRANE_TRACE", "0")).lower() in ("1", "true", "yes", "on")


def enable_trace() -> None:
    global TRACE_ENABLED
    TRACE_ENABLED = True


def trace(logger: logging.Logger, msg: str, *args) -> None:
    """Log at TRACE level when tracing is switched on."""
    if TRACE_ENABLED and logger.isEnabledFor(TRACE):
        logger.log(TRACE, msg, *args)


class AnsiColorFormatter(logging.Formatter):
    """Compact 'HH:MM:SS LEVEL logger: msg' lines with a colored level name."""

    def __init__(self, colored: bool = True) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"
        )
        self.colored = colored and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.colored:
            return base
        level = record.levelname.upper()
        color = _LEVEL_COLORS.get(level, "")
        ts, _, rest = base.partition(" ")
        if color:
            rest = rest.replace(level, f"{color}{level}{_RESET}", 1)
        return f"{_DIM}{ts}{_RESET} {rest}"


# ---- NiceGUI log widgets ----

_log_widgets: set[weakref.ref] = set()
_widgets_lock = threading.Lock()


class UiLogHandler(logging.Handler):
    """Mirror log records into every registered ui.log widget."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S")
        )

    def emit(self, record: logging.LogRecord) -> None:
        if not _log_widgets:
            return
        msg = self.format(record)
        with _widgets_lock:
            for ref in list(_log_widgets):
                widget = ref()
                if widget is None:
                    _log_widgets.discard(ref)
                    continue
                try:
                    widget.push(msg)
                except Exception:
                    # Client disconnected; forget the widget
                    _log_widgets.discard(ref)


def attach_ui_log(log_widget: ui.log) -> None:
    """Register a ui.log widget as a sink for log records."""
    with _widgets_lock:
        _log_widgets.add(weakref.ref(log_widget))


def detach_ui_log(log_widget: ui.log) -> None:
    with _widgets_lock:
        _log_widgets.discard(weakref.ref(log_widget))


def configure_logging(
    level: int = logging.INFO, use_color: bool = True, add_ui_handler: bool = True
) -> logging.Logger:
    """
    Configure the root logger once:
      - colored console handler on stderr
      - optional UiLogHandler feeding the in-app log panel
    Calling again only updates the level.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(AnsiColorFormatter(colored=use_color))
        logger.addHandler(console)

    if add_ui_handler and not any(isinstance(h, UiLogHandler) for h in logger.handlers):
        logger.addHandler(UiLogHandler(level=max(level, logging.DEBUG)))

    for handler in logger.handlers:
        if type(handler) is logging.StreamHandler:
            handler.setLevel(level)

    return logger
