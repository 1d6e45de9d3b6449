from __future__ import annotations


class CraneError(Exception):
    """Base class for errors raised by the crane client."""


class DecodeError(CraneError, ValueError):
    """A telemetry or command frame could not be parsed."""

    def __init__(self, message: str, frame: str | None = None) -> None:
        super().__init__(message)
        self.frame = frame


class EncodeError(CraneError, ValueError):
    """A command carries a value that cannot go on the wire."""


class TransportError(CraneError):
    """The channel failed to open or failed mid-session."""


class SubmitRejected(CraneError):
    """A command was submitted while no session was open."""
