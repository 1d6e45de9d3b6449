from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedError,
    InvalidHandshake,
    InvalidURI,
)

from crane_commander.errors import TransportError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


class WebSocketChannel:
    """
    One WebSocket connection to the crane controller.

    Use as an async context manager: the socket is opened on enter and closed
    on exit. Outbound frames go through a FIFO drained by a writer task so
    `send` stays synchronous and command order is preserved.
    """

    def __init__(self, url: str, open_timeout: float = 5.0) -> None:
        self.url = url
        self.open_timeout = open_timeout
        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[str] | None = None
        self._writer: asyncio.Task | None = None

    async def __aenter__(self) -> "WebSocketChannel":
        try:
            self._ws = await connect(self.url, open_timeout=self.open_timeout)
        except (OSError, asyncio.TimeoutError, TimeoutError, InvalidURI, InvalidHandshake) as e:
            raise TransportError(f"Failed to connect to {self.url}: {e}") from e
        logger.info("Connected to %s", self.url)
        self._outbox = asyncio.Queue()
        self._writer = asyncio.create_task(self._write_loop(), name="crane-ws-writer")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        writer, self._writer = self._writer, None
        if writer is not None:
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await writer
        self._outbox = None
        ws, self._ws = self._ws, None
        if ws is not None:
            with contextlib.suppress(Exception):
                await ws.close()
            logger.info("Disconnected from %s", self.url)

    def send(self, frame: str) -> None:
        if self._outbox is None:
            raise TransportError("Channel is not open")
        self._outbox.put_nowait(frame)

    async def frames(self) -> AsyncIterator[str]:
        """Inbound text frames until the controller closes the connection."""
        if self._ws is None:
            raise TransportError("Channel is not open")
        try:
            async for message in self._ws:
                if isinstance(message, bytes):
                    message = message.decode("ascii", errors="replace")
                yield message
        except ConnectionClosedError as e:
            raise TransportError(f"Connection to {self.url} lost: {e}") from e

    async def _write_loop(self) -> None:
        assert self._outbox is not None and self._ws is not None
        outbox, ws = self._outbox, self._ws
        while True:
            frame = await outbox.get()
            try:
                await ws.send(frame)
            except ConnectionClosed as e:
                # The reader sees the same close and ends the session
                logger.warning("Dropped outbound frame %r: %s", frame, e)
                return
