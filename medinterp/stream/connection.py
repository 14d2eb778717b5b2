"""
StreamConnection: one upstream recognition/translation WebSocket bound to one speaker role.

A connection is never reused across roles: a speaker switch closes it and opens a
new one with the swapped language pair. Handlers are plain callables that only
enqueue events for the session; detach() clears them so a closing connection
can no longer reach session state.
"""
from __future__ import annotations

import asyncio
import itertools
import json
import logging
from enum import Enum
from typing import Any, Callable

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

from medinterp.config import Settings, get_settings
from medinterp.errors import StreamConnectionError
from medinterp.stream.protocol import build_config_message
from medinterp.transcript.models import SpeakerRole

logger = logging.getLogger(__name__)

_connection_ids = itertools.count(1)

MessageHandler = Callable[["StreamConnection", Any], None]
ErrorHandler = Callable[["StreamConnection", Exception], None]
CloseHandler = Callable[["StreamConnection"], None]


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class StreamConnection:
    def __init__(
        self,
        role: SpeakerRole,
        source_language: str,
        target_language: str,
        settings: Settings | None = None,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self.connection_id = next(_connection_ids)
        self.role = role
        self.source_language = source_language
        self.target_language = target_language
        self._settings = settings or get_settings()
        self._connect = connect
        self._ws: Any = None
        self._task: asyncio.Task[None] | None = None
        self.state = ConnectionState.CLOSED
        self.on_message: MessageHandler | None = None
        self.on_error: ErrorHandler | None = None
        self.on_close: CloseHandler | None = None

    def __repr__(self) -> str:
        return f"<StreamConnection #{self.connection_id} {self.role.value} {self.source_language}->{self.target_language} {self.state.value}>"

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def config_message(self) -> dict[str, Any]:
        return build_config_message(
            api_key=self._settings.SONIOX_API_KEY,
            model=self._settings.SONIOX_MODEL,
            source_language=self.source_language,
            target_language=self.target_language,
            audio_format=self._settings.SONIOX_AUDIO_FORMAT,
        )

    def open(self) -> None:
        """Start connecting in the background. Poll `state` (or `is_open`) for readiness."""
        if self._task is not None:
            raise StreamConnectionError(f"{self!r} already opened")
        self.state = ConnectionState.CONNECTING
        self._task = asyncio.create_task(self._run(), name=f"stream-connection-{self.connection_id}")

    def detach(self) -> None:
        """Drop all handlers; events from this connection are no longer delivered."""
        self.on_message = None
        self.on_error = None
        self.on_close = None

    async def send_audio(self, chunk: bytes) -> bool:
        """Send one audio chunk. Returns False (nothing sent) unless the connection is open."""
        if self.state is not ConnectionState.OPEN or self._ws is None:
            return False
        try:
            await self._ws.send(chunk)
        except ConnectionClosed:
            return False
        return True

    async def close(self) -> None:
        """Idempotent close. Safe in any state."""
        if self.state is ConnectionState.CLOSED and (self._task is None or self._task.done()):
            return
        self.state = ConnectionState.CLOSING
        if self._ws is not None:
            try:
                await self._ws.close()
            except (OSError, WebSocketException) as e:
                logger.debug("Close of %r raised: %s", self, e)
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.state = ConnectionState.CLOSED

    async def _run(self) -> None:
        try:
            self._ws = await self._connect(self._settings.SONIOX_WS_URL)
            if self.state is ConnectionState.CLOSING:
                await self._ws.close()
                return
            await self._ws.send(json.dumps(self.config_message()))
            self.state = ConnectionState.OPEN
            logger.info(
                "Upstream connected #%d for %s (%s -> %s)",
                self.connection_id,
                self.role.value,
                self.source_language,
                self.target_language,
            )
            async for raw in self._ws:
                handler = self.on_message
                if handler is not None:
                    handler(self, raw)
        except ConnectionClosedOK:
            logger.info("Upstream #%d closed by server", self.connection_id)
        except (ConnectionClosed, OSError, WebSocketException) as e:
            if self.state is not ConnectionState.CLOSING:
                logger.error("Upstream #%d failed: %s", self.connection_id, e)
                handler = self.on_error
                if handler is not None:
                    handler(self, StreamConnectionError(str(e)))
        finally:
            self.state = ConnectionState.CLOSED
            handler = self.on_close
            if handler is not None:
                handler(self)
