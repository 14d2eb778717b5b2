"""
WebSocketManager: bridges one client WebSocket to one InterpreterSession.

Client -> server:
  binary frames: encoded audio (MediaRecorder chunks), fed to the session's audio source
  text frames:   JSON control {"type": "configure" | "start" | "switch" | "stop" | "clear", ...}
Server -> client (JSON): session id on connect, then everything the session publishes
(entry, partial, status, cleared, speech) plus {"type": "error"} for rejected controls.

Control messages are dispatched as tasks so audio keeps flowing while a speaker
switch reconnects upstream. They are passed to the session as received (no
defaults filled in from session state); the session's event queue applies them
in arrival order.
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, Awaitable

from fastapi import WebSocket
from pydantic import ValidationError

from medinterp.audio.source import ClientAudioSource
from medinterp.config import get_settings
from medinterp.errors import InterpreterError
from medinterp.schemas.control import ClientControl
from medinterp.session.engine import InterpreterSession
from medinterp.session.orchestrator import ConnectionFactory

logger = logging.getLogger(__name__)


class WebSocketManager:
    """One WebSocket = one interpreter session (both speaker roles, one transcript)."""

    def __init__(self, websocket: WebSocket, connection_factory: ConnectionFactory | None = None) -> None:
        self._ws = websocket
        self._closed = False
        self.session_id = uuid.uuid4().hex[:12]
        settings = get_settings()
        self._source = ClientAudioSource(max_bytes=settings.AUDIO_SOURCE_MAX_BYTES)
        self.session = InterpreterSession(
            self._source,
            publish=self._send_json,
            settings=settings,
            connection_factory=connection_factory,
        )
        self._control_tasks: set[asyncio.Task[None]] = set()

    async def _send_json(self, payload: dict[str, Any]) -> None:
        if self._closed:
            return
        try:
            await self._ws.send_text(json.dumps(payload))
        except Exception:
            self._closed = True

    async def _run_control(self, control: ClientControl) -> None:
        try:
            if control.type == "configure":
                await self.session.update_config(**control.config_changes())
            elif control.type == "start":
                await self.session.start(control.role)
            elif control.type == "switch":
                await self.session.switch_speaker(control.role)
            elif control.type == "stop":
                await self.session.stop()
            elif control.type == "clear":
                await self.session.clear()
        except InterpreterError as e:
            await self._send_json({"type": "error", "action": control.type, "message": str(e)})

    def _dispatch_text(self, text: str) -> None:
        try:
            control = ClientControl.model_validate(json.loads(text))
        except (ValueError, ValidationError) as e:
            logger.warning("Invalid control message from client: %s", e)
            self._track(self._send_json({"type": "error", "message": "Invalid control message"}))
            return
        self._track(self._run_control(control))

    def _track(self, coro: Awaitable[None]) -> None:
        task = asyncio.create_task(coro)
        self._control_tasks.add(task)
        task.add_done_callback(self._control_tasks.discard)

    async def run(self) -> None:
        """Main loop: feed audio, dispatch controls; tear the session down on disconnect."""
        self.session.start_processing()
        await self._send_json({"type": "session", "session_id": self.session_id})
        logger.info("Client session %s opened", self.session_id)
        try:
            while not self._closed:
                try:
                    msg = await self._ws.receive()
                except Exception:
                    break
                if msg.get("type") == "websocket.disconnect":
                    break
                data = msg.get("bytes")
                if data is not None:
                    self._source.feed(data)
                    continue
                text = msg.get("text")
                if text:
                    self._dispatch_text(text)
        finally:
            self._closed = True
            for task in list(self._control_tasks):
                task.cancel()
            await self.session.close()
            self._source.close()
            logger.info("Client session %s closed", self.session_id)
