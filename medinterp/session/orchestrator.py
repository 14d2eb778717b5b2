"""
SessionOrchestrator: sequences audio capture and upstream connections for one session.

Phases: IDLE -> CONNECTING -> ACTIVE -> (SWITCHING_SPEAKER -> ACTIVE)* -> STOPPING -> IDLE

Speaker switch ordering (audio must never reach a closing connection, and tokens
from the old connection must never land in the new role's buffer):
  1. stop capture (source stays acquired)
  2. detach the old connection's handlers, then close it
  3. settle delay
  4. open a new connection with the new role's (source, target)
  5. poll until open, bounded by a timeout; on timeout continue degraded
  6. restart capture against the same source
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable

from medinterp.audio.capture import AudioCapture
from medinterp.audio.source import AudioSource
from medinterp.config import Settings, get_settings
from medinterp.errors import AudioSourceError, SessionStateError
from medinterp.stream.connection import ConnectionState, StreamConnection
from medinterp.transcript.models import SpeakerRole, TranscriptEntry
from medinterp.transcript.scheduler import FinalizationScheduler
from medinterp.transcript.state import SessionState

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[SpeakerRole, str, str], StreamConnection]


class SessionPhase(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    SWITCHING_SPEAKER = "switching_speaker"
    STOPPING = "stopping"


class SessionOrchestrator:
    def __init__(
        self,
        state: SessionState,
        scheduler: FinalizationScheduler,
        source: AudioSource,
        on_stream_message: Callable[[StreamConnection, object], None],
        on_connection_lost: Callable[[StreamConnection, Exception | None], None],
        connection_factory: ConnectionFactory | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._state = state
        self._scheduler = scheduler
        self._source = source
        self._on_stream_message = on_stream_message
        self._on_connection_lost = on_connection_lost
        self._settings = settings or get_settings()
        self._connection_factory = connection_factory or self._default_connection
        self._capture: AudioCapture | None = None
        self.connection: StreamConnection | None = None
        self.phase = SessionPhase.IDLE

    def _default_connection(self, role: SpeakerRole, source: str, target: str) -> StreamConnection:
        return StreamConnection(role, source, target, settings=self._settings)

    @property
    def connected(self) -> bool:
        return self.connection is not None and self.connection.is_open

    @property
    def capturing(self) -> bool:
        return self._capture is not None and self._capture.running

    async def start(self, role: SpeakerRole) -> bool:
        """IDLE -> ACTIVE. Returns whether the upstream connection opened in time."""
        if self.phase is not SessionPhase.IDLE:
            raise SessionStateError(f"Cannot start while {self.phase.value}")
        self._state.active_role = role
        self.phase = SessionPhase.CONNECTING
        try:
            self._source.acquire()
        except AudioSourceError:
            logger.error("Audio source unavailable; session stays idle")
            self.phase = SessionPhase.IDLE
            raise

        self._open_connection(role)
        opened = await self._wait_until_open()
        if not opened:
            logger.warning("Upstream not open for %s; continuing disconnected", role.value)
        self._capture = AudioCapture(self._source, self._forward_audio, chunk_ms=self._settings.AUDIO_CHUNK_MS)
        self._capture.start()
        self.phase = SessionPhase.ACTIVE
        logger.info("Session active; speaker=%s connected=%s", role.value, opened)
        return opened

    async def switch_speaker(self, role: SpeakerRole) -> bool:
        """
        Make `role` the active speaker. While idle this only records the role.
        Buffers of both roles are left as they are.
        """
        if role is self._state.active_role:
            return self.connected
        if self.phase is SessionPhase.IDLE:
            self._state.active_role = role
            return False
        if self.phase is not SessionPhase.ACTIVE:
            raise SessionStateError(f"Cannot switch speaker while {self.phase.value}")

        previous = self._state.active_role
        logger.info("Switching speaker %s -> %s", previous.value, role.value)
        self.phase = SessionPhase.SWITCHING_SPEAKER
        self._state.active_role = role

        if self._capture is not None:
            await self._capture.stop()
        await self._close_connection()
        await asyncio.sleep(self._settings.SWITCH_SETTLE_SECONDS)

        self._open_connection(role)
        opened = await self._wait_until_open()
        if opened:
            logger.info("Upstream reconnected for %s", role.value)
        else:
            logger.error("Upstream reconnection timeout for %s; continuing disconnected", role.value)

        if self._capture is None:
            self._capture = AudioCapture(self._source, self._forward_audio, chunk_ms=self._settings.AUDIO_CHUNK_MS)
        self._capture.start()
        self.phase = SessionPhase.ACTIVE
        return opened

    async def stop(self) -> TranscriptEntry | None:
        """
        ACTIVE -> IDLE. Flushes the active buffer first (no punctuation needed, lower
        threshold) so in-flight speech is not lost. Returns the flushed entry, if any.
        """
        if self.phase is SessionPhase.IDLE:
            return None
        if self.phase is not SessionPhase.ACTIVE:
            raise SessionStateError(f"Cannot stop while {self.phase.value}")
        self.phase = SessionPhase.STOPPING
        entry = self._scheduler.flush(self._state.active_role)
        self._scheduler.cancel_all()
        await self._close_connection()
        if self._capture is not None:
            await self._capture.stop()
            self._capture = None
        self._source.release()
        self._state.reset_buffers()
        self.phase = SessionPhase.IDLE
        logger.info("Session stopped")
        return entry

    def _open_connection(self, role: SpeakerRole) -> None:
        source, target = self._state.languages(role)
        connection = self._connection_factory(role, source, target)
        connection.on_message = self._on_stream_message
        connection.on_error = self._on_connection_lost
        connection.on_close = self._handle_close
        self.connection = connection
        connection.open()

    def _handle_close(self, connection: StreamConnection) -> None:
        self._on_connection_lost(connection, None)

    async def _close_connection(self) -> None:
        connection = self.connection
        if connection is None:
            return
        connection.detach()
        await connection.close()

    async def _wait_until_open(self) -> bool:
        connection = self.connection
        if connection is None:
            return False
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._settings.RECONNECT_TIMEOUT_SECONDS
        while True:
            if connection.is_open:
                return True
            if connection.state is ConnectionState.CLOSED:
                return False
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(self._settings.RECONNECT_POLL_SECONDS)

    async def _forward_audio(self, chunk: bytes) -> None:
        connection = self.connection
        if connection is not None and await connection.send_audio(chunk):
            logger.debug("Sent %d bytes of audio for %s", len(chunk), connection.role.value)
            return
        logger.warning("Upstream not open; dropped %d bytes of audio", len(chunk))
