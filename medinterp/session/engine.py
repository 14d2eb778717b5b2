"""
InterpreterSession: one live interpreter session, processed as a single-consumer actor.

All state (buffers, timers, ledger, entries, active role, config) lives in one
SessionState owned by this object. Every input (upstream message, timer expiry,
connection loss, user action) becomes an event on one asyncio.Queue, and one task
handles them strictly in order. Timers and connection readers only enqueue.

Outbound notifications go through `publish(payload)`:
  {"type": "entry", "entry": {...}}
  {"type": "partial", "speaker", "final_original", "final_translated", "partial_original", "partial_translated"}
  {"type": "status", "phase", "connected", "active_role"}
  {"type": "cleared"}
  {"type": "speech", "speaker", "audio", "format"}
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from medinterp.audio.source import AudioSource
from medinterp.config import Settings, get_settings
from medinterp.errors import InterpreterError, MalformedMessageError
from medinterp.session.events import (
    ActionKind,
    ConnectionLost,
    SessionEvent,
    StreamMessageReceived,
    TimerExpired,
    UserAction,
)
from medinterp.session.orchestrator import ConnectionFactory, SessionOrchestrator, SessionPhase
from medinterp.stream.connection import StreamConnection
from medinterp.stream.protocol import parse_stream_message
from medinterp.transcript.buffer import apply_tokens
from medinterp.transcript.classifier import classify_tokens
from medinterp.transcript.models import SessionConfig, SpeakerRole, TranscriptEntry
from medinterp.transcript.scheduler import FinalizationScheduler
from medinterp.transcript.state import SessionState
from medinterp.transcript.timer import DebounceTimer, TimerFactory, start_timer
from medinterp.tts.service import SpeechResult, synthesize_speech

logger = logging.getLogger(__name__)

Publisher = Callable[[dict[str, Any]], Awaitable[None]]
SpeechSynthesizer = Callable[[str, str], Awaitable[SpeechResult]]


async def _discard(payload: dict[str, Any]) -> None:
    return None


class InterpreterSession:
    def __init__(
        self,
        source: AudioSource,
        publish: Publisher | None = None,
        config: SessionConfig | None = None,
        settings: Settings | None = None,
        connection_factory: ConnectionFactory | None = None,
        speak: SpeechSynthesizer = synthesize_speech,
        timer_factory: TimerFactory = start_timer,
    ) -> None:
        self._settings = settings or get_settings()
        self._publish = publish or _discard
        self._speak = speak
        self.state = SessionState(config or SessionConfig.from_settings(self._settings))
        self.scheduler = FinalizationScheduler(
            self.state,
            on_entry=self._on_entry,
            on_timer_expired=self._on_timer_expired,
            debounce_seconds=self._settings.FINALIZE_DEBOUNCE_SECONDS,
            min_segment_chars=self._settings.MIN_SEGMENT_CHARS,
            min_flush_chars=self._settings.MIN_FLUSH_CHARS,
            timer_factory=timer_factory,
        )
        self.orchestrator = SessionOrchestrator(
            self.state,
            self.scheduler,
            source,
            on_stream_message=self._on_stream_message,
            on_connection_lost=self._on_connection_lost,
            connection_factory=connection_factory,
            settings=self._settings,
        )
        self._source = source
        self._queue: asyncio.Queue[SessionEvent] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._outbox: list[TranscriptEntry] = []
        self._speech_tasks: set[asyncio.Task[None]] = set()
        # Error and close of one connection both report the loss; only the first is published
        self._lost_connection_id: int | None = None

    # ---- lifecycle ----

    def start_processing(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="interpreter-session")

    async def close(self) -> None:
        """Full teardown: stop (with flush) if running, then end event processing."""
        if self.orchestrator.phase is not SessionPhase.IDLE:
            try:
                await self.stop()
            except InterpreterError as e:
                logger.warning("Stop during teardown failed: %s", e)
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self.scheduler.cancel_all()
        for task in list(self._speech_tasks):
            task.cancel()
        self._speech_tasks.clear()

    # ---- user actions (awaitable; outcome or exception comes back to the caller) ----

    async def start(self, role: SpeakerRole | None = None) -> bool:
        return await self._request(UserAction(ActionKind.START, role=role))

    async def switch_speaker(self, role: SpeakerRole | None = None) -> bool:
        """Switch to `role`; with no role, to whichever speaker is not active when the switch is processed."""
        return await self._request(UserAction(ActionKind.SWITCH, role=role))

    async def stop(self) -> TranscriptEntry | None:
        return await self._request(UserAction(ActionKind.STOP))

    async def clear(self) -> None:
        return await self._request(UserAction(ActionKind.CLEAR))

    async def configure(self, config: SessionConfig) -> None:
        return await self._request(UserAction(ActionKind.CONFIGURE, config=config))

    async def update_config(self, **changes: Any) -> None:
        """Change only the given config fields (None leaves a field as it is)."""
        return await self._request(UserAction(ActionKind.CONFIGURE, changes=changes))

    async def _request(self, action: UserAction) -> Any:
        self.start_processing()
        action.result = asyncio.get_running_loop().create_future()
        self.post(action)
        return await action.result

    # ---- event intake (never touches state directly) ----

    def post(self, event: SessionEvent) -> None:
        self._queue.put_nowait(event)

    async def drain(self) -> None:
        """Wait until every posted event has been processed."""
        await self._queue.join()

    def _on_stream_message(self, connection: StreamConnection, raw: Any) -> None:
        self.post(StreamMessageReceived(connection.connection_id, connection.role, raw))

    def _on_connection_lost(self, connection: StreamConnection, error: Exception | None) -> None:
        self.post(ConnectionLost(connection.connection_id, error))

    def _on_timer_expired(self, role: SpeakerRole, timer: DebounceTimer) -> None:
        self.post(TimerExpired(role, timer))

    def _on_entry(self, entry: TranscriptEntry) -> None:
        self._outbox.append(entry)

    # ---- event processing ----

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.handle(event)
            except Exception:
                logger.exception("Session event failed: %r", event)
            finally:
                self._queue.task_done()

    async def handle(self, event: SessionEvent) -> None:
        """Process one event to completion, then publish any entries it produced."""
        if isinstance(event, StreamMessageReceived):
            await self._handle_stream_message(event)
        elif isinstance(event, TimerExpired):
            self.scheduler.timer_expired(event.role, event.timer)
        elif isinstance(event, ConnectionLost):
            await self._handle_connection_lost(event)
        elif isinstance(event, UserAction):
            await self._handle_action(event)
        await self._flush_outbox()

    async def _handle_stream_message(self, event: StreamMessageReceived) -> None:
        connection = self.orchestrator.connection
        if connection is None or connection.connection_id != event.connection_id:
            logger.debug("Message from stale connection #%d dropped", event.connection_id)
            return
        try:
            message = parse_stream_message(event.raw)
        except MalformedMessageError as e:
            logger.error("Error parsing stream message: %s", e)
            return
        if message.is_error:
            logger.warning("Upstream error response: %s", message.error)
            return
        if message.finished:
            logger.info("Upstream finished stream #%d", event.connection_id)
        if not message.tokens:
            return

        role = event.role
        buffer = self.state.buffer(role)
        classified = classify_tokens(message.tokens, connection.source_language, connection.target_language)
        update = apply_tokens(buffer, classified)
        if update.discarded_translations:
            logger.debug(
                "Dropped %d translation tokens for %s (no source since reset)",
                update.discarded_translations,
                role.value,
            )
        self.scheduler.after_update(role)
        await self._publish(
            {
                "type": "partial",
                "speaker": role.value,
                "final_original": buffer.final_original,
                "final_translated": buffer.final_translated,
                "partial_original": buffer.partial_original,
                "partial_translated": buffer.partial_translated,
            }
        )

    async def _handle_connection_lost(self, event: ConnectionLost) -> None:
        connection = self.orchestrator.connection
        if connection is None or connection.connection_id != event.connection_id:
            return
        if self._lost_connection_id == event.connection_id:
            return
        self._lost_connection_id = event.connection_id
        if event.error is not None:
            logger.error("Upstream connection lost: %s", event.error)
        else:
            logger.info("Upstream connection closed")
        await self._publish_status()

    async def _handle_action(self, action: UserAction) -> None:
        future = action.result
        try:
            result = await self._apply_action(action)
        except InterpreterError as e:
            logger.warning("Action %s failed: %s", action.kind.value, e)
            if future is not None and not future.done():
                future.set_exception(e)
            await self._publish_status()
            return
        except Exception as e:
            if future is not None and not future.done():
                future.set_exception(e)
            raise
        if future is not None and not future.done():
            future.set_result(result)
        logger.debug("After %s: %s", action.kind.value, self.state.snapshot())

    async def _apply_action(self, action: UserAction) -> Any:
        if action.kind is ActionKind.START:
            result = await self.orchestrator.start(action.role or self.state.active_role)
            await self._publish_status()
            return result
        if action.kind is ActionKind.SWITCH:
            result = await self.orchestrator.switch_speaker(action.role or self.state.active_role.other)
            await self._publish_status()
            return result
        if action.kind is ActionKind.STOP:
            entry = await self.orchestrator.stop()
            await self._publish_status()
            return entry
        if action.kind is ActionKind.CLEAR:
            self.state.clear()
            await self._publish({"type": "cleared"})
            return None
        if action.kind is ActionKind.CONFIGURE:
            config = action.config or self.state.config
            if action.changes:
                config = config.merged(**action.changes)
            self.state.config = config
            if self.orchestrator.connected:
                logger.info("Config updated; applies on next connect")
            return None
        raise ValueError(f"Unknown action {action.kind!r}")

    async def _publish_status(self) -> None:
        await self._publish(
            {
                "type": "status",
                "phase": self.orchestrator.phase.value,
                "connected": self.orchestrator.connected,
                "active_role": self.state.active_role.value,
            }
        )

    async def _flush_outbox(self) -> None:
        while self._outbox:
            entry = self._outbox.pop(0)
            await self._publish({"type": "entry", "entry": entry.to_dict()})
            self._maybe_speak(entry)

    # ---- TTS side effect (fire-and-forget; never gates finalization) ----

    def _maybe_speak(self, entry: TranscriptEntry) -> None:
        if not self.state.config.tts_enabled or not entry.translated_text:
            return
        if entry.speaker is not self.state.active_role:
            return
        language = self.state.config.target_language(entry.speaker)
        task = asyncio.create_task(self._speak_entry(entry, language))
        self._speech_tasks.add(task)
        task.add_done_callback(self._speech_tasks.discard)

    async def _speak_entry(self, entry: TranscriptEntry, language: str) -> None:
        try:
            result = await self._speak(entry.translated_text, language)
        except Exception as e:
            logger.warning("TTS for entry %s failed: %s", entry.id, e)
            return
        if not result.configured:
            logger.warning("TTS not configured (TTS_BACKEND=none); skipping speech")
            return
        if not result.audio:
            return
        await self._publish(
            {
                "type": "speech",
                "speaker": entry.speaker.value,
                "entry_id": entry.id,
                "audio": result.audio,
                "format": result.format,
            }
        )
