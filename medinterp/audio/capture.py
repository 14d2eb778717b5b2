"""
AudioCapture: forwards source audio to a sink on a fixed cadence (default 250 ms).

Time-based, no silence gating: every tick drains whatever the source buffered and
hands it to the sink. stop() ends forwarding but keeps the source acquired so the
same source can be restarted against a new upstream connection.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from medinterp.audio.source import AudioSource
from medinterp.config import get_settings

logger = logging.getLogger(__name__)

AudioSink = Callable[[bytes], Awaitable[None]]


class AudioCapture:
    def __init__(self, source: AudioSource, sink: AudioSink, chunk_ms: int | None = None) -> None:
        self._source = source
        self._sink = sink
        chunk_ms = chunk_ms or get_settings().AUDIO_CHUNK_MS
        self._interval = chunk_ms / 1000.0
        self._task: asyncio.Task[None] | None = None

    @property
    def source(self) -> AudioSource:
        return self._source

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        # Audio buffered before this start belongs to the previous connection/role
        stale = self._source.drain()
        if stale:
            logger.debug("Discarded %d bytes of stale audio on capture start", len(stale))
        self._task = asyncio.create_task(self._forward(), name="audio-capture")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _forward(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            chunk = self._source.drain()
            if chunk:
                await self._sink(chunk)
