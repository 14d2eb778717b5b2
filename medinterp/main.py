"""
FastAPI app: WebSocket endpoint for live bilingual interpretation;
HTTP API: text translation, speech synthesis, batch transcription.

Client streams encoded audio (binary frames) and control messages (JSON text frames)
over /ws/interpret. Server responds with JSON:
{ "type": "entry" | "partial" | "status" | "cleared" | "speech" | "error" | "session", ... }
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, HTTPException, UploadFile, WebSocket, WebSocketDisconnect

from medinterp.config import Settings, get_settings
from medinterp.errors import CollaboratorError
from medinterp.languages import SUPPORTED_LANGUAGES
from medinterp.schemas.api import (
    LanguageOut,
    SpeakRequest,
    SpeakResponse,
    TranscribeResponse,
    TranslateRequest,
    TranslateResponse,
)
from medinterp.services.transcription import transcribe_audio
from medinterp.services.translation import translate_text
from medinterp.tts.service import synthesize_speech
from medinterp.websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def configure_logging(settings: Settings) -> None:
    """Console logging at LOG_LEVEL; also to LOG_FILE when set."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))
    logging.basicConfig(
        format=LOG_FORMAT,
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings)
    if not settings.SONIOX_API_KEY:
        logger.warning("SONIOX_API_KEY is not set; live sessions cannot connect upstream")
    yield


app = FastAPI(
    title="Live Medical Interpreter",
    description="Streaming bilingual transcript reconciliation over WebSocket",
    lifespan=lifespan,
)


@app.websocket("/ws/interpret")
async def websocket_interpret(websocket: WebSocket) -> None:
    """
    WebSocket: client sends encoded audio (binary) and JSON control messages (text).
    Server sends JSON transcript entries, partials, status and synthesized speech.
    """
    await websocket.accept()
    manager = WebSocketManager(websocket)
    try:
        await manager.run()
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Interpreter session %s crashed", manager.session_id)
        try:
            await websocket.close()
        except Exception:
            pass


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/api/languages", response_model=list[LanguageOut])
async def languages() -> list[LanguageOut]:
    return [LanguageOut(code=lang.code, name=lang.name) for lang in SUPPORTED_LANGUAGES]


@app.post("/api/translate", response_model=TranslateResponse)
async def translate(request: TranslateRequest) -> TranslateResponse:
    try:
        translated = await translate_text(request.text, request.source_language, request.target_language)
    except CollaboratorError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return TranslateResponse(success=True, translated_text=translated)


@app.post("/api/speak", response_model=SpeakResponse)
async def speak(request: SpeakRequest) -> SpeakResponse:
    """Synthesize `text`. TTS disabled is not an error: 200 with a 'TTS not configured' message."""
    logger.info("TTS request: lang=%s speaker=%s chars=%d", request.language, request.speaker, len(request.text))
    result = await synthesize_speech(request.text, request.language)
    if not result.configured:
        return SpeakResponse(
            success=False,
            message="TTS not configured",
            note="Set TTS_BACKEND=edge to enable speech synthesis",
        )
    if not result.audio:
        raise HTTPException(status_code=500, detail="Speech synthesis failed")
    return SpeakResponse(success=True, audio=result.audio, format=result.format)


@app.post("/api/transcribe", response_model=TranscribeResponse)
async def transcribe(audio: UploadFile | None = File(None)) -> TranscribeResponse:
    if audio is None:
        raise HTTPException(status_code=400, detail="No audio file provided")
    payload = await audio.read()
    try:
        result = await transcribe_audio(payload)
    except CollaboratorError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return TranscribeResponse(transcript=result.transcript, words=result.words)
