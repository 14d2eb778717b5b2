"""
Batch transcription collaborator (Soniox REST, short files).

Non-streaming: the whole audio payload goes in one request, finals only.
"""
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from medinterp.config import get_settings
from medinterp.errors import CollaboratorError

logger = logging.getLogger(__name__)


@dataclass
class BatchTranscript:
    transcript: str
    words: list[dict[str, Any]] = field(default_factory=list)


async def transcribe_audio(audio: bytes) -> BatchTranscript:
    """Transcribe one complete audio payload. Raises CollaboratorError on missing key or API failure."""
    settings = get_settings()
    if not settings.SONIOX_API_KEY:
        raise CollaboratorError("API key not configured", status_code=500)
    if not audio:
        raise CollaboratorError("No audio provided", status_code=400)

    url = f"{settings.SONIOX_API_URL.rstrip('/')}/transcribe-file-short"
    payload = {
        "audio": base64.b64encode(audio).decode("ascii"),
        "model": settings.SONIOX_BATCH_MODEL,
        "include_nonfinal": False,
    }
    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            resp = await client.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {settings.SONIOX_API_KEY}", "Content-Type": "application/json"},
            )
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPStatusError as e:
        logger.error("Soniox API error %d: %s", e.response.status_code, e.response.text)
        raise CollaboratorError("Soniox API error", status_code=e.response.status_code) from e
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Soniox transcription request failed: %s", e)
        raise CollaboratorError("Failed to transcribe audio") from e

    if not isinstance(data, dict):
        return BatchTranscript(transcript="")
    words = data.get("words")
    return BatchTranscript(
        transcript=(data.get("text") or "").strip(),
        words=words if isinstance(words, list) else [],
    )
