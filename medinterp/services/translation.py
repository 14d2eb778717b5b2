"""
Text translation collaborator (Soniox REST). Used outside the live session path,
e.g. to translate a typed message or re-translate an entry.
"""
from __future__ import annotations

import logging

import httpx

from medinterp.config import get_settings
from medinterp.errors import CollaboratorError
from medinterp.languages import normalize_language_code

logger = logging.getLogger(__name__)


async def translate_text(text: str, source_language: str, target_language: str) -> str:
    """
    Translate `text` from source to target. Returns the translated text ("" if the service sent none).
    Raises CollaboratorError when unconfigured (500) or the service fails (upstream status or 502).
    """
    settings = get_settings()
    if not settings.SONIOX_API_KEY:
        raise CollaboratorError("Soniox API key not configured", status_code=500)

    source = normalize_language_code(source_language)
    target = normalize_language_code(target_language)
    if source == target:
        return text

    url = f"{settings.SONIOX_API_URL.rstrip('/')}/translate"
    payload = {"text": text, "source_language": source, "target_language": target}
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
        logger.error("Soniox translation error %d: %s", e.response.status_code, e.response.text)
        raise CollaboratorError("Translation failed", status_code=e.response.status_code) from e
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Soniox translation request failed: %s", e)
        raise CollaboratorError("Translation failed") from e

    if not isinstance(data, dict):
        return ""
    return (data.get("translated_text") or data.get("text") or "").strip()
