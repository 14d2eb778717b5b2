"""
Ingestion adapter for the upstream streaming recognition/translation protocol.

The upstream sends JSON objects whose token fields vary (language under several
key names, translation status as free text, missing flags). They are mapped onto
the strict Token / StreamMessage schema here, once, so the engine never looks at
raw payloads.

Client -> server (once per connection): configuration message, see build_config_message().
Client -> server (thereafter): binary audio chunks.
Server -> client: {"error": ...} | {"status": "error", ...} | {"tokens": [...], "finished"?: bool}
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from medinterp.errors import MalformedMessageError
from medinterp.languages import normalize_language_code
from medinterp.transcript.models import Token

_LANGUAGE_KEYS = ("language_code", "language", "lang", "language_code_bcp_47", "lang_code")


@dataclass
class StreamMessage:
    tokens: list[Token] = field(default_factory=list)
    error: dict[str, Any] | None = None
    finished: bool = False

    @property
    def is_error(self) -> bool:
        return self.error is not None


def _token_language(raw: dict[str, Any]) -> str:
    for key in _LANGUAGE_KEYS:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return normalize_language_code(value)
    return ""


def _token_is_final(raw: dict[str, Any]) -> bool:
    if "is_final" in raw:
        return raw.get("is_final") is True
    return raw.get("final") is True


def _token_translation_marker(raw: dict[str, Any]) -> bool:
    if raw.get("is_translation") is True:
        return True
    status = raw.get("translation_status")
    return isinstance(status, str) and "translation" in status.lower()


def parse_token(raw: dict[str, Any]) -> Token:
    text = raw.get("text")
    return Token(
        text=text if isinstance(text, str) else "",
        language_code=_token_language(raw),
        is_final=_token_is_final(raw),
        translation_marker=_token_translation_marker(raw),
    )


def parse_stream_message(raw: str | bytes) -> StreamMessage:
    """Parse one upstream frame. Raises MalformedMessageError if it is not a JSON object."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, UnicodeDecodeError) as e:
        raise MalformedMessageError(f"Stream message is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedMessageError(f"Stream message is not an object: {type(data).__name__}")

    if data.get("error") or data.get("status") == "error":
        return StreamMessage(error=data)

    raw_tokens = data.get("tokens")
    tokens: list[Token] = []
    if isinstance(raw_tokens, list):
        tokens = [parse_token(t) for t in raw_tokens if isinstance(t, dict)]
    return StreamMessage(tokens=tokens, finished=data.get("finished") is True)


def build_config_message(
    api_key: str,
    model: str,
    source_language: str,
    target_language: str,
    audio_format: str = "auto",
) -> dict[str, Any]:
    """First message on every new connection. Translation is requested only when languages differ."""
    source = normalize_language_code(source_language)
    target = normalize_language_code(target_language)
    message: dict[str, Any] = {
        "api_key": api_key,
        "model": model,
        "audio_format": audio_format,
        "include_nonfinal": True,
        "language_hints": [source],
    }
    if target and source != target:
        message["translation"] = {"type": "one_way", "target_language": target}
    return message
