"""Token classification: source speech, translation, or unknown (discarded)."""
from __future__ import annotations

from medinterp.languages import normalize_language_code
from medinterp.transcript.models import Token, TokenKind


def classify_token(token: Token, source_language: str, target_language: str) -> TokenKind:
    """
    Label one token for the active speaker's (source, target) pair.

    Translation marker wins over language equality. Untagged tokens without a
    translation marker are taken as the speaker's own language. When both roles
    speak the same language no translation is requested, so a matching code is source.
    """
    language = normalize_language_code(token.language_code)
    source = normalize_language_code(source_language)
    target = normalize_language_code(target_language)

    if token.translation_marker:
        return TokenKind.TRANSLATION
    if language and language == target and target != source:
        return TokenKind.TRANSLATION
    if language and language == source:
        return TokenKind.SOURCE
    if not language:
        return TokenKind.SOURCE
    return TokenKind.UNKNOWN


def classify_tokens(
    tokens: list[Token], source_language: str, target_language: str
) -> list[tuple[TokenKind, Token]]:
    return [(classify_token(t, source_language, target_language), t) for t in tokens]
