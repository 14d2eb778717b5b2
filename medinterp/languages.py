"""
Supported languages and language-code normalization.

Codes are compared by primary subtag only: "en-US", "EN" and "en_gb" all collapse to "en".
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Language:
    code: str
    name: str


SUPPORTED_LANGUAGES: tuple[Language, ...] = (
    Language("en", "English"),
    Language("es", "Spanish"),
    Language("zh", "Chinese"),
    Language("ar", "Arabic"),
    Language("fr", "French"),
    Language("de", "German"),
    Language("hi", "Hindi"),
    Language("ru", "Russian"),
    Language("pt", "Portuguese"),
    Language("ja", "Japanese"),
    Language("ko", "Korean"),
    Language("vi", "Vietnamese"),
    Language("it", "Italian"),
    Language("pl", "Polish"),
    Language("uk", "Ukrainian"),
    Language("fa", "Persian"),
    Language("tr", "Turkish"),
    Language("nl", "Dutch"),
    Language("th", "Thai"),
    Language("sv", "Swedish"),
)

# Neural voice per target language for TTS of translated text.
VOICE_BY_LANGUAGE: dict[str, str] = {
    "en": "en-US-AvaMultilingualNeural",
    "es": "es-ES-ElviraNeural",
    "zh": "zh-CN-XiaoxiaoNeural",
    "ar": "ar-SA-ZariyahNeural",
    "fr": "fr-FR-DeniseNeural",
    "de": "de-DE-KatjaNeural",
    "hi": "hi-IN-SwaraNeural",
    "ru": "ru-RU-SvetlanaNeural",
    "pt": "pt-BR-FranciscaNeural",
    "ja": "ja-JP-NanamiNeural",
    "ko": "ko-KR-SunHiNeural",
    "vi": "vi-VN-HoaiMyNeural",
    "it": "it-IT-ElsaNeural",
    "pl": "pl-PL-ZofiaNeural",
    "uk": "uk-UA-PolinaNeural",
    "fa": "fa-IR-DilaraNeural",
    "tr": "tr-TR-EmelNeural",
    "nl": "nl-NL-ColetteNeural",
    "th": "th-TH-PremwadeeNeural",
    "sv": "sv-SE-SofieNeural",
}
DEFAULT_VOICE = "en-US-AvaMultilingualNeural"


def normalize_language_code(code: str | None) -> str:
    """Lowercase primary subtag; empty string when code is missing."""
    if not code or not isinstance(code, str):
        return ""
    return code.strip().lower().replace("_", "-").split("-")[0]


def is_supported(code: str | None) -> bool:
    normalized = normalize_language_code(code)
    return any(lang.code == normalized for lang in SUPPORTED_LANGUAGES)


def voice_for_language(code: str | None) -> str:
    return VOICE_BY_LANGUAGE.get(normalize_language_code(code), DEFAULT_VOICE)
