"""REST collaborators: text translation and batch transcription."""
from .transcription import BatchTranscript, transcribe_audio
from .translation import translate_text

__all__ = ["BatchTranscript", "transcribe_audio", "translate_text"]
