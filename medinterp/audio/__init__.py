"""Audio pipeline: client-fed source and fixed-cadence capture."""
from .capture import AudioCapture
from .source import AudioSource, ClientAudioSource

__all__ = ["AudioCapture", "AudioSource", "ClientAudioSource"]
