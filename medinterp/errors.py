"""Exceptions raised across the interpreter service."""
from __future__ import annotations


class InterpreterError(Exception):
    """Base for all medinterp errors."""


class MalformedMessageError(InterpreterError):
    """Upstream stream message could not be parsed. The message is dropped."""


class AudioSourceError(InterpreterError):
    """Audio source could not be acquired (no device, permission, or client gone)."""


class StreamConnectionError(InterpreterError):
    """Upstream streaming connection failed to open or broke while open."""


class SessionStateError(InterpreterError):
    """User action is not valid in the current session phase."""


class CollaboratorError(InterpreterError):
    """A REST collaborator (translation, batch transcription) is unconfigured or failed."""

    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(message)
        self.status_code = status_code
