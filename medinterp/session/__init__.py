"""Live session: single-consumer event processing and connection orchestration."""
from .engine import InterpreterSession
from .events import ActionKind, ConnectionLost, SessionEvent, StreamMessageReceived, TimerExpired, UserAction
from .orchestrator import SessionOrchestrator, SessionPhase

__all__ = [
    "ActionKind",
    "ConnectionLost",
    "InterpreterSession",
    "SessionEvent",
    "SessionOrchestrator",
    "SessionPhase",
    "StreamMessageReceived",
    "TimerExpired",
    "UserAction",
]
