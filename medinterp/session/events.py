"""
Events processed by an InterpreterSession, strictly one at a time.

Stream messages, timer expiries, connection loss and user actions all funnel
through the same queue, so no two of them ever interleave mid-update.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from medinterp.transcript.models import SessionConfig, SpeakerRole
from medinterp.transcript.timer import DebounceTimer


@dataclass
class StreamMessageReceived:
    connection_id: int
    role: SpeakerRole
    raw: Any


@dataclass
class TimerExpired:
    role: SpeakerRole
    timer: DebounceTimer


@dataclass
class ConnectionLost:
    connection_id: int
    error: Exception | None = None


class ActionKind(str, Enum):
    START = "start"
    SWITCH = "switch"
    STOP = "stop"
    CLEAR = "clear"
    CONFIGURE = "configure"


@dataclass
class UserAction:
    kind: ActionKind
    role: SpeakerRole | None = None
    config: SessionConfig | None = None
    # Field-level config changes, merged onto the config current when the action is processed
    changes: dict[str, Any] = field(default_factory=dict)
    # Resolved with the action's outcome (or exception) once processed
    result: "asyncio.Future[Any] | None" = field(default=None, repr=False)


SessionEvent = Union[StreamMessageReceived, TimerExpired, ConnectionLost, UserAction]
