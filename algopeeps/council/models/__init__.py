"""Data models for the council pipeline."""

from algopeeps.council.models.backend import (
    BackendEvent,
    MessagePartUpdated,
    Part,
    PartSource,
    SessionIdle,
    UnrecognizedEvent,
    parse_backend_event,
)
from algopeeps.council.models.enums import (
    UNKNOWN_AGENT,
    AgentName,
    BackendEventType,
    EventType,
    MessageType,
    SessionState,
    Source,
)
from algopeeps.council.models.events import Buffer, BufferEvent, Cursor, decode, rule_violations, validate
from algopeeps.council.models.messages import (
    AgentIdleMsg,
    AgentTextMsg,
    AgentThinkingMsg,
    BufferEventMsg,
    ConnectionStatusMsg,
    ErrorMsg,
    Message,
    MessageSink,
)

__all__ = [
    "UNKNOWN_AGENT",
    # Messages
    "AgentIdleMsg",
    # Enums
    "AgentName",
    "AgentTextMsg",
    "AgentThinkingMsg",
    # Backend events
    "BackendEvent",
    "BackendEventType",
    # Editor events
    "Buffer",
    "BufferEvent",
    "BufferEventMsg",
    "ConnectionStatusMsg",
    "Cursor",
    "ErrorMsg",
    "EventType",
    "Message",
    "MessageSink",
    "MessagePartUpdated",
    "MessageType",
    "Part",
    "PartSource",
    "SessionIdle",
    "SessionState",
    "Source",
    "UnrecognizedEvent",
    "decode",
    "parse_backend_event",
    "rule_violations",
    "validate",
]
