"""Shared enumerations used across the council pipeline."""

from __future__ import annotations

from enum import StrEnum

# -- Editor wire protocol ------------------------------------------------------


class MessageType(StrEnum):
    """Envelope kind of an editor message."""

    BUFFER_UPDATE = "buffer_update"
    PING = "ping"
    DISCONNECT = "disconnect"


class EventType(StrEnum):
    """Editor autocommand that produced a buffer snapshot."""

    TEXT_CHANGED = "text_changed"
    BUFFER_WRITE = "buffer_write"
    BUFFER_ENTER = "buffer_enter"


# -- Agents --------------------------------------------------------------------


class AgentName(StrEnum):
    """Canonical identifiers of the agents the council always drives.

    The same value is used as the backend agent name, the dashboard key and
    the idle fan-out target.
    """

    CODE_REVIEWER = "code-reviewer"
    BUG_SPOTTER = "bug-spotter"


UNKNOWN_AGENT = "unknown"
"""Agent name used when a backend part carries no resolvable source."""


# -- Connection status ---------------------------------------------------------


class Source(StrEnum):
    """Origin of a connection-status notification."""

    EDITOR = "editor"
    OPENCODE = "opencode"


# -- Session -------------------------------------------------------------------


class SessionState(StrEnum):
    """Lifecycle state of the backend session held by the SessionManager."""

    NO_SESSION = "no_session"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


# -- Backend events ------------------------------------------------------------


class BackendEventType(StrEnum):
    """Push-event types the stream consumer understands."""

    MESSAGE_PART_UPDATED = "message.part.updated"
    SESSION_IDLE = "session.idle"
