"""Mailbox messages delivered to the dispatch sink.

Producers (editor connections, the backend stream consumer, fan-out tasks)
never touch dashboard state directly; they post one of these and the sink's
single consumer applies it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from algopeeps.council.models.enums import Source
from algopeeps.council.models.events import BufferEvent


@dataclass(frozen=True)
class ConnectionStatusMsg:
    connected: bool
    source: Source


@dataclass(frozen=True)
class BufferEventMsg:
    """Flattened view of a decoded ``BufferEvent``."""

    filename: str
    path: str
    filetype: str
    cursor_line: int
    cursor_col: int
    line_count: int
    last_event: str
    content: str
    actionable: bool = True

    @classmethod
    def from_event(cls, event: BufferEvent) -> BufferEventMsg:
        buf = event.buffer
        return cls(
            filename=buf.name,
            path=buf.path,
            filetype=buf.filetype,
            cursor_line=buf.cursor.line,
            cursor_col=buf.cursor.col,
            line_count=buf.line_count,
            last_event=str(event.event),
            content=buf.content,
            actionable=event.is_actionable,
        )


@dataclass(frozen=True)
class AgentTextMsg:
    """Incremental text produced by an agent."""

    agent: str
    text: str


@dataclass(frozen=True)
class AgentIdleMsg:
    agent: str


@dataclass(frozen=True)
class AgentThinkingMsg:
    """A prompt is on its way to *agent*."""

    agent: str


@dataclass(frozen=True)
class ErrorMsg:
    """Most recent failure, shown in the status bar."""

    error: BaseException
    context: str

    def describe(self) -> str:
        return f"{self.context}: {self.error}"


Message = ConnectionStatusMsg | BufferEventMsg | AgentTextMsg | AgentIdleMsg | AgentThinkingMsg | ErrorMsg


@runtime_checkable
class MessageSink(Protocol):
    """Delivery target shared by the listener and the stream consumer.

    ``send`` must not block the caller.
    """

    def send(self, message: Message) -> None: ...
