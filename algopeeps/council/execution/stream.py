"""Backend event stream consumer.

Pumps the backend push-event stream into mailbox notifications:

- ``message.part.updated`` with a non-empty delta -> ``AgentTextMsg``
- ``session.idle`` for the held session -> one ``AgentIdleMsg`` per agent
- anything else is ignored

One subscription per ``run`` call.  The loop ends when the backend closes the
stream or the task is cancelled; a stream failure is raised once as
``StreamError``.  Re-subscribing is the caller's decision.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from algopeeps.council.errors import BackendError, NoActiveSessionError, StreamError
from algopeeps.council.models.backend import MessagePartUpdated, SessionIdle
from algopeeps.council.models.enums import AgentName
from algopeeps.council.models.messages import AgentIdleMsg, AgentTextMsg

if TYPE_CHECKING:
    from algopeeps.council.backend.base import AgentBackend
    from algopeeps.council.managers.sessions import SessionManager
    from algopeeps.council.models.backend import BackendEvent
    from algopeeps.council.models.messages import MessageSink


class EventStreamConsumer:
    """Translate backend push events into sink messages."""

    def __init__(
        self,
        backend: AgentBackend,
        sessions: SessionManager,
        sink: MessageSink,
        *,
        agents: tuple[str, ...] = tuple(AgentName),
    ) -> None:
        self._backend = backend
        self._sessions = sessions
        self._sink = sink
        self._agents = agents

    async def run(self) -> int:
        """Consume the stream until it ends.  Returns the number of events seen."""
        if not self._sessions.session_id:
            msg = "no session available, call ensure_session first"
            raise NoActiveSessionError(msg)

        seen = 0
        logger.info("Subscribing to backend events (session={})", self._sessions.session_id)
        try:
            async for event in self._backend.stream_events():
                seen += 1
                self.handle(event)
        except BackendError as exc:
            msg = f"stream error: {exc}"
            raise StreamError(msg) from exc

        logger.info("Backend event stream ended after {} events", seen)
        return seen

    def handle(self, event: BackendEvent) -> None:
        """Apply one backend event.  Unrecognized events are dropped."""
        match event:
            case MessagePartUpdated(properties=props):
                if props.delta:
                    self._sink.send(AgentTextMsg(agent=props.part.agent_name, text=props.delta))
            case SessionIdle(properties=props):
                # Read the id per event: the manager may have recreated the session.
                if props.session_id and props.session_id == self._sessions.session_id:
                    for agent in self._agents:
                        self._sink.send(AgentIdleMsg(agent=agent))
            case _:
                pass
