"""Agent backend interface.

The session manager and the stream consumer only ever talk to the backend
through this protocol, so tests can swap in an in-memory fake and the
OpenCode HTTP client stays an implementation detail.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from algopeeps.council.models.backend import BackendEvent


@runtime_checkable
class AgentBackend(Protocol):
    """Async protocol for an agent backend hosting named agents."""

    async def get_session(self, session_id: str) -> dict[str, Any]:
        """Fetch a session.  Raises ``BackendError`` if it is gone or unreachable."""
        ...

    async def create_session(self, title: str) -> str:
        """Create a session and return its backend-assigned id."""
        ...

    async def send_prompt(self, session_id: str, agent: str, text: str) -> None:
        """Submit a single text-part prompt to *agent* within the session."""
        ...

    def stream_events(self) -> AsyncIterator[BackendEvent]:
        """Subscribe to the push-event stream.

        The iterator ends when the backend closes the stream and raises
        ``BackendError`` on stream failures.  Cancelling the consuming task
        closes the underlying connection.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...
