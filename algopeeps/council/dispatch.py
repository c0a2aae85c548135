"""Dispatch sink -- the council's mailbox and dashboard state owner.

Everything that happens in the pipeline ends up here as a message:

- editor connection status and decoded buffer events (from ``EditorServer``)
- agent text and idle notifications (from ``EventStreamConsumer``)
- thinking markers, backend status and errors (from the sink's own fan-out)

``send`` only enqueues, so producers never block on the dashboard.  A single
consumer (``run``) applies messages one at a time; it is the only code that
mutates ``DashboardState``, which therefore needs no lock.

Buffer events additionally trigger a fan-out: the content is shaped, the
prompt is rendered and submitted to every agent in independent tasks.  Agent
I/O never stalls the mailbox, and prompt failures are logged, not shown.
"""

from __future__ import annotations

import asyncio
import copy
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from algopeeps.council.errors import NoActiveSessionError, PromptError, SessionCreationError
from algopeeps.council.execution.prompt import build_prompt, shape_content
from algopeeps.council.models.enums import AgentName, Source
from algopeeps.council.models.messages import (
    AgentIdleMsg,
    AgentTextMsg,
    AgentThinkingMsg,
    BufferEventMsg,
    ConnectionStatusMsg,
    ErrorMsg,
)

if TYPE_CHECKING:
    from collections.abc import Coroutine
    from typing import Any

    from algopeeps.council.managers.sessions import SessionManager
    from algopeeps.council.models.messages import Message

OUTCOME_HISTORY = 64

_CLOSE = object()


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass
class DashboardState:
    """Everything the dashboard renders."""

    # -- Agents ----------------------------------------------------------------
    agents: dict[str, str] = field(default_factory=dict)
    """Accumulated output per agent name."""
    thinking: dict[str, bool] = field(default_factory=dict)

    # -- Connections -----------------------------------------------------------
    editor_connections: int = 0
    opencode_connected: bool = False
    session_id: str = ""

    # -- Current buffer --------------------------------------------------------
    filename: str = ""
    filetype: str = ""
    cursor_line: int = 0
    cursor_col: int = 0
    line_count: int = 0
    last_event: str = ""

    # -- Errors ----------------------------------------------------------------
    last_error: str = ""

    @property
    def editor_connected(self) -> bool:
        return self.editor_connections > 0


@dataclass(frozen=True)
class PromptOutcome:
    """Result of one fire-and-forget prompt submission."""

    agent: str
    ok: bool
    error: str | None = None


# ---------------------------------------------------------------------------
# Sink
# ---------------------------------------------------------------------------


class DispatchSink:
    """Mailbox consumer applying messages to ``DashboardState``.

    Parameters
    ----------
    sessions:
        Session manager used for prompt fan-out.  ``None`` disables fan-out
        (the dashboard still tracks the editor).
    agents:
        Agent names every buffer event is sent to.
    """

    def __init__(
        self,
        sessions: SessionManager | None = None,
        *,
        agents: tuple[str, ...] = tuple(AgentName),
    ) -> None:
        self._sessions = sessions
        self._agents = agents
        self._queue: asyncio.Queue[Message | object] = asyncio.Queue()
        self._tasks: set[asyncio.Task[None]] = set()
        self.state = DashboardState()
        self.outcomes: deque[PromptOutcome] = deque(maxlen=OUTCOME_HISTORY)

    # -- Mailbox ---------------------------------------------------------------

    def send(self, message: Message) -> None:
        """Enqueue *message*.  Never blocks."""
        self._queue.put_nowait(message)

    def close(self) -> None:
        """Stop ``run`` once every message queued so far has been applied."""
        self._queue.put_nowait(_CLOSE)

    async def run(self) -> None:
        """Apply messages until ``close`` is called."""
        while True:
            message = await self._queue.get()
            if message is _CLOSE:
                return
            try:
                self.apply(message)  # type: ignore[arg-type]
            except Exception:
                logger.exception("Failed to apply {}", type(message).__name__)

    @property
    def pending(self) -> int:
        """Messages waiting to be applied."""
        return self._queue.qsize()

    # -- State -----------------------------------------------------------------

    def apply(self, message: Message) -> None:
        """Apply one message to the dashboard state."""
        state = self.state
        match message:
            case ConnectionStatusMsg(connected=connected, source=Source.EDITOR):
                delta = 1 if connected else -1
                state.editor_connections = max(0, state.editor_connections + delta)
            case ConnectionStatusMsg(connected=connected, source=Source.OPENCODE):
                state.opencode_connected = connected
            case ErrorMsg():
                state.last_error = message.describe()
            case AgentTextMsg(agent=agent, text=text):
                state.agents[agent] = state.agents.get(agent, "") + text
                state.thinking[agent] = False
            case AgentIdleMsg(agent=agent):
                state.thinking[agent] = False
            case AgentThinkingMsg(agent=agent):
                state.thinking[agent] = True
            case BufferEventMsg():
                state.filename = message.filename
                state.filetype = message.filetype
                state.cursor_line = message.cursor_line
                state.cursor_col = message.cursor_col
                state.line_count = message.line_count
                state.last_event = message.last_event
                if message.actionable and self._sessions is not None:
                    self._spawn(self._fan_out(message))
            case _:
                logger.debug("Ignoring unknown message {!r}", message)

    def snapshot(self) -> DashboardState:
        """Deep copy of the current state, safe to hand to a renderer."""
        snap = copy.deepcopy(self.state)
        if self._sessions is not None:
            snap.session_id = self._sessions.session_id
        return snap

    # -- Fan-out ---------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fan_out(self, msg: BufferEventMsg) -> None:
        assert self._sessions is not None  # noqa: S101
        try:
            await self._sessions.ensure_session()
        except SessionCreationError as exc:
            logger.error("Cannot reach the agent backend: {}", exc)
            self.send(ErrorMsg(error=exc, context="OpenCode session"))
            self.send(ConnectionStatusMsg(connected=False, source=Source.OPENCODE))
            return
        self.send(ConnectionStatusMsg(connected=True, source=Source.OPENCODE))

        prompt = build_prompt(
            path=msg.path or msg.filename,
            filetype=msg.filetype,
            line=msg.cursor_line,
            col=msg.cursor_col,
            event=msg.last_event,
            content=shape_content(msg.content, msg.cursor_line),
        )
        for agent in self._agents:
            self.send(AgentThinkingMsg(agent=agent))
            self._spawn(self._submit(agent, prompt))

    async def _submit(self, agent: str, prompt: str) -> None:
        assert self._sessions is not None  # noqa: S101
        try:
            await self._sessions.send_prompt(agent, prompt)
        except (PromptError, NoActiveSessionError) as exc:
            logger.warning("Prompt to {} dropped: {}", agent, exc)
            self.outcomes.append(PromptOutcome(agent=agent, ok=False, error=str(exc)))
        else:
            self.outcomes.append(PromptOutcome(agent=agent, ok=True))

    async def wait_idle(self) -> None:
        """Wait for every in-flight fan-out and submission task."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_pending(self) -> int:
        """Cancel in-flight fan-out and submission tasks.  Returns how many."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        return len(tasks)
