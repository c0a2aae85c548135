"""Shared test fixtures: an in-memory agent backend and a recording sink.

Nothing here touches the network except the listener tests, which bind real
sockets on 127.0.0.1 with an ephemeral port.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import AsyncIterator, Callable

import pytest

from algopeeps.council.errors import BackendError
from algopeeps.council.managers.sessions import SessionManager
from algopeeps.council.models.backend import BackendEvent
from algopeeps.council.models.messages import Message
from algopeeps.council.settings import _get_settings_cached


class FakeBackend:
    """In-memory ``AgentBackend`` with failure switches.

    Session ids are deterministic: ``ses_0001``, ``ses_0002``, ...
    """

    def __init__(self) -> None:
        self.sessions: dict[str, dict] = {}
        self.titles: list[str] = []
        self.create_calls: list[float] = []
        self.get_calls = 0
        self.prompts: list[tuple[str, str, str]] = []

        # Failure switches
        self.fail_creates = 0
        """Number of upcoming ``create_session`` calls that fail."""
        self.always_fail_create = False
        self.probe_fails = False
        self.prompt_error: BackendError | None = None

        # Stream behaviour
        self.events: list[BackendEvent] = []
        self.stream_error: BackendError | None = None
        self.stream_blocks = False
        self.stream_opened = asyncio.Event()

        self.closed = False

    async def get_session(self, session_id: str) -> dict:
        self.get_calls += 1
        if self.probe_fails or session_id not in self.sessions:
            msg = f"GET /session/{session_id} returned 404"
            raise BackendError(msg, status_code=404)
        return self.sessions[session_id]

    async def create_session(self, title: str) -> str:
        self.create_calls.append(time.monotonic())
        if self.always_fail_create or self.fail_creates > 0:
            self.fail_creates = max(0, self.fail_creates - 1)
            msg = f"create failed #{len(self.create_calls)}"
            raise BackendError(msg, status_code=500)
        session_id = f"ses_{len(self.sessions) + 1:04d}"
        self.sessions[session_id] = {"id": session_id, "title": title}
        self.titles.append(title)
        return session_id

    async def send_prompt(self, session_id: str, agent: str, text: str) -> None:
        if self.prompt_error is not None:
            raise self.prompt_error
        self.prompts.append((session_id, agent, text))

    async def stream_events(self) -> AsyncIterator[BackendEvent]:
        self.stream_opened.set()
        for event in self.events:
            yield event
        if self.stream_error is not None:
            raise self.stream_error
        if self.stream_blocks:
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


class RecordingSink:
    """``MessageSink`` that just records what it receives."""

    def __init__(self) -> None:
        self.messages: list[Message] = []

    def send(self, message: Message) -> None:
        self.messages.append(message)

    def of_type(self, cls: type) -> list:
        return [m for m in self.messages if isinstance(m, cls)]


async def _eventually(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            msg = f"condition not met within {timeout}s"
            raise AssertionError(msg)
        await asyncio.sleep(interval)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate tests from ALGOPEEPS_* variables in the developer's shell."""
    for key in list(os.environ):
        if key.startswith("ALGOPEEPS_"):
            monkeypatch.delenv(key)
    _get_settings_cached.cache_clear()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sessions(backend: FakeBackend) -> SessionManager:
    return SessionManager(backend, retry_delay=0)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def eventually() -> Callable[..., object]:
    """Poll a predicate until it holds (or fail after ``timeout`` seconds)."""
    return _eventually
