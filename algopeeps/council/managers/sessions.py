"""Session manager -- owns the single backend conversation the council uses.

State machine::

    NO_SESSION --create ok--> CONNECTED
        ^   \\                    |
        |    RECONNECTING <------+ (liveness probe failed)
        |        |
        +--------+ (retry budget exhausted)

``ensure_session`` is cheap when the held session is alive (one probe) and
otherwise creates a fresh one with a bounded, fixed-delay retry.  Callers
that arrive while an ensure is in flight await that same attempt, so a burst
of editor events costs one probe or one retry budget and shares its outcome.
The manager is the only writer of ``session_id`` / ``state``; callers read
them.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import datetime
from typing import TYPE_CHECKING

from loguru import logger

from algopeeps.council.errors import BackendError, NoActiveSessionError, PromptError, SessionCreationError
from algopeeps.council.models.enums import SessionState

if TYPE_CHECKING:
    from collections.abc import Callable

    from algopeeps.council.backend.base import AgentBackend

RETRY_ATTEMPTS = 3
RETRY_DELAY = 1.0
"""Seconds between two creation attempts."""

TITLE_PREFIX = "Algopeeps Council"


def session_title(now: datetime | None = None) -> str:
    """Title for a new session, e.g. ``Algopeeps Council - 2024-05-01``."""
    now = now or datetime.now()
    return f"{TITLE_PREFIX} - {now:%Y-%m-%d}"


class SessionManager:
    """Manages the backend session lifecycle (create -> probe -> recreate).

    Instantiated once by the application.

    Parameters
    ----------
    backend:
        Agent backend the session lives in.
    retry_attempts, retry_delay:
        Creation budget: attempts, and seconds between two attempts.
    on_ready:
        Called with the session id every time ``ensure_session`` succeeds.
        The application uses it to (re)open the event subscription.
    """

    def __init__(
        self,
        backend: AgentBackend,
        *,
        retry_attempts: int = RETRY_ATTEMPTS,
        retry_delay: float = RETRY_DELAY,
        on_ready: Callable[[str], None] | None = None,
    ) -> None:
        self._backend = backend
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay
        self._on_ready = on_ready
        self._session_id = ""
        self._state = SessionState.NO_SESSION
        self._inflight: asyncio.Task[str] | None = None

    # -- Query -----------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state == SessionState.CONNECTED

    # -- Ensure ----------------------------------------------------------------

    async def ensure_session(self) -> str:
        """Return the id of a live session, creating one if needed.

        Raises ``SessionCreationError`` (chained to the last backend failure)
        when every creation attempt fails.  Concurrent callers share one
        in-flight attempt; cancelling a caller does not cancel the attempt.
        """
        task = self._inflight
        if task is None:
            task = asyncio.create_task(self._ensure(), name="ensure-session")
            task.add_done_callback(self._ensure_done)
            self._inflight = task
        return await asyncio.shield(task)

    def _ensure_done(self, task: asyncio.Task[str]) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # Mark retrieved: callers may all have been cancelled meanwhile.
            task.exception()

    async def _ensure(self) -> str:
        if self._state == SessionState.CONNECTED:
            if await self._probe():
                self._notify_ready()
                return self._session_id
            logger.warning("Session {} failed its liveness probe, recreating", self._session_id)
            self._session_id = ""
            self._state = SessionState.NO_SESSION

        await self._create_with_retry()
        self._notify_ready()
        return self._session_id

    def _notify_ready(self) -> None:
        if self._on_ready is not None:
            self._on_ready(self._session_id)

    async def _probe(self) -> bool:
        try:
            await self._backend.get_session(self._session_id)
        except BackendError as exc:
            logger.debug("Liveness probe for session {} failed: {}", self._session_id, exc)
            return False
        return True

    async def _create_with_retry(self) -> str:
        self._state = SessionState.RECONNECTING
        last_error: BackendError | None = None

        try:
            for attempt in range(1, self._retry_attempts + 1):
                if attempt > 1:
                    await asyncio.sleep(self._retry_delay)
                try:
                    session_id = await self._backend.create_session(session_title())
                except BackendError as exc:
                    last_error = exc
                    logger.warning("Session creation attempt {}/{} failed: {}", attempt, self._retry_attempts, exc)
                    continue

                self._session_id = session_id
                self._state = SessionState.CONNECTED
                logger.info("Session created: {} (attempt {})", session_id, attempt)
                return session_id
        except BaseException:
            self._state = SessionState.NO_SESSION
            raise

        self._state = SessionState.NO_SESSION
        raise SessionCreationError(self._retry_attempts, last_error) from last_error

    async def cancel(self) -> None:
        """Abandon an in-flight ensure (used at shutdown)."""
        task = self._inflight
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await task

    # -- Prompt ----------------------------------------------------------------

    async def send_prompt(self, agent: str, text: str) -> None:
        """Submit *text* to *agent* in the held session.  No retry."""
        session_id = self._session_id
        if not session_id:
            msg = "no session available, call ensure_session first"
            raise NoActiveSessionError(msg)
        try:
            await self._backend.send_prompt(session_id, agent, text)
        except BackendError as exc:
            msg = f"failed to send prompt to {agent}: {exc}"
            raise PromptError(msg) from exc
        logger.debug("Prompt delivered to {} ({} chars)", agent, len(text))
