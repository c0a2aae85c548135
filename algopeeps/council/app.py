"""Council application wiring.

Builds the pipeline from settings and owns its lifecycle::

    EditorServer ──┐
                   ├──> DispatchSink ──> SessionManager ──> AgentBackend
    EventStreamConsumer ┘

Startup binds the editor listener first (a bind failure is the only fatal
error), then connects to the backend in the background.  Whenever a session
becomes ready (at startup or later, from an editor event) and no event
subscription is running, one is opened.  Backend failures are reported to
the dashboard, never raised.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from algopeeps.council.backend.opencode import OpencodeBackend
from algopeeps.council.dispatch import DispatchSink
from algopeeps.council.errors import BindError, NoActiveSessionError, SessionCreationError, StreamError
from algopeeps.council.execution.stream import EventStreamConsumer
from algopeeps.council.managers.sessions import SessionManager
from algopeeps.council.models.enums import Source
from algopeeps.council.models.messages import ConnectionStatusMsg, ErrorMsg
from algopeeps.council.render import DEFAULT_THEME, Theme, render_dashboard
from algopeeps.council.server import EditorServer

if TYPE_CHECKING:
    from algopeeps.council.backend.base import AgentBackend
    from algopeeps.council.settings import AlgopeepsSettings


class Council:
    """The running pipeline: listener, sink, session manager, stream consumer."""

    def __init__(
        self,
        settings: AlgopeepsSettings,
        *,
        backend: AgentBackend | None = None,
    ) -> None:
        self.settings = settings
        self.backend = backend or OpencodeBackend(settings.opencode_url, timeout=settings.request_timeout)
        self.sessions = SessionManager(
            self.backend,
            retry_attempts=settings.session_retry_attempts,
            retry_delay=settings.session_retry_delay,
            on_ready=self._on_session_ready,
        )
        self.sink = DispatchSink(self.sessions)
        self.server = EditorServer(settings.listen_addr, max_line_bytes=settings.max_line_bytes)
        self.server.set_sink(self.sink)
        self.consumer = EventStreamConsumer(self.backend, self.sessions, self.sink)

        self._sink_task: asyncio.Task[None] | None = None
        self._backend_task: asyncio.Task[None] | None = None
        self._stream_task: asyncio.Task[None] | None = None
        self._running = False

    async def __aenter__(self) -> Council:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    @property
    def streaming(self) -> bool:
        """An event subscription is currently open (or opening)."""
        return self._stream_task is not None and not self._stream_task.done()

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> str:
        """Start the pipeline.  Raises ``BindError`` if the listener cannot bind."""
        try:
            addr = await self.server.start()
        except BindError:
            await self.backend.aclose()
            raise
        self._running = True
        self._sink_task = asyncio.create_task(self.sink.run(), name="council-sink")
        self._backend_task = asyncio.create_task(self.connect_backend(), name="council-backend")
        logger.info("Council started (editor={}, backend={})", addr, self.settings.opencode_url)
        return addr

    async def stop(self) -> None:
        logger.info("Council shutting down")
        self._running = False
        await self.server.stop()

        for task in (self._backend_task, self._stream_task):
            if task is not None:
                task.cancel()
        await self.sessions.cancel()
        for task in (self._backend_task, self._stream_task):
            if task is not None:
                await self._reap(task)
        self._backend_task = self._stream_task = None

        if self._sink_task is not None:
            self.sink.close()
            await self._reap(self._sink_task)
            self._sink_task = None

        cancelled = self.sink.cancel_pending()
        if cancelled:
            logger.info("Cancelled {} in-flight prompt tasks", cancelled)
        await self.sink.wait_idle()

        await self.backend.aclose()

    @staticmethod
    async def _reap(task: asyncio.Task[None]) -> None:
        result = (await asyncio.gather(task, return_exceptions=True))[0]
        if isinstance(result, Exception):
            logger.opt(exception=result).error("Task {} failed", task.get_name())

    # -- Backend ---------------------------------------------------------------

    async def connect_backend(self) -> None:
        """Ensure a session at startup.  The subscription follows from ``on_ready``."""
        try:
            await self.sessions.ensure_session()
        except SessionCreationError as exc:
            logger.error("OpenCode session initialization failed: {}", exc)
            self.sink.send(ErrorMsg(error=exc, context="OpenCode session initialization"))
            return
        self.sink.send(ConnectionStatusMsg(connected=True, source=Source.OPENCODE))

    def _on_session_ready(self, session_id: str) -> None:
        if not self._running or self.streaming:
            return
        logger.info("Opening event subscription for session {}", session_id)
        self._stream_task = asyncio.create_task(self._consume(), name="council-stream")

    async def _consume(self) -> None:
        try:
            await self.consumer.run()
        except StreamError as exc:
            logger.error("OpenCode event stream failed: {}", exc)
            self.sink.send(ErrorMsg(error=exc, context="OpenCode event stream"))
        except NoActiveSessionError:
            logger.warning("Session dropped before the event subscription opened")
        self.sink.send(ConnectionStatusMsg(connected=False, source=Source.OPENCODE))


async def run_dashboard(council: Council, *, theme: Theme = DEFAULT_THEME) -> None:
    """Start *council* and redraw the dashboard until cancelled."""
    from rich.live import Live

    refresh = max(council.settings.refresh_per_second, 0.5)
    async with council:
        with Live(render_dashboard(council.sink.snapshot(), theme), refresh_per_second=refresh, screen=True) as live:
            while True:
                await asyncio.sleep(1 / refresh)
                live.update(render_dashboard(council.sink.snapshot(), theme))
