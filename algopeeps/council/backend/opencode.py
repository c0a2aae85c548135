"""OpenCode HTTP backend.

Talks to a running ``opencode serve`` instance::

    GET  /session/{id}             liveness probe
    POST /session                  {"title": ...} -> {"id": ...}
    POST /session/{id}/message     {"agent": ..., "parts": [{"type": "text", "text": ...}]}
    GET  /event                    Server-Sent Events, one JSON object per event

``POST /session/{id}/message`` only returns once the agent has finished
answering, so prompt requests have no read timeout; the text itself arrives
incrementally over ``/event``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from algopeeps.council.errors import BackendError
from algopeeps.council.models.backend import parse_backend_event
from algopeeps.council.settings import DEFAULT_OPENCODE_URL

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from algopeeps.council.models.backend import BackendEvent


class OpencodeBackend:
    """``httpx`` implementation of the ``AgentBackend`` protocol."""

    def __init__(
        self,
        base_url: str = DEFAULT_OPENCODE_URL,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or DEFAULT_OPENCODE_URL
        self._timeout = timeout
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> OpencodeBackend:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- Sessions --------------------------------------------------------------

    async def get_session(self, session_id: str) -> dict[str, Any]:
        return await self._request_object("GET", f"/session/{session_id}")

    async def create_session(self, title: str) -> str:
        body = await self._request_object("POST", "/session", json={"title": title})
        session_id = body.get("id")
        if not session_id or not isinstance(session_id, str):
            msg = "POST /session returned no session id"
            raise BackendError(msg)
        return session_id

    # -- Prompts ---------------------------------------------------------------

    async def send_prompt(self, session_id: str, agent: str, text: str) -> None:
        await self._request(
            "POST",
            f"/session/{session_id}/message",
            json={"agent": agent, "parts": [{"type": "text", "text": text}]},
            timeout=httpx.Timeout(self._timeout, read=None),
        )

    # -- Events ----------------------------------------------------------------

    async def stream_events(self) -> AsyncIterator[BackendEvent]:
        """Yield parsed events from ``GET /event`` until the server closes it."""
        try:
            async with self._client.stream(
                "GET",
                "/event",
                headers={"Accept": "text/event-stream"},
                timeout=httpx.Timeout(self._timeout, read=None),
            ) as response:
                if response.is_error:
                    msg = f"GET /event returned {response.status_code}"
                    raise BackendError(msg, status_code=response.status_code)
                logger.debug("Event stream opened: {}", self.base_url)

                data_lines: list[str] = []
                async for line in response.aiter_lines():
                    if not line:
                        # Blank line terminates one SSE event.
                        if data_lines:
                            yield parse_backend_event("\n".join(data_lines))
                            data_lines = []
                        continue
                    if line.startswith(":"):
                        continue
                    field, _, value = line.partition(":")
                    if field == "data":
                        data_lines.append(value.removeprefix(" "))
                if data_lines:
                    yield parse_backend_event("\n".join(data_lines))
        except httpx.HTTPError as exc:
            msg = f"event stream failed: {exc}"
            raise BackendError(msg) from exc
        logger.debug("Event stream closed by server")

    # -- Lifecycle -------------------------------------------------------------

    async def aclose(self) -> None:
        await self._client.aclose()

    # -- Helpers ---------------------------------------------------------------

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            msg = f"{method} {url} failed: {exc}"
            raise BackendError(msg) from exc
        if response.is_error:
            msg = f"{method} {url} returned {response.status_code}"
            raise BackendError(msg, status_code=response.status_code)
        return response

    async def _request_object(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """Like ``_request`` but the 2xx body must be a JSON object."""
        response = await self._request(method, url, **kwargs)
        try:
            body = response.json()
        except ValueError as exc:
            msg = f"{method} {url} returned a non-JSON body"
            raise BackendError(msg, status_code=response.status_code) from exc
        if not isinstance(body, dict):
            msg = f"{method} {url} returned {type(body).__name__}, expected an object"
            raise BackendError(msg, status_code=response.status_code)
        return body
