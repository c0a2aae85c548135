"""TCP listener for editor connections.

Each editor (one Neovim instance) opens a plain TCP connection and writes one
JSON ``BufferEvent`` per line.  Nothing is ever written back.

Every accepted connection is drained by its own task: lines are decoded and
delivered to the sink in order, so a slow sink only stalls that connection.
Bad lines are skipped without closing the connection; a read error or EOF
ends the reader.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from loguru import logger

from algopeeps.council.errors import BindError, DecodeError
from algopeeps.council.models.enums import Source
from algopeeps.council.models.events import decode, rule_violations, validate
from algopeeps.council.models.messages import BufferEventMsg, ConnectionStatusMsg
from algopeeps.council.registry import ClientRegistry

if TYPE_CHECKING:
    from algopeeps.council.models.messages import Message, MessageSink

DEFAULT_MAX_LINE_BYTES = 64 * 1024 * 1024


def split_host_port(addr: str) -> tuple[str | None, int]:
    """Split ``host:port``; an empty host (``":9999"``) means all interfaces."""
    host, sep, port = addr.rpartition(":")
    if not sep:
        msg = f"address {addr!r} is missing a port"
        raise ValueError(msg)
    host = host.strip("[]")
    try:
        return host or None, int(port)
    except ValueError:
        msg = f"address {addr!r} has an invalid port"
        raise ValueError(msg) from None


class EditorServer:
    """Accepts editor connections and forwards decoded events to a sink."""

    def __init__(self, addr: str, *, max_line_bytes: int = DEFAULT_MAX_LINE_BYTES) -> None:
        self._addr = addr
        self._max_line_bytes = max_line_bytes
        self._server: asyncio.Server | None = None
        self._sink: MessageSink | None = None
        self.registry = ClientRegistry()

    # -- Wiring ----------------------------------------------------------------

    def set_sink(self, sink: MessageSink | None) -> None:
        """Set the delivery target.  Safe before or after ``start``."""
        self._sink = sink

    @property
    def addr(self) -> str:
        """Listening address once started, the configured one before."""
        if self._server is None or not self._server.sockets:
            return self._addr
        host, port = self._server.sockets[0].getsockname()[:2]
        if ":" in host:
            return f"[{host}]:{port}"
        return f"{host}:{port}"

    @property
    def client_count(self) -> int:
        return self.registry.active_count

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> str:
        """Bind and start accepting.  Returns the actual listening address."""
        try:
            host, port = split_host_port(self._addr)
            self._server = await asyncio.start_server(
                self._handle_connection,
                host=host,
                port=port,
                limit=self._max_line_bytes,
            )
        except (OSError, ValueError) as exc:
            msg = f"failed to start editor listener on {self._addr!r}: {exc}"
            raise BindError(msg) from exc

        logger.info("Editor listener started on {}", self.addr)
        return self.addr

    async def stop(self) -> None:
        """Close the listening socket.  Idempotent.

        Already-accepted connections keep draining until their own read fails.
        """
        server, self._server = self._server, None
        if server is None:
            return
        server.close()
        logger.info("Editor listener stopped ({} connections still open)", self.client_count)

    # -- Connections -----------------------------------------------------------

    def _deliver(self, message: Message) -> None:
        # No sink yet: drop silently.
        if self._sink is not None:
            self._sink.send(message)

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        conn = await self.registry.register(peer=peer, writer=writer)
        logger.info("Editor connected: {} from {}", conn.client_id, peer)
        self._deliver(ConnectionStatusMsg(connected=True, source=Source.EDITOR))

        try:
            await self._read_lines(conn.client_id, reader)
        except (OSError, asyncio.IncompleteReadError) as exc:
            logger.debug("Editor {} read failed: {}", conn.client_id, exc)
        finally:
            await self.registry.unregister(conn.client_id)
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()
            logger.info("Editor disconnected: {}", conn.client_id)
            self._deliver(ConnectionStatusMsg(connected=False, source=Source.EDITOR))

    @staticmethod
    async def _discard_line(reader: asyncio.StreamReader, consumed: int) -> None:
        """Drop input up to and including the next newline.

        *consumed* is the byte count the overrun error reported as safe to
        drop.  Raises ``IncompleteReadError`` if the stream ends first.
        """
        while True:
            await reader.readexactly(consumed)
            try:
                await reader.readuntil(b"\n")
            except asyncio.LimitOverrunError as exc:
                consumed = exc.consumed
            else:
                return

    async def _read_lines(self, client_id: str, reader: asyncio.StreamReader) -> None:
        while True:
            try:
                line = await reader.readuntil(b"\n")
            except asyncio.IncompleteReadError:
                # EOF, possibly with a partial unterminated line.
                return
            except asyncio.LimitOverrunError as exc:
                logger.warning("Editor {} sent a line over {} bytes, skipping", client_id, self._max_line_bytes)
                await self._discard_line(reader, exc.consumed)
                continue
            if not line.strip():
                continue

            try:
                event = decode(line)
                validate(event)
            except DecodeError as exc:
                logger.debug("Editor {} sent an undecodable line: {}", client_id, exc)
                continue

            for problem in rule_violations(event):
                logger.debug("Editor {} event: {}", client_id, problem)
            self._deliver(BufferEventMsg.from_event(event))
