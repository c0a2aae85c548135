"""In-process registry of live editor connections.

Ephemeral -- empty on process restart.  Membership changes only when a
connection is accepted or torn down; both paths go through an
``asyncio.Lock`` so concurrent accepts and teardowns never interleave.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from loguru import logger


@dataclass
class EditorConnection:
    """One accepted editor connection."""

    client_id: str
    peer: Any = None
    writer: asyncio.StreamWriter | None = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


class ClientRegistry:
    """Lock-guarded map of connection id -> ``EditorConnection``."""

    def __init__(self) -> None:
        self._clients: dict[str, EditorConnection] = {}
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)

    # -- Mutation --------------------------------------------------------------

    async def register(self, peer: Any = None, writer: asyncio.StreamWriter | None = None) -> EditorConnection:
        """Assign a fresh connection id and record the connection."""
        async with self._lock:
            conn = EditorConnection(client_id=f"editor-{next(self._ids)}", peer=peer, writer=writer)
            self._clients[conn.client_id] = conn
        logger.debug("Registry: register {} from {}", conn.client_id, peer)
        return conn

    async def unregister(self, client_id: str) -> EditorConnection | None:
        async with self._lock:
            conn = self._clients.pop(client_id, None)
        if conn:
            logger.debug("Registry: unregister {}", client_id)
        return conn

    # -- Query -----------------------------------------------------------------

    def get(self, client_id: str) -> EditorConnection | None:
        return self._clients.get(client_id)

    def all_clients(self) -> list[EditorConnection]:
        """Return a snapshot of all live connections."""
        return list(self._clients.values())

    @property
    def active_count(self) -> int:
        return len(self._clients)
