"""Editor wire-format models.

One ``BufferEvent`` per newline-terminated JSON object on an editor
connection::

    {"type": "buffer_update", "event": "text_changed", "timestamp": "...",
     "buffer": {"id": 1, "name": "main.go", "path": "/src/main.go",
                "filetype": "go", "cursor": {"line": 3, "col": 0},
                "line_count": 42, "content": "..."}}

Decoding tolerates unknown fields and unknown enum values (newer editor
plugins may send both); only ``buffer`` is required.  Numeric fields must be
JSON integers (no ``"3"`` or ``3.0``).  Models are frozen:
an event is never mutated after decode.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError

from algopeeps.council.errors import DecodeError
from algopeeps.council.models.enums import EventType, MessageType

TRUNCATION_MARKER = "\n[...truncated...]"


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class Cursor(_WireModel):
    line: StrictInt = 0
    col: StrictInt = 0


class Buffer(_WireModel):
    """Snapshot of one editor buffer."""

    id: StrictInt = 0
    name: str = ""
    path: str = ""
    filetype: str = ""
    cursor: Cursor = Field(default_factory=Cursor)
    line_count: StrictInt = 0
    content: str = ""

    def truncate_content(self, max_size: int) -> str:
        """Return the first *max_size* characters, marked when cut."""
        if len(self.content) <= max_size:
            return self.content
        return self.content[:max_size] + TRUNCATION_MARKER


class BufferEvent(_WireModel):
    """One observation of editor state."""

    type: MessageType | str = Field(default="", union_mode="left_to_right")
    event: EventType | str = Field(default="", union_mode="left_to_right")
    timestamp: datetime | None = None
    buffer: Buffer

    @property
    def is_actionable(self) -> bool:
        """Both kinds are known values; unknown ones are kept but not dispatched."""
        return isinstance(self.type, MessageType) and isinstance(self.event, EventType)

    def encode(self) -> bytes:
        """Serialise as a single wire line (JSON followed by ``\\n``)."""
        return self.model_dump_json().encode("utf-8") + b"\n"


def decode(data: bytes | str) -> BufferEvent:
    """Decode one framed line into a ``BufferEvent``.

    Raises ``DecodeError`` for malformed JSON, a non-object document, a
    missing ``buffer`` object or mistyped fields.
    """
    try:
        return BufferEvent.model_validate_json(data)
    except ValidationError as exc:
        msg = f"invalid buffer event ({exc.error_count()} errors): {exc.errors()[0]['msg']}"
        raise DecodeError(msg) from exc


def validate(event: BufferEvent) -> None:
    """Accept any structurally decoded event.

    Malformed-but-decodable input must never abort an editor connection, so
    business rules are reported by ``rule_violations`` instead of raising.
    """
    if not isinstance(event, BufferEvent):
        msg = f"expected BufferEvent, got {type(event).__name__}"
        raise TypeError(msg)


def rule_violations(event: BufferEvent) -> list[str]:
    """List business-rule problems (negative ids, positions or counts)."""
    problems: list[str] = []
    buf = event.buffer
    if buf.id < 0:
        problems.append(f"buffer.id is negative ({buf.id})")
    if buf.cursor.line < 0 or buf.cursor.col < 0:
        problems.append(f"cursor is negative ({buf.cursor.line}, {buf.cursor.col})")
    if buf.line_count < 0:
        problems.append(f"line_count is negative ({buf.line_count})")
    return problems
