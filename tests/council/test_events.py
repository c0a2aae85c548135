"""Tests for the editor wire-format models."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from algopeeps.council.errors import DecodeError
from algopeeps.council.models.enums import EventType, MessageType
from algopeeps.council.models.events import (
    TRUNCATION_MARKER,
    Buffer,
    BufferEvent,
    Cursor,
    decode,
    rule_violations,
    validate,
)
from algopeeps.council.models.messages import BufferEventMsg


def _make_payload(**buffer_overrides) -> dict:
    buffer = {
        "id": 1,
        "name": "main.go",
        "path": "/src/main.go",
        "filetype": "go",
        "cursor": {"line": 3, "col": 4},
        "line_count": 42,
        "content": "package main\n\nfunc main() {}\n",
    }
    buffer.update(buffer_overrides)
    return {
        "type": "buffer_update",
        "event": "text_changed",
        "timestamp": "2024-05-01T12:00:00Z",
        "buffer": buffer,
    }


# ---------------------------------------------------------------------------
# decode
# ---------------------------------------------------------------------------


def test_decode_full_event() -> None:
    event = decode(json.dumps(_make_payload()))

    assert event.type == MessageType.BUFFER_UPDATE
    assert event.event == EventType.TEXT_CHANGED
    assert event.timestamp is not None
    assert event.timestamp.year == 2024
    assert event.buffer.name == "main.go"
    assert event.buffer.cursor == Cursor(line=3, col=4)
    assert event.buffer.line_count == 42


def test_decode_accepts_bytes_with_trailing_newline() -> None:
    raw = json.dumps(_make_payload()).encode() + b"\n"
    assert decode(raw).buffer.filetype == "go"


def test_decode_ignores_unknown_fields() -> None:
    payload = _make_payload(extra_field="ignored")
    payload["plugin_version"] = "9.9"
    event = decode(json.dumps(payload))
    assert event.buffer.name == "main.go"


def test_decode_keeps_unknown_kinds_as_strings() -> None:
    payload = _make_payload()
    payload["type"] = "selection_update"
    payload["event"] = "cursor_moved"

    event = decode(json.dumps(payload))

    assert event.type == "selection_update"
    assert not isinstance(event.type, MessageType)
    assert event.event == "cursor_moved"
    assert not event.is_actionable


def test_decode_buffer_defaults() -> None:
    event = decode('{"buffer": {}}')

    assert event.type == ""
    assert event.event == ""
    assert event.timestamp is None
    assert event.buffer == Buffer()
    assert event.buffer.cursor == Cursor(line=0, col=0)


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        "{invalid: json}",
        "[1, 2, 3]",
        '"just a string"',
        '{"type": "buffer_update", "event": "text_changed"}',
        '{"buffer": "not an object"}',
        '{"buffer": {"cursor": {"line": "three"}}}',
        '{"buffer": {"cursor": {"line": "3"}}}',
        '{"buffer": {"cursor": {"line": 3.0}}}',
        '{"buffer": {"line_count": "42"}}',
        '{"buffer": {"id": true}}',
    ],
)
def test_decode_rejects_malformed(raw: str) -> None:
    with pytest.raises(DecodeError) as exc_info:
        decode(raw)
    assert isinstance(exc_info.value, ValueError)
    assert isinstance(exc_info.value.__cause__, ValidationError)


# ---------------------------------------------------------------------------
# encode
# ---------------------------------------------------------------------------


def test_encode_is_one_line() -> None:
    event = decode(json.dumps(_make_payload(content="a\nb\nc")))
    data = event.encode()

    assert data.endswith(b"\n")
    assert data.count(b"\n") == 1
    assert json.loads(data)["buffer"]["content"] == "a\nb\nc"


@pytest.mark.parametrize(
    "overrides",
    [
        {},
        {"type": "selection_update", "event": "cursor_moved"},
        {"type": "", "event": ""},
        {"timestamp": None},
        {"timestamp": "2024-05-01T12:00:00+02:00"},
        {"content": ""},
        {"content": "héllo wörld ✓ 日本\n\ttab"},
    ],
)
def test_decode_of_encoded_event_is_equal(overrides: dict) -> None:
    overrides = dict(overrides)
    payload = _make_payload(content=overrides.pop("content", "package main\n"))
    payload.update(overrides)

    first = decode(json.dumps(payload))
    second = decode(first.encode())

    assert second == first
    assert second.is_actionable == first.is_actionable


def test_events_are_frozen() -> None:
    event = decode(json.dumps(_make_payload()))
    with pytest.raises(ValidationError):
        event.buffer.name = "other.go"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Actionable / validate / rule_violations
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("kind", list(EventType))
def test_known_events_are_actionable(kind: EventType) -> None:
    event = BufferEvent(type=MessageType.BUFFER_UPDATE, event=kind, buffer=Buffer())
    assert event.is_actionable


def test_validate_accepts_any_decoded_event() -> None:
    event = decode(json.dumps(_make_payload(id=-1, line_count=-5)))
    validate(event)


def test_validate_rejects_non_events() -> None:
    with pytest.raises(TypeError):
        validate({"buffer": {}})  # type: ignore[arg-type]


def test_rule_violations_reports_negatives() -> None:
    event = decode(json.dumps(_make_payload(id=-1, cursor={"line": -2, "col": 0}, line_count=-3)))

    problems = rule_violations(event)

    assert len(problems) == 3
    assert any("buffer.id" in p for p in problems)
    assert any("cursor" in p for p in problems)
    assert any("line_count" in p for p in problems)


def test_rule_violations_clean_event() -> None:
    assert rule_violations(decode(json.dumps(_make_payload()))) == []


# ---------------------------------------------------------------------------
# truncate_content
# ---------------------------------------------------------------------------


def test_truncate_content_short_is_unchanged() -> None:
    buf = Buffer(content="abc")
    assert buf.truncate_content(3) == "abc"
    assert buf.truncate_content(10) == "abc"


def test_truncate_content_marks_cut() -> None:
    buf = Buffer(content="abcdefghij")
    assert buf.truncate_content(4) == "abcd" + TRUNCATION_MARKER


# ---------------------------------------------------------------------------
# BufferEventMsg
# ---------------------------------------------------------------------------


def test_buffer_event_msg_flattens_event() -> None:
    msg = BufferEventMsg.from_event(decode(json.dumps(_make_payload())))

    assert msg.filename == "main.go"
    assert msg.path == "/src/main.go"
    assert msg.filetype == "go"
    assert msg.cursor_line == 3
    assert msg.cursor_col == 4
    assert msg.line_count == 42
    assert msg.last_event == "text_changed"
    assert msg.actionable


def test_buffer_event_msg_unknown_event_not_actionable() -> None:
    payload = _make_payload()
    payload["event"] = "cursor_moved"
    msg = BufferEventMsg.from_event(decode(json.dumps(payload)))

    assert msg.last_event == "cursor_moved"
    assert not msg.actionable
