"""Backend push-event models.

The OpenCode ``/event`` stream carries a tagged union keyed by ``type``.  We
model the two variants the council reacts to and collapse everything else
into ``UnrecognizedEvent`` so new backend event kinds never break the
stream consumer.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from algopeeps.council.models.enums import UNKNOWN_AGENT, BackendEventType


class _BackendModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# -- message.part.updated ------------------------------------------------------


class PartSource(_BackendModel):
    """Declared origin of a message part.

    Agent sources carry the agent name in ``value``; file and symbol sources
    use ``path``/``text`` instead and leave ``value`` unset.
    """

    value: str | None = None
    path: str | None = None


class Part(_BackendModel):
    id: str = ""
    session_id: str = Field(default="", alias="sessionID")
    message_id: str = Field(default="", alias="messageID")
    type: str = ""
    text: str | None = None
    source: PartSource | None = None

    @property
    def agent_name(self) -> str:
        if self.source is not None and self.source.value and self.source.path is None:
            return self.source.value
        return UNKNOWN_AGENT


class PartUpdatedProperties(_BackendModel):
    part: Part = Field(default_factory=Part)
    delta: str = ""


class MessagePartUpdated(_BackendModel):
    type: Literal["message.part.updated"] = "message.part.updated"
    properties: PartUpdatedProperties = Field(default_factory=PartUpdatedProperties)


# -- session.idle --------------------------------------------------------------


class SessionIdleProperties(_BackendModel):
    session_id: str = Field(default="", alias="sessionID")


class SessionIdle(_BackendModel):
    type: Literal["session.idle"] = "session.idle"
    properties: SessionIdleProperties = Field(default_factory=SessionIdleProperties)


# -- Catch-all -----------------------------------------------------------------


class UnrecognizedEvent(_BackendModel):
    """Any event we do not act on, including malformed known ones."""

    type: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)


BackendEvent = MessagePartUpdated | SessionIdle | UnrecognizedEvent

_VARIANTS: dict[str, type[MessagePartUpdated] | type[SessionIdle]] = {
    BackendEventType.MESSAGE_PART_UPDATED: MessagePartUpdated,
    BackendEventType.SESSION_IDLE: SessionIdle,
}


def parse_backend_event(data: str | dict[str, Any]) -> BackendEvent:
    """Parse one stream payload into a ``BackendEvent``.

    Never raises on content: undecodable JSON, unknown types and known types
    with an unexpected shape all become ``UnrecognizedEvent``.
    """
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError:
            return UnrecognizedEvent(raw={"data": data})
    if not isinstance(data, dict):
        return UnrecognizedEvent(raw={"data": data})

    event_type = data.get("type")
    variant = _VARIANTS.get(event_type) if isinstance(event_type, str) else None
    if variant is None:
        return UnrecognizedEvent(type=str(event_type or ""), raw=data)
    try:
        return variant.model_validate(data)
    except ValidationError:
        return UnrecognizedEvent(type=event_type, raw=data)
