"""Proctoring wire events (contracts-first).

Inbound messages are a closed tagged union keyed on ``type``; anything
with an unknown tag is ignored rather than rejected. Outbound messages
are serialized with the camelCase field names the browser clients use.
"""
from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from domain.common.exceptions import MalformedMessageException
from domain.proctoring.entity import StudentSummary


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# -------------------- inbound --------------------

class RegisterAdmin(_Wire):
    type: Literal["register-admin"] = "register-admin"


class RegisterStudent(_Wire):
    type: Literal["register-student"] = "register-student"
    student_id: str = Field(alias="studentId", min_length=1)
    student_name: Optional[str] = Field(default=None, alias="studentName")

    @property
    def display_name(self) -> str:
        return self.student_name or self.student_id


class ScreenFrame(_Wire):
    """Screen capture frame; ``frame`` is opaque and forwarded verbatim."""

    type: Literal["screen-frame"] = "screen-frame"
    student_id: str = Field(alias="studentId", min_length=1)
    frame: Any = None
    timestamp: Any = None


class StudentLeft(_Wire):
    type: Literal["student-left"] = "student-left"
    student_id: str = Field(alias="studentId", min_length=1)


class TerminateExam(_Wire):
    type: Literal["terminate-exam"] = "terminate-exam"
    student_id: str = Field(alias="studentId", min_length=1)
    reason: Optional[str] = None


class Ping(_Wire):
    type: Literal["ping"] = "ping"


class Pong(_Wire):
    type: Literal["pong"] = "pong"


InboundEvent = Annotated[
    Union[RegisterAdmin, RegisterStudent, ScreenFrame, StudentLeft, TerminateExam, Ping, Pong],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)

INBOUND_TYPES = frozenset(
    {"register-admin", "register-student", "screen-frame", "student-left", "terminate-exam", "ping", "pong"}
)


def parse_inbound(raw: str | bytes) -> Optional[InboundEvent]:
    """Decode one inbound message.

    Returns ``None`` for a well-formed envelope with an unrecognized type.

    Raises:
        MalformedMessageException: payload is not a JSON object with a
            string ``type``, or the fields fail validation.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedMessageException("invalid utf-8") from exc
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedMessageException("invalid json") from exc
    if not isinstance(data, dict):
        raise MalformedMessageException("envelope is not an object")
    mtype = data.get("type")
    if not isinstance(mtype, str):
        raise MalformedMessageException("missing type")
    if mtype not in INBOUND_TYPES:
        return None
    try:
        return _inbound_adapter.validate_python(data)
    except ValidationError as exc:
        raise MalformedMessageException(
            exc.errors(include_url=False)[0].get("msg", "invalid fields"), message_type=mtype
        ) from exc


# -------------------- outbound --------------------

class StudentEntry(_Wire):
    id: str
    name: str


class StudentListMessage(_Wire):
    type: Literal["student-list"] = "student-list"
    students: list[StudentEntry] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: list[StudentSummary]) -> "StudentListMessage":
        return cls(students=[StudentEntry(id=s.id, name=s.name) for s in snapshot])


class StudentJoinedMessage(_Wire):
    type: Literal["student-joined"] = "student-joined"
    student_id: str = Field(alias="studentId")
    student_name: str = Field(alias="studentName")


class ScreenFrameMessage(_Wire):
    type: Literal["screen-frame"] = "screen-frame"
    student_id: str = Field(alias="studentId")
    frame: Any = None
    timestamp: Any = None


class StudentLeftMessage(_Wire):
    type: Literal["student-left"] = "student-left"
    student_id: str = Field(alias="studentId")


class ExamTerminatedMessage(_Wire):
    type: Literal["exam-terminated"] = "exam-terminated"
    reason: str


class PongMessage(_Wire):
    type: Literal["pong"] = "pong"


class PingMessage(_Wire):
    type: Literal["ping"] = "ping"


OutboundMessage = Union[
    StudentListMessage,
    StudentJoinedMessage,
    ScreenFrameMessage,
    StudentLeftMessage,
    ExamTerminatedMessage,
    PongMessage,
    PingMessage,
]


__all__ = [
    "InboundEvent",
    "RegisterAdmin",
    "RegisterStudent",
    "ScreenFrame",
    "StudentLeft",
    "TerminateExam",
    "Ping",
    "Pong",
    "parse_inbound",
    "OutboundMessage",
    "StudentListMessage",
    "StudentJoinedMessage",
    "ScreenFrameMessage",
    "StudentLeftMessage",
    "ExamTerminatedMessage",
    "PongMessage",
    "PingMessage",
]
