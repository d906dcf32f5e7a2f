"""
Pure domain models for the meeting chat relay.

These models contain NO transport or AWS dependencies. They represent core
business concepts that flow through ports and services, plus the payload
shapes of the real-time protocol. Wire payloads are camelCase.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """Base for payloads exchanged with clients (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Meeting (owned by the meeting store)
# ---------------------------------------------------------------------------


class MeetingStatus(str, Enum):
    """Meeting lifecycle status."""

    ACTIVE = "active"
    ENDED = "ended"


class Meeting(WireModel):
    """Meeting metadata record. Chat content is never part of it."""

    id: str
    creator_id: str
    status: MeetingStatus = MeetingStatus.ACTIVE
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_active(self) -> bool:
        return self.status == MeetingStatus.ACTIVE


# ---------------------------------------------------------------------------
# Presence (ephemeral, owned by the connection registry)
# ---------------------------------------------------------------------------


class Participant(BaseModel):
    """One live connection's membership in one meeting room."""

    model_config = ConfigDict(frozen=True)

    connection_id: str
    user_id: str
    display_name: str
    meeting_id: str

    def summary(self) -> "ParticipantSummary":
        return ParticipantSummary(user_id=self.user_id, display_name=self.display_name)


class ParticipantSummary(WireModel):
    """Participant as seen by other room members."""

    user_id: str
    display_name: str


class Identity(BaseModel):
    """Caller identity, from a verified token or a join payload.

    ``verified`` is set only for identities taken from a checked token.
    """

    user_id: str
    display_name: Optional[str] = None
    verified: bool = False


# ---------------------------------------------------------------------------
# Real-time protocol payloads, client → server
# ---------------------------------------------------------------------------


class _MeetingScoped(WireModel):
    meeting_id: str

    @field_validator("meeting_id")
    @classmethod
    def _strip_meeting_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("meetingId cannot be empty")
        return v


class JoinMeetingPayload(_MeetingScoped):
    """``join-meeting``. Identity fields are optional in token mode.

    ``name`` is the older clients' spelling of ``displayName``.
    """

    user_id: Optional[str] = None
    display_name: Optional[str] = None
    name: Optional[str] = None


class SendMessagePayload(_MeetingScoped):
    """``send-message``."""

    text: str
    author_label: str = ""

    @field_validator("text")
    @classmethod
    def _non_empty_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text cannot be empty")
        return v


class LeaveMeetingPayload(_MeetingScoped):
    """``leave-meeting``."""


class EndMeetingPayload(_MeetingScoped):
    """``end-meeting``."""


# ---------------------------------------------------------------------------
# Real-time protocol payloads, server → client
# ---------------------------------------------------------------------------


class ParticipantLeft(WireModel):
    """``user-left`` presence event."""

    user_id: str


class ChatMessage(WireModel):
    """``receive-message``; stamped server-side, never persisted."""

    author_label: str
    text: str
    timestamp: datetime = Field(default_factory=utc_now)


class ParticipantsList(WireModel):
    """Helper to render the ``participants-list`` event body."""

    participants: List[ParticipantSummary] = []

    def to_wire_list(self) -> list:
        return [p.to_wire() for p in self.participants]
