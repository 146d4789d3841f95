"""Shared Pydantic data models for the responder service."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

WHATSAPP_OBJECT = "whatsapp_business_account"

# --- Enums ---


class AuditEventType(str, Enum):
    SIGNATURE_REJECTED = "signature_rejected"
    VERIFICATION_SUCCESS = "verification_success"
    VERIFICATION_FAILURE = "verification_failure"
    GENERATION_FALLBACK = "generation_fallback"
    REPLY_SENT = "reply_sent"
    REPLY_FAILED = "reply_failed"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Webhook payload models ---
#
# Absent containers fall back to empty defaults; containers present with the
# wrong shape fail validation.


def _none_as_empty(value: object) -> object:
    return [] if value is None else value


T = TypeVar("T")
OptionalList = Annotated[list[T], BeforeValidator(_none_as_empty)]


class TextBody(BaseModel):
    body: str | None = None


class InboundMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sender: str | None = Field(default=None, alias="from")
    id: str | None = None
    type: str | None = None
    timestamp: str | None = None
    text: TextBody | None = None


class ChangeValue(BaseModel):
    messaging_product: str | None = None
    # Validated one at a time during extraction so a bad message is skipped
    # without losing the rest of the batch.
    messages: OptionalList[Any] = Field(default_factory=list)


class Change(BaseModel):
    field: str | None = None
    value: ChangeValue | None = None


class Entry(BaseModel):
    id: str | None = None
    changes: OptionalList[Change] = Field(default_factory=list)


class WebhookEvent(BaseModel):
    object: str
    entry: OptionalList[Entry] = Field(default_factory=list)


# --- Pipeline models ---


class TextMessage(BaseModel):
    """A text message extracted from a webhook event."""

    model_config = ConfigDict(frozen=True)

    sender: str
    message_id: str
    text: str


class OutboundReply(BaseModel):
    """A reply to send back, quoting the message it answers."""

    model_config = ConfigDict(frozen=True)

    recipient: str
    body: str
    reply_to: str


class SendResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    status_code: int | None = None
    error: str | None = None


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_ip: str | None = None
    sender_id: str | None = None
    action: str
    result: str  # "success" | "failure" | "fallback"
    risk_level: RiskLevel
    details: dict[str, object] | None = None
