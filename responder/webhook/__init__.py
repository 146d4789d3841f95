"""WhatsApp webhook handling: signature verification, parsing, reply orchestration."""

from responder.webhook.orchestrator import FALLBACK_REPLY, ReplyOrchestrator
from responder.webhook.parser import extract_text_messages, recognize
from responder.webhook.signature import (
    SIGNATURE_HEADER,
    compute_signature,
    verify_signature,
)

__all__ = [
    "FALLBACK_REPLY",
    "SIGNATURE_HEADER",
    "ReplyOrchestrator",
    "compute_signature",
    "extract_text_messages",
    "recognize",
    "verify_signature",
]
