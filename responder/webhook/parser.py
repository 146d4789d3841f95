"""WhatsApp Business webhook payload parsing.

Payloads are trees of entry -> changes -> value.messages. Missing containers
are normal (status-only deliveries carry no messages) and yield nothing;
containers of the wrong shape raise MalformedPayloadError. Individual
messages are validated during extraction, and a malformed one is skipped
without affecting the rest of the batch.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from pydantic import ValidationError

from responder.errors import MalformedPayloadError
from responder.models import WHATSAPP_OBJECT, InboundMessage, TextMessage, WebhookEvent

logger = logging.getLogger(__name__)


def recognize(payload: Any) -> WebhookEvent | None:
    """Return the parsed event, or None if this is not a WhatsApp Business event."""
    if not isinstance(payload, dict) or payload.get("object") != WHATSAPP_OBJECT:
        return None
    try:
        return WebhookEvent.model_validate(payload)
    except ValidationError as exc:
        raise MalformedPayloadError(
            f"Malformed {WHATSAPP_OBJECT} payload: {exc.error_count()} error(s)",
        ) from exc


def extract_text_messages(event: WebhookEvent) -> Iterator[TextMessage]:
    """Yield text messages in delivery order.

    Non-text messages are skipped. Messages that fail validation, and text
    messages missing their sender, id or body, are skipped with a warning.
    """
    for entry in event.entry:
        for change in entry.changes:
            if change.value is None:
                continue
            for raw in change.value.messages:
                try:
                    message = InboundMessage.model_validate(raw)
                except ValidationError as exc:
                    logger.warning(
                        "Skipping malformed message (entry=%s): %d error(s)",
                        entry.id, exc.error_count(),
                    )
                    continue
                if message.type != "text":
                    logger.debug(
                        "Skipping %s message %s", message.type, message.id,
                    )
                    continue
                body = message.text.body if message.text else None
                if not message.sender or not message.id or body is None:
                    logger.warning(
                        "Skipping incomplete text message (id=%s, entry=%s)",
                        message.id, entry.id,
                    )
                    continue
                yield TextMessage(
                    sender=message.sender, message_id=message.id, text=body,
                )
