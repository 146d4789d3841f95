"""Reply orchestration: generate a reply for each text message and send it back.

Messages are handled one at a time in delivery order. Failures are contained
per message:

1. Generation fails -> the fixed fallback reply is sent instead.
2. Send fails -> logged and dropped, no retry.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from responder.errors import GenerationError
from responder.models import (
    AuditEvent,
    AuditEventType,
    OutboundReply,
    RiskLevel,
    SendResult,
    TextMessage,
)

if TYPE_CHECKING:
    from responder.audit.logger import AuditLogger
    from responder.services.gemini import GeminiClient
    from responder.services.whatsapp import WhatsAppSender

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "Lo siento, no pude generar una respuesta en este momento. "
    "Por favor, inténtalo de nuevo más tarde."
)


class ReplyOrchestrator:
    """Runs generate -> send for every extracted text message."""

    def __init__(
        self,
        generator: GeminiClient,
        sender: WhatsAppSender,
        fallback_reply: str = FALLBACK_REPLY,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._generator = generator
        self._sender = sender
        self._fallback_reply = fallback_reply
        self._audit = audit_logger

    async def process(self, messages: Iterable[TextMessage]) -> list[SendResult]:
        results: list[SendResult] = []
        for message in messages:
            results.append(await self.handle(message))
        return results

    async def handle(self, message: TextMessage) -> SendResult:
        logger.info(
            "Message from %s (id=%s)", message.sender, message.message_id,
        )
        reply_text = await self._generate(message)
        reply = OutboundReply(
            recipient=message.sender,
            body=reply_text,
            reply_to=message.message_id,
        )

        try:
            result = await self._sender.send_reply(reply)
        except Exception as exc:  # send failures never fail the request
            result = SendResult(ok=False, error=f"{type(exc).__name__}: {exc}")

        if result.ok:
            logger.info("Reply sent to %s (reply_to=%s)", reply.recipient, reply.reply_to)
            self._record(AuditEventType.REPLY_SENT, message, "success", RiskLevel.INFO)
        else:
            logger.error(
                "Reply to %s failed (status=%s): %s",
                reply.recipient, result.status_code, result.error,
            )
            self._record(
                AuditEventType.REPLY_FAILED, message, "failure", RiskLevel.MEDIUM,
                {"status_code": result.status_code},
            )
        return result

    async def _generate(self, message: TextMessage) -> str:
        try:
            return await self._generator.generate(message.text)
        except GenerationError as exc:
            reason = str(exc)
        except Exception as exc:  # any generator failure falls back
            reason = f"{type(exc).__name__}: {exc}"

        logger.warning(
            "Generation failed for message %s, using fallback: %s",
            message.message_id, reason,
        )
        self._record(
            AuditEventType.GENERATION_FALLBACK, message, "fallback", RiskLevel.LOW,
            {"reason": reason},
        )
        return self._fallback_reply

    def _record(
        self,
        event_type: AuditEventType,
        message: TextMessage,
        result: str,
        risk_level: RiskLevel,
        details: dict[str, object] | None = None,
    ) -> None:
        if not self._audit:
            return
        try:
            self._audit.log(AuditEvent(
                event_type=event_type,
                sender_id=message.sender,
                action=f"reply:{message.message_id}",
                result=result,
                risk_level=risk_level,
                details=details,
            ))
        except Exception:
            logger.exception("Audit write failed for message %s", message.message_id)
