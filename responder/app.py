"""FastAPI application exposing the WhatsApp webhook."""

from __future__ import annotations

import hmac
import json
import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from responder.audit.logger import AuditLogger
from responder.config import Settings
from responder.models import AuditEvent, AuditEventType, RiskLevel
from responder.services.gemini import GeminiClient
from responder.services.whatsapp import WhatsAppSender
from responder.webhook.orchestrator import ReplyOrchestrator
from responder.webhook.parser import extract_text_messages, recognize
from responder.webhook.signature import SIGNATURE_HEADER, verify_signature

logger = logging.getLogger(__name__)

_MAX_WEBHOOK_BODY_SIZE = 1024 * 1024  # 1 MiB


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    audit_logger = (
        AuditLogger(settings.audit_log_path) if settings.audit_log_path else None
    )
    return create_app(settings, audit_logger=audit_logger)


def create_app(
    settings: Settings,
    generator: GeminiClient | None = None,
    sender: WhatsAppSender | None = None,
    audit_logger: AuditLogger | None = None,
) -> FastAPI:
    """Create the webhook app. Collaborators default to the real API clients."""
    if generator is None:
        generator = GeminiClient(settings.gemini_api_key, settings.gemini_model)
    if sender is None:
        sender = WhatsAppSender(
            settings.phone_number_id,
            settings.whatsapp_token,
            settings.whatsapp_api_version,
        )
    orchestrator = ReplyOrchestrator(generator, sender, audit_logger=audit_logger)

    app = FastAPI(docs_url=None, redoc_url=None)

    def _audit(
        request: Request,
        event_type: AuditEventType,
        result: str,
        risk_level: RiskLevel,
        reason: str | None = None,
    ) -> None:
        if not audit_logger:
            return
        try:
            audit_logger.log(AuditEvent(
                event_type=event_type,
                source_ip=request.client.host if request.client else None,
                action=f"{request.method} {request.url.path}",
                result=result,
                risk_level=risk_level,
                details={"reason": reason} if reason else None,
            ))
        except Exception:
            logger.exception("Audit write failed for %s", event_type.value)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get(settings.webhook_path)
    async def verify_subscription(request: Request) -> Response:
        params = request.query_params
        mode = params.get("hub.mode")
        token = params.get("hub.verify_token", "")
        challenge = params.get("hub.challenge", "")

        if mode == "subscribe" and hmac.compare_digest(
            token.encode(), settings.verify_token.encode(),
        ):
            logger.info("Webhook subscription verified")
            _audit(request, AuditEventType.VERIFICATION_SUCCESS, "success", RiskLevel.INFO)
            return PlainTextResponse(challenge, status_code=200)

        logger.error("Webhook subscription verification failed (mode=%s)", mode)
        _audit(
            request, AuditEventType.VERIFICATION_FAILURE, "failure", RiskLevel.HIGH,
            reason="invalid_mode" if mode != "subscribe" else "invalid_token",
        )
        return JSONResponse({"error": "Forbidden"}, status_code=403)

    @app.post(settings.webhook_path)
    async def receive_webhook(request: Request) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > _MAX_WEBHOOK_BODY_SIZE:
            return JSONResponse({"error": "Request body too large"}, status_code=413)

        # Raw bytes, read before any JSON decoding, are what Meta signed.
        body = await request.body()
        if len(body) > _MAX_WEBHOOK_BODY_SIZE:
            return JSONResponse({"error": "Request body too large"}, status_code=413)

        if not verify_signature(
            body, request.headers.get(SIGNATURE_HEADER), settings.signing_secret,
        ):
            _audit(
                request, AuditEventType.SIGNATURE_REJECTED, "failure", RiskLevel.HIGH,
            )
            return JSONResponse({"error": "Invalid webhook signature"}, status_code=403)

        try:
            event = recognize(json.loads(body))
            if event is None:
                logger.info("Ignoring webhook for an unrecognized object type")
                return JSONResponse({"error": "Not found"}, status_code=404)
            results = await orchestrator.process(extract_text_messages(event))
        except Exception:
            logger.exception("Unexpected error while processing webhook")
            return JSONResponse({"error": "Internal server error"}, status_code=500)

        logger.info(
            "Webhook handled: %d message(s), %d reply(ies) delivered",
            len(results), sum(1 for r in results if r.ok),
        )
        return JSONResponse({"status": "ok"}, status_code=200)

    return app
