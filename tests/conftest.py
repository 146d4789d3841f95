"""Shared test fixtures for the WhatsApp responder."""

from __future__ import annotations

import hashlib
import hmac
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from responder.audit.logger import AuditLogger
from responder.config import Settings
from responder.models import SendResult

APP_SECRET = "test_app_secret"
VERIFY_TOKEN = "test_verify_token"


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def generator() -> AsyncMock:
    gen = AsyncMock()
    gen.generate.return_value = "generated reply"
    return gen


@pytest.fixture
def sender() -> AsyncMock:
    snd = AsyncMock()
    snd.send_reply.return_value = SendResult(ok=True, status_code=200)
    return snd


# --- Factory functions for test data ---


def make_settings(**kwargs: Any) -> Settings:
    defaults: dict[str, Any] = {
        "verify_token": VERIFY_TOKEN,
        "app_secret": APP_SECRET,
        "gemini_api_key": "test_gemini_key",
        "whatsapp_token": "test_whatsapp_token",
        "phone_number_id": "123456",
    }
    defaults.update(kwargs)
    return Settings(**defaults)


def sign_body(body: bytes, secret: str = APP_SECRET) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def make_message(
    msg_type: str = "text",
    text: str | None = "hello",
    sender: str = "521234",
    message_id: str = "wamid.A",
) -> dict[str, Any]:
    message: dict[str, Any] = {
        "from": sender,
        "id": message_id,
        "timestamp": "1700000000",
        "type": msg_type,
    }
    if msg_type == "text" and text is not None:
        message["text"] = {"body": text}
    elif msg_type == "image":
        message["image"] = {"id": "media-1", "mime_type": "image/jpeg"}
    return message


def make_payload(
    messages: list[dict[str, Any]] | None = None,
    object_type: str = "whatsapp_business_account",
) -> dict[str, Any]:
    if messages is None:
        messages = [make_message()]
    return {
        "object": object_type,
        "entry": [
            {
                "id": "BUSINESS_ID",
                "changes": [
                    {
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {"phone_number_id": "PHONE_ID"},
                            "messages": messages,
                        },
                        "field": "messages",
                    }
                ],
            }
        ],
    }
