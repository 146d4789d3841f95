"""Tests for per-message reply orchestration and failure isolation."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock, call

import httpx
import pytest

from responder.errors import GenerationError
from responder.models import AuditEventType, OutboundReply, SendResult, TextMessage
from responder.webhook.orchestrator import FALLBACK_REPLY, ReplyOrchestrator


def _make_orchestrator(**kwargs: Any) -> ReplyOrchestrator:
    generator = AsyncMock()
    generator.generate.return_value = "generated"
    sender = AsyncMock()
    sender.send_reply.return_value = SendResult(ok=True, status_code=200)
    defaults: dict[str, Any] = {
        "generator": generator,
        "sender": sender,
        "audit_logger": None,
    }
    defaults.update(kwargs)
    return ReplyOrchestrator(**defaults)


def _msg(message_id: str = "wamid.A", text: str = "hola", sender: str = "521234") -> TextMessage:
    return TextMessage(sender=sender, message_id=message_id, text=text)


class TestHappyPath:

    @pytest.mark.asyncio
    async def test_generates_then_sends_quoted_reply(
        self, generator: AsyncMock, sender: AsyncMock,
    ) -> None:
        orchestrator = _make_orchestrator(generator=generator, sender=sender)
        results = await orchestrator.process([_msg()])

        generator.generate.assert_awaited_once_with("hola")
        sender.send_reply.assert_awaited_once_with(OutboundReply(
            recipient="521234", body="generated reply", reply_to="wamid.A",
        ))
        assert [r.ok for r in results] == [True]

    @pytest.mark.asyncio
    async def test_messages_processed_in_order(
        self, generator: AsyncMock, sender: AsyncMock,
    ) -> None:
        generator.generate.side_effect = lambda text: f"re: {text}"
        orchestrator = _make_orchestrator(generator=generator, sender=sender)

        await orchestrator.process([
            _msg("m1", "uno", "111"), _msg("m2", "dos", "222"), _msg("m3", "tres", "333"),
        ])

        assert generator.generate.await_args_list == [call("uno"), call("dos"), call("tres")]
        sent = [c.args[0] for c in sender.send_reply.await_args_list]
        assert [(r.recipient, r.body, r.reply_to) for r in sent] == [
            ("111", "re: uno", "m1"),
            ("222", "re: dos", "m2"),
            ("333", "re: tres", "m3"),
        ]

    @pytest.mark.asyncio
    async def test_empty_batch_calls_nothing(
        self, generator: AsyncMock, sender: AsyncMock,
    ) -> None:
        orchestrator = _make_orchestrator(generator=generator, sender=sender)
        assert await orchestrator.process([]) == []
        generator.generate.assert_not_awaited()
        sender.send_reply.assert_not_awaited()


class TestGenerationFailure:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        GenerationError("Gemini returned HTTP 500", status_code=500),
        httpx.ConnectError("boom"),
        RuntimeError("unexpected"),
    ])
    async def test_fallback_sent_on_generation_failure(
        self, sender: AsyncMock, error: Exception,
    ) -> None:
        generator = AsyncMock()
        generator.generate.side_effect = error
        orchestrator = _make_orchestrator(generator=generator, sender=sender)

        results = await orchestrator.process([_msg()])

        reply = sender.send_reply.await_args.args[0]
        assert reply.body == FALLBACK_REPLY
        assert reply.reply_to == "wamid.A"
        assert results[0].ok is True

    @pytest.mark.asyncio
    async def test_custom_fallback_text(self, sender: AsyncMock) -> None:
        generator = AsyncMock()
        generator.generate.side_effect = GenerationError("down")
        orchestrator = _make_orchestrator(
            generator=generator, sender=sender, fallback_reply="try later",
        )
        await orchestrator.process([_msg()])
        assert sender.send_reply.await_args.args[0].body == "try later"

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_next_message(self, sender: AsyncMock) -> None:
        generator = AsyncMock()
        generator.generate.side_effect = [GenerationError("down"), "second reply"]
        orchestrator = _make_orchestrator(generator=generator, sender=sender)

        await orchestrator.process([_msg("m1"), _msg("m2")])

        bodies = [c.args[0].body for c in sender.send_reply.await_args_list]
        assert bodies == [FALLBACK_REPLY, "second reply"]

    @pytest.mark.asyncio
    async def test_fallback_audited(
        self, sender: AsyncMock, mock_audit_logger: MagicMock,
    ) -> None:
        generator = AsyncMock()
        generator.generate.side_effect = GenerationError("down")
        orchestrator = _make_orchestrator(
            generator=generator, sender=sender, audit_logger=mock_audit_logger,
        )
        await orchestrator.process([_msg()])

        event_types = [c.args[0].event_type for c in mock_audit_logger.log.call_args_list]
        assert AuditEventType.GENERATION_FALLBACK in event_types
        assert AuditEventType.REPLY_SENT in event_types


class TestSendFailure:

    @pytest.mark.asyncio
    async def test_failed_send_result_is_dropped(self, generator: AsyncMock) -> None:
        sender = AsyncMock()
        sender.send_reply.side_effect = [
            SendResult(ok=False, status_code=400, error="bad request"),
            SendResult(ok=True, status_code=200),
        ]
        orchestrator = _make_orchestrator(generator=generator, sender=sender)

        results = await orchestrator.process([_msg("m1"), _msg("m2")])

        assert [r.ok for r in results] == [False, True]
        assert sender.send_reply.await_count == 2

    @pytest.mark.asyncio
    async def test_sender_exception_is_contained(self, generator: AsyncMock) -> None:
        sender = AsyncMock()
        sender.send_reply.side_effect = [httpx.ReadTimeout("slow"), SendResult(ok=True)]
        orchestrator = _make_orchestrator(generator=generator, sender=sender)

        results = await orchestrator.process([_msg("m1"), _msg("m2")])

        assert results[0].ok is False
        assert "ReadTimeout" in (results[0].error or "")
        assert results[1].ok is True

    @pytest.mark.asyncio
    async def test_send_not_retried(self, generator: AsyncMock) -> None:
        sender = AsyncMock()
        sender.send_reply.return_value = SendResult(ok=False, status_code=503)
        orchestrator = _make_orchestrator(generator=generator, sender=sender)

        await orchestrator.process([_msg()])

        sender.send_reply.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_send_failure_audited(
        self, generator: AsyncMock, mock_audit_logger: MagicMock,
    ) -> None:
        sender = AsyncMock()
        sender.send_reply.return_value = SendResult(ok=False, status_code=401, error="auth")
        orchestrator = _make_orchestrator(
            generator=generator, sender=sender, audit_logger=mock_audit_logger,
        )
        await orchestrator.process([_msg()])

        event = mock_audit_logger.log.call_args.args[0]
        assert event.event_type == AuditEventType.REPLY_FAILED
        assert event.sender_id == "521234"
        assert event.details == {"status_code": 401}


class TestAuditFailure:

    @pytest.mark.asyncio
    async def test_audit_write_error_does_not_stop_batch(
        self, generator: AsyncMock, sender: AsyncMock, mock_audit_logger: MagicMock,
    ) -> None:
        mock_audit_logger.log.side_effect = OSError("disk full")
        orchestrator = _make_orchestrator(
            generator=generator, sender=sender, audit_logger=mock_audit_logger,
        )

        results = await orchestrator.process([_msg("m1"), _msg("m2")])

        assert [r.ok for r in results] == [True, True]
        quoted = [c.args[0].reply_to for c in sender.send_reply.await_args_list]
        assert quoted == ["m1", "m2"]

    @pytest.mark.asyncio
    async def test_audit_write_error_on_fallback_still_sends_fallback(
        self, sender: AsyncMock, mock_audit_logger: MagicMock,
    ) -> None:
        mock_audit_logger.log.side_effect = OSError("disk full")
        generator = AsyncMock()
        generator.generate.side_effect = GenerationError("down")
        orchestrator = _make_orchestrator(
            generator=generator, sender=sender, audit_logger=mock_audit_logger,
        )

        await orchestrator.process([_msg()])

        assert sender.send_reply.await_args.args[0].body == FALLBACK_REPLY
