"""Gemini generateContent client.

Every request is primed with the same two turns: a user-role instruction and a
model-role acknowledgment, followed by the incoming message as the final user
turn.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from responder.errors import GenerationError

logger = logging.getLogger(__name__)

_GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
_TIMEOUT_SECONDS = 30.0

PRIMING_INSTRUCTION = (
    "Eres un asistente amable que responde mensajes de WhatsApp. "
    "Responde de forma breve, clara y en el mismo idioma que el usuario."
)
PRIMING_ACKNOWLEDGMENT = (
    "Entendido. Responderé de forma breve y clara, en el idioma del usuario."
)


def build_contents(prompt: str) -> list[dict[str, Any]]:
    return [
        {"role": "user", "parts": [{"text": PRIMING_INSTRUCTION}]},
        {"role": "model", "parts": [{"text": PRIMING_ACKNOWLEDGMENT}]},
        {"role": "user", "parts": [{"text": prompt}]},
    ]


class GeminiClient:
    """Text-in, text-out wrapper around the Gemini REST API."""

    def __init__(self, api_key: str, model: str = "gemini-1.5-flash") -> None:
        self._api_key = api_key
        self._model = model

    @property
    def url(self) -> str:
        return f"{_GEMINI_API_BASE}/models/{self._model}:generateContent"

    async def generate(self, prompt: str) -> str:
        """Return the model's reply to ``prompt``.

        Raises GenerationError on transport errors, non-2xx responses, and
        responses without any candidate text (e.g. safety blocks).
        """
        headers = {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }
        body = {"contents": build_contents(prompt)}

        try:
            async with httpx.AsyncClient(verify=True) as client:
                resp = await client.post(
                    self.url, json=body, headers=headers, timeout=_TIMEOUT_SECONDS,
                )
        except httpx.HTTPError as exc:
            raise GenerationError(f"Gemini request failed: {exc!r}") from exc

        if resp.status_code >= 400:
            raise GenerationError(
                f"Gemini returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except json.JSONDecodeError as exc:
            raise GenerationError(
                "Gemini returned a non-JSON body", status_code=resp.status_code,
            ) from exc

        text = self._extract_text(data)
        if not text:
            feedback = data.get("promptFeedback") if isinstance(data, dict) else None
            reason = (feedback or {}).get("blockReason")
            raise GenerationError(
                f"Gemini returned no text (block reason: {reason})",
                status_code=resp.status_code,
            )
        return text

    @staticmethod
    def _extract_text(data: Any) -> str:
        if not isinstance(data, dict):
            return ""
        candidates = data.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(
            part.get("text", "") for part in parts if isinstance(part, dict)
        ).strip()
