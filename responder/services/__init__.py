"""Outbound collaborators: reply generation and message delivery."""

from responder.services.gemini import GeminiClient
from responder.services.whatsapp import WhatsAppSender

__all__ = ["GeminiClient", "WhatsAppSender"]
