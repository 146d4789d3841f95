"""WhatsApp webhook responder: verifies Meta webhooks and answers text messages with Gemini."""
