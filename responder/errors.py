"""Exception hierarchy for the responder service."""

from __future__ import annotations


class ResponderError(Exception):
    """Base class for errors raised by the responder package."""


class ConfigError(ResponderError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


class MalformedPayloadError(ResponderError):
    """Raised when a recognized webhook payload has an unexpected structure."""


class GenerationError(ResponderError):
    """Raised when the generation service cannot produce a reply."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
