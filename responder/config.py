"""Process-wide configuration, read once at startup."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from responder.errors import ConfigError

_REQUIRED_ENV = {
    "verify_token": "VERIFY_TOKEN",
    "app_secret": "APP_SECRET",
    "gemini_api_key": "GEMINI_API_KEY",
    "whatsapp_token": "WHATSAPP_TOKEN",
    "phone_number_id": "WHATSAPP_PHONE_NUMBER_ID",
}

_OPTIONAL_ENV = {
    "gemini_model": "GEMINI_MODEL",
    "whatsapp_api_version": "WHATSAPP_API_VERSION",
    "webhook_path": "WEBHOOK_PATH",
    "audit_log_path": "AUDIT_LOG_PATH",
    "log_level": "LOG_LEVEL",
}


class Settings(BaseModel):
    """Immutable service configuration.

    Built once by the app factory and passed to every component that needs a
    secret; nothing below the factory reads the environment.
    """

    model_config = ConfigDict(frozen=True)

    verify_token: str = Field(min_length=1)
    app_secret: str = Field(min_length=1)
    gemini_api_key: str = Field(min_length=1)
    whatsapp_token: str = Field(min_length=1)
    phone_number_id: str = Field(min_length=1)
    gemini_model: str = "gemini-1.5-flash"
    whatsapp_api_version: str = "v18.0"
    webhook_path: str = "/api/webhook"
    audit_log_path: str | None = None
    log_level: str = "INFO"

    @property
    def signing_secret(self) -> bytes:
        return self.app_secret.encode()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Load settings from environment variables.

        Raises ConfigError naming every required variable that is unset or empty.
        """
        env = os.environ if environ is None else environ
        missing = [var for var in _REQUIRED_ENV.values() if not env.get(var)]
        if missing:
            raise ConfigError(missing)

        values: dict[str, str] = {
            name: env[var] for name, var in _REQUIRED_ENV.items()
        }
        for name, var in _OPTIONAL_ENV.items():
            if env.get(var):
                values[name] = env[var]
        return cls(**values)
