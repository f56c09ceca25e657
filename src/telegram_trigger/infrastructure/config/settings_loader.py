"""
Trigger settings file loading.

A settings file is YAML with two optional sections::

    credentials:
      base_url: https://api.telegram.org
      token_env: TELEGRAM_BOT_TOKEN      # or access_token: "123:ABC"
    parameters:
      offset: 0
      limit: 100
      timeout: 60
      updates: [message, callback_query]
      drop_webhook: false
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from telegram_trigger.core.domain.config_schema import TriggerParameters
from telegram_trigger.core.domain.errors import ConfigError
from telegram_trigger.core.interfaces.credentials import CredentialProviderProtocol
from telegram_trigger.infrastructure.config.credentials import (
    DEFAULT_BASE_URL_ENV,
    DEFAULT_TOKEN_ENV,
    EnvCredentialProvider,
    StaticCredentialProvider,
)

logger = structlog.get_logger(__name__)


class CredentialSettings(BaseModel):
    """Where the bot token and API origin come from."""

    model_config = ConfigDict(extra="forbid")

    access_token: Optional[str] = Field(None, repr=False)
    base_url: Optional[str] = None
    token_env: str = DEFAULT_TOKEN_ENV
    base_url_env: str = DEFAULT_BASE_URL_ENV

    def build_provider(self) -> CredentialProviderProtocol:
        """Static provider for an inline token, environment provider otherwise."""
        if self.access_token:
            if self.base_url:
                return StaticCredentialProvider(self.access_token, self.base_url)
            return StaticCredentialProvider(self.access_token)
        return EnvCredentialProvider(
            self.token_env, self.base_url_env, base_url=self.base_url
        )


class TriggerSettings(BaseModel):
    """Validated contents of a settings file."""

    model_config = ConfigDict(extra="forbid")

    credentials: CredentialSettings = Field(default_factory=CredentialSettings)
    parameters: TriggerParameters = Field(default_factory=TriggerParameters)

    def with_overrides(self, **overrides: Any) -> TriggerSettings:
        """Return settings with non-None parameter values replaced.

        Raises:
            ConfigError: If an override fails validation.
        """
        values = {key: value for key, value in overrides.items() if value is not None}
        if not values:
            return self
        merged = {**self.parameters.model_dump(), **values}
        return self.model_copy(update={"parameters": TriggerParameters.from_mapping(merged)})


def load_trigger_settings(path: str | Path | None = None) -> TriggerSettings:
    """Load and validate a settings file; defaults when ``path`` is None.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or fails
            validation.
    """
    if path is None:
        return TriggerSettings()

    settings_path = Path(path)
    if not settings_path.exists():
        raise ConfigError(
            f"Settings file not found: {settings_path}",
            details={"path": str(settings_path)},
        )

    try:
        with open(settings_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Settings file is not valid YAML: {settings_path}",
            details={"path": str(settings_path), "error": str(exc)},
        ) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Settings file must contain a mapping: {settings_path}",
            details={"path": str(settings_path)},
        )

    try:
        settings = TriggerSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(
            f"Invalid settings file: {settings_path}",
            details={
                "path": str(settings_path),
                "errors": [
                    {"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
                    for e in exc.errors()
                ],
            },
        ) from exc

    logger.debug("settings.loaded", path=str(settings_path))
    return settings
