"""Credential providers for the Bot API token and origin.

Environment Variables:
    TELEGRAM_BOT_TOKEN: Bot token (required by ``EnvCredentialProvider``)
    TELEGRAM_API_BASE_URL: Bot API origin (default: https://api.telegram.org)
"""

from __future__ import annotations

import os
from collections.abc import Mapping

import structlog

from telegram_trigger.core.domain.config_schema import DEFAULT_BASE_URL, BotCredentials
from telegram_trigger.core.domain.errors import ConfigError

logger = structlog.get_logger(__name__)

DEFAULT_TOKEN_ENV = "TELEGRAM_BOT_TOKEN"
DEFAULT_BASE_URL_ENV = "TELEGRAM_API_BASE_URL"


class StaticCredentialProvider:
    """Return credentials fixed at construction time."""

    def __init__(self, access_token: str, base_url: str = DEFAULT_BASE_URL) -> None:
        self._credentials = BotCredentials.from_mapping(
            {"access_token": access_token, "base_url": base_url}
        )

    async def get_credentials(self) -> BotCredentials:
        return self._credentials


class EnvCredentialProvider:
    """Read credentials from environment variables when a trigger starts."""

    def __init__(
        self,
        token_env: str = DEFAULT_TOKEN_ENV,
        base_url_env: str = DEFAULT_BASE_URL_ENV,
        *,
        base_url: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.token_env = token_env
        self.base_url_env = base_url_env
        self._base_url = base_url
        self._environ = environ

    async def get_credentials(self) -> BotCredentials:
        environ = self._environ if self._environ is not None else os.environ
        token = environ.get(self.token_env)
        if not token:
            logger.warning(
                "credentials.token_missing",
                env_var=self.token_env,
                hint="Set environment variable with the bot token",
            )
            raise ConfigError(
                f"Bot token not found in environment variable {self.token_env}",
                details={"env_var": self.token_env},
            )
        return BotCredentials.from_mapping(
            {
                "access_token": token,
                "base_url": self._base_url
                or environ.get(self.base_url_env)
                or DEFAULT_BASE_URL,
            }
        )
