"""Credential Provider Protocol."""

from typing import Protocol

from telegram_trigger.core.domain.config_schema import BotCredentials


class CredentialProviderProtocol(Protocol):
    """Supplies the Bot API origin and token once, when a trigger starts."""

    async def get_credentials(self) -> BotCredentials:
        """Return validated credentials.

        Raises:
            ConfigError: If no usable credentials are available.
        """
        ...
