"""Credential providers and settings file loading."""

from telegram_trigger.infrastructure.config.credentials import (
    EnvCredentialProvider,
    StaticCredentialProvider,
)
from telegram_trigger.infrastructure.config.settings_loader import (
    CredentialSettings,
    TriggerSettings,
    load_trigger_settings,
)

__all__ = [
    "CredentialSettings",
    "EnvCredentialProvider",
    "StaticCredentialProvider",
    "TriggerSettings",
    "load_trigger_settings",
]
