"""Protocols for the trigger's external collaborators."""

from telegram_trigger.core.interfaces.credentials import CredentialProviderProtocol
from telegram_trigger.core.interfaces.sink import UpdateSinkProtocol
from telegram_trigger.core.interfaces.transport import UpdateTransportProtocol

__all__ = [
    "CredentialProviderProtocol",
    "UpdateSinkProtocol",
    "UpdateTransportProtocol",
]
