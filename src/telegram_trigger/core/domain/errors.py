"""Domain-specific exception types for the Telegram trigger."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

CONFLICT_STATUS = 409


@dataclass
class TriggerError(Exception):
    """Base exception for trigger domain errors."""

    message: str
    code: str = "trigger_error"
    details: Dict[str, Any] | None = None
    status_code: int | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.details is None:
            self.details = {}


class ConfigError(TriggerError):
    """Error raised for invalid trigger parameters or credentials."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="config_error", details=details)


class TransportError(TriggerError):
    """Error raised when a Bot API call cannot be completed."""

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        details: Dict[str, Any] | None = None,
        status_code: int | None = None,
        code: str = "transport_error",
    ) -> None:
        details = dict(details or {})
        if method:
            details.setdefault("method", method)
        self.method = method
        super().__init__(
            message=message, code=code, details=details, status_code=status_code
        )


class MalformedResponseError(TransportError):
    """Error raised when the Bot API replies with an unreadable body."""

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        details: Dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            method=method,
            details=details,
            status_code=status_code,
            code="malformed_response",
        )


class BotApiError(TransportError):
    """Error raised for a non-2xx Bot API reply.

    Attributes:
        status_code: HTTP status of the reply.
        error_code: ``error_code`` field of the Bot API error body, if any.
        description: ``description`` field of the Bot API error body, if any.
        retry_after: Seconds to wait reported by a 429 reply, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        method: str | None = None,
        error_code: int | None = None,
        description: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        self.error_code = error_code
        self.description = description
        self.retry_after = retry_after
        details: Dict[str, Any] = {}
        if error_code is not None:
            details["error_code"] = error_code
        if description:
            details["description"] = description
        if retry_after is not None:
            details["retry_after"] = retry_after
        super().__init__(
            message,
            method=method,
            details=details,
            status_code=status_code,
            code="bot_api_error",
        )


class PollingConflictError(BotApiError):
    """Another consumer is polling ``getUpdates`` with the same token (HTTP 409)."""


def is_conflict(error: BaseException) -> bool:
    """Return True when ``error`` carries the 409 conflict status."""
    if isinstance(error, PollingConflictError):
        return True
    return isinstance(error, TriggerError) and error.status_code == CONFLICT_STATUS
