"""
Configuration Schema Validation

Pydantic models for the trigger parameters and bot credentials, plus the
immutable PollConfig captured once when a polling loop starts.

Validation failures are reported as ``ConfigError`` so that misconfiguration
fails before any request is issued.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    ValidationError,
    field_validator,
)

from telegram_trigger.core.domain.errors import ConfigError
from telegram_trigger.core.domain.updates import (
    UPDATE_TYPES,
    WILDCARD,
    resolve_allowed_types,
)

DEFAULT_BASE_URL = "https://api.telegram.org"


def _validation_details(error: ValidationError) -> dict[str, Any]:
    return {
        "errors": [
            {
                "field": ".".join(str(part) for part in item["loc"]),
                "message": item["msg"],
            }
            for item in error.errors()
        ]
    }


class TriggerParameters(BaseModel):
    """Caller-supplied polling parameters."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    offset: StrictInt = Field(
        0,
        description=(
            "Identifier of the first update to be returned. A negative value "
            "retrieves updates counted from the end of the queue."
        ),
    )
    limit: StrictInt = Field(
        100,
        ge=1,
        le=100,
        description="Maximum number of updates per getUpdates call (1-100)",
    )
    timeout: StrictInt = Field(
        60,
        ge=0,
        description="Long polling timeout in seconds; 0 means short polling",
    )
    updates: list[str] = Field(
        default_factory=lambda: [WILDCARD],
        min_length=1,
        description="Update types to forward; '*' forwards all of them",
    )
    drop_webhook: StrictBool = Field(
        False,
        description="Call deleteWebhook once before the first poll",
    )

    @field_validator("updates")
    @classmethod
    def validate_updates(cls, value: list[str]) -> list[str]:
        """Reject update type names the Bot API does not know."""
        unknown = [name for name in value if name != WILDCARD and name not in UPDATE_TYPES]
        if unknown:
            raise ValueError(f"unknown update types: {', '.join(unknown)}")
        return value

    @property
    def allowed_types(self) -> frozenset[str]:
        """Filter set; empty when the selection contains the wildcard."""
        return resolve_allowed_types(self.updates)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TriggerParameters:
        """Validate raw parameter values.

        Raises:
            ConfigError: If any value has the wrong type or is out of range.
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            raise ConfigError(
                "Invalid trigger parameters", details=_validation_details(exc)
            ) from exc


class BotCredentials(BaseModel):
    """Bot API origin and access token."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = Field(DEFAULT_BASE_URL, min_length=1)
    access_token: str = Field(..., min_length=1, repr=False)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> BotCredentials:
        """Validate raw credential values.

        Raises:
            ConfigError: If the token is missing or a value has the wrong type.
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            raise ConfigError(
                "Invalid bot credentials", details=_validation_details(exc)
            ) from exc


@dataclass(frozen=True)
class PollConfig:
    """Immutable settings read by every ``getUpdates`` call of one loop."""

    limit: int
    timeout_seconds: int
    allowed_types: frozenset[str]
    allowed_updates: tuple[str, ...]
    endpoint_base: str
    credential_token: str

    def __repr__(self) -> str:
        return (
            f"PollConfig(limit={self.limit}, timeout_seconds={self.timeout_seconds}, "
            f"allowed_types={sorted(self.allowed_types)}, "
            f"endpoint_base={self.endpoint_base!r})"
        )

    @classmethod
    def from_parameters(
        cls, parameters: TriggerParameters, credentials: BotCredentials
    ) -> PollConfig:
        """Combine validated parameters and credentials."""
        allowed_types = parameters.allowed_types
        # Server-side hint keeps the caller's order; empty means "all".
        allowed_updates = tuple(dict.fromkeys(parameters.updates)) if allowed_types else ()
        return cls(
            limit=parameters.limit,
            timeout_seconds=parameters.timeout,
            allowed_types=allowed_types,
            allowed_updates=allowed_updates,
            endpoint_base=credentials.base_url,
            credential_token=credentials.access_token,
        )
