"""Test configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from telegram_trigger.core.domain.config_schema import (
    BotCredentials,
    PollConfig,
    TriggerParameters,
)
from telegram_trigger.core.domain.updates import GetUpdatesRequest, PollResponse

Step = PollResponse | BaseException | Callable[[GetUpdatesRequest], Any]


class ScriptedTransport:
    """Transport double that replays a scripted list of replies.

    Each step is a ``PollResponse`` to return, an exception to raise, or a
    callable receiving the request and returning either of those. Once the
    script is exhausted, calls block until cancelled, like a long poll with
    no traffic.
    """

    def __init__(self, steps: list[Step] | None = None) -> None:
        self.steps = list(steps or [])
        self.requests: list[GetUpdatesRequest] = []
        self.calls: list[str] = []
        self.cancelled = False
        self.closed = 0
        self.webhook_deleted = False

    async def get_updates(self, request: GetUpdatesRequest) -> PollResponse:
        self.requests.append(request)
        self.calls.append("getUpdates")
        if not self.steps:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        step = self.steps.pop(0)
        if callable(step) and not isinstance(step, BaseException):
            step = step(request)
        if isinstance(step, BaseException):
            raise step
        return step

    async def delete_webhook(self, drop_pending_updates: bool = False) -> bool:
        self.calls.append("deleteWebhook")
        self.webhook_deleted = True
        return True

    async def close(self) -> None:
        self.closed += 1


class RecordingSink:
    """Sink double that keeps every emitted batch."""

    def __init__(self) -> None:
        self.batches: list[list[dict[str, Any]]] = []

    def emit(self, batch) -> None:
        self.batches.append(list(batch))


def make_config(**parameters: Any) -> PollConfig:
    """Build a PollConfig from parameter overrides and a fake token."""
    return PollConfig.from_parameters(
        TriggerParameters(**parameters),
        BotCredentials(access_token="123:FAKE"),
    )


def ok(*updates: dict[str, Any]) -> PollResponse:
    """A successful getUpdates reply carrying ``updates``."""
    return PollResponse(ok=True, result=list(updates))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
