"""Long-polling loop over the Bot API ``getUpdates`` endpoint.

One iteration issues a single request, advances the cursor past the last
returned update, filters the batch by update type and hands it to the sink.
Iterations are strictly sequential, so at most one request is in flight and
batches reach the sink in remote id order.
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from typing import Any

import structlog

from telegram_trigger.core.domain.config_schema import PollConfig
from telegram_trigger.core.domain.errors import TransportError, is_conflict
from telegram_trigger.core.domain.updates import (
    GetUpdatesRequest,
    PollCursor,
    RawUpdate,
    filter_updates,
    update_types_of,
)
from telegram_trigger.core.interfaces.sink import UpdateSinkProtocol
from telegram_trigger.core.interfaces.transport import UpdateTransportProtocol

logger = structlog.get_logger(__name__)


class LoopState:
    """Running flag shared by the lifecycle controller and the loop.

    Backed by an ``asyncio.Event`` that is set once a stop is requested.
    """

    def __init__(self) -> None:
        self._stop_requested = asyncio.Event()

    @property
    def running(self) -> bool:
        return not self._stop_requested.is_set()

    def request_stop(self) -> None:
        self._stop_requested.set()


@dataclass
class LoopStats:
    """Counters describing what the loop has done so far."""

    polls: int = 0
    empty_polls: int = 0
    batches_emitted: int = 0
    updates_received: int = 0
    updates_dropped: int = 0
    next_offset: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class UpdatePollingLoop:
    """Poll ``getUpdates`` until the loop state says stop.

    The loop does not retry: any transport failure other than a 409 conflict
    seen after a stop request ends ``run`` with that error.
    """

    def __init__(
        self,
        config: PollConfig,
        transport: UpdateTransportProtocol,
        sink: UpdateSinkProtocol,
        *,
        initial_offset: int = 0,
        state: LoopState | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._sink = sink
        self._cursor = PollCursor(next_offset=initial_offset)
        self._state = state or LoopState()
        self._stats = LoopStats(next_offset=initial_offset)

    @property
    def cursor(self) -> PollCursor:
        return self._cursor

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def stats(self) -> LoopStats:
        return self._stats

    async def run(self) -> None:
        """Run iterations until a stop is requested or a fatal error occurs."""
        logger.info(
            "polling_loop.started",
            offset=self._cursor.next_offset,
            limit=self._config.limit,
            timeout_s=self._config.timeout_seconds,
            allowed_types=sorted(self._config.allowed_types) or "*",
        )
        while self._state.running:
            await self.poll_once()
        logger.info("polling_loop.finished", **self._stats.to_dict())

    async def poll_once(self) -> list[RawUpdate] | None:
        """Run one request/response cycle.

        Returns:
            The batch handed to the sink, or None when nothing was emitted.

        Raises:
            TransportError: For every failed call except a conflict that
                arrives after a stop was requested.
        """
        offset = self._cursor.next_offset
        request = GetUpdatesRequest(
            offset=offset,
            limit=self._config.limit,
            timeout=self._config.timeout_seconds,
            allowed_updates=self._config.allowed_updates,
        )
        self._stats.polls += 1

        try:
            response = await self._transport.get_updates(request)
        except TransportError as exc:
            if is_conflict(exc) and not self._state.running:
                # A replacement poller took over while this one was stopping.
                logger.debug("polling_loop.conflict_while_stopping", offset=offset)
                return None
            raise

        if not response.ok or response.result is None:
            self._stats.empty_polls += 1
            return None

        updates = response.result
        if not updates:
            self._stats.empty_polls += 1
            return None

        # Advance before filtering so a failing sink cannot replay updates.
        self._cursor.advance_past(response.last_update_id)
        self._stats.next_offset = self._cursor.next_offset

        allowed_types = self._config.allowed_types
        batch = filter_updates(updates, allowed_types)
        self._stats.updates_received += len(updates)
        self._stats.updates_dropped += len(updates) - len(batch)

        logger.debug(
            "polling_loop.batch_received",
            received=len(updates),
            forwarded=len(batch),
            dropped_types=sorted(
                {
                    name
                    for update in updates
                    if allowed_types and allowed_types.isdisjoint(update)
                    for name in update_types_of(update)
                }
            ),
            next_offset=self._cursor.next_offset,
        )

        self._sink.emit(batch)
        self._stats.batches_emitted += 1
        return batch
