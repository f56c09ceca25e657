"""Sink implementations for update batches.

All sinks accept the batch synchronously and never block the polling task.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Callable, Sequence
from typing import Any, TextIO

import structlog

logger = structlog.get_logger(__name__)

Batch = list[dict[str, Any]]


class CallbackUpdateSink:
    """Forward each batch to a plain callable."""

    def __init__(self, callback: Callable[[Batch], None]) -> None:
        self._callback = callback

    def emit(self, batch: Sequence[dict[str, Any]]) -> None:
        self._callback(list(batch))


class QueueUpdateSink:
    """Buffer batches in an unbounded ``asyncio.Queue``.

    Consumers ``await sink.get()`` (or use ``sink.queue`` directly) from
    their own task.
    """

    def __init__(self, queue: asyncio.Queue[Batch] | None = None) -> None:
        self._queue: asyncio.Queue[Batch] = queue if queue is not None else asyncio.Queue()

    @property
    def queue(self) -> asyncio.Queue[Batch]:
        return self._queue

    def emit(self, batch: Sequence[dict[str, Any]]) -> None:
        self._queue.put_nowait(list(batch))

    async def get(self) -> Batch:
        return await self._queue.get()


class JsonLinesUpdateSink:
    """Write every update as one JSON line.

    An empty batch writes nothing but is still counted.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._batches = 0
        self._updates = 0

    @property
    def batches(self) -> int:
        return self._batches

    @property
    def updates(self) -> int:
        return self._updates

    def emit(self, batch: Sequence[dict[str, Any]]) -> None:
        for update in batch:
            self._stream.write(json.dumps(update, ensure_ascii=False) + "\n")
        self._stream.flush()
        self._batches += 1
        self._updates += len(batch)
        logger.debug("jsonl_sink.batch_written", size=len(batch), total=self._updates)
