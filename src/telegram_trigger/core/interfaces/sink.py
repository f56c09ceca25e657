"""Sink Protocol for the downstream consumer of update batches."""

from collections.abc import Sequence
from typing import Any, Protocol


class UpdateSinkProtocol(Protocol):
    """Receives filtered update batches in remote id order.

    ``emit`` is called from the polling task and must not block; sinks
    that do slow work buffer the batch and process it elsewhere.
    """

    def emit(self, batch: Sequence[dict[str, Any]]) -> None:
        """Accept one batch. The batch may be empty."""
        ...
