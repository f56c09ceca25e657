"""Transport Protocol for the Bot API long-polling endpoint.

Defines the contract for components that issue ``getUpdates`` calls on
behalf of the polling loop.
"""

from typing import Protocol

from telegram_trigger.core.domain.updates import GetUpdatesRequest, PollResponse


class UpdateTransportProtocol(Protocol):
    """Protocol for the HTTP transport used by the polling loop.

    The transport holds no polling state: every call is built from the
    request it receives. Cancelling the awaiting task aborts an in-flight
    call.
    """

    async def get_updates(self, request: GetUpdatesRequest) -> PollResponse:
        """Issue one ``getUpdates`` call.

        Args:
            request: Offset, limit, timeout and server-side type hint.

        Returns:
            Parsed reply envelope.

        Raises:
            TransportError: On network failures, non-2xx replies (as
                ``BotApiError``) or unreadable bodies.
        """
        ...

    async def delete_webhook(self, drop_pending_updates: bool = False) -> bool:
        """Remove a registered webhook so ``getUpdates`` can be used.

        Returns:
            True if the Bot API confirmed the removal.
        """
        ...

    async def close(self) -> None:
        """Release HTTP resources owned by the transport."""
        ...
