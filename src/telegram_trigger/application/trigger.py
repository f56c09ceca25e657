"""Lifecycle controller for the Telegram polling trigger.

Usage::

    trigger = TelegramTrigger(
        parameters=TriggerParameters(updates=["message"]),
        credentials_provider=EnvCredentialProvider(),
        sink=QueueUpdateSink(),
    )
    handle = await trigger.start()   # polls in the background
    ...
    await handle.stop()
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from telegram_trigger.application.polling_loop import (
    LoopState,
    LoopStats,
    UpdatePollingLoop,
)
from telegram_trigger.core.domain.config_schema import (
    BotCredentials,
    PollConfig,
    TriggerParameters,
)
from telegram_trigger.core.domain.errors import TransportError
from telegram_trigger.core.interfaces.credentials import CredentialProviderProtocol
from telegram_trigger.core.interfaces.sink import UpdateSinkProtocol
from telegram_trigger.core.interfaces.transport import UpdateTransportProtocol

logger = structlog.get_logger(__name__)

TransportFactory = Callable[[BotCredentials], UpdateTransportProtocol]
ErrorHandler = Callable[[BaseException], None]


@dataclass
class RunOutcome:
    """Fatal error of a polling task, recorded before the task unwinds."""

    error: BaseException | None = None


def _default_transport_factory(credentials: BotCredentials) -> UpdateTransportProtocol:
    from telegram_trigger.infrastructure.telegram.bot_api_client import BotApiTransport

    return BotApiTransport(
        base_url=credentials.base_url,
        access_token=credentials.access_token,
    )


class TriggerHandle:
    """Stop handle for one running polling task.

    ``stop`` is idempotent and may be called after the task already ended,
    including when it ended with an error.
    """

    def __init__(
        self,
        *,
        loop: UpdatePollingLoop,
        task: asyncio.Task[None],
        transport: UpdateTransportProtocol,
        outcome: RunOutcome,
    ) -> None:
        self._loop = loop
        self._task = task
        self._transport = transport
        self._outcome = outcome

    @property
    def is_running(self) -> bool:
        """Whether the task is alive and no stop was requested."""
        return self._loop.state.running and not self._task.done()

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def cursor(self) -> int:
        """Offset the next ``getUpdates`` call will use."""
        return self._loop.cursor.next_offset

    @property
    def stats(self) -> LoopStats:
        return self._loop.stats

    def exception(self) -> BaseException | None:
        """Error that ended the task, or None while running or after a clean stop."""
        if not self._task.done():
            return None
        if self._outcome.error is not None:
            return self._outcome.error
        if self._task.cancelled():
            return None
        return self._task.exception()

    async def wait(self) -> None:
        """Wait for the task to end; re-raises the error that ended it.

        A task cancelled by a stop request counts as a clean end.
        """
        await asyncio.wait({self._task})
        if self._outcome.error is not None:
            if not self._task.cancelled():
                self._task.exception()
            raise self._outcome.error
        if self._task.cancelled() and not self._loop.state.running:
            return
        self._task.result()

    def request_stop(self) -> None:
        """Flip the running flag and abort the in-flight request.

        Returns without waiting for the task to unwind; use ``stop`` to
        also release the transport.
        """
        state: LoopState = self._loop.state
        if state.running:
            logger.info("telegram_trigger.stop_requested", offset=self.cursor)
        state.request_stop()
        if not self._task.done():
            self._task.cancel()

    def stop_threadsafe(self) -> None:
        """Request a stop from a thread other than the event loop's."""
        self._task.get_loop().call_soon_threadsafe(self.request_stop)

    async def stop(self) -> None:
        """Request a stop and wait until the task has finished."""
        self.request_stop()
        await asyncio.wait({self._task})
        if not self._task.cancelled():
            # Mark a fatal error as retrieved; it was reported when it happened.
            self._task.exception()
        await self._transport.close()


class TelegramTrigger:
    """Start and stop a background ``getUpdates`` polling task.

    Fatal errors end the task. They are logged, passed to ``on_error`` when
    given, and re-raised by ``TriggerHandle.wait``.
    """

    def __init__(
        self,
        parameters: TriggerParameters,
        credentials_provider: CredentialProviderProtocol,
        sink: UpdateSinkProtocol,
        *,
        transport_factory: TransportFactory | None = None,
        on_error: ErrorHandler | None = None,
        name: str = "telegram-trigger",
    ) -> None:
        self._parameters = parameters
        self._credentials_provider = credentials_provider
        self._sink = sink
        self._transport_factory = transport_factory or _default_transport_factory
        self._on_error = on_error
        self._name = name
        self._handle: TriggerHandle | None = None

    @property
    def handle(self) -> TriggerHandle | None:
        return self._handle

    async def start(self) -> TriggerHandle:
        """Start polling in the background and return its stop handle.

        Raises:
            ConfigError: If the credentials cannot be resolved.
        """
        if self._handle is not None and self._handle.is_running:
            return self._handle

        credentials = await self._credentials_provider.get_credentials()
        config = PollConfig.from_parameters(self._parameters, credentials)
        transport = self._transport_factory(credentials)
        loop = UpdatePollingLoop(
            config,
            transport,
            self._sink,
            initial_offset=self._parameters.offset,
        )
        outcome = RunOutcome()
        task = asyncio.create_task(
            self._run(loop, transport, outcome), name=self._name
        )
        self._handle = TriggerHandle(
            loop=loop, task=task, transport=transport, outcome=outcome
        )
        logger.info(
            "telegram_trigger.started",
            name=self._name,
            base_url=config.endpoint_base,
            offset=self._parameters.offset,
        )
        return self._handle

    async def stop(self) -> None:
        """Stop the current task, if any."""
        if self._handle is not None:
            await self._handle.stop()

    async def _run(
        self,
        loop: UpdatePollingLoop,
        transport: UpdateTransportProtocol,
        outcome: RunOutcome,
    ) -> None:
        try:
            if self._parameters.drop_webhook:
                await self._delete_webhook(transport)
            await loop.run()
        except asyncio.CancelledError:
            if loop.state.running:
                raise
            logger.info("telegram_trigger.request_aborted", offset=loop.cursor.next_offset)
        except Exception as exc:
            outcome.error = exc
            logger.error(
                "telegram_trigger.failed",
                name=self._name,
                error=str(exc),
                error_type=type(exc).__name__,
                offset=loop.cursor.next_offset,
            )
            if self._on_error is not None:
                try:
                    self._on_error(exc)
                except Exception as handler_exc:
                    logger.warning(
                        "telegram_trigger.error_handler_failed", error=str(handler_exc)
                    )
            raise
        finally:
            await transport.close()
        logger.info("telegram_trigger.stopped", name=self._name)

    async def _delete_webhook(self, transport: UpdateTransportProtocol) -> None:
        """Remove any registered webhook so long-polling works."""
        try:
            deleted = await transport.delete_webhook()
        except TransportError as exc:
            logger.warning("telegram_trigger.delete_webhook_failed", error=str(exc))
            return
        logger.info("telegram_trigger.webhook_deleted", deleted=deleted)
