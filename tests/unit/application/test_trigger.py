"""Unit tests for TelegramTrigger and its stop handle."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from conftest import RecordingSink, ScriptedTransport, ok
from telegram_trigger.application.trigger import TelegramTrigger
from telegram_trigger.core.domain.config_schema import TriggerParameters
from telegram_trigger.core.domain.errors import BotApiError, ConfigError
from telegram_trigger.infrastructure.config.credentials import (
    EnvCredentialProvider,
    StaticCredentialProvider,
)


async def _until(predicate, attempts: int = 100) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def factory(transport: ScriptedTransport) -> MagicMock:
    return MagicMock(return_value=transport)


def _trigger(factory, sink, **kwargs) -> TelegramTrigger:
    parameters = kwargs.pop("parameters", TriggerParameters(timeout=0))
    return TelegramTrigger(
        parameters,
        StaticCredentialProvider("123:FAKE", "http://api.local"),
        sink,
        transport_factory=factory,
        **kwargs,
    )


class TestLifecycle:
    async def test_start_and_stop(
        self, factory: MagicMock, transport: ScriptedTransport, sink: RecordingSink
    ) -> None:
        trigger = _trigger(factory, sink)

        handle = await trigger.start()
        assert handle.is_running
        await _until(lambda: transport.requests)

        await handle.stop()

        assert not handle.is_running
        assert handle.done
        assert handle.exception() is None
        assert transport.cancelled is True
        assert transport.closed >= 1

    async def test_transport_built_from_credentials(
        self, factory: MagicMock, sink: RecordingSink
    ) -> None:
        trigger = _trigger(factory, sink)

        handle = await trigger.start()
        await handle.stop()

        credentials = factory.call_args.args[0]
        assert credentials.base_url == "http://api.local"
        assert credentials.access_token == "123:FAKE"

    async def test_start_returns_immediately_and_emits_in_background(
        self, factory: MagicMock, transport: ScriptedTransport, sink: RecordingSink
    ) -> None:
        transport.steps = [ok({"update_id": 5, "message": {}})]
        trigger = _trigger(factory, sink, parameters=TriggerParameters(offset=0, timeout=0))

        handle = await trigger.start()
        await _until(lambda: sink.batches)

        assert sink.batches == [[{"update_id": 5, "message": {}}]]
        assert handle.cursor == 6
        assert handle.stats.batches_emitted == 1
        await handle.stop()

    async def test_initial_offset_comes_from_parameters(
        self, factory: MagicMock, transport: ScriptedTransport, sink: RecordingSink
    ) -> None:
        trigger = _trigger(factory, sink, parameters=TriggerParameters(offset=-10))

        handle = await trigger.start()
        await _until(lambda: transport.requests)
        await handle.stop()

        assert transport.requests[0].offset == -10

    async def test_second_start_returns_running_handle(
        self, factory: MagicMock, sink: RecordingSink
    ) -> None:
        trigger = _trigger(factory, sink)

        first = await trigger.start()
        second = await trigger.start()

        assert first is second
        assert factory.call_count == 1
        await trigger.stop()

    async def test_stop_twice_is_harmless(
        self, factory: MagicMock, transport: ScriptedTransport, sink: RecordingSink
    ) -> None:
        trigger = _trigger(factory, sink)
        handle = await trigger.start()

        await handle.stop()
        await handle.stop()
        await trigger.stop()

        assert handle.done
        assert handle.exception() is None

    async def test_stop_between_iterations_prevents_next_request(
        self, factory: MagicMock, transport: ScriptedTransport, sink: RecordingSink
    ) -> None:
        trigger = _trigger(factory, sink)
        handle = await trigger.start()

        handle.request_stop()
        await asyncio.wait_for(handle.wait(), timeout=1)

        assert transport.requests == []

    async def test_stop_threadsafe(
        self, factory: MagicMock, transport: ScriptedTransport, sink: RecordingSink
    ) -> None:
        trigger = _trigger(factory, sink)
        handle = await trigger.start()
        await _until(lambda: transport.requests)

        await asyncio.to_thread(handle.stop_threadsafe)
        await asyncio.wait_for(handle.wait(), timeout=1)

        assert handle.done
        assert transport.cancelled is True

    async def test_drop_webhook_runs_before_first_poll(
        self, factory: MagicMock, transport: ScriptedTransport, sink: RecordingSink
    ) -> None:
        trigger = _trigger(
            factory, sink, parameters=TriggerParameters(timeout=0, drop_webhook=True)
        )

        handle = await trigger.start()
        await _until(lambda: transport.requests)
        await handle.stop()

        assert transport.calls[:2] == ["deleteWebhook", "getUpdates"]


class TestErrors:
    async def test_fatal_error_is_reported_and_surfaced(
        self, factory: MagicMock, transport: ScriptedTransport, sink: RecordingSink
    ) -> None:
        error = BotApiError("getUpdates failed with HTTP 401: Unauthorized", status_code=401)
        transport.steps = [error]
        on_error = MagicMock()
        trigger = _trigger(factory, sink, on_error=on_error)

        handle = await trigger.start()
        with pytest.raises(BotApiError):
            await handle.wait()

        on_error.assert_called_once_with(error)
        assert handle.exception() is error
        assert not handle.is_running
        assert transport.closed >= 1

    async def test_stop_after_fatal_error_does_not_raise(
        self, factory: MagicMock, transport: ScriptedTransport, sink: RecordingSink
    ) -> None:
        transport.steps = [BotApiError("getUpdates failed with HTTP 409", status_code=409)]
        trigger = _trigger(factory, sink)

        handle = await trigger.start()
        await _until(lambda: handle.done)

        await handle.stop()
        await handle.stop()

        assert isinstance(handle.exception(), BotApiError)

    async def test_failing_error_handler_does_not_hide_error(
        self, factory: MagicMock, transport: ScriptedTransport, sink: RecordingSink
    ) -> None:
        transport.steps = [BotApiError("boom", status_code=500)]
        trigger = _trigger(factory, sink, on_error=MagicMock(side_effect=RuntimeError))

        handle = await trigger.start()

        with pytest.raises(BotApiError):
            await handle.wait()

    async def test_missing_credentials_fail_before_polling(
        self, factory: MagicMock, sink: RecordingSink
    ) -> None:
        trigger = TelegramTrigger(
            TriggerParameters(),
            EnvCredentialProvider(environ={}),
            sink,
            transport_factory=factory,
        )

        with pytest.raises(ConfigError):
            await trigger.start()

        factory.assert_not_called()
        assert trigger.handle is None

    async def test_stop_during_cleanup_keeps_fatal_error(
        self, sink: RecordingSink
    ) -> None:
        class SlowCloseTransport(ScriptedTransport):
            async def close(self) -> None:
                self.closed += 1
                await asyncio.sleep(0.05)

        transport = SlowCloseTransport(
            [BotApiError("getUpdates failed with HTTP 401: Unauthorized", status_code=401)]
        )
        trigger = _trigger(MagicMock(return_value=transport), sink)

        handle = await trigger.start()
        await _until(lambda: transport.closed)
        await handle.stop()

        assert handle.done
        assert isinstance(handle.exception(), BotApiError)
        with pytest.raises(BotApiError):
            await handle.wait()

    async def test_failed_webhook_removal_does_not_stop_polling(
        self, sink: RecordingSink
    ) -> None:
        class WebhookFailingTransport(ScriptedTransport):
            async def delete_webhook(self, drop_pending_updates: bool = False) -> bool:
                self.calls.append("deleteWebhook")
                raise BotApiError("deleteWebhook failed with HTTP 500", status_code=500)

        transport = WebhookFailingTransport([ok({"update_id": 3, "message": {}})])
        trigger = _trigger(
            MagicMock(return_value=transport),
            sink,
            parameters=TriggerParameters(timeout=0, drop_webhook=True),
        )

        handle = await trigger.start()
        await _until(lambda: sink.batches)
        await handle.stop()

        assert transport.calls[:2] == ["deleteWebhook", "getUpdates"]
        assert sink.batches == [[{"update_id": 3, "message": {}}]]
        assert handle.exception() is None
