"""Downstream sinks that receive update batches from the polling loop."""

from telegram_trigger.infrastructure.sinks.update_sinks import (
    CallbackUpdateSink,
    JsonLinesUpdateSink,
    QueueUpdateSink,
)

__all__ = ["CallbackUpdateSink", "JsonLinesUpdateSink", "QueueUpdateSink"]
