"""Application layer: the polling loop and its lifecycle controller."""

from telegram_trigger.application.polling_loop import (
    LoopState,
    LoopStats,
    UpdatePollingLoop,
)
from telegram_trigger.application.trigger import TelegramTrigger, TriggerHandle

__all__ = [
    "LoopState",
    "LoopStats",
    "TelegramTrigger",
    "TriggerHandle",
    "UpdatePollingLoop",
]
