"""Telegram Bot API adapters."""

from telegram_trigger.infrastructure.telegram.bot_api_client import BotApiTransport

__all__ = ["BotApiTransport"]
