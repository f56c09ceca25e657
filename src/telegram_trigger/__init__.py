"""Telegram Bot API long-polling trigger."""

__version__ = "0.1.0"
