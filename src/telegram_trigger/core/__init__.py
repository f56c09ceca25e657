"""Core domain and interfaces for the Telegram polling trigger."""
