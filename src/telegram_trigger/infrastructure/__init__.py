"""Infrastructure adapters: Bot API transport, sinks and configuration."""
