"""Core domain models: updates, cursor, configuration and errors."""
