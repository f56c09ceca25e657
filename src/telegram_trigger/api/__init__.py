"""Outer surfaces of the trigger."""
