"""Dispatch: recurrence, rollover and template engine for a personal productivity backend."""

__version__ = "1.0.0"
