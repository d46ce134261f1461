"""Telegram bot for reporting a child's school absence."""

__version__ = "0.1.0"
