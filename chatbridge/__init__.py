"""Telegram-to-Claude chat bridge."""

__version__ = "0.1.0"
