"""Telegram bot for university assignments: chat-driven CRUD and deadline reminders."""

__version__ = "0.1.0"
