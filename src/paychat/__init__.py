"""Conversational command engine for a chat-based payments assistant."""

__version__ = "0.1.0"
