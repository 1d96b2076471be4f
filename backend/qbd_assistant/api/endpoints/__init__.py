"""API endpoints package."""

from qbd_assistant.api.endpoints import chat, health, quickbooks

__all__ = ["chat", "health", "quickbooks"]
