"""agentstream data models."""

from agentstream.models.chat import ChatMessage, ChatRequestBody, Role, StoredMessage

__all__ = ["ChatMessage", "ChatRequestBody", "Role", "StoredMessage"]
