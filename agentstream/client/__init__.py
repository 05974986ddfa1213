"""Streaming chat client."""

from agentstream.client.session import ChatRequestError, ChatSession

__all__ = ["ChatRequestError", "ChatSession"]
