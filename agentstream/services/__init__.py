"""Service collaborators."""

from agentstream.services.store import InMemoryMessageStore, MessageStore

__all__ = ["InMemoryMessageStore", "MessageStore"]
