"""Chat message persistence.

The streaming core only needs ``store(chat_id, role, content) -> message id``.
InMemoryMessageStore is the bundled implementation; anything with the same
coroutine signature can be passed to a ChatSession instead.
"""

from collections import defaultdict
from typing import Protocol

from loguru import logger

from agentstream.models.chat import Role, StoredMessage


class MessageStore(Protocol):
    """Persistence collaborator."""

    async def store(self, chat_id: str, role: Role, content: str) -> str:
        """Persist one message and return its id."""
        ...


class InMemoryMessageStore:
    """Process-local message store keyed by chat id."""

    def __init__(self) -> None:
        self._messages: dict[str, list[StoredMessage]] = defaultdict(list)

    async def store(self, chat_id: str, role: Role, content: str) -> str:
        message = StoredMessage(chat_id=chat_id, role=role, content=content)
        self._messages[chat_id].append(message)
        logger.debug(f"Stored {role} message {message.id} in chat {chat_id}")
        return message.id

    async def list_messages(self, chat_id: str) -> list[StoredMessage]:
        return list(self._messages.get(chat_id, []))
