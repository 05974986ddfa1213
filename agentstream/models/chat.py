"""Chat request and message models."""

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant"]


class ChatMessage(BaseModel):
    """Single conversation turn as sent over the wire."""

    role: Role
    content: str


class ChatRequestBody(BaseModel):
    """Body of POST /api/chat/stream."""

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessage] = Field(min_length=1)
    chat_id: str = Field(alias="chatId", min_length=1)


class StoredMessage(BaseModel):
    """A message as held by the persistence collaborator."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    chat_id: str
    role: Role
    content: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_chat_message(self) -> ChatMessage:
        return ChatMessage(role=self.role, content=self.content)
