"""
Chat session - client side of one conversation.

    send("question")
      │
      ├── store user message, append it to visible history (optimistic)
      ├── POST /api/chat/stream with the whole visible history
      ├── read loop: chunk → SSEParser.parse() → MessageReconstructor.apply()
      │
      ├── done:  persist the assistant message once (if non-empty) and append it
      └── error: retract the optimistic user message, keep the failure rendering

Transport failures, non-200 responses and a body that ends without a terminal
event are treated exactly like an ``error`` event.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import httpx
from loguru import logger
from pydantic import BaseModel

from agentstream.models.chat import Role, StoredMessage
from agentstream.services.store import MessageStore
from agentstream.settings import settings
from agentstream.streaming.parser import create_sse_parser
from agentstream.streaming.reconstruction import MessageReconstructor, ReconstructionState

STREAM_PATH = "/api/chat/stream"
INCOMPLETE_STREAM_ERROR = "Stream ended before completion"

EventCallback = Callable[[BaseModel, MessageReconstructor], None]


class ChatRequestError(Exception):
    """The server refused the request before opening a stream."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail or f"HTTP {status_code}")


class ChatSession:
    """Visible history plus the streaming turn loop for one chat."""

    def __init__(
        self,
        chat_id: str,
        *,
        store: MessageStore,
        user_id: str,
        base_url: str | None = None,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        history: list[StoredMessage] | None = None,
        timeout: float | None = None,
    ):
        self.chat_id = chat_id
        self.store = store
        self.user_id = user_id
        self.base_url = (base_url or settings.client.base_url).rstrip("/")
        self.api_key = api_key
        self.timeout = timeout or settings.client.timeout
        self.messages: list[StoredMessage] = list(history or [])
        self._http_client = http_client

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    def _headers(self) -> dict[str, str]:
        headers = {settings.auth.user_header: self.user_id}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _persist(self, role: Role, content: str) -> StoredMessage:
        """Store a message; a store failure is logged and a local id used instead."""
        message = StoredMessage(chat_id=self.chat_id, role=role, content=content)
        try:
            message.id = await self.store.store(self.chat_id, role, content)
        except Exception as e:
            logger.error(f"[Chat] Failed to store {role} message: {e}")
        return message

    async def send(self, content: str, on_event: EventCallback | None = None) -> MessageReconstructor | None:
        """Run one turn. Returns None for blank input, else the finished reconstructor."""
        trimmed_input = content.strip()
        if not trimmed_input:
            return None

        user_message = await self._persist("user", trimmed_input)
        self.messages.append(user_message)

        request_body = {
            "messages": [m.to_chat_message().model_dump() for m in self.messages],
            "chatId": self.chat_id,
        }
        logger.debug(f"[Chat] Sending request: {request_body}")

        reconstructor = MessageReconstructor()
        try:
            await self._stream(request_body, reconstructor, on_event)
            if not reconstructor.is_terminal:
                reconstructor.fail(INCOMPLETE_STREAM_ERROR)
        except (ChatRequestError, httpx.HTTPError) as e:
            logger.error(f"[Chat] Error sending message: {e}")
            reconstructor.fail(str(e) or type(e).__name__)

        if reconstructor.state is ReconstructionState.FAILED:
            # Remove the optimistic user message so no question is left unanswered
            if reconstructor.retract_user_message:
                self.messages = [m for m in self.messages if m.id != user_message.id]
            return reconstructor

        final_content = reconstructor.take_final_content()
        if final_content is not None:
            self.messages.append(await self._persist("assistant", final_content))
        return reconstructor

    async def _stream(
        self,
        request_body: dict,
        reconstructor: MessageReconstructor,
        on_event: EventCallback | None,
    ) -> None:
        parser = create_sse_parser()
        async with self._client() as client:
            async with client.stream(
                "POST",
                f"{self.base_url}{STREAM_PATH}",
                json=request_body,
                headers=self._headers(),
            ) as response:
                if response.status_code != 200:
                    detail = (await response.aread()).decode("utf-8", errors="replace")
                    raise ChatRequestError(response.status_code, detail)

                async for chunk in response.aiter_text():
                    logger.debug(f"[SSE] Raw chunk received: {chunk!r}")
                    for event in parser.parse(chunk):
                        reconstructor.apply(event)
                        if on_event is not None:
                            on_event(event, reconstructor)
                        if reconstructor.is_terminal:
                            return
