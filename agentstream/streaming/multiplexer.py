"""
Event Multiplexer
=================

Adapts the agent collaborator's native event feed onto the wire protocol and
writes one frame at a time to an output sink.

    agent.run(messages, chat_id)
         │  on_chat_model_stream / on_chat_model_end / on_tool_start / on_tool_end
         ▼
    EventMultiplexer.events()      ordered StreamEvents
         │
         ▼
    EventMultiplexer.pump(sink)    encode_frame() → await sink.write() → ... → sink.close()

ORDERING
--------
``connected`` is produced before the agent is invoked. Every native event is
translated in consumption order; nothing is batched or reordered. The stream
ends with exactly one terminal event:

- ``done`` when the native feed is exhausted
- ``error`` when iterating the feed raises (and nothing after it)

If the run streamed no tokens but reported a final model output, that output
is sent as a single ``token`` before ``done``. Agents that buffer instead of
streaming still produce a visible answer this way.

BACKPRESSURE
------------
``pump`` awaits each ``sink.write`` before pulling the next native event, so a
slow client slows the agent once the sink's bounded buffer is full. When the
client goes away the sink raises ``SinkClosedError``; the pump stops, closes
the agent feed and releases the sink.
"""

from contextlib import aclosing
from typing import Any, AsyncGenerator, Protocol

from loguru import logger

from agentstream.models.chat import ChatMessage
from agentstream.streaming.codec import encode_frame
from agentstream.streaming.events import (
    AgentEvent,
    AgentEventKind,
    ConnectedEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
)

DEFAULT_ERROR_MESSAGE = "Stream processing failed"


class SinkClosedError(Exception):
    """The consumer of a sink is gone; further writes cannot be delivered."""


class FrameSink(Protocol):
    """Destination for encoded frames. One per connection."""

    async def write(self, frame: str) -> None:
        """Deliver a frame; returns once the sink has accepted it."""
        ...

    async def close(self) -> None:
        ...


class AgentRunner(Protocol):
    """Agent collaborator: one run per conversational turn."""

    def run(self, messages: list[ChatMessage], chat_id: str) -> AsyncGenerator[AgentEvent, None]:
        ...


def _text_of(value: Any) -> str | None:
    """Text carried by a model chunk: a plain string or an object with string ``content``."""
    if isinstance(value, str):
        return value
    content = getattr(value, "content", None)
    if isinstance(content, str):
        return content
    return None


class EventMultiplexer:
    """Drives one agent run and emits its events as an ordered protocol stream."""

    def __init__(self, agent: AgentRunner, messages: list[ChatMessage], chat_id: str):
        self.agent = agent
        self.messages = messages
        self.chat_id = chat_id
        self.tokens_sent = False

    async def events(self) -> AsyncGenerator[StreamEvent, None]:
        """Yield the protocol events for one run, terminal event last."""
        logger.info(f"[SSE] Sending connection message for chat {self.chat_id}")
        yield ConnectedEvent()

        last_model_content: str | None = None

        try:
            async with aclosing(self.agent.run(self.messages, self.chat_id)) as feed:
                async for native in feed:
                    kind = native.event

                    if kind == AgentEventKind.MODEL_STREAM.value:
                        text = _text_of(native.data.get("chunk"))
                        if text:
                            self.tokens_sent = True
                            yield TokenEvent(text=text)

                    elif kind == AgentEventKind.MODEL_END.value:
                        content = _text_of(native.data.get("output"))
                        if content:
                            last_model_content = content

                    elif kind == AgentEventKind.TOOL_START.value:
                        logger.info(f"[SSE] Tool started: {native.name}")
                        yield ToolStartEvent(
                            tool=native.name or "unknown",
                            input=native.data.get("input"),
                        )

                    elif kind == AgentEventKind.TOOL_END.value:
                        logger.info(f"[SSE] Tool ended: {native.name}")
                        yield ToolEndEvent(
                            tool=native.name or "unknown",
                            output=native.data.get("output"),
                        )

                    else:
                        logger.debug(f"[SSE] Ignoring agent event: {kind}")

        except Exception as e:
            logger.error(f"[SSE] Error in event stream: {e}")
            yield ErrorEvent(message=str(e) or DEFAULT_ERROR_MESSAGE)
            return

        if not self.tokens_sent and last_model_content:
            logger.info("[SSE] Sending fallback token")
            yield TokenEvent(text=last_model_content)

        logger.info(f"[SSE] Sending completion message for chat {self.chat_id}")
        yield DoneEvent()

    async def pump(self, sink: FrameSink) -> None:
        """Write every event to ``sink`` in order, then release the sink once."""
        try:
            async with aclosing(self.events()) as events:
                async for event in events:
                    frame = encode_frame(event)
                    logger.debug(f"[SSE] Sending message: {frame.rstrip()}")
                    await sink.write(frame)
        except SinkClosedError as e:
            logger.warning(f"[SSE] Client went away, stopping chat {self.chat_id}: {e}")
        finally:
            try:
                await sink.close()
            except Exception as close_error:
                logger.error(f"[SSE] Error closing writer: {close_error}")
