"""
Unit tests for the event multiplexer.

The multiplexer turns the agent's native feed into exactly:

    connected, (token | tool_start | tool_end)*, done
    connected, (token | tool_start | tool_end)*, error

and writes each frame to the sink before pulling the next native event.
"""

import json

import pytest

from agentstream.streaming.codec import FrameEncodingError
from agentstream.streaming.events import (
    AgentEvent,
    ConnectedEvent,
    DoneEvent,
    ErrorEvent,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
)
from agentstream.streaming.multiplexer import EventMultiplexer, SinkClosedError


class RecordingSink:
    """FrameSink that records frames; can fail writes or close."""

    def __init__(self, fail_after: int | None = None, close_error: Exception | None = None):
        self.frames: list[str] = []
        self.close_calls = 0
        self.fail_after = fail_after
        self.close_error = close_error

    async def write(self, frame: str) -> None:
        if self.fail_after is not None and len(self.frames) >= self.fail_after:
            raise SinkClosedError("client disconnected")
        self.frames.append(frame)

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(f[len("data: "):]) for f in self.frames]


async def _collect(multiplexer: EventMultiplexer) -> list:
    return [event async for event in multiplexer.events()]


class TestEvents:
    """Tests for EventMultiplexer.events ordering and translation."""

    @pytest.mark.asyncio
    async def test_tokens_between_connected_and_done(self, scripted_agent, hello_messages):
        agent = scripted_agent([AgentEvent.token("Hello"), AgentEvent.token(" there")])
        events = await _collect(EventMultiplexer(agent, hello_messages, "c1"))

        assert events == [
            ConnectedEvent(),
            TokenEvent(text="Hello"),
            TokenEvent(text=" there"),
            DoneEvent(),
        ]
        assert agent.calls == [(hello_messages, "c1")]

    @pytest.mark.asyncio
    async def test_connected_is_emitted_before_agent_runs(self, scripted_agent, hello_messages):
        agent = scripted_agent([AgentEvent.token("x")])
        events = EventMultiplexer(agent, hello_messages, "c1").events()

        first = await events.__anext__()
        assert first == ConnectedEvent()
        assert agent.started is False
        await events.aclose()

    @pytest.mark.asyncio
    async def test_tool_events_pass_input_and_output_through(self, scripted_agent, hello_messages):
        agent = scripted_agent([
            AgentEvent.tool_start("search", {"q": "x"}),
            AgentEvent.tool_end("search", {"r": "y"}),
            AgentEvent.token("done"),
        ])
        events = await _collect(EventMultiplexer(agent, hello_messages, "c1"))

        assert events[1:] == [
            ToolStartEvent(tool="search", input={"q": "x"}),
            ToolEndEvent(tool="search", output={"r": "y"}),
            TokenEvent(text="done"),
            DoneEvent(),
        ]

    @pytest.mark.asyncio
    async def test_missing_tool_name_defaults_to_unknown(self, scripted_agent, hello_messages):
        agent = scripted_agent([AgentEvent.tool_start(None, None), AgentEvent.tool_end(None, 3)])
        events = await _collect(EventMultiplexer(agent, hello_messages, "c1"))

        assert events[1] == ToolStartEvent(tool="unknown", input=None)
        assert events[2] == ToolEndEvent(tool="unknown", output=3)

    @pytest.mark.asyncio
    async def test_empty_chunks_and_unknown_events_are_skipped(self, scripted_agent, hello_messages):
        agent = scripted_agent([
            AgentEvent.token(""),
            AgentEvent(event="on_chain_start", name="graph"),
            AgentEvent(event="on_chat_model_stream", data={"chunk": None}),
            AgentEvent.token("ok"),
        ])
        events = await _collect(EventMultiplexer(agent, hello_messages, "c1"))

        assert events == [ConnectedEvent(), TokenEvent(text="ok"), DoneEvent()]

    @pytest.mark.asyncio
    async def test_chunk_objects_with_content_are_tokens(self, scripted_agent, hello_messages):
        class Chunk:
            content = "from object"

        agent = scripted_agent([AgentEvent(event="on_chat_model_stream", data={"chunk": Chunk()})])
        events = await _collect(EventMultiplexer(agent, hello_messages, "c1"))

        assert events[1] == TokenEvent(text="from object")

    @pytest.mark.asyncio
    async def test_fallback_token_when_nothing_was_streamed(self, scripted_agent, hello_messages):
        agent = scripted_agent([AgentEvent.model_end("Buffered answer")])
        events = await _collect(EventMultiplexer(agent, hello_messages, "c1"))

        assert events == [ConnectedEvent(), TokenEvent(text="Buffered answer"), DoneEvent()]

    @pytest.mark.asyncio
    async def test_no_fallback_when_tokens_were_streamed(self, scripted_agent, hello_messages):
        agent = scripted_agent([AgentEvent.token("Hi"), AgentEvent.model_end("Hi")])
        multiplexer = EventMultiplexer(agent, hello_messages, "c1")
        events = await _collect(multiplexer)

        assert events == [ConnectedEvent(), TokenEvent(text="Hi"), DoneEvent()]
        assert multiplexer.tokens_sent is True

    @pytest.mark.asyncio
    async def test_empty_run_is_connected_then_done(self, scripted_agent, hello_messages):
        events = await _collect(EventMultiplexer(scripted_agent([]), hello_messages, "c1"))
        assert events == [ConnectedEvent(), DoneEvent()]

    @pytest.mark.asyncio
    async def test_agent_failure_becomes_single_error_without_done(self, scripted_agent, hello_messages):
        agent = scripted_agent([AgentEvent.token("partial")], raise_after=RuntimeError("boom"))
        events = await _collect(EventMultiplexer(agent, hello_messages, "c1"))

        assert events == [ConnectedEvent(), TokenEvent(text="partial"), ErrorEvent(message="boom")]
        assert agent.closed is True

    @pytest.mark.asyncio
    async def test_error_without_message_uses_fallback(self, scripted_agent, hello_messages):
        agent = scripted_agent([], raise_after=RuntimeError())
        events = await _collect(EventMultiplexer(agent, hello_messages, "c1"))

        assert events[-1] == ErrorEvent(message="Stream processing failed")

    @pytest.mark.asyncio
    async def test_no_fallback_token_after_error(self, scripted_agent, hello_messages):
        agent = scripted_agent([AgentEvent.model_end("answer")], raise_after=ValueError("bad"))
        events = await _collect(EventMultiplexer(agent, hello_messages, "c1"))

        assert events == [ConnectedEvent(), ErrorEvent(message="bad")]


class TestPump:
    """Tests for EventMultiplexer.pump writing to a sink."""

    @pytest.mark.asyncio
    async def test_frames_written_in_order_and_sink_closed_once(self, scripted_agent, hello_messages):
        agent = scripted_agent([AgentEvent.token("Hello"), AgentEvent.token(" there")])
        sink = RecordingSink()

        await EventMultiplexer(agent, hello_messages, "c1").pump(sink)

        assert sink.payloads == [
            {"type": "connected"},
            {"type": "token", "text": "Hello"},
            {"type": "token", "text": " there"},
            {"type": "done"},
        ]
        assert all(f.endswith("\n\n") for f in sink.frames)
        assert sink.close_calls == 1

    @pytest.mark.asyncio
    async def test_error_path_closes_sink_once(self, scripted_agent, hello_messages):
        agent = scripted_agent([], raise_after=RuntimeError("boom"))
        sink = RecordingSink()

        await EventMultiplexer(agent, hello_messages, "c1").pump(sink)

        assert [p["type"] for p in sink.payloads] == ["connected", "error"]
        assert sink.close_calls == 1

    @pytest.mark.asyncio
    async def test_close_failure_is_not_propagated(self, scripted_agent, hello_messages):
        sink = RecordingSink(close_error=OSError("already closed"))

        await EventMultiplexer(scripted_agent([]), hello_messages, "c1").pump(sink)

        assert sink.close_calls == 1
        assert sink.payloads[-1] == {"type": "done"}

    @pytest.mark.asyncio
    async def test_client_disconnect_stops_agent_and_releases_sink(self, scripted_agent, hello_messages):
        agent = scripted_agent([AgentEvent.token(str(i)) for i in range(10)])
        sink = RecordingSink(fail_after=3)

        await EventMultiplexer(agent, hello_messages, "c1").pump(sink)

        assert len(sink.frames) == 3
        assert sink.close_calls == 1
        assert agent.closed is True

    @pytest.mark.asyncio
    async def test_encoding_failure_is_fatal_not_an_error_event(self, scripted_agent, hello_messages):
        agent = scripted_agent([AgentEvent.tool_start("t", object())])
        sink = RecordingSink()

        with pytest.raises(FrameEncodingError):
            await EventMultiplexer(agent, hello_messages, "c1").pump(sink)

        assert [p["type"] for p in sink.payloads] == ["connected"]
        assert sink.close_calls == 1
