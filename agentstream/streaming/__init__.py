"""Streaming protocol for agent responses.

Components:
- events.py: wire events (Pydantic tagged union) and native agent events
- codec.py: SSE frame encode / split / decode
- multiplexer.py: server side, agent feed → ordered frames → sink
- sink.py: acknowledged sink feeding a StreamingResponse
- parser.py: client side, chunked text → events
- reconstruction.py: client side, events → rendered message
- formatters.py: tool and failure block renderings
"""

from agentstream.streaming.codec import (
    SSE_DATA_PREFIX,
    SSE_LINE_DELIMITER,
    FrameDecodeError,
    FrameEncodingError,
    decode_frame,
    encode_frame,
    split_frames,
)
from agentstream.streaming.events import (
    AgentEvent,
    AgentEventKind,
    ConnectedEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    StreamMessageType,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
    is_terminal,
)
from agentstream.streaming.multiplexer import (
    AgentRunner,
    EventMultiplexer,
    FrameSink,
    SinkClosedError,
)
from agentstream.streaming.parser import SSEParser, create_sse_parser
from agentstream.streaming.reconstruction import (
    MessageReconstructor,
    ReconstructionState,
    RenderedArtifact,
    reconstruct,
)
from agentstream.streaming.sink import ResponseSink

__all__ = [
    # Codec
    "SSE_DATA_PREFIX",
    "SSE_LINE_DELIMITER",
    "FrameDecodeError",
    "FrameEncodingError",
    "decode_frame",
    "encode_frame",
    "split_frames",
    # Events
    "AgentEvent",
    "AgentEventKind",
    "ConnectedEvent",
    "DoneEvent",
    "ErrorEvent",
    "StreamEvent",
    "StreamMessageType",
    "TokenEvent",
    "ToolEndEvent",
    "ToolStartEvent",
    "is_terminal",
    # Server side
    "AgentRunner",
    "EventMultiplexer",
    "FrameSink",
    "ResponseSink",
    "SinkClosedError",
    # Client side
    "SSEParser",
    "create_sse_parser",
    "MessageReconstructor",
    "ReconstructionState",
    "RenderedArtifact",
    "reconstruct",
]
