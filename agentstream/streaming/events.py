"""Stream event types.

Two vocabularies live here:

- StreamEvent: the wire protocol. A tagged union of Pydantic models
  discriminated by ``type``. Exactly one ``connected`` first, exactly one
  terminal (``done`` or ``error``) last.
- AgentEvent: the agent collaborator's native feed, shaped like a
  streamed-events callback (``on_chat_model_stream``, ``on_tool_start`` ...).
  The multiplexer translates it into StreamEvents.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class StreamMessageType(str, Enum):
    """Discriminant values carried in the ``type`` field of every frame."""

    CONNECTED = "connected"
    TOKEN = "token"
    TOOL_START = "tool_start"
    TOOL_END = "tool_end"
    ERROR = "error"
    DONE = "done"


class ConnectedEvent(BaseModel):
    """First event of every stream."""

    type: Literal["connected"] = "connected"


class TokenEvent(BaseModel):
    """Incremental fragment of assistant text."""

    type: Literal["token"] = "token"
    text: str


class ToolStartEvent(BaseModel):
    """A tool invocation has begun. ``input`` is passed through unvalidated."""

    type: Literal["tool_start"] = "tool_start"
    tool: str = "unknown"
    input: Any = None


class ToolEndEvent(BaseModel):
    """The most recently started tool invocation completed."""

    type: Literal["tool_end"] = "tool_end"
    tool: str = "unknown"
    output: Any = None


class ErrorEvent(BaseModel):
    """Terminal failure."""

    type: Literal["error"] = "error"
    message: str


class DoneEvent(BaseModel):
    """Terminal success."""

    type: Literal["done"] = "done"


StreamEvent = Annotated[
    Union[
        ConnectedEvent,
        TokenEvent,
        ToolStartEvent,
        ToolEndEvent,
        ErrorEvent,
        DoneEvent,
    ],
    Field(discriminator="type"),
]

stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)

TERMINAL_TYPES = frozenset({StreamMessageType.ERROR.value, StreamMessageType.DONE.value})


def is_terminal(event: BaseModel) -> bool:
    """True for ``done`` and ``error`` events."""
    return getattr(event, "type", None) in TERMINAL_TYPES


class AgentEventKind(str, Enum):
    """Native agent event names the multiplexer understands."""

    MODEL_STREAM = "on_chat_model_stream"
    MODEL_END = "on_chat_model_end"
    TOOL_START = "on_tool_start"
    TOOL_END = "on_tool_end"


class AgentEvent(BaseModel):
    """One item of the agent collaborator's native event feed.

    ``data`` keys by kind:
    - on_chat_model_stream: ``chunk`` (text increment)
    - on_chat_model_end: ``output`` (final, possibly non-streamed content)
    - on_tool_start: ``input``
    - on_tool_end: ``output``

    Events with any other ``event`` name are ignored downstream.
    """

    event: str
    name: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def token(cls, text: str) -> "AgentEvent":
        return cls(event=AgentEventKind.MODEL_STREAM.value, data={"chunk": text})

    @classmethod
    def model_end(cls, output: Any) -> "AgentEvent":
        return cls(event=AgentEventKind.MODEL_END.value, data={"output": output})

    @classmethod
    def tool_start(cls, name: str | None, input: Any = None) -> "AgentEvent":
        return cls(event=AgentEventKind.TOOL_START.value, name=name, data={"input": input})

    @classmethod
    def tool_end(cls, name: str | None, output: Any = None) -> "AgentEvent":
        return cls(event=AgentEventKind.TOOL_END.value, name=name, data={"output": output})
