"""
Message Reconstruction
======================

Folds the ordered event stream into one rendered assistant message.

STATES
------

    IDLE ──connected──► STREAMING ──done──► COMPLETED
      │                     │
      └──────error──────────┴──error──► FAILED

COMPLETED and FAILED are absorbing; events arriving after them are ignored.

ARTIFACT
--------
The rendered message is kept as a list of segments rather than one flat
string. A tool call opens a ToolSegment holding the ``Processing...``
placeholder; ``tool_end`` finalises exactly that segment through the stored
open-region index. Text that arrived while the tool was open stays after it.

Only one tool call is open at a time. A ``tool_start`` that arrives while
another call is open supersedes it as the target of the next ``tool_end``;
the earlier placeholder is left as rendered.

The machine is a pure fold: the same event sequence through a fresh instance
always renders the same artifact.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger
from pydantic import BaseModel

from agentstream.streaming.events import (
    ConnectedEvent,
    DoneEvent,
    ErrorEvent,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
)
from agentstream.streaming.formatters import (
    format_failure,
    format_no_response,
    format_pending_tool,
    format_tool_block,
)


class ReconstructionState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TextSegment:
    text: str

    def render(self) -> str:
        return self.text


@dataclass
class ToolSegment:
    tool: str
    input: Any
    output: Any = None
    closed: bool = False

    def render(self) -> str:
        if not self.closed:
            return format_pending_tool(self.tool, self.input)
        return format_tool_block(self.tool, self.input, self.output)


@dataclass
class PendingTool:
    """Tool call started but not yet ended. ``tool_end`` does not resend input."""

    name: str
    input: Any
    segment_index: int


@dataclass
class RenderedArtifact:
    """Segmented assistant message under construction."""

    segments: list[TextSegment | ToolSegment] = field(default_factory=list)

    def append_text(self, text: str) -> None:
        if self.segments and isinstance(self.segments[-1], TextSegment):
            self.segments[-1].text += text
        else:
            self.segments.append(TextSegment(text))

    def open_tool(self, tool: str, input: Any) -> int:
        self.segments.append(ToolSegment(tool=tool, input=input))
        return len(self.segments) - 1

    def close_tool(self, index: int, tool: str, input: Any, output: Any) -> None:
        self.segments[index] = ToolSegment(tool=tool, input=input, output=output, closed=True)

    def render(self) -> str:
        return "".join(segment.render() for segment in self.segments)


class MessageReconstructor:
    """State machine folding stream events into one rendered message."""

    def __init__(self) -> None:
        self.state = ReconstructionState.IDLE
        self.artifact = RenderedArtifact()
        self.pending_tool: PendingTool | None = None
        self.error: str | None = None
        self.retract_user_message = False
        self._final_content: str | None = None
        self._final_rendering: str | None = None
        self._handed_off = False

    @property
    def is_terminal(self) -> bool:
        return self.state in (ReconstructionState.COMPLETED, ReconstructionState.FAILED)

    @property
    def no_response(self) -> bool:
        """Completed, but with nothing worth keeping."""
        return self.state is ReconstructionState.COMPLETED and self._final_content is None

    @property
    def rendered(self) -> str:
        """What the presentation layer should show right now."""
        if self._final_rendering is not None:
            return self._final_rendering
        return self.artifact.render()

    def apply(self, event: BaseModel) -> ReconstructionState:
        """Fold one event and return the resulting state."""
        if isinstance(event, ErrorEvent):
            if self.is_terminal:
                logger.warning(f"[Chat] Ignoring error after {self.state.value}: {event.message}")
            else:
                self.fail(event.message)
            return self.state

        if self.is_terminal:
            logger.warning(f"[Chat] Ignoring {getattr(event, 'type', event)} after {self.state.value}")
            return self.state

        if isinstance(event, ConnectedEvent):
            if self.state is ReconstructionState.IDLE:
                self.state = ReconstructionState.STREAMING
            else:
                logger.warning("[Chat] Duplicate connected event")
            return self.state

        if self.state is ReconstructionState.IDLE:
            logger.warning(f"[Chat] Ignoring {event.type} before connected")
            return self.state

        if isinstance(event, TokenEvent):
            self.artifact.append_text(event.text)
        elif isinstance(event, ToolStartEvent):
            self._start_tool(event)
        elif isinstance(event, ToolEndEvent):
            self._end_tool(event)
        elif isinstance(event, DoneEvent):
            self._complete()
        else:
            logger.warning(f"[Chat] Unhandled event type: {type(event).__name__}")
        return self.state

    def fail(self, message: str | None) -> None:
        """Enter FAILED: the streamed artifact is replaced by a failure rendering."""
        if self.is_terminal:
            return
        logger.error(f"[Chat] Stream failed: {message}")
        self.state = ReconstructionState.FAILED
        self.error = message
        self.pending_tool = None
        self.artifact = RenderedArtifact()
        self._final_rendering = format_failure(message)
        self.retract_user_message = True

    def take_final_content(self) -> str | None:
        """Hand the completed message to persistence. Returns it at most once."""
        if self._handed_off or self._final_content is None:
            return None
        self._handed_off = True
        return self._final_content

    def _start_tool(self, event: ToolStartEvent) -> None:
        logger.info(f"[Chat] Tool started: {event.tool}")
        if self.pending_tool is not None:
            logger.warning(
                f"[Chat] Tool {event.tool} started while {self.pending_tool.name} still open"
            )
        index = self.artifact.open_tool(event.tool, event.input)
        self.pending_tool = PendingTool(name=event.tool, input=event.input, segment_index=index)

    def _end_tool(self, event: ToolEndEvent) -> None:
        if self.pending_tool is None:
            logger.warning(f"[Chat] Tool {event.tool} ended with no open tool call")
            return
        logger.info(f"[Chat] Tool ended: {event.tool}")
        pending = self.pending_tool
        self.artifact.close_tool(pending.segment_index, event.tool, pending.input, event.output)
        self.pending_tool = None

    def _complete(self) -> None:
        self.state = ReconstructionState.COMPLETED
        content = self.artifact.render()
        if content.strip():
            logger.info("[Chat] Stream completed")
            self._final_content = content
        else:
            logger.warning("[Chat] Stream completed with an empty response")
            self._final_rendering = format_no_response()


def reconstruct(events) -> MessageReconstructor:
    """Fold a whole event sequence through a fresh reconstructor."""
    reconstructor = MessageReconstructor()
    for event in events:
        reconstructor.apply(event)
    return reconstructor
