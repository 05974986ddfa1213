"""Incremental SSE frame parser (client side).

Network chunks do not line up with frames: one chunk may hold half a frame,
several frames, or end exactly on a delimiter. The parser keeps the undecoded
tail between calls so every event comes out exactly once, in order.

One parser per connection. Not safe for concurrent use.
"""

import codecs

from loguru import logger

from agentstream.streaming.codec import FrameDecodeError, decode_frame, split_frames
from agentstream.streaming.events import StreamEvent


class SSEParser:
    """Turns arbitrarily chunked text (or bytes) into parsed stream events."""

    def __init__(self) -> None:
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self.dropped_frames = 0

    @property
    def pending(self) -> str:
        """Buffered partial frame not yet terminated by a delimiter."""
        return self._buffer

    def parse(self, fragment: str | bytes) -> list[StreamEvent]:
        """Feed one chunk and return the events it completed.

        Must be called with every chunk, in arrival order.
        """
        if not fragment:
            return []
        if isinstance(fragment, bytes):
            fragment = self._decoder.decode(fragment)
            if not fragment:
                return []

        frames, self._buffer = split_frames(self._buffer + fragment)

        events: list[StreamEvent] = []
        for frame in frames:
            if not frame.strip():
                continue
            try:
                events.append(decode_frame(frame))
            except FrameDecodeError as e:
                # One corrupt frame must not take the rest of the stream with it
                self.dropped_frames += 1
                logger.warning(f"[SSE] Dropping malformed frame: {e}")
        return events


def create_sse_parser() -> SSEParser:
    """Create a parser for one response body."""
    return SSEParser()
