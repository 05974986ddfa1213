"""Frame codec shared by server and client.

Wire format, one frame per event:

    data: {json}\\n\\n

A frame is complete only once the ``\\n\\n`` delimiter has been seen.
JSON is emitted without indentation, so string values never contain a raw
newline and the delimiter cannot occur inside a payload.
"""

import json

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError

from agentstream.streaming.events import StreamEvent, stream_event_adapter

SSE_DATA_PREFIX = "data: "
SSE_LINE_DELIMITER = "\n\n"


class FrameEncodingError(Exception):
    """An event could not be serialised. Internal error, never sent as a stream event."""


class FrameDecodeError(Exception):
    """A single received frame could not be turned into an event."""


def encode_frame(event: BaseModel) -> str:
    """Format an event model as one SSE data frame."""
    try:
        payload = json.dumps(event.model_dump(mode="json"))
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise FrameEncodingError(f"Cannot serialise {type(event).__name__}: {e}") from e
    return f"{SSE_DATA_PREFIX}{payload}{SSE_LINE_DELIMITER}"


def split_frames(buffer: str) -> tuple[list[str], str]:
    """Cut every complete frame off the front of ``buffer``.

    Returns:
        (complete frame bodies without delimiter, unconsumed remainder)
    """
    frames: list[str] = []
    start = 0
    while True:
        end = buffer.find(SSE_LINE_DELIMITER, start)
        if end == -1:
            break
        frames.append(buffer[start:end])
        start = end + len(SSE_LINE_DELIMITER)
    return frames, buffer[start:]


def decode_frame(frame: str) -> StreamEvent:
    """Parse one frame body (delimiter already removed) into an event."""
    if not frame.startswith(SSE_DATA_PREFIX):
        raise FrameDecodeError(f"Frame missing {SSE_DATA_PREFIX!r} prefix: {frame[:40]!r}")
    try:
        return stream_event_adapter.validate_json(frame[len(SSE_DATA_PREFIX):])
    except ValidationError as e:
        raise FrameDecodeError(f"Invalid event payload: {e.error_count()} error(s)") from e
