"""HTTP response sink.

Bridges ``EventMultiplexer.pump`` (producer task) and a ``StreamingResponse``
body (consumer) through a bounded queue. A write is acknowledged once the
frame has a slot in the queue; with every slot taken the write waits for the
body to take a frame. The producer therefore never runs ahead of the client
by more than ``max_pending`` frames.
"""

import asyncio
from typing import AsyncGenerator

from loguru import logger

from agentstream.streaming.multiplexer import SinkClosedError

_CLOSE = object()


class ResponseSink:
    """Bounded frame channel feeding one streaming response."""

    def __init__(self, max_pending: int = 1):
        self.max_pending = max(1, max_pending)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_pending)
        self._closed = False
        self._abandoned = False

    @property
    def closed(self) -> bool:
        return self._closed or self._abandoned

    @property
    def pending(self) -> int:
        """Frames written but not yet taken by the response body."""
        return self._queue.qsize()

    async def write(self, frame: str) -> None:
        if self.closed:
            raise SinkClosedError("response stream is no longer being read")
        await self._queue.put(frame)
        if self._abandoned:
            raise SinkClosedError("response stream was abandoned mid-write")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not self._abandoned:
            await self._queue.put(_CLOSE)

    async def frames(self) -> AsyncGenerator[str, None]:
        """Response body: yields frames until the producer closes the sink."""
        try:
            while True:
                frame = await self._queue.get()
                if frame is _CLOSE:
                    return
                yield frame
        finally:
            if not self._closed:
                logger.info("[SSE] Response consumer stopped before stream end")
            self._abandoned = True
            self._drain()

    def _drain(self) -> None:
        # Frees a producer blocked on a full queue so it can see the abandonment
        while not self._queue.empty():
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
