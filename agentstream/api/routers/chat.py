"""Chat streaming router.

Provides:
- POST /chat/stream - one conversational turn streamed as SSE frames

Request body:
    {"messages": [{"role": "user", "content": "hi"}], "chatId": "c1"}

Failures before the stream opens use ordinary status codes (401, 500).
Once the 200 and its headers are sent, every failure is reported in-stream
as a single ``error`` event.
"""

import asyncio

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from loguru import logger

from agentstream.models.chat import ChatRequestBody
from agentstream.settings import settings
from agentstream.streaming.multiplexer import EventMultiplexer
from agentstream.streaming.sink import ResponseSink

router = APIRouter(prefix="/chat", tags=["chat"])

SSE_HEADERS = {
    "Connection": "keep-alive",
    "Cache-Control": "no-cache, no-transform",
    "X-Accel-Buffering": "no",
}

# Pump tasks outlive the handler; keep references until they finish
_stream_tasks: set[asyncio.Task] = set()


def _on_pump_done(task: asyncio.Task) -> None:
    _stream_tasks.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.opt(exception=error).error(f"[SSE] Stream pump failed: {error}")


@router.post("/stream")
async def chat_stream(req: Request):
    """Stream the agent's answer to the conversation in the request body."""
    user_id = req.app.state.authenticator.authenticate(req)
    if not user_id:
        return PlainTextResponse("Unauthorized", status_code=401)

    try:
        body = ChatRequestBody.model_validate(await req.json())
    except ValueError as e:
        logger.error(f"[SSE] Error in chat API: {e}")
        return JSONResponse({"error": "Failed to process chat request"}, status_code=500)

    logger.info(f"[SSE] Chat {body.chat_id} for user {user_id}: {len(body.messages)} message(s)")

    sink = ResponseSink(max_pending=settings.api.sink_max_pending)
    multiplexer = EventMultiplexer(req.app.state.agent, body.messages, body.chat_id)

    task = asyncio.create_task(multiplexer.pump(sink))
    _stream_tasks.add(task)
    task.add_done_callback(_on_pump_done)

    return StreamingResponse(
        sink.frames(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
