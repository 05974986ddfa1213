"""
Simulator Agent - scripted native events for UI and protocol testing
====================================================================

Stands in for the model backend so the whole pipeline can be exercised
without an LLM. The last user message selects the script:

- "help"          - Show available test modes
- "test text"     - Streamed markdown text (default)
- "test tools"    - Text, one tool call (start → end), more text
- "test buffered" - No streamed tokens, only a final model output
- "test empty"    - Nothing at all (client shows the no-response notice)
- "test error"    - A partial token, then the run raises
"""

import asyncio
from typing import AsyncGenerator

from agentstream.models.chat import ChatMessage
from agentstream.streaming.events import AgentEvent

SAMPLE_MARKDOWN = """# Simulator Response

This is a **simulated response** streamed in small chunks.

1. Tokens arrive in order
2. Frames may be split across network packets
3. The client reassembles them into one message
"""

HELP_TEXT = """# Simulator - Help

| Command | Description |
|---------|-------------|
| `help` | Show this help message |
| `test text` | Streamed markdown (default) |
| `test tools` | Tool call lifecycle between text |
| `test buffered` | Final answer without streamed tokens |
| `test empty` | No output at all |
| `test error` | Failure after a partial answer |
"""

SAMPLE_TOOL_INPUT = {"query": "simulation-test", "limit": 2}
SAMPLE_TOOL_OUTPUT = {
    "results": [
        {"id": "doc-1", "title": "Streaming protocols", "score": 0.92},
        {"id": "doc-2", "title": "Tool calling agents", "score": 0.87},
    ]
}

SIMULATED_ERROR = "Simulated agent failure"


class SimulatedAgentError(RuntimeError):
    """Raised by the "test error" script."""


def parse_test_mode(prompt: str) -> str:
    """Pick the script for a prompt."""
    prompt_lower = prompt.lower().strip()

    if prompt_lower == "help" or prompt_lower.startswith("help "):
        return "help"
    for mode in ("tools", "buffered", "empty", "error"):
        if f"test {mode}" in prompt_lower:
            return mode
    return "text"


def _chunks(text: str, size: int):
    for i in range(0, len(text), size):
        yield text[i:i + size]


class SimulatorAgent:
    """Agent collaborator that plays back scripted native events."""

    def __init__(self, delay_ms: int = 20, chunk_size: int = 12):
        self.delay = delay_ms / 1000.0
        self.chunk_size = chunk_size

    async def _pause(self, factor: float = 1.0) -> None:
        if self.delay:
            await asyncio.sleep(self.delay * factor)

    async def _stream_text(self, text: str) -> AsyncGenerator[AgentEvent, None]:
        for chunk in _chunks(text, self.chunk_size):
            yield AgentEvent.token(chunk)
            await self._pause(0.5)

    async def run(self, messages: list[ChatMessage], chat_id: str) -> AsyncGenerator[AgentEvent, None]:
        user_messages = [m for m in messages if m.role == "user"]
        prompt = user_messages[-1].content if user_messages else ""
        mode = parse_test_mode(prompt)

        if mode == "help":
            async for event in self._stream_text(HELP_TEXT):
                yield event

        elif mode == "tools":
            yield AgentEvent.token("Let me search for that.\n")
            await self._pause()
            yield AgentEvent.tool_start("search", SAMPLE_TOOL_INPUT)
            await self._pause(5)
            yield AgentEvent.tool_end("search", SAMPLE_TOOL_OUTPUT)
            async for event in self._stream_text("\nI found 2 relevant documents."):
                yield event

        elif mode == "buffered":
            await self._pause(2)
            yield AgentEvent.model_end(f"[Simulator] Buffered answer to: {prompt}")

        elif mode == "empty":
            await self._pause()

        elif mode == "error":
            yield AgentEvent.token("partial")
            await self._pause()
            raise SimulatedAgentError(SIMULATED_ERROR)

        else:
            async for event in self._stream_text(SAMPLE_MARKDOWN):
                yield event
            yield AgentEvent.model_end(SAMPLE_MARKDOWN)
