"""Text renderings used by the message reconstruction.

A tool call renders as a terminal-style block:

    ---START---
    ~/search
    $ Input
    {
      "q": "x"
    }
    $ Output
    Processing...
    ---END---
"""

import json
from typing import Any

TOOL_BLOCK_START = "---START---"
TOOL_BLOCK_END = "---END---"
PROCESSING_MARKER = "Processing..."

FAILURE_INPUT = "Failed to process message"
NO_RESPONSE_INPUT = "Assistant did not return a response."
NO_RESPONSE_OUTPUT = "No response generated. Please try again or rephrase your question."
UNKNOWN_ERROR = "Unknown error"


def format_tool_value(value: Any) -> str:
    """Strings verbatim, anything else as indented JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, default=str)


def format_tool_block(tool: str, input: Any, output: Any) -> str:
    """Render one tool invocation (or a failure notice) as a terminal block."""
    lines = [
        TOOL_BLOCK_START,
        f"~/{tool}",
        "$ Input",
        format_tool_value(input),
        "$ Output",
        format_tool_value(output),
        TOOL_BLOCK_END,
    ]
    return "\n".join(lines)


def format_pending_tool(tool: str, input: Any) -> str:
    return format_tool_block(tool, input, PROCESSING_MARKER)


def format_failure(message: str | None) -> str:
    return format_tool_block("error", FAILURE_INPUT, message or UNKNOWN_ERROR)


def format_no_response() -> str:
    return format_tool_block("error", NO_RESPONSE_INPUT, NO_RESPONSE_OUTPUT)
