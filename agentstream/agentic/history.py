"""Conversation history preparation for pydantic-ai runs.

The wire carries the whole visible conversation. Before a run it is cut down
to the most recent messages (starting on a user turn), split into the prompt
(the last user message) and prior history, and converted to pydantic-ai's
native ModelRequest/ModelResponse types.

IMPORTANT: pydantic-ai only adds the agent's system prompt by itself when
message_history is empty, so non-empty history gets it prepended here.
"""

from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)

from agentstream.models.chat import ChatMessage


def trim_messages(messages: list[ChatMessage], max_messages: int) -> list[ChatMessage]:
    """Keep the last ``max_messages`` messages (all if <= 0), dropping leading assistant turns."""
    trimmed = list(messages[-max_messages:]) if max_messages > 0 else list(messages)
    while trimmed and trimmed[0].role != "user":
        trimmed.pop(0)
    return trimmed


def split_prompt(messages: list[ChatMessage]) -> tuple[str, list[ChatMessage]]:
    """Split into (last user message content, everything before it).

    Raises:
        ValueError: no user message to answer
    """
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role == "user":
            return messages[index].content, list(messages[:index])
    raise ValueError("Conversation has no user message to respond to")


def to_model_messages(
    messages: list[ChatMessage],
    system_prompt: str | None = None,
) -> list[ModelMessage]:
    """Convert chat messages to pydantic-ai history. Empty input gives empty history."""
    if not messages:
        return []

    history: list[ModelMessage] = []
    if system_prompt:
        history.append(ModelRequest(parts=[SystemPromptPart(content=system_prompt)]))

    for msg in messages:
        if msg.role == "user":
            history.append(ModelRequest(parts=[UserPromptPart(content=msg.content)]))
        else:
            history.append(ModelResponse(parts=[TextPart(content=msg.content)]))
    return history


def build_run_input(
    messages: list[ChatMessage],
    *,
    system_prompt: str | None,
    max_messages: int,
) -> tuple[str, list[ModelMessage]]:
    """Prompt and pydantic-ai message history for one run."""
    prompt, prior = split_prompt(messages)
    if max_messages == 1:
        prior = []
    elif max_messages > 1:
        # One slot of the window belongs to the prompt itself
        prior = trim_messages(prior, max_messages - 1)
    else:
        prior = trim_messages(prior, 0)
    return prompt, to_model_messages(prior, system_prompt)
