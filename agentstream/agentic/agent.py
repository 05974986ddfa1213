"""
Chat Agent - pydantic-ai backed agent collaborator.

Runs one conversational turn with pydantic-ai's ``agent.iter()`` and reports
what happens as native AgentEvents for the multiplexer:

| pydantic-ai event          | Part / delta   | Native event            |
|----------------------------|----------------|-------------------------|
| PartStartEvent             | TextPart       | on_chat_model_stream    |
| PartDeltaEvent             | TextPartDelta  | on_chat_model_stream    |
| FunctionToolCallEvent      | ToolCallPart   | on_tool_start           |
| FunctionToolResultEvent    | ToolReturnPart | on_tool_end             |
| run result (after the run) | output         | on_chat_model_end       |

Usage:
    agent = ChatAgent(tools=[search])
    async for event in agent.run(messages, chat_id):
        ...
"""

import json
from typing import Any, AsyncGenerator, Callable, Sequence

from loguru import logger
from pydantic_ai import Agent

from agentstream.agentic.history import build_run_input
from agentstream.models.chat import ChatMessage
from agentstream.settings import settings
from agentstream.streaming.events import AgentEvent

SYSTEM_MESSAGE = """You are a helpful AI assistant.

Answer clearly and concisely. When a tool can provide information you do
not have, call it and use its result in your answer. Never invent tool
results. If a tool fails, say so and explain what you could not do."""


def extract_tool_args(part_or_args: Any) -> dict | None:
    """Extract tool arguments from a ToolCallPart or raw args.

    Handles various formats from pydantic-ai:
    - ToolCallPart object with .args attribute
    - ArgsDict object with .args_dict attribute
    - Plain dict
    - JSON string
    """
    # If it's a ToolCallPart, get the .args attribute
    args = getattr(part_or_args, "args", part_or_args)

    if args is None:
        return None

    # ArgsDict object from pydantic-ai
    if hasattr(args, "args_dict"):
        return args.args_dict

    if isinstance(args, dict):
        return args

    if isinstance(args, str):
        if not args.strip():
            return {}
        try:
            return json.loads(args)
        except json.JSONDecodeError:
            return {"raw": args}

    return None


def extract_serializable_result(raw_result: Any) -> Any:
    """Extract a JSON-serializable value from a pydantic-ai tool result."""
    if raw_result is None or isinstance(raw_result, (str, int, float, bool)):
        return raw_result

    if isinstance(raw_result, (dict, list)):
        try:
            json.dumps(raw_result)
            return raw_result
        except (TypeError, ValueError):
            pass

    # ToolReturnPart / RetryPromptPart
    if hasattr(raw_result, "content"):
        return extract_serializable_result(raw_result.content)

    if hasattr(raw_result, "model_dump"):
        return raw_result.model_dump(mode="json")

    if hasattr(raw_result, "__dict__"):
        try:
            result = {k: v for k, v in raw_result.__dict__.items() if not k.startswith("_")}
            json.dumps(result)
            return result
        except (TypeError, ValueError):
            pass

    return str(raw_result)


def tool_result_part(event: Any) -> Any:
    """ToolReturnPart / RetryPromptPart carried by a FunctionToolResultEvent.

    Newer pydantic-ai releases expose it as ``part``, older ones as ``result``.
    """
    part = getattr(event, "part", None)
    if part is None:
        part = getattr(event, "result", None)
    if part is None:
        raise AttributeError(f"{type(event).__name__} carries no tool result part")
    return part


def _text_of_model_event(event: Any) -> str | None:
    """Text carried by a model stream event, if any."""
    event_type = type(event).__name__

    if event_type == "PartStartEvent" and type(getattr(event, "part", None)).__name__ == "TextPart":
        return event.part.content or None

    if event_type == "PartDeltaEvent" and type(getattr(event, "delta", None)).__name__ == "TextPartDelta":
        return event.delta.content_delta or None

    return None


class ChatAgent:
    """Agent collaborator backed by a pydantic-ai Agent.

    The pydantic-ai agent is created on first run so that a missing provider
    key surfaces as an in-stream error rather than at application startup.
    """

    def __init__(
        self,
        model: Any = None,
        *,
        system_prompt: str = SYSTEM_MESSAGE,
        tools: Sequence[Callable[..., Any]] = (),
        temperature: float | None = None,
        max_history_messages: int | None = None,
    ):
        self.model = model or settings.llm.default_model
        self.system_prompt = system_prompt
        self.tools = list(tools)
        self.temperature = settings.llm.temperature if temperature is None else temperature
        self.max_history_messages = (
            settings.llm.max_history_messages if max_history_messages is None else max_history_messages
        )
        self._agent: Agent | None = None

    def _ensure_agent(self) -> Agent:
        if self._agent is None:
            logger.debug(f"Creating pydantic-ai agent for model {self.model}")
            self._agent = Agent(
                self.model,
                system_prompt=self.system_prompt,
                tools=self.tools,
                model_settings={"temperature": self.temperature},
            )
        return self._agent

    async def run(self, messages: list[ChatMessage], chat_id: str) -> AsyncGenerator[AgentEvent, None]:
        """Run one turn and yield native events as they happen."""
        agent = self._ensure_agent()
        prompt, history = build_run_input(
            messages,
            system_prompt=self.system_prompt,
            max_messages=self.max_history_messages,
        )
        logger.debug(f"[Agent] chat={chat_id} prompt={prompt[:80]!r} history={len(history)}")

        async with agent.iter(prompt, message_history=history or None) as agent_run:
            async for node in agent_run:
                # ModelRequestNode: LLM is generating (text or tool calls)
                if Agent.is_model_request_node(node):
                    async with node.stream(agent_run.ctx) as request_stream:
                        async for event in request_stream:
                            text = _text_of_model_event(event)
                            if text:
                                yield AgentEvent.token(text)

                # CallToolsNode: Tools are being executed
                elif Agent.is_call_tools_node(node):
                    async with node.stream(agent_run.ctx) as tools_stream:
                        async for tool_event in tools_stream:
                            event_type = type(tool_event).__name__

                            if event_type == "FunctionToolCallEvent":
                                part = tool_event.part
                                logger.debug(f"[Agent] Tool call: {part.tool_name}({part.args})")
                                yield AgentEvent.tool_start(part.tool_name, extract_tool_args(part))

                            elif event_type == "FunctionToolResultEvent":
                                part = tool_result_part(tool_event)
                                yield AgentEvent.tool_end(
                                    getattr(part, "tool_name", None),
                                    extract_serializable_result(part),
                                )

        result = agent_run.result
        if result is not None:
            yield AgentEvent.model_end(result.output)
