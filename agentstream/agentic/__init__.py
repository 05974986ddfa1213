"""Agent collaborators.

- ChatAgent: pydantic-ai backed agent (any pydantic-ai model string or Model)
- SimulatorAgent: scripted events, no model backend
- create_agent: pick one from settings
"""

from agentstream.agentic.agent import SYSTEM_MESSAGE, ChatAgent
from agentstream.agentic.simulator import SimulatorAgent
from agentstream.settings import settings


def create_agent(model: str | None = None):
    """Agent collaborator for ``model`` (default: LLM__DEFAULT_MODEL)."""
    model = model or settings.llm.default_model
    if model == "simulator":
        return SimulatorAgent()
    return ChatAgent(model)


__all__ = ["ChatAgent", "SimulatorAgent", "SYSTEM_MESSAGE", "create_agent"]
