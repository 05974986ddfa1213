"""
Pytest configuration and shared fixtures for agentstream tests.

Test Organization:
- tests/unit/        - isolated tests, collaborators mocked or scripted
- tests/integration/ - server and client wired together in-process
"""

import pytest

from agentstream.models.chat import ChatMessage
from agentstream.streaming.events import AgentEvent


class ScriptedAgent:
    """Agent collaborator that replays a fixed native event list.

    If ``raise_after`` is set, that exception is raised once the events are
    exhausted. ``closed`` records whether the consumer closed the feed.
    """

    def __init__(self, events: list[AgentEvent], raise_after: Exception | None = None):
        self.events = events
        self.raise_after = raise_after
        self.calls: list[tuple[list[ChatMessage], str]] = []
        self.started = False
        self.closed = False

    async def run(self, messages, chat_id):
        self.calls.append((messages, chat_id))
        self.started = True
        try:
            for event in self.events:
                yield event
            if self.raise_after is not None:
                raise self.raise_after
        finally:
            self.closed = True


@pytest.fixture
def scripted_agent():
    """Factory: scripted_agent([AgentEvent...], raise_after=None)."""
    return ScriptedAgent


@pytest.fixture
def hello_messages() -> list[ChatMessage]:
    return [ChatMessage(role="user", content="hi")]


def pytest_collection_modifyitems(items):
    """Automatically add 'unit' / 'integration' markers by directory."""
    for item in items:
        path = str(item.fspath)
        if "/unit/" in path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in path:
            item.add_marker(pytest.mark.integration)
