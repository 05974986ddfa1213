"""
Unit tests for the chat streaming endpoint.

The app is built with create_app() around a scripted agent, so each test
controls exactly which native events the multiplexer sees.
"""

import pytest
from fastapi.testclient import TestClient

from agentstream.api.auth import HeaderAuthenticator
from agentstream.api.main import create_app
from agentstream.streaming.events import (
    AgentEvent,
    ConnectedEvent,
    DoneEvent,
    ErrorEvent,
    TokenEvent,
    ToolEndEvent,
    ToolStartEvent,
)
from agentstream.streaming.parser import SSEParser

STREAM_URL = "/api/chat/stream"
USER_HEADERS = {"x-user-id": "user-1"}
BODY = {"messages": [{"role": "user", "content": "hi"}], "chatId": "chat-1"}


# ===== Fixtures =====


@pytest.fixture
def make_client(scripted_agent):
    """Build a TestClient around a scripted agent."""

    def _make(events, raise_after=None, api_key=""):
        agent = scripted_agent(events, raise_after=raise_after)
        app = create_app(
            agent=agent,
            authenticator=HeaderAuthenticator(user_header="x-user-id", api_key=api_key),
        )
        return TestClient(app), agent

    return _make


def _events(response) -> list:
    return SSEParser().parse(response.content)


class TestChatStream:
    """POST /api/chat/stream"""

    def test_streams_text_turn(self, make_client):
        client, agent = make_client([AgentEvent.token("Hel"), AgentEvent.token("lo")])

        response = client.post(STREAM_URL, json=BODY, headers=USER_HEADERS)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache, no-transform"
        assert response.headers["x-accel-buffering"] == "no"
        assert _events(response) == [
            ConnectedEvent(),
            TokenEvent(text="Hel"),
            TokenEvent(text="lo"),
            DoneEvent(),
        ]
        messages, chat_id = agent.calls[0]
        assert chat_id == "chat-1"
        assert [m.content for m in messages] == ["hi"]

    def test_streams_tool_lifecycle(self, make_client):
        client, _ = make_client([
            AgentEvent.tool_start("search", {"q": "x"}),
            AgentEvent.tool_end("search", {"r": "y"}),
            AgentEvent.token("done"),
        ])

        response = client.post(STREAM_URL, json=BODY, headers=USER_HEADERS)

        assert _events(response) == [
            ConnectedEvent(),
            ToolStartEvent(tool="search", input={"q": "x"}),
            ToolEndEvent(tool="search", output={"r": "y"}),
            TokenEvent(text="done"),
            DoneEvent(),
        ]

    def test_agent_failure_is_reported_in_stream(self, make_client):
        client, _ = make_client([AgentEvent.token("partial")], raise_after=RuntimeError("boom"))

        response = client.post(STREAM_URL, json=BODY, headers=USER_HEADERS)

        assert response.status_code == 200
        assert _events(response) == [
            ConnectedEvent(),
            TokenEvent(text="partial"),
            ErrorEvent(message="boom"),
        ]

    def test_missing_identity_is_401(self, make_client):
        client, agent = make_client([AgentEvent.token("x")])

        response = client.post(STREAM_URL, json=BODY)

        assert response.status_code == 401
        assert response.text == "Unauthorized"
        assert agent.calls == []

    def test_api_key_is_required_when_configured(self, make_client):
        client, _ = make_client([AgentEvent.token("x")], api_key="secret")

        denied = client.post(STREAM_URL, json=BODY, headers={**USER_HEADERS, "Authorization": "Bearer nope"})
        allowed = client.post(STREAM_URL, json=BODY, headers={**USER_HEADERS, "Authorization": "Bearer secret"})

        assert denied.status_code == 401
        assert allowed.status_code == 200

    @pytest.mark.parametrize(
        "body",
        [
            {"messages": [], "chatId": "chat-1"},
            {"messages": [{"role": "user", "content": "hi"}]},
            {"messages": [{"role": "robot", "content": "hi"}], "chatId": "chat-1"},
        ],
    )
    def test_invalid_body_is_500(self, make_client, body):
        client, agent = make_client([AgentEvent.token("x")])

        response = client.post(STREAM_URL, json=body, headers=USER_HEADERS)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process chat request"}
        assert agent.calls == []

    def test_unparseable_json_is_500(self, make_client):
        client, _ = make_client([])

        response = client.post(
            STREAM_URL,
            content=b"{not json",
            headers={**USER_HEADERS, "Content-Type": "application/json"},
        )

        assert response.status_code == 500


class TestInfoEndpoints:
    def test_health(self, make_client):
        client, _ = make_client([])
        assert client.get("/health").json() == {"status": "ok"}

    def test_root_lists_chat_endpoint(self, make_client):
        client, _ = make_client([])
        assert client.get("/").json()["endpoints"]["chat"] == STREAM_URL
