"""agentstream CLI - Command Line Interface."""

import asyncio
import uuid

import click
from pydantic import BaseModel

from agentstream import __version__
from agentstream.settings import settings
from agentstream.streaming.events import TokenEvent, ToolEndEvent, ToolStartEvent
from agentstream.streaming.formatters import format_tool_value
from agentstream.streaming.reconstruction import MessageReconstructor, ReconstructionState


@click.group()
@click.version_option(__version__)
def cli():
    """agentstream - stream agent answers with tool calls over SSE."""
    pass


def _print_event(event: BaseModel, reconstructor: MessageReconstructor) -> None:
    """Live view: tokens as they arrive, tool activity on its own lines."""
    if isinstance(event, TokenEvent):
        click.echo(event.text, nl=False)
    elif isinstance(event, ToolStartEvent):
        click.echo(f"\n[Tool: {event.tool}] {format_tool_value(event.input)}")
    elif isinstance(event, ToolEndEvent):
        click.echo(f"[Tool: {event.tool}] done")


async def _run_turn(session, message: str, show_final: bool) -> bool:
    reconstructor = await session.send(message, on_event=_print_event)
    if reconstructor is None:
        click.echo("Nothing to send.", err=True)
        return False

    click.echo()
    if reconstructor.state is ReconstructionState.FAILED:
        click.echo(reconstructor.rendered, err=True)
        return False
    if show_final or reconstructor.no_response:
        click.echo("\n=== Rendered message ===")
        click.echo(reconstructor.rendered)
    return True


@cli.command()
@click.argument("message")
@click.option("--chat-id", "-c", help="Conversation id (default: new random id)")
@click.option("--url", help="Server base URL (default: CLIENT__BASE_URL)")
@click.option("--user-id", "-u", default="cli-user", help="Caller identity header value")
@click.option("--api-key", envvar="AUTH__API_KEY", help="Bearer key if the server requires one")
@click.option("--final/--no-final", default=False, help="Also print the final rendered message")
def ask(message: str, chat_id: str | None, url: str | None, user_id: str, api_key: str | None, final: bool):
    """
    Send one message to a running server and stream the answer.

    Examples:
        agentstream ask "What is SSE?"
        agentstream ask "test tools" --final --url http://localhost:8000
    """
    from agentstream.client.session import ChatSession
    from agentstream.services.store import InMemoryMessageStore

    session = ChatSession(
        chat_id or str(uuid.uuid4()),
        store=InMemoryMessageStore(),
        user_id=user_id,
        base_url=url,
        api_key=api_key,
    )
    ok = asyncio.run(_run_turn(session, message, final))
    raise SystemExit(0 if ok else 1)


@cli.command()
@click.argument("message", default="test tools")
@click.option("--delay-ms", default=20, help="Delay between scripted events")
@click.option("--final/--no-final", default=True, help="Also print the final rendered message")
def simulate(message: str, delay_ms: int, final: bool):
    """
    Run server and client in-process against the simulator agent.

    Examples:
        agentstream simulate "test tools"
        agentstream simulate "test error"
        agentstream simulate help
    """
    asyncio.run(_simulate_async(message, delay_ms, final))


async def _simulate_async(message: str, delay_ms: int, final: bool) -> None:
    import httpx

    from agentstream.agentic.simulator import SimulatorAgent
    from agentstream.api.main import create_app
    from agentstream.client.session import ChatSession
    from agentstream.services.store import InMemoryMessageStore

    app = create_app(agent=SimulatorAgent(delay_ms=delay_ms))
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://simulator") as client:
        session = ChatSession(
            f"sim-{uuid.uuid4().hex[:8]}",
            store=InMemoryMessageStore(),
            user_id="simulator",
            base_url="http://simulator",
            api_key=settings.auth.api_key,
            http_client=client,
        )
        await _run_turn(session, message, final)


@cli.command()
@click.option("--host", "-h", default=None, help="Host to bind (default: API__HOST)")
@click.option("--port", "-p", default=None, type=int, help="Port to bind (default: API__PORT)")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload")
def serve(host: str | None, port: int | None, reload: bool):
    """Start the agentstream API server."""
    import uvicorn

    host = host or settings.api.host
    port = port or settings.api.port
    click.echo(f"Starting agentstream server v{__version__} on http://{host}:{port}")
    click.echo(f"  Chat stream: http://{host}:{port}/api/chat/stream")
    click.echo(f"  Model: {settings.llm.default_model}")
    uvicorn.run(
        "agentstream.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


def main():
    cli()


if __name__ == "__main__":
    main()
