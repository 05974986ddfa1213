"""agentstream FastAPI Server.

Mounts:
- /api/chat/stream - SSE chat streaming

Architecture:
```
main.py (FastAPI app)
    ├── auth.py          - caller identity (401 before any stream)
    └── routers/
        └── chat.py      - request validation, multiplexer pump, StreamingResponse
```
"""

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agentstream import __version__
from agentstream.agentic import create_agent
from agentstream.api.auth import Authenticator, HeaderAuthenticator
from agentstream.api.routers.chat import router as chat_router
from agentstream.settings import settings
from agentstream.streaming.multiplexer import AgentRunner


def create_app(
    agent: AgentRunner | None = None,
    authenticator: Authenticator | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        agent: Agent collaborator (default: from LLM__DEFAULT_MODEL)
        authenticator: Identity provider (default: header identity)
    """
    app = FastAPI(
        title="agentstream API",
        version=__version__,
        description="Streams agent answers with interleaved tool calls over SSE",
    )

    app.state.agent = agent or create_agent()
    app.state.authenticator = authenticator or HeaderAuthenticator()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router, prefix="/api")

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/")
    async def root() -> dict[str, Any]:
        """API information endpoint."""
        return {
            "name": "agentstream API",
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "chat": "/api/chat/stream",
                "docs": "/docs",
            },
        }

    return app


# Create default app instance
app = create_app()
