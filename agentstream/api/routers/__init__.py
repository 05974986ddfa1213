"""API routers for agentstream.

Routers:
- chat_router: SSE chat streaming
"""

from agentstream.api.routers.chat import router as chat_router

__all__ = ["chat_router"]
