"""Request authentication.

The caller's identity comes from a trusted header (default ``x-user-id``),
set by the gateway in front of the API. When ``AUTH__API_KEY`` is configured
the request must also present it as a bearer token.
"""

import secrets
from typing import Protocol

from fastapi import Request

from agentstream.settings import settings


class Authenticator(Protocol):
    def authenticate(self, request: Request) -> str | None:
        """Return the caller's user id, or None when unauthenticated."""
        ...


class HeaderAuthenticator:
    """Identity from a request header, optionally gated by a shared API key."""

    def __init__(self, user_header: str | None = None, api_key: str | None = None):
        self.user_header = (user_header or settings.auth.user_header).lower()
        self.api_key = api_key if api_key is not None else settings.auth.api_key

    def authenticate(self, request: Request) -> str | None:
        if self.api_key:
            scheme, _, token = request.headers.get("authorization", "").partition(" ")
            if scheme.lower() != "bearer" or not secrets.compare_digest(token.encode(), self.api_key.encode()):
                return None

        user_id = request.headers.get(self.user_header, "").strip()
        return user_id or None
