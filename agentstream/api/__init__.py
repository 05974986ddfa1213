"""agentstream API module.

Provides:
- FastAPI application (app, create_app)
- Authentication (HeaderAuthenticator)
"""

from agentstream.api.auth import Authenticator, HeaderAuthenticator
from agentstream.api.main import app, create_app

__all__ = ["app", "create_app", "Authenticator", "HeaderAuthenticator"]
