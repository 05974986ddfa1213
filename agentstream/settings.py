"""agentstream settings with environment variable support.

Values come from the process environment. A ``.env`` file in the working
directory (or up to four parents, or beside the package) is loaded first and
takes precedence over variables already set.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel


def _find_env_file() -> Path | None:
    current = Path.cwd()
    for _ in range(5):
        env_file = current / ".env"
        if env_file.exists():
            return env_file
        current = current.parent
    pkg_env = Path(__file__).parent.parent / ".env"
    return pkg_env if pkg_env.exists() else None


env_file = _find_env_file()
if env_file:
    load_dotenv(env_file, override=True)


class LLMSettings(BaseModel):
    """Agent/model backend settings."""

    default_model: str = os.getenv("LLM__DEFAULT_MODEL", "openai:gpt-4o-mini")
    temperature: float = float(os.getenv("LLM__TEMPERATURE", "0.7"))
    max_history_messages: int = int(os.getenv("LLM__MAX_HISTORY_MESSAGES", "10"))


class AuthSettings(BaseModel):
    """Request authentication settings."""

    user_header: str = os.getenv("AUTH__USER_HEADER", "x-user-id")
    api_key: str | None = os.getenv("AUTH__API_KEY") or None


class APISettings(BaseModel):
    """HTTP server settings."""

    host: str = os.getenv("API__HOST", "0.0.0.0")
    port: int = int(os.getenv("API__PORT", "8000"))
    cors_origins: str = os.getenv("API__CORS_ORIGINS", "*")
    sink_max_pending: int = int(os.getenv("API__SINK_MAX_PENDING", "1"))

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


class ClientSettings(BaseModel):
    """Streaming client settings."""

    base_url: str = os.getenv("CLIENT__BASE_URL", "http://localhost:8000")
    timeout: float = float(os.getenv("CLIENT__TIMEOUT", "120"))


class Settings(BaseModel):
    """Application settings."""

    llm: LLMSettings = LLMSettings()
    auth: AuthSettings = AuthSettings()
    api: APISettings = APISettings()
    client: ClientSettings = ClientSettings()


settings = Settings()
