"""
Process configuration for the Sumble MCP server.

Settings come from the environment (a local .env file is loaded first).
SUMBLE_API_KEY is the only required value.
"""

import os
from typing import Optional

import dotenv
from pydantic import BaseModel, Field, ValidationError

dotenv.load_dotenv()

DEFAULT_API_BASE = "https://api.sumble.com"
DEFAULT_PORT = 10000


class ConfigError(Exception):
    """Raised when the process configuration is missing or invalid."""


class Settings(BaseModel):
    """Validated server settings."""
    api_key: str = Field(..., min_length=1, description="Sumble API bearer token")
    api_base: str = Field(DEFAULT_API_BASE, description="Sumble API base URL")
    request_timeout: float = Field(30.0, gt=0, description="Upstream request timeout in seconds")
    host: str = Field("0.0.0.0", description="Bind address")
    port: int = Field(DEFAULT_PORT, ge=1, le=65535, description="Listening port")
    keepalive_interval: float = Field(15.0, gt=0, description="Seconds between SSE keep-alive comments")
    message_path: str = Field("/message", description="Path advertised for message submission")
    log_level: str = Field("INFO", description="Logging level name")


def load_settings(env: Optional[dict] = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        env: Mapping to read instead of os.environ (used by tests)

    Returns:
        Settings instance

    Raises:
        ConfigError: If SUMBLE_API_KEY is missing or a value is invalid
    """
    env = os.environ if env is None else env

    api_key = env.get("SUMBLE_API_KEY")
    if not api_key:
        raise ConfigError("SUMBLE_API_KEY environment variable is required")

    values = {
        "api_key": api_key,
        "api_base": env.get("SUMBLE_API_BASE", DEFAULT_API_BASE).rstrip("/"),
        "request_timeout": env.get("SUMBLE_TIMEOUT_SECONDS", "30"),
        "host": env.get("HOST", "0.0.0.0"),
        "port": env.get("PORT", str(DEFAULT_PORT)),
        "keepalive_interval": env.get("SSE_KEEPALIVE_SECONDS", "15"),
        "message_path": env.get("MCP_MESSAGE_PATH", "/message"),
        "log_level": env.get("LOG_LEVEL", "INFO").upper(),
    }

    try:
        return Settings(**values)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise ConfigError(f"Invalid configuration value(s): {fields}") from e
