"""
Configuration for the Yoto MCP Server.

A single Config instance is built at startup and handed to every
component, so tests can point the server at a temp credentials file
and fake endpoints.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_AUTH_URL = "https://login.yotoplay.com"
DEFAULT_API_URL = "https://api.yotoplay.com"
DEFAULT_CLIENT_ID = "sRkOnRmZakNzXnOPFGPT0UdahpdUuyxp"
DEFAULT_ICON = "yoto:#aUm9i3ex3qqAMYBv-i-O-pYMKuMJGICtR3Vhf289u2Q"


def _default_credentials_file() -> Path:
    return Path.home() / ".yoto-mcp-config.json"


@dataclass
class Config:
    """Configuration class for MCP server."""

    SERVER_NAME = "yoto-mcp-server"
    SERVER_VERSION = "1.0.0"

    auth_url: str = DEFAULT_AUTH_URL
    api_url: str = DEFAULT_API_URL
    client_id: str = DEFAULT_CLIENT_ID
    scope: str = "openid profile offline_access"
    audience: str = DEFAULT_API_URL
    credentials_file: Path = field(default_factory=_default_credentials_file)
    default_icon: str = DEFAULT_ICON
    http_timeout: float = 30.0

    # Polling budgets
    device_poll_max_attempts: int = 60
    transcode_poll_interval: float = 0.5
    transcode_poll_max_attempts: int = 30

    open_browser: bool = True

    @classmethod
    def from_env(cls) -> "Config":
        """
        Build a Config, applying environment overrides.

        Set YOTO_API_URL / YOTO_AUTH_URL to point at a local stub,
        YOTO_CONFIG_PATH to keep credentials somewhere other than ~.
        """
        config = cls(
            auth_url=os.getenv("YOTO_AUTH_URL", DEFAULT_AUTH_URL),
            api_url=os.getenv("YOTO_API_URL", DEFAULT_API_URL),
            client_id=os.getenv("YOTO_CLIENT_ID", DEFAULT_CLIENT_ID),
        )
        config_path = os.getenv("YOTO_CONFIG_PATH")
        if config_path:
            config.credentials_file = Path(config_path).expanduser()
        return config
