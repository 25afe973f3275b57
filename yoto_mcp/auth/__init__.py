"""
Yoto Authentication Module

Handles OAuth device flow authentication for the MCP server.
Stores the token pair locally and refreshes it against login.yotoplay.com.
"""

from yoto_mcp.auth.credentials import (
    Credential,
    CredentialStore,
    TokenProvider,
    TokenResponse,
)
from yoto_mcp.auth.device_flow import DeviceAuthorizer, DeviceSession

__all__ = [
    "Credential",
    "CredentialStore",
    "TokenProvider",
    "TokenResponse",
    "DeviceAuthorizer",
    "DeviceSession",
]
