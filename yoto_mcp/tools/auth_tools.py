"""
Authentication tools for Yoto MCP.

Provides tools for users to connect their Yoto account via the
device flow and to check whether the stored credentials still work.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional

import httpx
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from yoto_mcp.auth import CredentialStore, DeviceAuthorizer, TokenProvider
from yoto_mcp.config import Config
from yoto_mcp.errors import AuthRequiredError, YotoError

logger = logging.getLogger(__name__)


def _iso(timestamp: Optional[float]) -> Optional[str]:
    if timestamp is None:
        return None
    return (
        datetime.fromtimestamp(timestamp, timezone.utc)
        .isoformat()
        .replace("+00:00", "Z")
    )


def create_auth_tools(
    mcp: FastMCP, config: Config, http_client: Optional[httpx.Client] = None
) -> None:
    """Register authentication tools with the MCP server."""

    @mcp.tool(name="yoto-auth", tags={"auth", "yoto"})
    def yoto_auth() -> Dict[str, Any]:
        """
        Authenticate with the Yoto API using the device authorization flow.

        1. A verification URL and code are shown (and the browser opened)
        2. You sign in to Yoto and approve this device
        3. The tool returns once the approval arrives

        Returns:
            Authentication result with token expiry
        """
        store = CredentialStore(config.credentials_file)
        authorizer = DeviceAuthorizer(config, http_client=http_client)

        try:
            credential = authorizer.run()
            store.save(credential)
        except YotoError as e:
            raise ToolError(str(e))
        except Exception as e:
            logger.error(f"Authentication error: {e}")
            raise ToolError(f"Authentication error: {e}")

        return {
            "status": "success",
            "message": "Successfully authenticated with Yoto API!",
            "expires_at": _iso(credential.expires_at),
        }

    @mcp.tool(name="yoto-check-auth", tags={"auth", "yoto"})
    def yoto_check_auth() -> Dict[str, Any]:
        """
        Check if authenticated with the Yoto API.

        An expired access token is refreshed if a refresh token is stored.

        Returns:
            Current authentication status
        """
        store = CredentialStore(config.credentials_file)
        provider = TokenProvider(store, config, http_client=http_client)

        try:
            provider.get_valid_access_token()
        except AuthRequiredError:
            return {
                "authenticated": False,
                "message": "Not authenticated. Please run yoto-auth tool.",
                "credentials_file": str(config.credentials_file),
            }
        except Exception as e:
            logger.error(f"Failed to check authentication: {e}")
            raise ToolError(f"Failed to check authentication: {e}")

        return {
            "authenticated": True,
            "message": "Authenticated with Yoto API",
            "credentials_file": str(config.credentials_file),
            "expires_at": _iso(store.load().expires_at),
        }
