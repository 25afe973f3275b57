"""
Credential storage and token management for Yoto MCP.

Stores the OAuth token pair locally in ~/.yoto-mcp-config.json and
refreshes the access token against login.yotoplay.com on demand.
"""

import json
import time
import logging
from pathlib import Path
from typing import Optional, Dict, Any, Callable
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, ValidationError

from yoto_mcp.config import Config
from yoto_mcp.errors import AuthRequiredError
from yoto_mcp.utils import http_session

logger = logging.getLogger(__name__)


@dataclass
class Credential:
    """OAuth token pair persisted between tool calls."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None  # Unix seconds

    def is_valid(self, now: float) -> bool:
        """True if the access token can be used without a network call."""
        return (
            bool(self.access_token)
            and self.expires_at is not None
            and self.expires_at > now
        )

    def to_dict(self) -> Dict[str, Any]:
        # expiresAt is stored in epoch milliseconds
        data: Dict[str, Any] = {}
        if self.access_token is not None:
            data["accessToken"] = self.access_token
        if self.refresh_token is not None:
            data["refreshToken"] = self.refresh_token
        if self.expires_at is not None:
            data["expiresAt"] = int(self.expires_at * 1000)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credential":
        if not isinstance(data, dict):
            raise ValueError("credential record is not a JSON object")

        access_token = data.get("accessToken")
        refresh_token = data.get("refreshToken")
        expires_at_ms = data.get("expiresAt")

        for name, value in (
            ("accessToken", access_token),
            ("refreshToken", refresh_token),
        ):
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{name} must be a string")
        if expires_at_ms is not None and (
            isinstance(expires_at_ms, bool)
            or not isinstance(expires_at_ms, (int, float))
        ):
            raise ValueError("expiresAt must be a number")

        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at_ms / 1000 if expires_at_ms is not None else None,
        )


class TokenResponse(BaseModel):
    """Body of a successful /oauth/token exchange."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int

    def to_credential(
        self, now: float, previous_refresh_token: Optional[str] = None
    ) -> Credential:
        return Credential(
            access_token=self.access_token,
            refresh_token=self.refresh_token or previous_refresh_token,
            expires_at=now + self.expires_in,
        )


class CredentialStore:
    """
    Reads and writes the single local credential record.

    Usage:
        store = CredentialStore(config.credentials_file)

        credential = store.load()   # empty Credential if nothing stored
        store.save(credential)      # raises OSError on I/O failure
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Credential:
        """Load the stored credential; never raises."""
        if not self.path.exists():
            return Credential()

        try:
            with open(self.path) as f:
                credential = Credential.from_dict(json.load(f))
            logger.debug(f"Loaded credentials from {self.path}")
            return credential
        except Exception as e:
            logger.warning(f"Failed to load credentials: {e}")
            return Credential()

    def save(self, credential: Credential):
        """Save the credential to disk, replacing the whole record."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(credential.to_dict(), f, indent=2)
            self.path.chmod(0o600)  # Restrict permissions
            logger.info(f"Saved credentials to {self.path}")
        except OSError as e:
            logger.error(f"Failed to save credentials: {e}")
            raise


class TokenProvider:
    """
    Hands out a currently valid access token.

    The stored token is returned as-is while unexpired. Once expired, one
    refresh_token exchange is attempted; if that is impossible or fails,
    AuthRequiredError tells the operator to run yoto-auth.

    Concurrent refreshes from two tool calls are not coordinated; each
    writes its own result and the last write wins.
    """

    def __init__(
        self,
        store: CredentialStore,
        config: Config,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.config = config
        self.http_client = http_client
        self.clock = clock

    def get_valid_access_token(self) -> str:
        credential = self.store.load()

        if credential.is_valid(self.clock()):
            return credential.access_token

        if not credential.refresh_token:
            raise AuthRequiredError()

        refreshed = self._refresh(credential)
        self.store.save(refreshed)
        return refreshed.access_token

    def _refresh(self, credential: Credential) -> Credential:
        """Exchange the refresh token once; no retries."""
        try:
            with http_session(self.http_client, self.config.http_timeout) as client:
                response = client.post(
                    f"{self.config.auth_url}/oauth/token",
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": credential.refresh_token,
                        "client_id": self.config.client_id,
                    },
                )
        except httpx.HTTPError as e:
            logger.warning(f"Token refresh failed: {e}")
            raise AuthRequiredError() from e

        if not response.is_success:
            logger.warning(f"Token refresh rejected: {response.status_code}")
            raise AuthRequiredError()

        try:
            token = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"Token refresh returned an unexpected body: {e}")
            raise AuthRequiredError() from e

        logger.info("Refreshed Yoto access token")
        return token.to_credential(self.clock(), credential.refresh_token)
