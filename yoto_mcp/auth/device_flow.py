"""
OAuth Device Flow Authentication for Yoto MCP.

Implements RFC 8628 device authorization against login.yotoplay.com:
1. Request a device_code + user_code
2. User visits the verification URL and approves the device
3. Poll /oauth/token with the device_code grant at the server's interval
4. First success yields the access/refresh token pair
"""

import sys
import time
import logging
import webbrowser
from typing import Optional, Callable

import httpx
from pydantic import BaseModel, ValidationError

from yoto_mcp.auth.credentials import Credential, TokenResponse
from yoto_mcp.config import Config
from yoto_mcp.errors import (
    AuthTimeoutError,
    MalformedResponseError,
    RemoteRejectedError,
)
from yoto_mcp.utils import http_session

logger = logging.getLogger(__name__)

DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"


class DeviceSession(BaseModel):
    """One in-flight device authorization attempt. Never persisted."""

    device_code: str
    user_code: str
    verification_uri: str
    verification_uri_complete: Optional[str] = None
    interval: int = 5
    expires_in: Optional[int] = None

    @property
    def auth_url(self) -> str:
        return self.verification_uri_complete or self.verification_uri


class DeviceAuthorizer:
    """
    Handles OAuth device flow authentication.

    Usage:
        authorizer = DeviceAuthorizer(config)
        credential = authorizer.run()   # blocks until approved or timed out
        CredentialStore(config.credentials_file).save(credential)
    """

    def __init__(
        self,
        config: Config,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize device flow authentication.

        Args:
            config: Server configuration (URLs, client id, poll budget)
            http_client: Optional client to reuse instead of opening one
            sleep: Called between polls; tests pass a fake
            clock: Source of "now" for the credential expiry
        """
        self.config = config
        self.http_client = http_client
        self.sleep = sleep
        self.clock = clock

    def init_flow(self) -> DeviceSession:
        """
        Request a device code.

        Raises:
            RemoteRejectedError if the authorization server refuses
            MalformedResponseError if the reply lacks required fields
        """
        with http_session(self.http_client, self.config.http_timeout) as client:
            response = client.post(
                f"{self.config.auth_url}/oauth/device/code",
                data={
                    "client_id": self.config.client_id,
                    "scope": self.config.scope,
                    "audience": self.config.audience,
                },
            )

        if not response.is_success:
            raise RemoteRejectedError(
                "start device authorization", response.status_code, response.text
            )

        try:
            return DeviceSession.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise MalformedResponseError(
                f"Unexpected device code response: {e}"
            ) from e

    def poll_for_token(self, session: DeviceSession) -> Credential:
        """
        Poll until the user approves the device.

        Any non-success or unreadable reply means "not yet"; network errors
        count as a normal attempt. The interval is the server's and never changes.

        Raises:
            AuthTimeoutError after device_poll_max_attempts attempts
        """
        max_attempts = self.config.device_poll_max_attempts

        with http_session(self.http_client, self.config.http_timeout) as client:
            for attempt in range(1, max_attempts + 1):
                self.sleep(session.interval)

                try:
                    response = client.post(
                        f"{self.config.auth_url}/oauth/token",
                        data={
                            "grant_type": DEVICE_CODE_GRANT,
                            "device_code": session.device_code,
                            "client_id": self.config.client_id,
                        },
                    )
                except httpx.HTTPError as e:
                    logger.debug(f"Device poll {attempt}/{max_attempts} failed: {e}")
                    continue

                if not response.is_success:
                    logger.debug(
                        f"Device poll {attempt}/{max_attempts}: "
                        f"pending ({response.status_code})"
                    )
                    continue

                try:
                    token = TokenResponse.model_validate(response.json())
                except (ValueError, ValidationError) as e:
                    logger.debug(
                        f"Device poll {attempt}/{max_attempts}: "
                        f"unreadable token reply: {e}"
                    )
                    continue

                logger.info(f"Device authorized after {attempt} poll(s)")
                return token.to_credential(self.clock())

        raise AuthTimeoutError("Authentication timed out")

    def run(
        self, on_prompt: Optional[Callable[[DeviceSession], None]] = None
    ) -> Credential:
        """
        Run the full device flow and return the new credential.

        The caller persists the result.
        """
        session = self.init_flow()
        (on_prompt or self.print_instructions)(session)
        return self.poll_for_token(session)

    def print_instructions(self, session: DeviceSession):
        """Tell the operator where to approve; stdout belongs to MCP."""
        print("\nYoto Authentication Required\n", file=sys.stderr)
        print(f"Please visit: {session.auth_url}", file=sys.stderr)
        print(f"Or go to: {session.verification_uri}", file=sys.stderr)
        print(f"And enter code: {session.user_code}\n", file=sys.stderr)
        if session.expires_in:
            print(
                f"This code expires in {session.expires_in // 60} minutes.",
                file=sys.stderr,
            )
        print("Waiting for authorization...", file=sys.stderr)

        if self.config.open_browser:
            try:
                webbrowser.open(session.auth_url)
            except Exception as e:
                logger.warning(f"Could not open browser: {e}")
