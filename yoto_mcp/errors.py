"""
Exceptions raised by the Yoto auth and content layers.

Tool handlers turn every YotoError into a ToolError, so none of these
reach the MCP client as an unhandled fault.
"""


class YotoError(Exception):
    """Base class for Yoto integration errors."""


class AuthRequiredError(YotoError):
    """No usable access token and the refresh exchange is not possible."""

    def __init__(
        self,
        message: str = "Authentication required. Please run the yoto-auth tool first.",
    ):
        super().__init__(message)


class AuthTimeoutError(YotoError):
    """The device authorization flow ran out of polling attempts."""


class UploadFailedError(YotoError):
    """The upload slot request or the audio PUT was rejected."""


class TranscodeTimeoutError(YotoError):
    """Transcoding did not finish within the polling budget."""


class RemoteRejectedError(YotoError):
    """The content API answered a request with a non-success status."""

    def __init__(self, action: str, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Failed to {action}: {body}")


class MalformedResponseError(YotoError):
    """A success response did not match the expected schema."""
