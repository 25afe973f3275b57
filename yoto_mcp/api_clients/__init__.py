"""API clients for the Yoto content service"""

from yoto_mcp.api_clients.yoto_client import YotoClient
from yoto_mcp.api_clients.transcode import TranscodeWaiter

__all__ = ["YotoClient", "TranscodeWaiter"]
