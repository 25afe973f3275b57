"""MCP tools for the Yoto integration"""

from yoto_mcp.tools.auth_tools import create_auth_tools
from yoto_mcp.tools.card_tools import create_card_tools

__all__ = [
    "create_auth_tools",
    "create_card_tools",
]
