"""
MCP Server for Yoto
Upload audio and manage MYO cards from an AI assistant
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("yoto-mcp-server")
except PackageNotFoundError:
    # Package not installed (development mode)
    __version__ = "0.0.0-dev"
