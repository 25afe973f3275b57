"""
Yoto MCP Server

Upload audio to Yoto and manage MYO cards from an AI assistant.
"""

import os
import sys
import logging
from typing import Optional

from fastmcp import FastMCP

from yoto_mcp.config import Config
from yoto_mcp.tools.auth_tools import create_auth_tools
from yoto_mcp.tools.card_tools import create_card_tools


def create_server(config: Optional[Config] = None) -> FastMCP:
    """Create and configure the MCP server."""
    config = config or Config.from_env()
    mcp = FastMCP(Config.SERVER_NAME)

    create_auth_tools(mcp, config)
    create_card_tools(mcp, config)

    return mcp


mcp = create_server()


def main():
    """Entry point for the CLI."""
    # stdout carries the MCP protocol; logs go to stderr
    logging.basicConfig(
        stream=sys.stderr,
        level=os.getenv("YOTO_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    transport = os.getenv("MCP_TRANSPORT", "stdio")

    if transport == "stdio":
        mcp.run(transport="stdio")
    else:
        host = os.getenv("MCP_HOST", "0.0.0.0")
        port = int(os.getenv("MCP_PORT", "8001"))
        print(
            f"Starting server: http://{host}:{port}/mcp (transport: {transport})",
            file=sys.stderr,
        )
        mcp.run(transport=transport, host=host, port=port)


if __name__ == "__main__":
    main()
