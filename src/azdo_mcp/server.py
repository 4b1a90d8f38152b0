"""Azure DevOps MCP Server - Expose projects, work items, repositories and pull requests to AI assistants."""
import asyncio
import logging
import os
import sys
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from azdo_core import __version__
from azdo_core.config import DevOpsConfig, load_config
from azdo_core.connection import ConnectionManager
from azdo_core.errors import DevOpsError, format_error

from . import tools
from .dispatcher import RequestDispatcher

SERVER_NAME = "azure-devops-mcp"

logger = logging.getLogger("azdo-mcp")


def configure_logging(level: Optional[str] = None) -> None:
    # stdout carries the MCP protocol; logs go to stderr
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
        force=True
    )


def create_server(
    config: DevOpsConfig,
    connection_manager: Optional[ConnectionManager] = None,
) -> tuple[Server, RequestDispatcher]:
    """Build an MCP server instance with its own connection manager and dispatcher."""
    connection_manager = connection_manager or ConnectionManager(config)
    registry = tools.build_registry()
    dispatcher = RequestDispatcher(connection_manager, registry, default_project=config.default_project)

    app = Server(SERVER_NAME, version=__version__)

    @app.list_tools()
    async def list_tools() -> list[Tool]:
        """List available Azure DevOps tools."""
        return tools.get_tools(registry)

    # Arguments are validated by the dispatcher so failures come back as formatted text
    @app.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Any) -> list[TextContent]:
        return await dispatcher.dispatch(name, arguments)

    return app, dispatcher


async def run(config: DevOpsConfig) -> None:
    """Run the MCP server over stdio until the client disconnects."""
    app, dispatcher = create_server(config)
    logger.info(f"MCP Server starting for organization: {config.organization_url}")
    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        await dispatcher.connection_manager.close()


def main() -> None:
    configure_logging()
    try:
        config = load_config()
    except DevOpsError as e:
        logger.error(f"Invalid configuration: {format_error(e)}")
        sys.exit(1)
    asyncio.run(run(config))


if __name__ == "__main__":
    main()
