"""Azure DevOps MCP Server - Model Context Protocol integration.

This package exposes Azure DevOps to AI assistants over MCP.

Modules:
- server: stdio MCP server implementation
- dispatcher: tool call validation, execution and error normalization
- tools: tool registry
- schemas: tool input models
- handlers: tool implementation handlers
"""

from . import dispatcher
from . import handlers
from . import schemas
from . import tools

__all__ = ["dispatcher", "handlers", "schemas", "tools"]
