"""Request dispatch and error normalization for tool calls.

Every call returns the same envelope shape, a single text content item
holding either pretty-printed JSON or a formatted error. Exceptions never
escape to the transport.
"""
import json
import logging
import traceback
from typing import Any, Mapping, Optional

from mcp.types import TextContent
from pydantic import ValidationError

from azdo_core.connection import ConnectionManager
from azdo_core.errors import DevOpsError, format_error, is_domain_error

from .tools import ToolDescriptor, build_registry

logger = logging.getLogger("azdo-mcp.dispatcher")


def serialize_result(result: Any) -> str:
    """Stable, pretty-printed JSON (two-space indent, insertion order kept)."""
    return json.dumps(result, indent=2, ensure_ascii=False, default=str)


def text_envelope(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def describe_violations(error: ValidationError) -> list[dict]:
    """Field-level violations from a pydantic ValidationError."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "arguments",
            "message": err["msg"],
            "type": err["type"],
        }
        for err in error.errors()
    ]


class RequestDispatcher:
    """Validates, executes and normalizes every incoming tool invocation."""

    def __init__(
        self,
        connection_manager: ConnectionManager,
        registry: Optional[Mapping[str, ToolDescriptor]] = None,
        default_project: Optional[str] = None,
    ):
        self.connection_manager = connection_manager
        self.registry = registry if registry is not None else build_registry()
        self.default_project = default_project

    def apply_project_defaults(self, descriptor: ToolDescriptor, arguments: dict) -> dict:
        """Fill projectId from the configured default project when the tool takes one."""
        if not self.default_project or not descriptor.accepts("project_id"):
            return arguments
        if arguments.get("projectId") or arguments.get("project_id"):
            return arguments
        logger.info(f"Using default project '{self.default_project}' for {descriptor.name}")
        return {**arguments, "projectId": self.default_project}

    async def dispatch(self, tool_name: str, raw_args: Optional[dict]) -> list[TextContent]:
        logger.info(f"Tool call: {tool_name}")
        try:
            result = await self._execute(tool_name, raw_args)
            text = serialize_result(result)
        except Exception as e:
            if is_domain_error(e):
                logger.warning(f"Tool {tool_name} failed: {format_error(e)}")
                return text_envelope(format_error(e))

            logger.error(f"Unexpected error during {tool_name} call:")
            logger.error(f"  Error type: {type(e).__name__}")
            logger.error(f"  Error message: {str(e)}")
            logger.error(f"  Traceback:\n{traceback.format_exc()}")
            wrapped = DevOpsError.generic(f"Error: {str(e) or type(e).__name__}")
            return text_envelope(format_error(wrapped))

        return text_envelope(text)

    async def _execute(self, tool_name: str, raw_args: Optional[dict]) -> Any:
        if raw_args is None:
            raise DevOpsError.validation("Arguments are required")

        descriptor = self.registry.get(tool_name)
        if descriptor is None:
            logger.warning(f"Unknown tool requested: {tool_name}")
            raise DevOpsError.generic(f"Unknown tool: {tool_name}")

        connection = await self.connection_manager.get_connection()

        arguments = self.apply_project_defaults(descriptor, dict(raw_args))
        try:
            validated = descriptor.input_model.model_validate(arguments)
        except ValidationError as e:
            violations = describe_violations(e)
            raise DevOpsError.validation(
                f"Invalid arguments for {tool_name}: {json.dumps(violations)}"
            ) from e

        result = await descriptor.handler(connection, validated)
        logger.info(f"Tool {tool_name} completed")
        return result
