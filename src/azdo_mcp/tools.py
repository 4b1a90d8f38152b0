"""Tool registry for the Azure DevOps MCP server.

This module provides the definitive list of tools. The registry is built once
and is read-only afterwards; the MCP listing is derived from it so the
advertised input schemas always match what the dispatcher validates.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping

from mcp.types import Tool
from pydantic import BaseModel

from . import handlers, schemas


@dataclass(frozen=True)
class ToolDescriptor:
    """A named, schema-described operation."""

    name: str
    description: str
    input_model: type[BaseModel]
    handler: Callable[[Any, BaseModel], Awaitable[Any]]

    @property
    def input_schema(self) -> dict:
        return self.input_model.model_json_schema(by_alias=True)

    def accepts(self, field_name: str) -> bool:
        return field_name in self.input_model.model_fields

    def to_tool(self) -> Tool:
        return Tool(name=self.name, description=self.description, inputSchema=self.input_schema)


TOOL_DESCRIPTORS: tuple[ToolDescriptor, ...] = (
    # ============================================================================
    # Organization / Project Tools
    # ============================================================================
    ToolDescriptor(
        name="list_organizations",
        description="List all Azure DevOps organizations accessible to the current credential.",
        input_model=schemas.ListOrganizationsInput,
        handler=handlers.handle_list_organizations,
    ),
    ToolDescriptor(
        name="list_projects",
        description="List all projects in the organization. "
                    "Common pattern: list_projects() → get_project(projectId=...) → list_repositories(projectId=...).",
        input_model=schemas.ListProjectsInput,
        handler=handlers.handle_list_projects,
    ),
    ToolDescriptor(
        name="get_project",
        description="Get details of a specific project by ID or name.",
        input_model=schemas.GetProjectInput,
        handler=handlers.handle_get_project,
    ),
    # ============================================================================
    # Work Item Tools
    # ============================================================================
    ToolDescriptor(
        name="get_work_item",
        description="Get a work item (id, title, state, assignee) by ID.",
        input_model=schemas.GetWorkItemInput,
        handler=handlers.handle_get_work_item,
    ),
    ToolDescriptor(
        name="list_work_items",
        description="List work items in a project, from a saved query (queryId), a WIQL query, "
                    "or all work items of the project/team when neither is given.",
        input_model=schemas.ListWorkItemsInput,
        handler=handlers.handle_list_work_items,
    ),
    ToolDescriptor(
        name="create_work_item",
        description="Create a new work item (Task, Bug, User Story, ...) in a project.",
        input_model=schemas.CreateWorkItemInput,
        handler=handlers.handle_create_work_item,
    ),
    ToolDescriptor(
        name="update_work_item",
        description="Update fields of an existing work item. Only the provided fields are changed.",
        input_model=schemas.UpdateWorkItemInput,
        handler=handlers.handle_update_work_item,
    ),
    # ============================================================================
    # Repository Tools
    # ============================================================================
    ToolDescriptor(
        name="get_repository",
        description="Get details of a Git repository by ID or name.",
        input_model=schemas.GetRepositoryInput,
        handler=handlers.handle_get_repository,
    ),
    ToolDescriptor(
        name="list_repositories",
        description="List the Git repositories of a project.",
        input_model=schemas.ListRepositoriesInput,
        handler=handlers.handle_list_repositories,
    ),
    # ============================================================================
    # Pull Request Tools
    # ============================================================================
    ToolDescriptor(
        name="get_pull_request",
        description="Get a pull request by ID.",
        input_model=schemas.GetPullRequestInput,
        handler=handlers.handle_get_pull_request,
    ),
    ToolDescriptor(
        name="list_pull_requests",
        description="List pull requests in a repository, optionally filtered by status, creator, "
                    "reviewer or source/target branch.",
        input_model=schemas.ListPullRequestsInput,
        handler=handlers.handle_list_pull_requests,
    ),
    ToolDescriptor(
        name="list_pr_comments",
        description="List the file comments of a pull request (file path, location, content, status, author).",
        input_model=schemas.ListPRCommentsInput,
        handler=handlers.handle_list_pr_comments,
    ),
    ToolDescriptor(
        name="create_pr_comment",
        description="Add a comment to a pull request, optionally anchored to a file and line.",
        input_model=schemas.CreatePRCommentInput,
        handler=handlers.handle_create_pr_comment,
    ),
    ToolDescriptor(
        name="update_pr_comment",
        description="Edit the text of an existing pull request comment.",
        input_model=schemas.UpdatePRCommentInput,
        handler=handlers.handle_update_pr_comment,
    ),
    ToolDescriptor(
        name="update_pr_thread_status",
        description="Change the status of a pull request comment thread (active, fixed, wontfix, closed, pending).",
        input_model=schemas.UpdatePRThreadStatusInput,
        handler=handlers.handle_update_pr_thread_status,
    ),
    ToolDescriptor(
        name="get_pr_files",
        description="List the files changed in the latest iteration of a pull request.",
        input_model=schemas.GetPRFilesInput,
        handler=handlers.handle_get_pr_files,
    ),
)


def build_registry(descriptors=TOOL_DESCRIPTORS) -> Mapping[str, ToolDescriptor]:
    """Index descriptors by name into a read-only mapping."""
    registry: dict[str, ToolDescriptor] = {}
    for descriptor in descriptors:
        if descriptor.name in registry:
            raise ValueError(f"Duplicate tool name: {descriptor.name}")
        registry[descriptor.name] = descriptor
    return MappingProxyType(registry)


def get_tools(registry: Mapping[str, ToolDescriptor] | None = None) -> list[Tool]:
    """Get the MCP listing of all registered tools."""
    registry = registry if registry is not None else build_registry()
    return [descriptor.to_tool() for descriptor in registry.values()]
