"""Pydantic input models for the MCP tools.

Field names are snake_case in Python and camelCase on the wire
(``project_id`` <-> ``projectId``). Unknown arguments are ignored.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ToolInput(BaseModel):
    """Base for all tool argument models."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# Organization / Project Schemas

class ListOrganizationsInput(ToolInput):
    pass


class ListProjectsInput(ToolInput):
    state_filter: Optional[int] = Field(
        None,
        description="Filter on team project state (0: all, 1: well-formed, 2: creating, 3: deleting, 4: new)",
    )
    top: Optional[int] = Field(None, ge=0, description="Maximum number of projects to return")
    skip: Optional[int] = Field(None, ge=0, description="Number of projects to skip")
    continuation_token: Optional[int] = Field(
        None, description="Gets the projects after the continuation token provided"
    )


class GetProjectInput(ToolInput):
    project_id: str = Field(..., min_length=1, description="The ID or name of the project")


# Work Item Schemas

class GetWorkItemInput(ToolInput):
    work_item_id: int = Field(..., description="The ID of the work item")


class ListWorkItemsInput(ToolInput):
    project_id: str = Field(..., min_length=1, description="The ID or name of the project")
    team_id: Optional[str] = Field(None, description="The ID of the team")
    query_id: Optional[str] = Field(None, description="ID of a saved work item query")
    wiql: Optional[str] = Field(None, description="Work Item Query Language (WIQL) query")
    top: Optional[int] = Field(None, ge=0, description="Maximum number of work items to return")
    skip: Optional[int] = Field(None, ge=0, description="Number of work items to skip")


class WorkItemFieldsInput(ToolInput):
    """Fields shared by create and update."""

    description: Optional[str] = Field(None, description="The description of the work item (HTML allowed)")
    assigned_to: Optional[str] = Field(None, description="The email or name of the user to assign the work item to")
    area_path: Optional[str] = Field(None, description="The area path for the work item")
    iteration_path: Optional[str] = Field(None, description="The iteration path for the work item")
    priority: Optional[int] = Field(None, description="The priority of the work item")
    additional_fields: Optional[dict[str, Any]] = Field(
        None, description="Additional fields to set, keyed by field reference name (e.g. 'Custom.Field')"
    )


class CreateWorkItemInput(WorkItemFieldsInput):
    project_id: str = Field(..., min_length=1, description="The ID or name of the project")
    work_item_type: str = Field(..., min_length=1, description="The type of work item (e.g., Task, Bug, User Story)")
    title: str = Field(..., min_length=1, description="The title of the work item")


class UpdateWorkItemInput(WorkItemFieldsInput):
    work_item_id: int = Field(..., description="The ID of the work item to update")
    title: Optional[str] = Field(None, description="The updated title of the work item")
    state: Optional[str] = Field(None, description="The updated state of the work item")


# Repository Schemas

class GetRepositoryInput(ToolInput):
    project_id: str = Field(..., min_length=1, description="The ID or name of the project")
    repository_id: str = Field(..., min_length=1, description="The ID or name of the repository")


class ListRepositoriesInput(ToolInput):
    project_id: str = Field(..., min_length=1, description="The ID or name of the project")
    include_links: Optional[bool] = Field(None, description="Whether to include reference links")


# Pull Request Schemas

class PullRequestScopeInput(ToolInput):
    project_id: str = Field(..., min_length=1, description="The ID or name of the project")
    repository_id: str = Field(..., min_length=1, description="The ID or name of the repository")
    pull_request_id: int = Field(..., description="The ID of the pull request")


class GetPullRequestInput(PullRequestScopeInput):
    pass


class ListPullRequestsInput(ToolInput):
    project_id: str = Field(..., min_length=1, description="The ID or name of the project")
    repository_id: str = Field(..., min_length=1, description="The ID or name of the repository")
    status: Optional[str] = Field(None, description="Pull request status: active, abandoned, completed or all")
    creator_id: Optional[str] = Field(None, description="Only pull requests created by this identity")
    reviewer_id: Optional[str] = Field(None, description="Only pull requests with this reviewer")
    source_ref_name: Optional[str] = Field(None, description="Source branch (e.g. refs/heads/feature)")
    target_ref_name: Optional[str] = Field(None, description="Target branch (e.g. refs/heads/main)")
    include_links: Optional[bool] = Field(None, description="Whether to include reference links")


class ListPRCommentsInput(PullRequestScopeInput):
    pass


class CreatePRCommentInput(PullRequestScopeInput):
    content: str = Field(..., min_length=1, description="The comment text")
    file_path: Optional[str] = Field(None, description="File to anchor the comment to")
    line_number: Optional[int] = Field(None, ge=1, description="Line in the file to anchor the comment to")
    parent_comment_id: Optional[int] = Field(None, description="Comment this one replies to")


class UpdatePRCommentInput(PullRequestScopeInput):
    thread_id: int = Field(..., description="The ID of the comment thread")
    comment_id: int = Field(..., description="The ID of the comment")
    content: str = Field(..., min_length=1, description="The new comment text")


class UpdatePRThreadStatusInput(PullRequestScopeInput):
    thread_id: int = Field(..., description="The ID of the comment thread")
    status: str = Field(..., description="New thread status: active, fixed, wontfix, closed or pending")


class GetPRFilesInput(PullRequestScopeInput):
    compare_to: Optional[int] = Field(None, description="Iteration to compare the latest iteration against")
