"""Tool handlers.

All handlers follow the same pattern:
- Accept: the authenticated connection and the validated argument model
- Return: JSON-compatible data; the dispatcher serializes it for the caller
- Raise DevOpsError (or let backend errors propagate) on failure
"""
from typing import Any

from azdo_core.operations import organizations, projects, pull_requests, repositories, work_items

from . import schemas


# ============================================================================
# Organization / Project Handlers
# ============================================================================

async def handle_list_organizations(connection, args: schemas.ListOrganizationsInput) -> Any:
    return await organizations.list_organizations(connection)


async def handle_list_projects(connection, args: schemas.ListProjectsInput) -> Any:
    return await projects.list_projects(
        connection,
        state_filter=args.state_filter,
        top=args.top,
        skip=args.skip,
        continuation_token=args.continuation_token,
    )


async def handle_get_project(connection, args: schemas.GetProjectInput) -> Any:
    return await projects.get_project(connection, args.project_id)


# ============================================================================
# Work Item Handlers
# ============================================================================

async def handle_get_work_item(connection, args: schemas.GetWorkItemInput) -> Any:
    return await work_items.get_work_item(connection, args.work_item_id)


async def handle_list_work_items(connection, args: schemas.ListWorkItemsInput) -> Any:
    return await work_items.list_work_items(
        connection,
        args.project_id,
        team_id=args.team_id,
        query_id=args.query_id,
        wiql=args.wiql,
        top=args.top,
        skip=args.skip,
    )


async def handle_create_work_item(connection, args: schemas.CreateWorkItemInput) -> Any:
    return await work_items.create_work_item(
        connection,
        args.project_id,
        args.work_item_type,
        title=args.title,
        description=args.description,
        assigned_to=args.assigned_to,
        area_path=args.area_path,
        iteration_path=args.iteration_path,
        priority=args.priority,
        additional_fields=args.additional_fields,
    )


async def handle_update_work_item(connection, args: schemas.UpdateWorkItemInput) -> Any:
    return await work_items.update_work_item(
        connection,
        args.work_item_id,
        title=args.title,
        description=args.description,
        assigned_to=args.assigned_to,
        area_path=args.area_path,
        iteration_path=args.iteration_path,
        priority=args.priority,
        state=args.state,
        additional_fields=args.additional_fields,
    )


# ============================================================================
# Repository Handlers
# ============================================================================

async def handle_get_repository(connection, args: schemas.GetRepositoryInput) -> Any:
    return await repositories.get_repository(connection, args.project_id, args.repository_id)


async def handle_list_repositories(connection, args: schemas.ListRepositoriesInput) -> Any:
    return await repositories.list_repositories(connection, args.project_id, args.include_links)


# ============================================================================
# Pull Request Handlers
# ============================================================================

async def handle_get_pull_request(connection, args: schemas.GetPullRequestInput) -> Any:
    return await pull_requests.get_pull_request(
        connection, args.project_id, args.repository_id, args.pull_request_id
    )


async def handle_list_pull_requests(connection, args: schemas.ListPullRequestsInput) -> Any:
    return await pull_requests.list_pull_requests(
        connection,
        args.project_id,
        args.repository_id,
        status=args.status,
        creator_id=args.creator_id,
        reviewer_id=args.reviewer_id,
        source_ref_name=args.source_ref_name,
        target_ref_name=args.target_ref_name,
        include_links=args.include_links,
    )


async def handle_list_pr_comments(connection, args: schemas.ListPRCommentsInput) -> Any:
    return await pull_requests.list_pull_request_comments(
        connection, args.project_id, args.repository_id, args.pull_request_id
    )


async def handle_create_pr_comment(connection, args: schemas.CreatePRCommentInput) -> Any:
    return await pull_requests.create_pull_request_comment(
        connection,
        args.project_id,
        args.repository_id,
        args.pull_request_id,
        args.content,
        file_path=args.file_path,
        line_number=args.line_number,
        parent_comment_id=args.parent_comment_id,
    )


async def handle_update_pr_comment(connection, args: schemas.UpdatePRCommentInput) -> Any:
    return await pull_requests.update_pull_request_comment(
        connection,
        args.project_id,
        args.repository_id,
        args.pull_request_id,
        args.thread_id,
        args.comment_id,
        args.content,
    )


async def handle_update_pr_thread_status(connection, args: schemas.UpdatePRThreadStatusInput) -> Any:
    return await pull_requests.update_pull_request_thread_status(
        connection,
        args.project_id,
        args.repository_id,
        args.pull_request_id,
        args.thread_id,
        args.status,
    )


async def handle_get_pr_files(connection, args: schemas.GetPRFilesInput) -> Any:
    return await pull_requests.get_pull_request_files(
        connection,
        args.project_id,
        args.repository_id,
        args.pull_request_id,
        compare_to=args.compare_to,
    )
