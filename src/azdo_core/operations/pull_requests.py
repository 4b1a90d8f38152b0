"""Pull request operations: reading PRs, their comment threads and changed files."""
import logging
from typing import Any, Optional

from ..errors import DevOpsError

logger = logging.getLogger("azdo-core.operations.pull_requests")

PULL_REQUEST_STATUSES = {"active", "abandoned", "completed", "all"}

# Tool-facing thread status -> REST value
THREAD_STATUSES = {
    "active": "active",
    "fixed": "fixed",
    "wontfix": "wontFix",
    "closed": "closed",
    "pending": "pending",
}


def _pull_request_status(status: str) -> str:
    if status not in PULL_REQUEST_STATUSES:
        raise DevOpsError.validation(f"Invalid pull request status: {status}")
    return status


def _thread_status(status: str) -> str:
    value = THREAD_STATUSES.get(status.lower())
    if value is None:
        raise DevOpsError.validation(f"Invalid thread status: {status}")
    return value


def process_pull_request_comments(threads: list[dict]) -> list[dict]:
    """Reduce raw comment threads to file-anchored comments.

    Threads without a first comment, an author, a file path, a status or an
    id are dropped (system threads such as vote or policy updates).
    """
    comments = []
    for thread in threads:
        if "pullRequestThreadContext" in thread and thread["pullRequestThreadContext"] is None:
            continue
        first = (thread.get("comments") or [{}])[0]
        context = thread.get("threadContext") or {}
        author = (first.get("author") or {}).get("displayName")
        if not (first.get("content") and author and context.get("filePath")):
            continue
        if thread.get("status") is None or not isinstance(thread.get("id"), int):
            continue

        start = context.get("rightFileStart") or {}
        end = context.get("rightFileEnd") or {}
        comments.append({
            "filePath": context["filePath"],
            "location": {
                "startLine": start.get("line"),
                "endLine": end.get("line"),
                "startOffset": start.get("offset"),
                "endOffset": end.get("offset"),
            },
            "content": first["content"],
            "status": thread["status"],
            "threadId": thread["id"],
            "author": author,
        })
    return comments


async def get_pull_request(connection, project_id: str, repository_id: str, pull_request_id: int) -> dict:
    git_api = await connection.get_git_api()
    pull_request = await git_api.get_pull_request(repository_id, pull_request_id, project_id)
    if not pull_request:
        raise DevOpsError.not_found(
            f"Pull request {pull_request_id} not found in repository {repository_id}"
        )
    return pull_request


async def list_pull_requests(
    connection,
    project_id: str,
    repository_id: str,
    status: Optional[str] = None,
    creator_id: Optional[str] = None,
    reviewer_id: Optional[str] = None,
    source_ref_name: Optional[str] = None,
    target_ref_name: Optional[str] = None,
    include_links: Optional[bool] = None,
) -> list[dict]:
    search_criteria = {
        "status": _pull_request_status(status) if status else None,
        "creatorId": creator_id,
        "reviewerId": reviewer_id,
        "sourceRefName": source_ref_name,
        "targetRefName": target_ref_name,
        "includeLinks": None if include_links is None else str(include_links).lower(),
    }
    git_api = await connection.get_git_api()
    pull_requests = await git_api.get_pull_requests(repository_id, search_criteria, project_id)
    logger.info(f"Listed {len(pull_requests)} pull requests in {project_id}/{repository_id}")
    return pull_requests


async def list_pull_request_comments(
    connection, project_id: str, repository_id: str, pull_request_id: int
) -> list[dict]:
    git_api = await connection.get_git_api()
    threads = await git_api.get_threads(repository_id, pull_request_id, project_id)
    return process_pull_request_comments(threads)


async def create_pull_request_comment(
    connection,
    project_id: str,
    repository_id: str,
    pull_request_id: int,
    content: str,
    file_path: Optional[str] = None,
    line_number: Optional[int] = None,
    parent_comment_id: Optional[int] = None,
) -> dict:
    """Start a new comment thread, anchored to a file (and line) when given."""
    comment: dict[str, Any] = {"content": content}
    if parent_comment_id is not None:
        comment["parentCommentId"] = parent_comment_id

    thread: dict[str, Any] = {"comments": [comment]}
    if file_path:
        line = line_number if line_number is not None else 1
        thread["threadContext"] = {
            "filePath": file_path,
            "rightFileStart": {"line": line, "offset": 1},
            "rightFileEnd": {"line": line, "offset": 1},
        }

    git_api = await connection.get_git_api()
    created = await git_api.create_thread(thread, repository_id, pull_request_id, project_id)
    if not created:
        raise DevOpsError.generic("Failed to create comment thread")
    logger.info(f"Created comment thread {created.get('id')} on pull request {pull_request_id}")
    return created


async def update_pull_request_comment(
    connection,
    project_id: str,
    repository_id: str,
    pull_request_id: int,
    thread_id: int,
    comment_id: int,
    content: str,
) -> dict:
    git_api = await connection.get_git_api()
    updated = await git_api.update_comment(
        {"content": content}, repository_id, pull_request_id, thread_id, comment_id, project_id
    )
    if not updated:
        raise DevOpsError.not_found(f"Comment {comment_id} not found in thread {thread_id}")
    return updated


async def update_pull_request_thread_status(
    connection,
    project_id: str,
    repository_id: str,
    pull_request_id: int,
    thread_id: int,
    status: str,
) -> dict:
    thread = {"status": _thread_status(status)}
    git_api = await connection.get_git_api()
    updated = await git_api.update_thread(thread, repository_id, pull_request_id, thread_id, project_id)
    if not updated:
        raise DevOpsError.not_found(f"Thread {thread_id} not found in pull request {pull_request_id}")
    return updated


async def get_pull_request_files(
    connection,
    project_id: str,
    repository_id: str,
    pull_request_id: int,
    compare_to: Optional[int] = None,
) -> list[dict]:
    """Files changed in the latest iteration of a pull request."""
    git_api = await connection.get_git_api()
    iterations = await git_api.get_pull_request_iterations(repository_id, pull_request_id, project_id)
    if not iterations:
        return []

    latest_id = iterations[-1].get("id")
    if latest_id is None:
        raise DevOpsError.generic("Latest iteration ID is missing")

    return await git_api.get_pull_request_iteration_changes(
        repository_id, pull_request_id, latest_id, project_id, compare_to
    )
