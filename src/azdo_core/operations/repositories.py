import logging
from typing import Optional

from ..errors import DevOpsError

logger = logging.getLogger("azdo-core.operations.repositories")


async def get_repository(connection, project_id: str, repository_id: str) -> dict:
    """Get a Git repository by ID or name."""
    git_api = await connection.get_git_api()
    repository = await git_api.get_repository(repository_id, project_id)
    if not repository:
        raise DevOpsError.not_found(
            f"Repository '{repository_id}' not found in project '{project_id}'"
        )
    return repository


async def list_repositories(connection, project_id: str, include_links: Optional[bool] = None) -> list[dict]:
    git_api = await connection.get_git_api()
    repositories = await git_api.get_repositories(project_id, include_links)
    logger.info(f"Listed {len(repositories)} repositories in project {project_id}")
    return repositories
