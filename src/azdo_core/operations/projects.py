import logging
from typing import Optional

from ..errors import DevOpsError

logger = logging.getLogger("azdo-core.operations.projects")

# Tool-facing integer codes for the projects endpoint's stateFilter
PROJECT_STATE_FILTERS = {
    0: "all",
    1: "wellFormed",
    2: "createPending",
    3: "deleting",
    4: "new",
}


async def get_project(connection, project_id: str) -> dict:
    """Get a project by ID or name."""
    core_api = await connection.get_core_api()
    project = await core_api.get_project(project_id)
    if not project:
        raise DevOpsError.not_found(f"Project '{project_id}' not found")
    return project


async def list_projects(
    connection,
    state_filter: Optional[int] = None,
    top: Optional[int] = None,
    skip: Optional[int] = None,
    continuation_token: Optional[int] = None,
) -> list[dict]:
    """List projects in the organization."""
    state = None
    if state_filter is not None:
        if state_filter not in PROJECT_STATE_FILTERS:
            raise DevOpsError.validation(
                f"Invalid project state filter: {state_filter}",
                response={"allowed": sorted(PROJECT_STATE_FILTERS)},
            )
        state = PROJECT_STATE_FILTERS[state_filter]

    core_api = await connection.get_core_api()
    projects = await core_api.get_projects(state, top, skip, continuation_token)
    logger.info(f"Listed {len(projects)} projects")
    return projects
