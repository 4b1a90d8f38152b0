"""Work item operations (get, list via WIQL or saved query, create, update).

Create and update send JSON-Patch documents: one ``add`` operation per field
under ``/fields/<reference name>``.
"""
import logging
from typing import Any, Optional

from ..errors import DevOpsError

logger = logging.getLogger("azdo-core.operations.work_items")

DEFAULT_FIELDS = [
    "System.Id",
    "System.Title",
    "System.State",
    "System.AssignedTo",
]

# Keyword name -> Azure DevOps field reference name
FIELD_REFERENCE_NAMES = {
    "title": "System.Title",
    "description": "System.Description",
    "assigned_to": "System.AssignedTo",
    "area_path": "System.AreaPath",
    "iteration_path": "System.IterationPath",
    "priority": "Microsoft.VSTS.Common.Priority",
    "state": "System.State",
}


def build_patch_document(fields: dict[str, Any], additional_fields: Optional[dict[str, Any]] = None) -> list[dict]:
    """Build the JSON-Patch document for the provided (non-None) fields."""
    document = [
        {"op": "add", "path": f"/fields/{FIELD_REFERENCE_NAMES[name]}", "value": value}
        for name, value in fields.items()
        if value is not None and name in FIELD_REFERENCE_NAMES
    ]
    for reference_name, value in (additional_fields or {}).items():
        document.append({"op": "add", "path": f"/fields/{reference_name}", "value": value})
    return document


def default_wiql(project_id: str, team_id: Optional[str] = None) -> str:
    """Query selecting every work item of a project (optionally one team), by id."""
    project = project_id.replace("'", "''")
    query = f"SELECT [System.Id] FROM WorkItems WHERE [System.TeamProject] = '{project}'"
    if team_id:
        team = team_id.replace("'", "''")
        query += f" AND [System.TeamId] = '{team}'"
    return query + " ORDER BY [System.Id]"


async def get_work_item(connection, work_item_id: int, expand: Optional[str] = None) -> dict:
    wit_api = await connection.get_work_item_tracking_api()
    work_item = await wit_api.get_work_item(work_item_id, DEFAULT_FIELDS, expand)
    if not work_item:
        raise DevOpsError.not_found(f"Work item '{work_item_id}' not found")
    return work_item


async def list_work_items(
    connection,
    project_id: str,
    team_id: Optional[str] = None,
    query_id: Optional[str] = None,
    wiql: Optional[str] = None,
    top: Optional[int] = None,
    skip: Optional[int] = None,
) -> list[dict]:
    """List work items from a saved query, a WIQL query, or the project default query.

    Paging (skip, then top) is applied to the query result before the work
    items themselves are fetched.
    """
    wit_api = await connection.get_work_item_tracking_api()

    if query_id:
        result = await wit_api.query_by_id(query_id, project_id, team_id)
    else:
        result = await wit_api.query_by_wiql(wiql or default_wiql(project_id, team_id), project_id, team_id)

    references = result.get("workItems") or []
    if skip is not None:
        references = references[skip:]
    if top is not None:
        references = references[:top]

    ids = [ref["id"] for ref in references if ref.get("id") is not None]
    if not ids:
        return []

    work_items = await wit_api.get_work_items(ids, DEFAULT_FIELDS)
    logger.info(f"Listed {len(work_items)} work items in project {project_id}")
    return [item for item in work_items if item]


async def create_work_item(
    connection,
    project_id: str,
    work_item_type: str,
    title: str,
    description: Optional[str] = None,
    assigned_to: Optional[str] = None,
    area_path: Optional[str] = None,
    iteration_path: Optional[str] = None,
    priority: Optional[int] = None,
    additional_fields: Optional[dict[str, Any]] = None,
) -> dict:
    if not title:
        raise DevOpsError.validation("Title is required")

    document = build_patch_document(
        {
            "title": title,
            "description": description,
            "assigned_to": assigned_to,
            "area_path": area_path,
            "iteration_path": iteration_path,
            "priority": priority,
        },
        additional_fields,
    )
    wit_api = await connection.get_work_item_tracking_api()
    work_item = await wit_api.create_work_item(document, project_id, work_item_type)
    if not work_item:
        raise DevOpsError.generic("Failed to create work item")
    logger.info(f"Created {work_item_type} {work_item.get('id')} in project {project_id}")
    return work_item


async def update_work_item(
    connection,
    work_item_id: int,
    title: Optional[str] = None,
    description: Optional[str] = None,
    assigned_to: Optional[str] = None,
    area_path: Optional[str] = None,
    iteration_path: Optional[str] = None,
    priority: Optional[int] = None,
    state: Optional[str] = None,
    additional_fields: Optional[dict[str, Any]] = None,
) -> dict:
    document = build_patch_document(
        {
            "title": title,
            "description": description,
            "assigned_to": assigned_to,
            "area_path": area_path,
            "iteration_path": iteration_path,
            "priority": priority,
            "state": state,
        },
        additional_fields,
    )
    if not document:
        raise DevOpsError.validation("At least one field must be provided to update a work item")

    wit_api = await connection.get_work_item_tracking_api()
    work_item = await wit_api.update_work_item(document, work_item_id)
    if not work_item:
        raise DevOpsError.not_found(f"Work item '{work_item_id}' not found")
    logger.info(f"Updated work item {work_item_id} ({len(document)} fields)")
    return work_item
