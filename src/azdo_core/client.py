"""Async REST client for Azure DevOps.

``DevOpsClient`` owns one ``httpx.AsyncClient`` carrying the resolved
credential. Each service area is reached through a capability sub-client
(``await client.get_git_api()`` etc.); sub-clients are routed to the host
advertised by the organization's resource areas once those are known
(Release, for example, lives on ``vsrm.dev.azure.com``).
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .auth import Credential
from .config import DEFAULT_API_VERSION
from .errors import DevOpsError

logger = logging.getLogger("azdo-core.client")

# Batch size limit of the work items endpoint
MAX_WORK_ITEMS_PER_REQUEST = 200

JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"

# resourceAreas is only published as a preview resource
RESOURCE_AREAS_API_VERSION = "7.1-preview.1"


def _seg(value: Any) -> str:
    """Quote a single URL path segment (project and team names may contain spaces)."""
    return quote(str(value), safe="")


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return response.text or response.reason_phrase


def _reset_time(response: httpx.Response) -> datetime:
    now = datetime.now(timezone.utc)
    reset = response.headers.get("X-RateLimit-Reset")
    if reset:
        try:
            return datetime.fromtimestamp(float(reset), tz=timezone.utc)
        except ValueError:
            logger.warning(f"Unparseable X-RateLimit-Reset header: {reset}")
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return now + timedelta(seconds=float(retry_after))
        except ValueError:
            logger.warning(f"Unparseable Retry-After header: {retry_after}")
    return now


def raise_for_devops_status(response: httpx.Response) -> None:
    """Map backend HTTP failures onto the error taxonomy.

    Unmapped failures are raised as ``httpx.HTTPStatusError``.
    """
    status = response.status_code

    # Azure DevOps answers an unauthorized PAT with 203 and an HTML sign-in page
    if status == 203 and "text/html" in response.headers.get("content-type", ""):
        raise DevOpsError.authentication("Authentication failed: redirected to sign-in page")

    if response.is_success:
        return

    detail = _error_detail(response)
    if status == 400:
        try:
            body = response.json()
        except ValueError:
            body = response.text or None
        raise DevOpsError.validation(f"Bad request: {detail}", response=body)
    if status == 401:
        raise DevOpsError.authentication(f"Authentication failed: {detail}")
    if status == 403:
        raise DevOpsError.permission(f"Permission denied: {detail}")
    if status == 404:
        raise DevOpsError.not_found(f"Resource not found: {detail}")
    if status == 429:
        raise DevOpsError.rate_limit(f"Rate limit exceeded: {detail}", _reset_time(response))

    response.raise_for_status()


class DevOpsClient:
    """Authenticated connection to one Azure DevOps organization."""

    def __init__(
        self,
        organization_url: str,
        credential: Credential,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.organization_url = organization_url.rstrip("/")
        self.credential = credential
        self.api_version = api_version
        self._resource_areas: Optional[dict[str, str]] = None
        self._http = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": credential.authorization_header,
                "Accept": "application/json",
            },
        )

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        content_type: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Any:
        """Issue one REST call and return the decoded JSON body (None when empty)."""
        query = {k: v for k, v in (params or {}).items() if v is not None}
        query.setdefault("api-version", api_version or self.api_version)
        headers = {"Content-Type": content_type} if content_type else None

        logger.debug(f"{method} {url}")
        response = await self._http.request(method, url, params=query, json=json, headers=headers)
        raise_for_devops_status(response)

        if not response.content:
            return None
        return response.json()

    def area_url(self, area: str) -> str:
        """Base URL for a resource area, falling back to the organization URL."""
        if self._resource_areas:
            location = self._resource_areas.get(area.lower())
            if location:
                return location.rstrip("/")
        return self.organization_url

    def remember_resource_areas(self, areas: list[dict]) -> None:
        self._resource_areas = {
            area["name"].lower(): area["locationUrl"]
            for area in areas
            if area.get("name") and area.get("locationUrl")
        }

    async def get_locations_api(self) -> "LocationsApi":
        return LocationsApi(self, self.organization_url)

    async def get_core_api(self) -> "CoreApi":
        return CoreApi(self, self.area_url("core"))

    async def get_git_api(self) -> "GitApi":
        return GitApi(self, self.area_url("git"))

    async def get_work_item_tracking_api(self) -> "WorkItemTrackingApi":
        return WorkItemTrackingApi(self, self.area_url("wit"))

    async def get_build_api(self) -> "BuildApi":
        return BuildApi(self, self.area_url("build"))

    async def get_test_api(self) -> "TestApi":
        return TestApi(self, self.area_url("test"))

    async def get_release_api(self) -> "ReleaseApi":
        return ReleaseApi(self, self.area_url("release"))

    async def get_task_agent_api(self) -> "TaskAgentApi":
        return TaskAgentApi(self, self.area_url("distributedtask"))

    async def get_task_api(self) -> "TaskApi":
        return TaskApi(self, self.area_url("distributedtask"))

    async def aclose(self) -> None:
        await self._http.aclose()


class AreaClient:
    """Common plumbing for the capability sub-clients."""

    def __init__(self, client: DevOpsClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def _get(self, path: str, **params) -> Any:
        return await self.client.request("GET", f"{self.base_url}/{path}", params=params)

    async def _values(self, path: str, **params) -> list:
        result = await self._get(path, **params)
        if not result:
            return []
        return result.get("value", [])


class LocationsApi(AreaClient):
    async def get_resource_areas(self) -> list[dict]:
        """List the organization's resource areas; doubles as the connection health probe."""
        result = await self.client.request(
            "GET",
            f"{self.base_url}/_apis/resourceAreas",
            api_version=RESOURCE_AREAS_API_VERSION,
        )
        areas = (result or {}).get("value", [])
        self.client.remember_resource_areas(areas)
        return areas


class CoreApi(AreaClient):
    async def get_project(self, project_id: str, include_capabilities: bool = False) -> Optional[dict]:
        return await self._get(
            f"_apis/projects/{_seg(project_id)}",
            includeCapabilities=str(include_capabilities).lower() if include_capabilities else None,
        )

    async def get_projects(
        self,
        state_filter: Optional[str] = None,
        top: Optional[int] = None,
        skip: Optional[int] = None,
        continuation_token: Optional[int] = None,
    ) -> list[dict]:
        return await self._values(
            "_apis/projects",
            stateFilter=state_filter,
            **{"$top": top, "$skip": skip},
            continuationToken=continuation_token,
        )


class GitApi(AreaClient):
    def _repo_path(self, project: str, repository_id: str) -> str:
        return f"{_seg(project)}/_apis/git/repositories/{_seg(repository_id)}"

    def _pr_path(self, project: str, repository_id: str, pull_request_id: int) -> str:
        return f"{self._repo_path(project, repository_id)}/pullRequests/{int(pull_request_id)}"

    async def get_repository(self, repository_id: str, project: str) -> Optional[dict]:
        return await self._get(self._repo_path(project, repository_id))

    async def get_repositories(self, project: str, include_links: Optional[bool] = None) -> list[dict]:
        return await self._values(
            f"{_seg(project)}/_apis/git/repositories",
            includeLinks=None if include_links is None else str(include_links).lower(),
        )

    async def get_pull_request(self, repository_id: str, pull_request_id: int, project: str) -> Optional[dict]:
        return await self._get(self._pr_path(project, repository_id, pull_request_id))

    async def get_pull_requests(self, repository_id: str, search_criteria: dict, project: str) -> list[dict]:
        params = {
            f"searchCriteria.{key}": value
            for key, value in search_criteria.items()
            if value is not None
        }
        return await self._values(f"{self._repo_path(project, repository_id)}/pullrequests", **params)

    async def get_threads(self, repository_id: str, pull_request_id: int, project: str) -> list[dict]:
        return await self._values(f"{self._pr_path(project, repository_id, pull_request_id)}/threads")

    async def create_thread(self, thread: dict, repository_id: str, pull_request_id: int, project: str) -> Optional[dict]:
        return await self.client.request(
            "POST",
            f"{self.base_url}/{self._pr_path(project, repository_id, pull_request_id)}/threads",
            json=thread,
        )

    async def update_thread(
        self, thread: dict, repository_id: str, pull_request_id: int, thread_id: int, project: str
    ) -> Optional[dict]:
        return await self.client.request(
            "PATCH",
            f"{self.base_url}/{self._pr_path(project, repository_id, pull_request_id)}/threads/{int(thread_id)}",
            json=thread,
        )

    async def update_comment(
        self,
        comment: dict,
        repository_id: str,
        pull_request_id: int,
        thread_id: int,
        comment_id: int,
        project: str,
    ) -> Optional[dict]:
        path = self._pr_path(project, repository_id, pull_request_id)
        return await self.client.request(
            "PATCH",
            f"{self.base_url}/{path}/threads/{int(thread_id)}/comments/{int(comment_id)}",
            json=comment,
        )

    async def get_pull_request_iterations(self, repository_id: str, pull_request_id: int, project: str) -> list[dict]:
        return await self._values(f"{self._pr_path(project, repository_id, pull_request_id)}/iterations")

    async def get_pull_request_iteration_changes(
        self,
        repository_id: str,
        pull_request_id: int,
        iteration_id: int,
        project: str,
        compare_to: Optional[int] = None,
    ) -> list[dict]:
        path = self._pr_path(project, repository_id, pull_request_id)
        result = await self._get(f"{path}/iterations/{int(iteration_id)}/changes", **{"$compareTo": compare_to})
        if not result:
            return []
        return result.get("changeEntries", [])


class WorkItemTrackingApi(AreaClient):
    async def get_work_item(
        self, work_item_id: int, fields: Optional[list[str]] = None, expand: Optional[str] = None
    ) -> Optional[dict]:
        # The endpoint rejects fields combined with $expand
        return await self._get(
            f"_apis/wit/workitems/{int(work_item_id)}",
            fields=",".join(fields) if fields and not expand else None,
            **{"$expand": expand},
        )

    async def get_work_items(
        self, ids: list[int], fields: Optional[list[str]] = None, expand: Optional[str] = None
    ) -> list[dict]:
        items: list[dict] = []
        for start in range(0, len(ids), MAX_WORK_ITEMS_PER_REQUEST):
            batch = ids[start:start + MAX_WORK_ITEMS_PER_REQUEST]
            items.extend(await self._values(
                "_apis/wit/workitems",
                ids=",".join(str(i) for i in batch),
                fields=",".join(fields) if fields and not expand else None,
                **{"$expand": expand},
            ))
        return items

    def _team_path(self, project: str, team: Optional[str]) -> str:
        return f"{_seg(project)}/{_seg(team)}" if team else _seg(project)

    async def query_by_wiql(self, query: str, project: str, team: Optional[str] = None) -> dict:
        result = await self.client.request(
            "POST",
            f"{self.base_url}/{self._team_path(project, team)}/_apis/wit/wiql",
            json={"query": query},
        )
        return result or {}

    async def query_by_id(self, query_id: str, project: str, team: Optional[str] = None) -> dict:
        result = await self._get(f"{self._team_path(project, team)}/_apis/wit/wiql/{_seg(query_id)}")
        return result or {}

    async def create_work_item(self, document: list[dict], project: str, work_item_type: str) -> Optional[dict]:
        return await self.client.request(
            "POST",
            f"{self.base_url}/{_seg(project)}/_apis/wit/workitems/${_seg(work_item_type)}",
            json=document,
            content_type=JSON_PATCH_CONTENT_TYPE,
        )

    async def update_work_item(self, document: list[dict], work_item_id: int) -> Optional[dict]:
        return await self.client.request(
            "PATCH",
            f"{self.base_url}/_apis/wit/workitems/{int(work_item_id)}",
            json=document,
            content_type=JSON_PATCH_CONTENT_TYPE,
        )


class BuildApi(AreaClient):
    async def get_definitions(self, project: str) -> list[dict]:
        return await self._values(f"{_seg(project)}/_apis/build/definitions")

    async def get_builds(self, project: str, top: Optional[int] = None) -> list[dict]:
        return await self._values(f"{_seg(project)}/_apis/build/builds", **{"$top": top})


class TestApi(AreaClient):
    # Not a pytest test class despite the name
    __test__ = False

    async def get_test_runs(self, project: str, top: Optional[int] = None) -> list[dict]:
        return await self._values(f"{_seg(project)}/_apis/test/runs", **{"$top": top})


class ReleaseApi(AreaClient):
    async def get_release_definitions(self, project: str) -> list[dict]:
        return await self._values(f"{_seg(project)}/_apis/release/definitions")

    async def get_releases(self, project: str, top: Optional[int] = None) -> list[dict]:
        return await self._values(f"{_seg(project)}/_apis/release/releases", **{"$top": top})


class TaskAgentApi(AreaClient):
    async def get_agent_pools(self) -> list[dict]:
        return await self._values("_apis/distributedtask/pools")


class TaskApi(AreaClient):
    async def get_plan(self, project: str, hub_name: str, plan_id: str) -> Optional[dict]:
        return await self._get(
            f"{_seg(project)}/_apis/distributedtask/hubs/{_seg(hub_name)}/plans/{_seg(plan_id)}"
        )
