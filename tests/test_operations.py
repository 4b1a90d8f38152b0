"""Tests for the passthrough operations over stubbed capability sub-clients."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from azdo_core.errors import DevOpsError, ErrorKind
from azdo_core.operations import organizations, projects, pull_requests, repositories, work_items


@pytest.fixture
def core_api():
    api = MagicMock()
    api.get_project = AsyncMock(return_value={"id": "p1", "name": "Project 1"})
    api.get_projects = AsyncMock(return_value=[{"id": "p1", "name": "Project 1"}])
    return api


@pytest.fixture
def git_api():
    api = MagicMock()
    api.get_repository = AsyncMock(return_value={"id": "r1", "name": "repo"})
    api.get_repositories = AsyncMock(return_value=[{"id": "r1", "name": "repo"}])
    api.get_pull_request = AsyncMock(return_value={"pullRequestId": 42})
    api.get_pull_requests = AsyncMock(return_value=[{"pullRequestId": 42}])
    api.get_threads = AsyncMock(return_value=[])
    api.create_thread = AsyncMock(return_value={"id": 9})
    api.update_thread = AsyncMock(return_value={"id": 9, "status": "fixed"})
    api.update_comment = AsyncMock(return_value={"id": 1, "content": "edited"})
    api.get_pull_request_iterations = AsyncMock(return_value=[{"id": 1}, {"id": 3}])
    api.get_pull_request_iteration_changes = AsyncMock(return_value=[{"item": {"path": "/a.py"}}])
    return api


@pytest.fixture
def wit_api():
    api = MagicMock()
    api.get_work_item = AsyncMock(return_value={"id": 1, "fields": {}})
    api.get_work_items = AsyncMock(side_effect=lambda ids, fields: [{"id": i} for i in ids])
    api.query_by_wiql = AsyncMock(return_value={"workItems": [{"id": i} for i in range(1, 11)]})
    api.query_by_id = AsyncMock(return_value={"workItems": [{"id": 5}, {"id": 6}]})
    api.create_work_item = AsyncMock(return_value={"id": 100})
    api.update_work_item = AsyncMock(return_value={"id": 1, "rev": 2})
    return api


@pytest.fixture
def connection(core_api, git_api, wit_api):
    client = MagicMock()
    client.get_core_api = AsyncMock(return_value=core_api)
    client.get_git_api = AsyncMock(return_value=git_api)
    client.get_work_item_tracking_api = AsyncMock(return_value=wit_api)
    client.request = AsyncMock()
    return client


class TestOrganizations:
    @pytest.mark.asyncio
    async def test_lists_member_accounts(self, connection):
        connection.request.side_effect = [
            {"publicAlias": "alias-1"},
            {"value": [{"accountId": "a1", "accountName": "org1", "accountUri": "https://org1"}]},
        ]

        result = await organizations.list_organizations(connection)

        assert result == [{"id": "a1", "name": "org1", "url": "https://org1"}]
        accounts_call = connection.request.await_args_list[1]
        assert accounts_call.kwargs["params"] == {"memberId": "alias-1"}

    @pytest.mark.asyncio
    async def test_missing_public_alias(self, connection):
        connection.request.return_value = {"displayName": "someone"}

        with pytest.raises(DevOpsError) as exc_info:
            await organizations.list_organizations(connection)

        assert exc_info.value.kind is ErrorKind.AUTHENTICATION
        assert exc_info.value.message == "Unable to get user publicAlias from profile"

    @pytest.mark.asyncio
    async def test_profile_failure_is_authentication_error(self, connection):
        connection.request.side_effect = DevOpsError.permission("Permission denied: nope")

        with pytest.raises(DevOpsError) as exc_info:
            await organizations.list_organizations(connection)

        assert exc_info.value.kind is ErrorKind.AUTHENTICATION
        assert exc_info.value.message == "Authentication failed: Permission denied: nope"


class TestProjects:
    @pytest.mark.asyncio
    async def test_list_projects_maps_state_filter(self, connection, core_api):
        result = await projects.list_projects(connection, state_filter=1, top=10)

        assert result == [{"id": "p1", "name": "Project 1"}]
        core_api.get_projects.assert_awaited_once_with("wellFormed", 10, None, None)

    @pytest.mark.asyncio
    async def test_invalid_state_filter(self, connection):
        with pytest.raises(DevOpsError) as exc_info:
            await projects.list_projects(connection, state_filter=9)
        assert exc_info.value.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_get_project_not_found(self, connection, core_api):
        core_api.get_project.return_value = None

        with pytest.raises(DevOpsError) as exc_info:
            await projects.get_project(connection, "ghost")

        assert exc_info.value.kind is ErrorKind.RESOURCE_NOT_FOUND
        assert exc_info.value.message == "Project 'ghost' not found"


class TestRepositories:
    @pytest.mark.asyncio
    async def test_get_repository(self, connection, git_api):
        assert await repositories.get_repository(connection, "proj", "repo") == {"id": "r1", "name": "repo"}
        git_api.get_repository.assert_awaited_once_with("repo", "proj")

    @pytest.mark.asyncio
    async def test_get_repository_not_found(self, connection, git_api):
        git_api.get_repository.return_value = None

        with pytest.raises(DevOpsError) as exc_info:
            await repositories.get_repository(connection, "proj", "missing")

        assert exc_info.value.kind is ErrorKind.RESOURCE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_repositories(self, connection, git_api):
        result = await repositories.list_repositories(connection, "proj", include_links=True)
        assert len(result) == 1
        git_api.get_repositories.assert_awaited_once_with("proj", True)


class TestWorkItems:
    """Test work item queries and JSON-Patch documents."""

    def test_patch_document_skips_unset_fields(self):
        document = work_items.build_patch_document(
            {"title": "Fix login", "description": None, "priority": 2},
            {"Custom.Team": "Blue"},
        )
        assert document == [
            {"op": "add", "path": "/fields/System.Title", "value": "Fix login"},
            {"op": "add", "path": "/fields/Microsoft.VSTS.Common.Priority", "value": 2},
            {"op": "add", "path": "/fields/Custom.Team", "value": "Blue"},
        ]

    def test_default_wiql_escapes_quotes(self):
        query = work_items.default_wiql("O'Brien", team_id="team-1")
        assert "[System.TeamProject] = 'O''Brien'" in query
        assert "[System.TeamId] = 'team-1'" in query
        assert query.endswith("ORDER BY [System.Id]")

    @pytest.mark.asyncio
    async def test_list_applies_skip_then_top(self, connection, wit_api):
        result = await work_items.list_work_items(connection, "proj", skip=2, top=3)

        assert [item["id"] for item in result] == [3, 4, 5]
        wit_api.query_by_wiql.assert_awaited_once_with(work_items.default_wiql("proj"), "proj", None)

    @pytest.mark.asyncio
    async def test_list_uses_saved_query(self, connection, wit_api):
        result = await work_items.list_work_items(connection, "proj", query_id="q-1")

        assert [item["id"] for item in result] == [5, 6]
        wit_api.query_by_id.assert_awaited_once_with("q-1", "proj", None)
        wit_api.query_by_wiql.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_empty_query_result(self, connection, wit_api):
        wit_api.query_by_wiql.return_value = {"workItems": []}

        assert await work_items.list_work_items(connection, "proj", wiql="SELECT [System.Id] FROM WorkItems") == []
        wit_api.get_work_items.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_work_item_not_found(self, connection, wit_api):
        wit_api.get_work_item.return_value = None

        with pytest.raises(DevOpsError) as exc_info:
            await work_items.get_work_item(connection, 404)

        assert exc_info.value.kind is ErrorKind.RESOURCE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_create_work_item(self, connection, wit_api):
        result = await work_items.create_work_item(connection, "proj", "Bug", "Crash on save", priority=1)

        assert result == {"id": 100}
        document, project, work_item_type = wit_api.create_work_item.await_args.args
        assert project == "proj"
        assert work_item_type == "Bug"
        assert {"op": "add", "path": "/fields/System.Title", "value": "Crash on save"} in document

    @pytest.mark.asyncio
    async def test_update_requires_a_field(self, connection, wit_api):
        with pytest.raises(DevOpsError) as exc_info:
            await work_items.update_work_item(connection, 1)

        assert exc_info.value.kind is ErrorKind.VALIDATION
        wit_api.update_work_item.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_work_item_state(self, connection, wit_api):
        await work_items.update_work_item(connection, 1, state="Closed")

        wit_api.update_work_item.assert_awaited_once_with(
            [{"op": "add", "path": "/fields/System.State", "value": "Closed"}], 1
        )


class TestPullRequests:
    """Test pull request reads, comment threads and changed files."""

    def test_process_comments_keeps_file_comments(self):
        threads = [
            {
                "id": 7,
                "status": "active",
                "threadContext": {
                    "filePath": "/src/app.py",
                    "rightFileStart": {"line": 10, "offset": 1},
                    "rightFileEnd": {"line": 12, "offset": 5},
                },
                "comments": [{"content": "Rename this", "author": {"displayName": "Dana"}}],
            },
            # system thread without a file context
            {"id": 8, "status": "active", "comments": [{"content": "Voted 10", "author": {"displayName": "Bot"}}]},
            {"id": 9, "status": "active", "comments": []},
        ]

        assert pull_requests.process_pull_request_comments(threads) == [
            {
                "filePath": "/src/app.py",
                "location": {"startLine": 10, "endLine": 12, "startOffset": 1, "endOffset": 5},
                "content": "Rename this",
                "status": "active",
                "threadId": 7,
                "author": "Dana",
            }
        ]

    @pytest.mark.asyncio
    async def test_list_pull_requests_search_criteria(self, connection, git_api):
        await pull_requests.list_pull_requests(connection, "proj", "repo", status="active", creator_id="u1")

        repository_id, criteria, project = git_api.get_pull_requests.await_args.args
        assert (repository_id, project) == ("repo", "proj")
        assert criteria["status"] == "active"
        assert criteria["creatorId"] == "u1"

    @pytest.mark.asyncio
    async def test_invalid_pull_request_status(self, connection):
        with pytest.raises(DevOpsError) as exc_info:
            await pull_requests.list_pull_requests(connection, "proj", "repo", status="merged")
        assert exc_info.value.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_create_comment_defaults_line(self, connection, git_api):
        await pull_requests.create_pull_request_comment(
            connection, "proj", "repo", 42, "Looks good", file_path="/README.md"
        )

        thread = git_api.create_thread.await_args.args[0]
        assert thread["comments"] == [{"content": "Looks good"}]
        assert thread["threadContext"]["rightFileStart"] == {"line": 1, "offset": 1}

    @pytest.mark.asyncio
    async def test_update_thread_status_maps_wontfix(self, connection, git_api):
        await pull_requests.update_pull_request_thread_status(connection, "proj", "repo", 42, 9, "wontfix")

        assert git_api.update_thread.await_args.args[0] == {"status": "wontFix"}

    @pytest.mark.asyncio
    async def test_update_thread_status_rejects_unknown(self, connection):
        with pytest.raises(DevOpsError) as exc_info:
            await pull_requests.update_pull_request_thread_status(connection, "proj", "repo", 42, 9, "resolved")
        assert exc_info.value.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_get_files_uses_latest_iteration(self, connection, git_api):
        result = await pull_requests.get_pull_request_files(connection, "proj", "repo", 42)

        assert result == [{"item": {"path": "/a.py"}}]
        git_api.get_pull_request_iteration_changes.assert_awaited_once_with("repo", 42, 3, "proj", None)

    @pytest.mark.asyncio
    async def test_get_files_without_iterations(self, connection, git_api):
        git_api.get_pull_request_iterations.return_value = []

        assert await pull_requests.get_pull_request_files(connection, "proj", "repo", 42) == []
