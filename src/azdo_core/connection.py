"""Authenticated connection lifecycle.

ConnectionManager lazily builds exactly one authenticated DevOpsClient:

    UNINITIALIZED --get_connection()--> CONNECTING --probe ok--> CONNECTED
                                                   --failure---> FAILED

Concurrent callers that arrive while a connection attempt is in flight await
that same attempt (single-flight). A successful client is reused for the
lifetime of the manager. A failed attempt is forgotten, so the next
get_connection() call starts a fresh attempt.
"""
import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from .auth import AuthResolver, Credential
from .client import DevOpsClient
from .config import DEFAULT_API_VERSION, AuthConfig, DevOpsConfig
from .errors import DevOpsError, ErrorKind, cause_message, is_domain_error

logger = logging.getLogger("azdo-core.connection")

ClientFactory = Callable[[str, Credential, str], Any]


class ConnectionState(str, enum.Enum):
    """Lifecycle of the managed connection."""

    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


def default_client_factory(organization_url: str, credential: Credential, api_version: str) -> DevOpsClient:
    return DevOpsClient(organization_url, credential, api_version=api_version)


class ConnectionManager:
    """Owns the AuthResolver and the single cached DevOpsClient."""

    def __init__(
        self,
        config: Union[DevOpsConfig, AuthConfig],
        resolver: Optional[AuthResolver] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        if isinstance(config, DevOpsConfig):
            self.auth_config = config.auth_config()
            self.api_version = config.effective_api_version
        else:
            self.auth_config = config
            self.api_version = DEFAULT_API_VERSION
        self.resolver = resolver or AuthResolver()
        self.client_factory = client_factory or default_client_factory

        self.state = ConnectionState.UNINITIALIZED
        self._client: Optional[Any] = None
        self._pending: Optional[asyncio.Task] = None

    async def get_connection(self) -> Any:
        """Return the authenticated client, connecting on first use."""
        if self._client is not None:
            return self._client

        if self._pending is None:
            self.state = ConnectionState.CONNECTING
            self._pending = asyncio.ensure_future(self._connect())

        # shield: a cancelled waiter must not cancel the attempt shared by the others
        return await asyncio.shield(self._pending)

    async def _connect(self) -> Any:
        client = None
        try:
            credential = await self.resolver.resolve(self.auth_config)
            client = self.client_factory(self.auth_config.organization_url, credential, self.api_version)

            locations_api = await client.get_locations_api()
            await locations_api.get_resource_areas()
        except Exception as e:
            self.state = ConnectionState.FAILED
            self._pending = None
            if client is not None:
                await self._close_quietly(client)
            logger.error(f"Connection to {self.auth_config.organization_url} failed: {cause_message(e)}")
            # Validation only passes through from credential resolution, before any client exists
            if is_domain_error(e) and (
                e.kind is ErrorKind.AUTHENTICATION
                or (e.kind is ErrorKind.VALIDATION and client is None)
            ):
                raise
            raise DevOpsError.authentication(
                f"Failed to authenticate with Azure DevOps: {cause_message(e)}"
            ) from e

        self._client = client
        self._pending = None
        self.state = ConnectionState.CONNECTED
        logger.info(
            f"Connected to {self.auth_config.organization_url} "
            f"using {self.auth_config.method.value} authentication"
        )
        return client

    async def _close_quietly(self, client: Any) -> None:
        close = getattr(client, "aclose", None)
        if close is None:
            return
        try:
            await close()
        except Exception as e:
            logger.warning(f"Error closing failed client: {cause_message(e)}")

    async def is_authenticated(self) -> bool:
        """True when a verified connection exists or can be established. Never raises."""
        try:
            client = await self.get_connection()
            return client is not None
        except Exception as e:
            logger.debug(f"Authentication check failed: {cause_message(e)}")
            return False

    async def _capability(self, label: str, accessor: Callable[[Any], Awaitable[Any]]) -> Any:
        try:
            client = await self.get_connection()
            return await accessor(client)
        except Exception as e:
            if is_domain_error(e):
                raise
            raise DevOpsError.authentication(f"Failed to get {label}: {cause_message(e)}") from e

    async def get_core_api(self):
        return await self._capability("Core API", lambda c: c.get_core_api())

    async def get_git_api(self):
        return await self._capability("Git API", lambda c: c.get_git_api())

    async def get_work_item_api(self):
        return await self._capability("Work Item Tracking API", lambda c: c.get_work_item_tracking_api())

    async def get_build_api(self):
        return await self._capability("Build API", lambda c: c.get_build_api())

    async def get_test_api(self):
        return await self._capability("Test API", lambda c: c.get_test_api())

    async def get_release_api(self):
        return await self._capability("Release API", lambda c: c.get_release_api())

    async def get_task_agent_api(self):
        return await self._capability("Task Agent API", lambda c: c.get_task_agent_api())

    async def get_task_api(self):
        return await self._capability("Task API", lambda c: c.get_task_api())

    async def close(self) -> None:
        """Release the cached client's HTTP resources (process shutdown)."""
        if self._client is not None:
            client, self._client = self._client, None
            self.state = ConnectionState.UNINITIALIZED
            await self._close_quietly(client)
