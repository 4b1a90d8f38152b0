"""Credential resolution for the supported authentication methods.

Three strategies share one call site:
- static-token: a personal access token sent as HTTP Basic (``:<token>``)
- service-identity: bearer token from DefaultAzureCredential
- cli-identity: bearer token from AzureCliCredential (``az login`` session)
"""
import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from azure.identity.aio import AzureCliCredential, DefaultAzureCredential

from .config import AuthConfig, AuthMethod
from .errors import DevOpsError, cause_message

logger = logging.getLogger("azdo-core.auth")

# Azure DevOps application id, used as the token audience
AZURE_DEVOPS_RESOURCE_ID = "499b84ac-1321-427f-aa17-267ca6975798"
AZURE_DEVOPS_SCOPE = f"{AZURE_DEVOPS_RESOURCE_ID}/.default"

# Factory returning an async token credential (``await get_token(scope)``)
IdentityProviderFactory = Callable[[], Any]

PROVIDER_LABELS = {
    AuthMethod.SERVICE_IDENTITY: "Azure Identity",
    AuthMethod.CLI_IDENTITY: "Azure CLI",
}


@dataclass(frozen=True)
class Credential:
    """Authorization value handed to the client constructor."""

    scheme: str
    token: str = field(repr=False)

    @classmethod
    def basic(cls, secret: str) -> "Credential":
        encoded = base64.b64encode(f":{secret}".encode("utf-8")).decode("ascii")
        return cls(scheme="Basic", token=encoded)

    @classmethod
    def bearer(cls, token: str) -> "Credential":
        return cls(scheme="Bearer", token=token)

    @property
    def authorization_header(self) -> str:
        return f"{self.scheme} {self.token}"


def default_identity_providers() -> dict[AuthMethod, IdentityProviderFactory]:
    return {
        AuthMethod.SERVICE_IDENTITY: DefaultAzureCredential,
        AuthMethod.CLI_IDENTITY: AzureCliCredential,
    }


class AuthResolver:
    """Turns an AuthConfig into a Credential.

    Holds no state between calls; the only side effect is the outbound
    identity-provider request for the identity methods.
    """

    def __init__(self, identity_providers: Optional[dict[AuthMethod, IdentityProviderFactory]] = None):
        self.identity_providers = identity_providers or default_identity_providers()

    async def resolve(self, config: AuthConfig) -> Credential:
        if not config.organization_url:
            raise DevOpsError.validation("Organization URL is required")

        if config.method == AuthMethod.STATIC_TOKEN:
            if not config.static_token:
                raise DevOpsError.validation("Personal Access Token (PAT) is required")
            logger.debug("Using personal access token credential")
            return Credential.basic(config.static_token)
        elif config.method in PROVIDER_LABELS:
            token = await self._acquire_token(config.method)
            return Credential.bearer(token)

        raise DevOpsError.validation(f"Unsupported authentication method: {config.method}")

    async def _acquire_token(self, method: AuthMethod) -> str:
        label = PROVIDER_LABELS[method]
        try:
            provider = self.identity_providers[method]()
            try:
                access_token = await provider.get_token(AZURE_DEVOPS_SCOPE)
            finally:
                close = getattr(provider, "close", None)
                if close is not None:
                    await close()
            token = getattr(access_token, "token", None) if access_token else None
            if not token:
                raise ValueError("Failed to acquire token")
        except Exception as e:
            logger.warning(f"{label} token acquisition failed: {type(e).__name__}")
            raise DevOpsError.authentication(
                f"Failed to acquire {label} token: {cause_message(e)}"
            ) from e

        logger.info(f"Acquired {label} token for Azure DevOps")
        return token
