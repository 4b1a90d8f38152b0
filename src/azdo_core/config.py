"""Server configuration loaded from the environment."""
import enum
import logging
import os
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import DevOpsError

logger = logging.getLogger("azdo-core.config")

API_VERSION_PATTERN = re.compile(r"^\d+\.\d+(-preview(\.\d+)?)?$")
DEFAULT_API_VERSION = "7.1"
ALLOWED_HOST_SUFFIXES = ("azure.com", "visualstudio.com")


class AuthMethod(str, enum.Enum):
    """Credential strategy used to reach the organization."""

    STATIC_TOKEN = "static-token"
    SERVICE_IDENTITY = "service-identity"
    CLI_IDENTITY = "cli-identity"

    @classmethod
    def _missing_(cls, value):
        aliases = {
            "pat": cls.STATIC_TOKEN,
            "azure-identity": cls.SERVICE_IDENTITY,
            "azure-cli": cls.CLI_IDENTITY,
        }
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None


@dataclass(frozen=True)
class AuthConfig:
    """Inputs for AuthResolver. ``static_token`` is only used by STATIC_TOKEN."""

    method: AuthMethod
    organization_url: str
    static_token: Optional[str] = None

    def __repr__(self) -> str:
        token = "***" if self.static_token else None
        return (
            f"AuthConfig(method={self.method.value!r}, "
            f"organization_url={self.organization_url!r}, static_token={token!r})"
        )


class DevOpsConfig(BaseModel):
    """Validated server configuration."""

    model_config = ConfigDict(frozen=True)

    organization_url: str
    auth_method: AuthMethod = AuthMethod.STATIC_TOKEN
    static_token: Optional[str] = Field(None, repr=False)
    default_project: Optional[str] = None
    api_version: Optional[str] = None

    @field_validator("auth_method", mode="before")
    @classmethod
    def coerce_auth_method(cls, value):
        if isinstance(value, str):
            return AuthMethod(value)
        return value

    @field_validator("organization_url")
    @classmethod
    def validate_organization_url(cls, value: str) -> str:
        if not value:
            raise ValueError("Organization URL is required")
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"Invalid organization URL: {value}")
        if not parsed.hostname.endswith(ALLOWED_HOST_SUFFIXES):
            raise ValueError("Invalid organization URL domain")
        return value.rstrip("/")

    @field_validator("api_version")
    @classmethod
    def validate_api_version(cls, value: Optional[str]) -> Optional[str]:
        if value and not API_VERSION_PATTERN.match(value):
            raise ValueError(
                "Invalid API version format. Expected format: major.minor or major.minor-preview.revision"
            )
        return value or None

    @model_validator(mode="after")
    def require_token_for_static_method(self) -> "DevOpsConfig":
        if self.auth_method is AuthMethod.STATIC_TOKEN and not self.static_token:
            raise ValueError("Personal Access Token is required for static-token authentication")
        return self

    @property
    def effective_api_version(self) -> str:
        return self.api_version or DEFAULT_API_VERSION

    def auth_config(self) -> AuthConfig:
        return AuthConfig(
            method=self.auth_method,
            organization_url=self.organization_url,
            static_token=self.static_token,
        )


def build_config(**values) -> DevOpsConfig:
    """Construct a DevOpsConfig, converting pydantic failures into a Validation error."""
    try:
        return DevOpsConfig(**values)
    except ValidationError as e:
        violations = [
            {"field": ".".join(str(p) for p in err["loc"]) or "config", "message": err["msg"]}
            for err in e.errors()
        ]
        raise DevOpsError.validation("Invalid configuration", response=violations) from e


def load_config(env_file: Optional[str] = None) -> DevOpsConfig:
    """Load configuration from the process environment (and an optional .env file)."""
    load_dotenv(env_file)

    config = build_config(
        organization_url=os.getenv("AZURE_DEVOPS_ORG_URL", ""),
        auth_method=os.getenv("AZURE_DEVOPS_AUTH_METHOD") or AuthMethod.STATIC_TOKEN,
        static_token=os.getenv("AZURE_DEVOPS_PAT") or None,
        default_project=os.getenv("AZURE_DEVOPS_DEFAULT_PROJECT") or None,
        api_version=os.getenv("AZURE_DEVOPS_API_VERSION") or None,
    )
    logger.info(
        f"Loaded configuration for {config.organization_url} "
        f"(auth method: {config.auth_method.value}, api-version: {config.effective_api_version})"
    )
    return config
