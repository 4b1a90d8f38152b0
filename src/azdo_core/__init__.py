"""Azure DevOps core: configuration, authentication, connection and operations."""

__version__ = "0.1.0"

from .auth import AuthResolver, Credential
from .config import AuthConfig, AuthMethod, DevOpsConfig, load_config
from .connection import ConnectionManager, ConnectionState
from .errors import DevOpsError, ErrorKind, format_error, is_domain_error

__all__ = [
    "AuthConfig",
    "AuthMethod",
    "AuthResolver",
    "ConnectionManager",
    "ConnectionState",
    "Credential",
    "DevOpsConfig",
    "DevOpsError",
    "ErrorKind",
    "format_error",
    "is_domain_error",
    "load_config",
    "__version__",
]
