"""Organization discovery.

The organizations endpoint lives on the account service (VSSPS), outside any
single organization, so it is called by absolute URL with the connection's
credential.
"""
import logging

from ..errors import DevOpsError, ErrorKind, cause_message

logger = logging.getLogger("azdo-core.operations.organizations")

VSSPS_BASE_URL = "https://app.vssps.visualstudio.com"
PROFILE_URL = f"{VSSPS_BASE_URL}/_apis/profile/profiles/me"
ACCOUNTS_URL = f"{VSSPS_BASE_URL}/_apis/accounts"
ACCOUNTS_API_VERSION = "6.0"


async def list_organizations(connection) -> list[dict]:
    """List every organization the authenticated user is a member of.

    Two calls: the profile (for the user's ``publicAlias``), then the accounts
    the alias belongs to. Failures in the profile step are authentication
    failures.
    """
    try:
        profile = await connection.request("GET", PROFILE_URL, api_version=ACCOUNTS_API_VERSION)
    except DevOpsError as e:
        if e.kind is ErrorKind.AUTHENTICATION:
            raise
        raise DevOpsError.authentication(f"Authentication failed: {e.message}") from e
    except Exception as e:
        raise DevOpsError.authentication(f"Authentication failed: {cause_message(e)}") from e

    public_alias = (profile or {}).get("publicAlias")
    if not public_alias:
        raise DevOpsError.authentication("Unable to get user publicAlias from profile")

    accounts = await connection.request(
        "GET",
        ACCOUNTS_URL,
        params={"memberId": public_alias},
        api_version=ACCOUNTS_API_VERSION,
    )
    organizations = [
        {
            "id": account.get("accountId"),
            "name": account.get("accountName"),
            "url": account.get("accountUri"),
        }
        for account in (accounts or {}).get("value", [])
    ]
    logger.info(f"Found {len(organizations)} organizations for the current user")
    return organizations
