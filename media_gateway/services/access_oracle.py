import httpx
from typing import Optional, Protocol

from media_gateway.config import Settings, settings
from media_gateway.models.errors import AccessOracleError
from media_gateway.models.schemas import AccessResult, AccessStatus, Credentials
from media_gateway.utils.logger import logger


class AccessOracle(Protocol):
    """Single source of truth for whether a caller may touch a resource."""

    async def check_access(self, resource_id: str, credentials: Credentials) -> AccessResult:
        ...


class HttpAccessOracle:
    """Asks a remote authorization service whether the caller may access a resource"""

    def __init__(self, base_url: str, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def check_access(self, resource_id: str, credentials: Credentials) -> AccessResult:
        # Anonymous callers are a policy deny, not an error
        if credentials.is_anonymous():
            return AccessResult(status=AccessStatus.DENY)

        headers = {}
        if credentials.bearer:
            headers["Authorization"] = f"Bearer {credentials.bearer}"
        payload = {
            "resourceId": resource_id,
            "sessionId": credentials.session_id,
            "token": credentials.token,
            "user": credentials.user,
        }

        # No retries: retrying an authorization check could turn a transient deny into a grant
        try:
            response = await self._client.post(
                f"{self.base_url}/access/check",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise AccessOracleError(f"Access oracle request failed: {str(e)}") from e

        if response.status_code in (401, 403):
            return AccessResult(status=AccessStatus.DENY)
        if response.status_code != 200:
            raise AccessOracleError(f"Access oracle returned {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise AccessOracleError("Access oracle returned invalid JSON") from e
        if not isinstance(body, dict):
            raise AccessOracleError("Access oracle returned unexpected payload")

        if body.get("accessStatus") == AccessStatus.GRANT.value:
            return AccessResult(
                status=AccessStatus.GRANT,
                principal=str(body.get("authorID") or "unknown"),
            )
        return AccessResult(status=AccessStatus.DENY)

    async def close(self) -> None:
        await self._client.aclose()


def build_access_oracle(config: Settings = settings) -> Optional[HttpAccessOracle]:
    """Return the configured oracle, or None so the access gate fails closed."""
    if not config.access_oracle_url:
        logger.critical("SECURITY: access oracle not configured - all media requests will be denied")
        return None
    return HttpAccessOracle(config.access_oracle_url, timeout=config.access_oracle_timeout_seconds)
