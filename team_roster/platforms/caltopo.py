"""CalTopo platform.

Caches the members of the configured CalTopo teams. Requests are signed
with the account's API credentials (HMAC-SHA256 over method, path, expiry
and payload).
"""

import base64
import hashlib
import hmac
import json
import time
from pathlib import Path

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from team_roster.config import CalTopoTeamSetting
from team_roster.errors import PlatformRequestError
from team_roster.platforms.base import BasePlatform
from team_roster.platforms.retry import with_retry

logger = structlog.get_logger()

PLATFORM_NAME = "CalTopo"
BASE_URL = "https://caltopo.com"
SIGNATURE_TTL_SECONDS = 300


class _CalTopoModel(BaseModel):
    model_config = ConfigDict(
        extra="allow", alias_generator=to_camel, populate_by_name=True
    )


class CalTopoMembership(_CalTopoModel):
    """One row of a team's member list."""

    id: str
    full_name: str = ""
    email: str = ""
    permission: int = 0


class CalTopoUser(_CalTopoModel):
    """A user and its permission level in each cached team."""

    id: str
    full_name: str = ""
    email: str = ""
    groups: dict[str, int] = Field(
        default_factory=dict, description="Team id -> permission level"
    )


class CalTopoData(BaseModel):
    """Cached CalTopo records."""

    users: list[CalTopoUser] = Field(default_factory=list)


def sign(method: str, url: str, expires: int, payload: str, secret: str) -> str:
    """Signature for a CalTopo API request.

    Args:
        method: HTTP method
        url: Path relative to the CalTopo host
        expires: Expiry in epoch milliseconds
        payload: JSON payload, empty for GET
        secret: Base64-encoded auth secret

    Returns:
        Base64 HMAC-SHA256 digest
    """
    message = f"{method} {url}\n{expires}\n{payload}"
    digest = hmac.new(
        base64.b64decode(secret), message.encode("utf-8"), hashlib.sha256
    ).digest()
    return base64.b64encode(digest).decode("ascii")


class CalTopoPlatform(BasePlatform[CalTopoData]):
    """Cached CalTopo team members."""

    name = PLATFORM_NAME
    data_model = CalTopoData

    def __init__(
        self,
        auth_id: str | None,
        auth_secret: str | None,
        teams: list[CalTopoTeamSetting],
        cache_dir: Path,
        ttl_seconds: float = 15 * 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize with API credentials.

        Args:
            auth_id: CalTopo API key id
            auth_secret: Base64 API key secret
            teams: Teams whose members are cached
            cache_dir: Directory for the cache file
            ttl_seconds: Cache freshness window
            transport: Optional httpx transport (tests)
        """
        super().__init__(cache_dir, ttl_seconds)
        self._auth_id = auth_id
        self._auth_secret = auth_secret
        self._teams = teams
        self._transport = transport

    def get_all_users(self) -> list[CalTopoUser]:
        return self.snapshot.users

    def signed_params(self, method: str, url: str, payload: dict | None = None) -> dict:
        """Query parameters authenticating one request."""
        if not self._auth_id or not self._auth_secret:
            raise ValueError(
                "No CalTopo credentials. Set CALTOPO_AUTH_ID and "
                "CALTOPO_AUTH_SECRET env vars."
            )
        payload_text = json.dumps(payload) if payload else ""
        expires = int(time.time() * 1000) + SIGNATURE_TTL_SECONDS * 1000
        return {
            "id": self._auth_id,
            "expires": str(expires),
            "signature": sign(method, url, expires, payload_text, self._auth_secret),
            "json": payload_text,
        }

    async def fetch(self) -> CalTopoData:
        """Fetch the member list of every configured team."""
        users: dict[str, CalTopoUser] = {}
        async with httpx.AsyncClient(
            base_url=BASE_URL, timeout=30, transport=self._transport
        ) as client:
            for team in self._teams:
                result = await self._get(client, f"/api/v0/group/{team.id}/members")
                for row in result.get("list", []):
                    membership = CalTopoMembership.model_validate(row)
                    user = users.get(membership.id)
                    if user is None:
                        user = CalTopoUser(
                            id=membership.id,
                            full_name=membership.full_name,
                            email=membership.email,
                        )
                        users[membership.id] = user
                    user.groups[team.id] = membership.permission

        logger.debug("Fetched CalTopo users", count=len(users))
        return CalTopoData(users=list(users.values()))

    @with_retry
    async def _get(self, client: httpx.AsyncClient, url: str) -> dict:
        response = await client.get(url, params=self.signed_params("GET", url))
        if response.is_error:
            raise PlatformRequestError(
                self.name, f"GET {url} returned {response.status_code}"
            )
        body = response.json()
        if body.get("status") != "ok":
            raise PlatformRequestError(
                self.name, f"GET {url} returned status {body.get('status')!r}"
            )
        return body.get("result") or {}
