"""Google Workspace directory platform.

Uses the Admin SDK Directory API with a service account (domain-wide
delegation through an admin account) to cache Workspace users.
"""

import asyncio
import json
from pathlib import Path

import structlog
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from team_roster.platforms.base import BasePlatform
from team_roster.platforms.retry import with_retry

logger = structlog.get_logger()

PLATFORM_NAME = "Google"

# Required scope for directory read access
DIRECTORY_SCOPES = [
    "https://www.googleapis.com/auth/admin.directory.user.readonly",
]
USER_PAGE_SIZE = 500


class _GoogleModel(BaseModel):
    model_config = ConfigDict(
        extra="allow", alias_generator=to_camel, populate_by_name=True
    )


class GoogleUserName(_GoogleModel):
    given_name: str = ""
    family_name: str = ""
    full_name: str = ""


class GoogleUserEmail(_GoogleModel):
    address: str
    type: str | None = None
    primary: bool = False


class GoogleUser(_GoogleModel):
    """Workspace user account."""

    primary_email: str
    name: GoogleUserName = Field(default_factory=GoogleUserName)
    emails: list[GoogleUserEmail] = Field(default_factory=list)
    org_unit_path: str = "/"
    is_mailbox_setup: bool = False
    archived: bool = False
    suspended: bool = False
    suspension_reason: str | None = None


class GoogleData(BaseModel):
    """Cached Google records."""

    users: list[GoogleUser] = Field(default_factory=list)


class GooglePlatform(BasePlatform[GoogleData]):
    """Cached Workspace users."""

    name = PLATFORM_NAME
    data_model = GoogleData

    def __init__(
        self,
        customer: str | None,
        credentials: str | None,
        admin_email: str | None,
        cache_dir: Path,
        ttl_seconds: float = 15 * 60,
    ):
        """Initialize with service account credentials.

        Args:
            customer: Workspace customer id
            credentials: Service account JSON contents
            admin_email: Admin account to impersonate
            cache_dir: Directory for the cache file
            ttl_seconds: Cache freshness window
        """
        super().__init__(cache_dir, ttl_seconds)
        self._customer = customer
        self._credentials = credentials
        self._admin_email = admin_email
        self._service = None

    def get_all_users(self) -> list[GoogleUser]:
        return self.snapshot.users

    def _get_service(self):
        """Get or create Directory API service."""
        if self._service is None:
            if not self._credentials or not self._customer:
                raise ValueError(
                    "No Google credentials. Set GOOGLE_CREDENTIALS and "
                    "GOOGLE_CUSTOMER env vars."
                )
            creds = Credentials.from_service_account_info(
                json.loads(self._credentials),
                scopes=DIRECTORY_SCOPES,
                subject=self._admin_email,
            )
            self._service = build("admin", "directory_v1", credentials=creds)
        return self._service

    async def fetch(self) -> GoogleData:
        """Fetch every user of the Workspace customer."""
        users = await self._list_users()
        logger.debug("Loaded Google users", count=len(users))
        return GoogleData.model_validate({"users": users})

    @with_retry
    async def _list_users(self) -> list[dict]:
        service = self._get_service()

        def _fetch() -> list[dict]:
            users: list[dict] = []
            page_token = None
            while True:
                result = (
                    service.users()
                    .list(
                        customer=self._customer,
                        maxResults=USER_PAGE_SIZE,
                        pageToken=page_token,
                    )
                    .execute()
                )
                users.extend(result.get("users", []))
                page_token = result.get("nextPageToken")
                if not page_token:
                    return users

        # Use asyncio.to_thread for non-blocking I/O
        return await asyncio.to_thread(_fetch)

