"""D4H Team Manager platform.

The authoritative membership source. Members come from the v2 API (it still
carries custom fields and group ids); groups, qualifications and awards come
from the v3 API.
"""

from datetime import datetime
from pathlib import Path

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from team_roster.errors import PlatformRequestError
from team_roster.model.schemas import TeamMember, TrainingAward
from team_roster.platforms.base import BasePlatform
from team_roster.platforms.retry import with_retry

logger = structlog.get_logger()

PLATFORM_NAME = "D4H"
V3_BASE_URL = "https://api.team-manager.us.d4h.com/v3/team/{team_id}/"
V2_BASE_URL = "https://api.d4h.org/v2/"
PAGE_SIZE = 250

OPERATIONAL_STATUS = "Operational"


class D4HStatus(BaseModel):
    """v2 member status."""

    type: str = ""
    value: str = ""


class D4HCustomField(BaseModel):
    """v2 custom field value."""

    label: str
    value: str | None = None


class D4HMember(BaseModel):
    """Member record from the v2 API."""

    model_config = ConfigDict(extra="allow")

    id: int
    ref: str | None = None
    name: str
    email: str | None = None
    position: str | None = None
    status: D4HStatus = Field(default_factory=D4HStatus)
    custom_fields: list[D4HCustomField] = Field(default_factory=list)
    group_ids: list[int] = Field(default_factory=list)

    def custom_field(self, label: str) -> str | None:
        """Value of a custom field, None when the field is absent."""
        for field in self.custom_fields:
            if field.label == label:
                return field.value
        return None

    @property
    def is_operational(self) -> bool:
        return self.status.value == OPERATIONAL_STATUS


class D4HGroup(BaseModel):
    """Member group (v3)."""

    model_config = ConfigDict(extra="allow")

    id: int
    title: str


class D4HQualification(BaseModel):
    """Qualification from the catalog (v3)."""

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    id: int
    title: str
    expires_months_default: int | None = None


class D4HRef(BaseModel):
    """Reference to another v3 entity."""

    model_config = ConfigDict(extra="allow")

    id: int
    title: str | None = None


class D4HAward(BaseModel):
    """Qualification awarded to a member (v3)."""

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    id: int
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    qualification: D4HRef
    member: D4HRef


class D4HData(BaseModel):
    """Cached D4H records."""

    groups: list[D4HGroup] = Field(default_factory=list)
    members: list[D4HMember] = Field(default_factory=list)
    qualifications: list[D4HQualification] = Field(default_factory=list)
    awards: list[D4HAward] = Field(default_factory=list)


class D4HPlatform(BasePlatform[D4HData]):
    """Cached D4H groups, members, qualifications and awards."""

    name = PLATFORM_NAME
    data_model = D4HData

    def __init__(
        self,
        team_id: int,
        v3_token: str | None,
        v2_token: str | None,
        cache_dir: Path,
        ttl_seconds: float = 15 * 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize with API credentials.

        Args:
            team_id: D4H team id
            v3_token: Bearer token for the v3 API
            v2_token: Bearer token for the v2 API
            cache_dir: Directory for the cache file
            ttl_seconds: Cache freshness window
            transport: Optional httpx transport (tests)
        """
        super().__init__(cache_dir, ttl_seconds)
        self._team_id = team_id
        self._transport = transport
        self._v3_token = v3_token
        self._v2_token = v2_token

    def get_all_groups(self) -> list[D4HGroup]:
        return self.snapshot.groups

    def get_all_members(self) -> list[D4HMember]:
        return self.snapshot.members

    def get_all_qualifications(self) -> list[D4HQualification]:
        return self.snapshot.qualifications

    def get_awards_for_member(self, member: TeamMember) -> list[TrainingAward]:
        """Awards held by a canonical member.

        Args:
            member: Member with a D4H record attached

        Returns:
            Awards from the cached snapshot, empty if the member has no D4H
            record
        """
        record = member.platforms.get(self.name)
        if not isinstance(record, D4HMember):
            return []
        return [
            TrainingAward(
                qualification_title=award.qualification.title or "",
                completed_at=award.starts_at,
                expires_at=award.ends_at,
            )
            for award in self.snapshot.awards
            if award.member.id == record.id
        ]

    async def fetch(self) -> D4HData:
        """Fetch every list this platform caches."""
        if not self._v3_token or not self._v2_token:
            raise ValueError(
                "No D4H tokens. Set D4H_TOKEN and D4H_V2_TOKEN env vars."
            )

        v3_headers = {"Authorization": f"Bearer {self._v3_token}"}
        v2_headers = {"Authorization": f"Bearer {self._v2_token}"}
        async with (
            httpx.AsyncClient(
                base_url=V3_BASE_URL.format(team_id=self._team_id),
                headers=v3_headers,
                timeout=30,
                transport=self._transport,
            ) as v3,
            httpx.AsyncClient(
                base_url=V2_BASE_URL,
                headers=v2_headers,
                timeout=30,
                transport=self._transport,
            ) as v2,
        ):
            groups = await self._get_v3_list(v3, "member-groups")
            qualifications = await self._get_v3_list(v3, "member-qualifications")
            awards = await self._get_v3_list(v3, "member-qualification-awards")
            members = await self._get_v2_list(
                v2, "team/members?include_details=true&include_custom_fields=true"
            )

        logger.debug(
            "Fetched D4H data",
            groups=len(groups),
            members=len(members),
            qualifications=len(qualifications),
            awards=len(awards),
        )
        return D4HData.model_validate(
            {
                "groups": groups,
                "members": members,
                "qualifications": qualifications,
                "awards": awards,
            }
        )

    async def _get_v3_list(self, client: httpx.AsyncClient, url: str) -> list[dict]:
        """Page through a v3 list endpoint."""
        items: list[dict] = []
        while True:
            sep = "&" if "?" in url else "?"
            page = len(items) // PAGE_SIZE
            chunk = (await self._get(client, f"{url}{sep}size={PAGE_SIZE}&page={page}"))[
                "results"
            ]
            items.extend(chunk)
            if len(chunk) < PAGE_SIZE:
                return items

    async def _get_v2_list(self, client: httpx.AsyncClient, url: str) -> list[dict]:
        """Page through a v2 list endpoint."""
        items: list[dict] = []
        while True:
            sep = "&" if "?" in url else "?"
            chunk = (
                await self._get(client, f"{url}{sep}limit={PAGE_SIZE}&offset={len(items)}")
            )["data"]
            items.extend(chunk)
            if len(chunk) < PAGE_SIZE:
                return items

    @with_retry
    async def _get(self, client: httpx.AsyncClient, url: str) -> dict:
        response = await client.get(url)
        if response.is_error:
            raise PlatformRequestError(
                self.name, f"GET {url} returned {response.status_code}"
            )
        return response.json()
