"""Canonical team model schemas.

Defines the merged member/group entities built by the model agents and the
structured findings ("concerns") produced when checking them.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

TEMPLATE_FIRST_NAME = "Unknown"
TEMPLATE_LAST_NAME = "User"


class MemberName(BaseModel):
    """Structured name, derived once from the authoritative source."""

    last: str = Field(description="Family name")
    first: str = Field(default="", description="Given name, may be empty")
    last_first: str = Field(description="Display form 'Last, First'")
    preferred: str = Field(description="Short preferred name")
    preferred_full: str = Field(description="Preferred full name 'First Last'")

    @classmethod
    def from_last_first(cls, text: str) -> "MemberName":
        """Parse a single 'Last, First' field.

        Splits on the first comma only. Without a comma the whole string is
        the last name and the first name is empty.

        Args:
            text: Name as stored in the membership platform

        Returns:
            MemberName with display forms filled in
        """
        last, sep, first = text.partition(",")
        last = last.strip()
        first = first.strip() if sep else ""
        return cls(
            last=last,
            first=first,
            last_first=text,
            preferred=first or last,
            preferred_full=f"{first} {last}" if first else last,
        )

    @classmethod
    def template(cls) -> "MemberName":
        """Placeholder name for members unknown to the authoritative source."""
        return cls(
            last=TEMPLATE_LAST_NAME,
            first=TEMPLATE_FIRST_NAME,
            last_first=f"{TEMPLATE_LAST_NAME}, {TEMPLATE_FIRST_NAME}",
            preferred=TEMPLATE_FIRST_NAME,
            preferred_full=f"{TEMPLATE_FIRST_NAME} {TEMPLATE_LAST_NAME}",
        )

    @property
    def is_template(self) -> bool:
        return self == MemberName.template()


class TeamStatus(BaseModel):
    """A member's standing on the team.

    Used both as the computed status of a member and as a status-group
    definition in settings, where only the fields explicitly given override
    the status built so far.
    """

    title: str = Field(default="", description="Status name")
    current: bool = Field(default=False, description="Active team member")
    trainee: bool = Field(default=False, description="In training")
    mission: bool = Field(default=False, description="Can respond to missions")
    field: bool = Field(default=False, description="Field-qualified")

    def merged_with(self, other: "TeamStatus") -> "TeamStatus":
        """Overlay the fields explicitly set on another status."""
        return self.model_copy(update=other.model_dump(exclude_unset=True))


class Qualification(BaseModel):
    """A qualification from the membership platform's catalog."""

    title: str


class ExpectationType(str, Enum):
    """How a group expectation is checked."""

    SIMPLE = "simple"


class GroupExpectation(BaseModel):
    """A qualification members of a group are expected to hold."""

    qualification: Qualification
    type: ExpectationType = Field(default=ExpectationType.SIMPLE)


class TeamGroup(BaseModel):
    """A named cohort of members with training expectations.

    Created once while seeding the directory and not changed afterwards.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Display name, unique in the model")
    expectations: list[GroupExpectation] = Field(default_factory=list)
    platforms: dict[str, Any] = Field(
        default_factory=dict, description="Raw group record per platform"
    )
    virtual: bool = Field(
        default=False, description="Synthetic group not present upstream"
    )


class LinkConflict(BaseModel):
    """A source record that could not be linked to a single member."""

    platform: str
    record: str = Field(description="Display label of the source record")
    reason: str = Field(default="matches multiple members")
    candidates: list[str] = Field(description="Names of every matched member")


class TeamMember(BaseModel):
    """Canonical identity of one person across all platforms."""

    id: UUID = Field(default_factory=uuid4, description="Stable roster handle")
    name: MemberName = Field(default_factory=MemberName.template)
    emails: list[str] = Field(default_factory=list)
    team_email: str | None = Field(
        default=None, description="Address in the organization's domain"
    )
    team_status: TeamStatus = Field(
        default_factory=lambda: TeamStatus(title="empty")
    )
    groups: list[TeamGroup] = Field(default_factory=list)
    platforms: dict[str, Any] = Field(
        default_factory=dict, description="Raw record per platform"
    )
    link_conflicts: list[LinkConflict] = Field(default_factory=list)

    def set_emails(self, emails: list[str], team_email_domain: str) -> None:
        """Replace the member's emails and recompute the team email.

        Duplicates are dropped case-insensitively, keeping the first spelling.
        """
        seen: set[str] = set()
        unique: list[str] = []
        for email in emails:
            key = email.lower()
            if email and key not in seen:
                seen.add(key)
                unique.append(email)
        self.emails = unique

        suffix = f"@{team_email_domain.lower()}"
        self.team_email = next(
            (e.lower() for e in unique if e.lower().endswith(suffix)), None
        )

    def add_emails(self, emails: list[str], team_email_domain: str) -> None:
        """Append emails not already known."""
        self.set_emails([*self.emails, *emails], team_email_domain)

    def has_email(self, email: str | None) -> bool:
        if not email:
            return False
        return email.lower() in (e.lower() for e in self.emails)


def template_member() -> TeamMember:
    """Fresh member with placeholder name and empty status."""
    return TeamMember()


class ConcernLevel(str, Enum):
    """Severity of a concern.

    fix: drift that needs a change in some platform
    warn: soft anomaly
    error: inconsistency the checks could not resolve
    """

    WARN = "warn"
    FIX = "fix"
    ERROR = "error"


class CheckConcern(BaseModel):
    """One finding about a member."""

    concern: str = Field(description="Human-readable description")
    platform: str | None = Field(default=None, description="Platform that raised it")
    level: ConcernLevel = Field(default=ConcernLevel.FIX)


class MemberReport(BaseModel):
    """A member and everything found wrong with it."""

    member: TeamMember
    concerns: list[CheckConcern]


class TrainingAward(BaseModel):
    """A qualification awarded to a member."""

    qualification_title: str
    completed_at: datetime | None = None
    expires_at: datetime | None = None


class ExpectationStatus(str, Enum):
    """Outcome of checking one group expectation."""

    MET = "met"
    EXPIRING = "expiring"
    MISSING = "missing"


class ExpectationResult(BaseModel):
    """Training status for one expectation of one group."""

    group: str
    qualification: str
    status: ExpectationStatus
    expires_at: datetime | None = None
