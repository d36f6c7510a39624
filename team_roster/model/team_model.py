"""Team model container, member roster and agent protocols.

- MemberRoster: arena of members being merged (list + index by id)
- TeamModelContainer: read-only snapshot of a finished build
- PrimaryModelAgent / ModelAgent: what the model builder needs from agents
"""

from collections.abc import Iterator
from typing import Protocol, runtime_checkable
from uuid import UUID

import structlog

from team_roster.model.schemas import CheckConcern, TeamGroup, TeamMember

logger = structlog.get_logger()


class MemberRoster:
    """Members being merged during one model build.

    Agents append members and mutate them through the roster so that every
    member keeps a stable id handle. Nothing is ever removed.
    """

    def __init__(self, team_email_domain: str):
        """Initialize an empty roster.

        Args:
            team_email_domain: Organization domain used to pick team emails
        """
        self.team_email_domain = team_email_domain
        self._members: list[TeamMember] = []
        self._by_id: dict[UUID, TeamMember] = {}

    def add(self, member: TeamMember) -> UUID:
        """Append a member and return its handle."""
        if member.id in self._by_id:
            raise ValueError(f"Member {member.id} is already in the roster")
        self._members.append(member)
        self._by_id[member.id] = member
        return member.id

    def get(self, member_id: UUID) -> TeamMember:
        return self._by_id[member_id]

    def set_emails(self, member_id: UUID, emails: list[str]) -> None:
        """Replace a member's emails, recomputing its team email."""
        self._by_id[member_id].set_emails(emails, self.team_email_domain)

    def add_emails(self, member_id: UUID, emails: list[str]) -> None:
        """Merge new emails into a member, recomputing its team email."""
        self._by_id[member_id].add_emails(emails, self.team_email_domain)

    def attach(self, member_id: UUID, platform: str, record: object) -> None:
        """Store a platform record on a member."""
        self._by_id[member_id].platforms[platform] = record

    @property
    def members(self) -> list[TeamMember]:
        """Members in insertion order (a copy of the list)."""
        return list(self._members)

    def __iter__(self) -> Iterator[TeamMember]:
        return iter(list(self._members))

    def __len__(self) -> int:
        return len(self._members)


@runtime_checkable
class ModelAgent(Protocol):
    """A platform's view of the team model.

    Secondary agents link their records onto the roster; every agent
    (primary included) checks members against its platform.
    """

    name: str

    def populate_members(self, roster: MemberRoster) -> None:
        """Link platform records onto the roster, adding unknown people."""
        ...

    def get_member_concerns(self, member: TeamMember) -> list[CheckConcern]:
        """Check one member's standing on this platform."""
        ...

    def get_membership_concerns(
        self, member: TeamMember, groups: list[TeamGroup]
    ) -> list[CheckConcern]:
        """Check that the member's memberships here agree with its groups."""
        ...


@runtime_checkable
class PrimaryModelAgent(Protocol):
    """The authoritative agent that seeds the roster and groups."""

    name: str

    def initialize_directory(self) -> tuple[list[TeamGroup], MemberRoster]:
        """Build groups and members from scratch."""
        ...

    def get_member_concerns(self, member: TeamMember) -> list[CheckConcern]:
        ...

    def get_membership_concerns(
        self, member: TeamMember, groups: list[TeamGroup]
    ) -> list[CheckConcern]:
        ...


class TeamModelContainer:
    """Read-only snapshot of merged members and groups."""

    def __init__(self, members: list[TeamMember], groups: list[TeamGroup]):
        self._members = tuple(members)
        self._groups = tuple(groups)
        self._by_id = {m.id: m for m in self._members}

    def get_all_members(self) -> tuple[TeamMember, ...]:
        return self._members

    def get_all_groups(self) -> tuple[TeamGroup, ...]:
        return self._groups

    def get_member(self, member_id: UUID) -> TeamMember | None:
        return self._by_id.get(member_id)

    def find_group(self, title: str) -> TeamGroup | None:
        """Find a group by exact title."""
        return next((g for g in self._groups if g.title == title), None)

    def search_for_member(self, key: str) -> list[TeamMember]:
        """Find members by team email or preferred full name.

        Comparison is case-insensitive. Callers must handle more than one
        match (ambiguous) as well as none.

        Args:
            key: Email address or full name

        Returns:
            Every matching member, in roster order
        """
        needle = key.strip().lower()
        if not needle:
            return []
        matches = [
            m
            for m in self._members
            if (m.team_email or "").lower() == needle
            or m.name.preferred_full.lower() == needle
        ]
        logger.debug("Member search", key=key, matches=len(matches))
        return matches
