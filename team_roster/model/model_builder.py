"""Team model builder.

Runs the primary agent, then every linkage agent in registration order, and
produces the two consistency reports from the finished model.
"""

import time

import structlog

from team_roster.model.schemas import (
    CheckConcern,
    ConcernLevel,
    MemberReport,
    TeamMember,
)
from team_roster.model.team_model import (
    ModelAgent,
    PrimaryModelAgent,
    TeamModelContainer,
)

logger = structlog.get_logger()


def _sort_key(member: TeamMember) -> tuple[str, str, str]:
    return (
        member.name.last.lower(),
        member.name.first.lower(),
        (member.team_email or "").lower(),
    )


def team_email_concerns(
    member: TeamMember, members: tuple[TeamMember, ...] | list[TeamMember]
) -> list[CheckConcern]:
    """Team email rules that need the whole roster.

    Args:
        member: Member being checked
        members: Every member of the model

    Returns:
        Concerns without a platform
    """
    concerns: list[CheckConcern] = []
    status = member.team_status
    if status.trainee:
        return concerns

    if member.team_email:
        holders = [
            m
            for m in members
            if m.team_email == member.team_email or m.has_email(member.team_email)
        ]
        if len(holders) > 1:
            names = "; ".join(m.name.last_first for m in holders)
            concerns.append(
                CheckConcern(
                    concern=f"{member.team_email} belongs to multiple members: {names}",
                    level=ConcernLevel.FIX,
                )
            )
        if not status.current:
            concerns.append(
                CheckConcern(
                    concern=f"Non-member has unit email {member.team_email}",
                    level=ConcernLevel.FIX,
                )
            )
    elif status.current:
        concerns.append(
            CheckConcern(
                concern=f"{member.name.preferred_full} has no unit email",
                level=ConcernLevel.FIX,
            )
        )
    return concerns


class ModelBuilder:
    """Builds the team model from a primary agent and linkage agents."""

    def __init__(self, primary_agent: PrimaryModelAgent):
        self._primary = primary_agent
        self._agents: list[ModelAgent] = []

    @property
    def agents(self) -> list[ModelAgent | PrimaryModelAgent]:
        """Primary agent followed by linkage agents in registration order."""
        return [self._primary, *self._agents]

    def add_agent(self, agent: ModelAgent) -> None:
        self._agents.append(agent)

    def build_model(self) -> TeamModelContainer:
        """Build a fresh model from the agents' current snapshots.

        Raises:
            PlatformNotReadyError: If a platform snapshot was never loaded
        """
        start = time.monotonic()
        groups, roster = self._primary.initialize_directory()
        for agent in self._agents:
            agent.populate_members(roster)

        model = TeamModelContainer(roster.members, groups)
        logger.debug(
            "Built team model",
            members=len(model.get_all_members()),
            groups=len(model.get_all_groups()),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return model

    def get_model_user_report(
        self, model: TeamModelContainer | None = None
    ) -> list[MemberReport]:
        """Per-member concerns: team email rules, then each agent's checks.

        Args:
            model: Model to report on, built fresh when omitted

        Returns:
            Members with at least one concern, sorted by last name, first
            name and team email
        """
        model = model or self.build_model()
        members = sorted(model.get_all_members(), key=_sort_key)

        reports = []
        for member in members:
            concerns = team_email_concerns(member, members)
            for agent in self.agents:
                concerns.extend(agent.get_member_concerns(member))
            if concerns:
                reports.append(MemberReport(member=member, concerns=concerns))
        return reports

    def get_model_group_membership_report(
        self, model: TeamModelContainer | None = None
    ) -> list[MemberReport]:
        """Per-member membership concerns from every agent.

        Args:
            model: Model to report on, built fresh when omitted

        Returns:
            Members with at least one concern, in the user report's order
        """
        model = model or self.build_model()
        members = sorted(model.get_all_members(), key=_sort_key)
        groups = list(model.get_all_groups())

        reports = []
        for member in members:
            concerns: list[CheckConcern] = []
            for agent in self.agents:
                concerns.extend(agent.get_membership_concerns(member, groups))
            if concerns:
                reports.append(MemberReport(member=member, concerns=concerns))
        return reports
