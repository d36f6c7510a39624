"""CalTopo linkage agent."""

from team_roster.config import CalTopoSettings
from team_roster.model.agents.concerns import ConcernList, add_link_conflicts
from team_roster.model.agents.linkage import SourceRecord, link_records
from team_roster.model.schemas import CheckConcern, TeamGroup, TeamMember
from team_roster.model.team_model import MemberRoster
from team_roster.platforms.caltopo import CalTopoPlatform, CalTopoUser

DEFAULT_MIN_PERMISSION = 10


class CalTopoAgent:
    """Links CalTopo accounts and checks team membership."""

    name = "CalTopo"

    def __init__(self, settings: CalTopoSettings, caltopo: CalTopoPlatform):
        """Initialize the agent.

        Args:
            settings: CalTopo settings, with any global alias emails merged in
            caltopo: Platform holding the CalTopo snapshot
        """
        self._settings = settings
        self._caltopo = caltopo

    def populate_members(self, roster: MemberRoster) -> None:
        """Link CalTopo users by (aliased) email, then by full name.

        Users matching nobody become new members named after the account.
        """

        def on_create(member: TeamMember, source: SourceRecord) -> None:
            user: CalTopoUser = source.record
            if user.full_name:
                member.name = member.name.model_copy(
                    update={"preferred_full": user.full_name}
                )
            roster.set_emails(member.id, [user.email] if user.email else [])

        link_records(
            roster,
            self.name,
            (
                SourceRecord(
                    key=u.id,
                    emails=[u.email] if u.email else [],
                    full_name=u.full_name,
                    label=u.full_name or u.email or u.id,
                    record=u,
                )
                for u in self._caltopo.get_all_users()
            ),
            record_key=lambda user: user.id,
            alias_emails=self._settings.alias_emails,
            on_create=on_create,
        )

    def get_member_concerns(self, member: TeamMember) -> list[CheckConcern]:
        concerns = ConcernList(self.name)
        add_link_conflicts(concerns, member)
        return concerns.concerns

    def get_membership_concerns(
        self, member: TeamMember, groups: list[TeamGroup]
    ) -> list[CheckConcern]:
        """Check the member against every configured CalTopo team.

        A member should be in a team when one of its groups is expected
        there or its email is listed as an extra member. Anyone else may
        only be in the team when the team allows it.
        """
        concerns = ConcernList(self.name)
        if member.team_status.trainee:
            return concerns.concerns

        user: CalTopoUser | None = member.platforms.get(self.name)
        titles = {g.title for g in member.groups}
        extra = {e.lower() for e in self._settings.extra_members}
        email = member.team_email or (member.emails[0] if member.emails else None)
        if email is None and user is not None:
            email = user.email

        for team in self._settings.teams:
            permission = user.groups.get(team.id) if user else None
            should_be_in = any(t in titles for t in team.expect_groups) or (
                email is not None and email.lower() in extra
            )
            min_permission = team.min_permission or DEFAULT_MIN_PERMISSION

            if should_be_in:
                if not permission:
                    concerns.add(f'Should be in CalTopo team "{team.name}"')
                elif permission < min_permission:
                    concerns.add(
                        f'Permission {permission} in CalTopo team "{team.name}" '
                        f"is lower than required ({min_permission})"
                    )
            elif permission and not (
                team.allow_external
                or (member.team_status.current and team.allow_members)
            ):
                concerns.add(f'Should not be in CalTopo team "{team.name}"')
        return concerns.concerns
