"""Google Workspace linkage agent."""

import structlog

from team_roster.config import GoogleSettings
from team_roster.model.agents.concerns import (
    ConcernList,
    add_link_conflicts,
    email_mismatch_level,
)
from team_roster.model.agents.linkage import SourceRecord, link_records
from team_roster.model.schemas import CheckConcern, TeamGroup, TeamMember
from team_roster.model.team_model import MemberRoster
from team_roster.platforms.google import GooglePlatform, GoogleUser

logger = structlog.get_logger()


class GoogleAgent:
    """Links Workspace accounts to members and checks their state."""

    name = "Google"

    def __init__(self, settings: GoogleSettings, google: GooglePlatform):
        self._settings = settings
        self._google = google

    def populate_members(self, roster: MemberRoster) -> None:
        """Link users of the member org units onto the roster.

        On a match the user's other addresses are merged into the member's
        emails.
        """
        ignored = {e.lower() for e in self._settings.ignore_users}
        users = [
            u
            for u in self._google.get_all_users()
            if u.org_unit_path in self._settings.org_units
            and u.primary_email.lower() not in ignored
        ]

        def on_match(member: TeamMember, source: SourceRecord) -> None:
            user: GoogleUser = source.record
            roster.add_emails(member.id, [e.address for e in user.emails])

        link_records(
            roster,
            self.name,
            (
                SourceRecord(
                    key=u.primary_email.lower(),
                    emails=[u.primary_email],
                    full_name=u.name.full_name,
                    label=u.primary_email,
                    record=u,
                )
                for u in users
            ),
            record_key=lambda user: user.primary_email.lower(),
            alias_emails=self._settings.alias_emails,
            on_match=on_match,
        )

    def get_member_concerns(self, member: TeamMember) -> list[CheckConcern]:
        concerns = ConcernList(self.name)
        add_link_conflicts(concerns, member)
        user: GoogleUser | None = member.platforms.get(self.name)

        if member.team_status.trainee:
            pass
        elif member.team_status.current:
            if user is None:
                concerns.add("Does not have a Google account")
            else:
                if user.suspended:
                    concerns.add("Has a suspended account")
                level = email_mismatch_level(user.primary_email, member.team_email)
                if level is not None:
                    concerns.add(
                        f"Primary email {user.primary_email} does not match "
                        f"primary team email {member.team_email}",
                        level,
                    )
        elif user is not None and not user.suspended:
            concerns.add(
                f'Has an active Google account "{user.name.full_name}" '
                f"({user.primary_email})"
            )
        return concerns.concerns

    def get_membership_concerns(
        self, member: TeamMember, groups: list[TeamGroup]
    ) -> list[CheckConcern]:
        return []
