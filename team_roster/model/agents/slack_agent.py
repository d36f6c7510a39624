"""Slack linkage agent.

Links workspace users to members and checks that members of synced
channels match the team groups mapped onto them.
"""

from team_roster.config import SlackSettings
from team_roster.model.agents.concerns import (
    ConcernList,
    add_link_conflicts,
    email_mismatch_level,
)
from team_roster.model.agents.linkage import SourceRecord, link_records
from team_roster.model.schemas import CheckConcern, TeamGroup, TeamMember
from team_roster.model.team_model import MemberRoster
from team_roster.platforms.slack import SLACKBOT_ID, SlackPlatform, SlackUserAndChannels


class SlackAgent:
    """Slack users and channel memberships."""

    name = "Slack"

    def __init__(self, settings: SlackSettings, slack: SlackPlatform):
        self._settings = settings
        self._slack = slack

    def populate_members(self, roster: MemberRoster) -> None:
        users = [
            u
            for u in self._slack.get_users_and_channels()
            if not u.is_bot and u.id != SLACKBOT_ID
        ]
        link_records(
            roster,
            self.name,
            (
                SourceRecord(
                    key=u.id,
                    emails=[u.profile.email] if u.profile.email else [],
                    full_name=u.display_name,
                    label=u.display_name or u.name or u.id,
                    record=u,
                )
                for u in users
            ),
            record_key=lambda user: user.id,
            alias_emails=self._settings.alias_emails,
        )

    def get_member_concerns(self, member: TeamMember) -> list[CheckConcern]:
        concerns = ConcernList(self.name)
        add_link_conflicts(concerns, member)
        user: SlackUserAndChannels | None = member.platforms.get(self.name)

        # current members without a Slack account are fine
        if user is None or member.team_status.trainee:
            return concerns.concerns

        if member.team_status.current:
            level = email_mismatch_level(user.profile.email, member.team_email)
            if level is not None:
                concerns.add(
                    f"Primary email {user.profile.email} does not match "
                    f"primary team email {member.team_email}",
                    level,
                )
        elif not user.deleted:
            concerns.add(
                f'Has an active Slack account "{user.display_name}" '
                f"({user.profile.email})"
            )
        return concerns.concerns

    def get_membership_concerns(
        self, member: TeamMember, groups: list[TeamGroup]
    ) -> list[CheckConcern]:
        """Compare the user's channels with those its groups map to.

        Only channels with `sync` enabled and present in the Slack snapshot
        are considered.
        """
        concerns = ConcernList(self.name)
        user: SlackUserAndChannels | None = member.platforms.get(self.name)
        if user is None or member.team_status.trainee:
            return concerns.concerns

        channels_by_group: dict[str, list[str]] = {}
        for setting in self._settings.channels:
            if not setting.sync or self._slack.get_channel_by_name(setting.slack) is None:
                continue
            for title in setting.groups:
                channels_by_group.setdefault(title, []).append(setting.slack)

        expected: list[str] = []
        for group in member.groups:
            for name in channels_by_group.get(group.title, []):
                if name not in expected:
                    expected.append(name)

        for channel_id in user.channels:
            channel = self._slack.get_channel(channel_id)
            if channel is None:
                continue
            name = channel.name_normalized or channel.name
            if name in expected:
                expected.remove(name)
            elif channel.is_private:
                concerns.add(f"is in private channel #{channel.name}")

        for name in expected:
            concerns.add(f"is not in channel #{name}")
        return concerns.concerns
