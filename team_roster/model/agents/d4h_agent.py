"""D4H directory agent.

Seeds the team model: every D4H group becomes a TeamGroup and every D4H
member a TeamMember. Also checks members against the D4H records they came
from.
"""

import re

import structlog

from team_roster.config import D4HSettings
from team_roster.model.agents.concerns import ConcernList
from team_roster.model.schemas import (
    CheckConcern,
    ConcernLevel,
    GroupExpectation,
    MemberName,
    Qualification,
    TeamGroup,
    TeamMember,
    TeamStatus,
)
from team_roster.model.team_model import MemberRoster
from team_roster.platforms.d4h import (
    D4HGroup,
    D4HMember,
    D4HPlatform,
    D4HQualification,
)

logger = structlog.get_logger()

OPERATIONAL_GROUP = D4HGroup(id=-1, title="OPERATIONAL")

SECONDARY_EMAIL_FIELD = "Secondary Email"
UNIT_STATUS_FIELD = "Unit Status"
JOIN_DATE_FIELD = "Joined Unit Date"

TEAM_JOIN_PATTERN = re.compile(r"^((?P<unit>[A-Za-z0-9]+) +)?(?P<date>[\d/-]+)$")


def d4h_emails(record: D4HMember) -> list[str]:
    """Primary email followed by the ';'-separated secondary emails.

    Blank entries are dropped and duplicates removed (case-insensitive),
    keeping the first spelling.
    """
    candidates = [record.email or ""]
    candidates.extend((record.custom_field(SECONDARY_EMAIL_FIELD) or "").split(";"))

    seen: set[str] = set()
    emails: list[str] = []
    for email in (c.strip() for c in candidates):
        if email and email.lower() not in seen:
            seen.add(email.lower())
            emails.append(email)
    return emails


class D4HAgent:
    """Primary agent backed by the D4H platform."""

    name = "D4H"

    def __init__(self, settings: D4HSettings, d4h: D4HPlatform):
        self._settings = settings
        self._d4h = d4h

    def initialize_directory(self) -> tuple[list[TeamGroup], MemberRoster]:
        """Build groups and members from the D4H snapshot.

        Returns:
            Groups (D4H groups plus the operational pseudo-group) and a new
            roster holding one member per D4H member

        Raises:
            PlatformNotReadyError: If the D4H snapshot was never loaded
        """
        groups = self._build_groups()
        groups_by_id = {g.platforms[self.name].id: g for g in groups}

        roster = MemberRoster(self._settings.team_email_domain)
        for record in self._d4h.get_all_members():
            roster.add(self._member_from_record(record, groups_by_id))

        logger.debug("Initialized directory", groups=len(groups), members=len(roster))
        return groups, roster

    def _build_groups(self) -> list[TeamGroup]:
        records = self._d4h.get_all_groups()
        if self._settings.exclude_groups:
            exclude = re.compile(self._settings.exclude_groups)
            records = [g for g in records if not exclude.search(g.title)]

        qualifications = self._d4h.get_all_qualifications()
        groups = [
            TeamGroup(
                title=record.title,
                platforms={self.name: record},
                expectations=self._build_expectations(record.title, qualifications),
            )
            for record in records
        ]
        groups.append(
            TeamGroup(
                title=OPERATIONAL_GROUP.title,
                platforms={self.name: OPERATIONAL_GROUP},
                expectations=self._build_expectations(
                    OPERATIONAL_GROUP.title, qualifications
                ),
                virtual=True,
            )
        )
        return groups

    def _build_expectations(
        self, group_title: str, qualifications: list[D4HQualification]
    ) -> list[GroupExpectation]:
        by_title = {q.title.lower(): q for q in qualifications}
        expectations = []
        for setting in self._settings.expectations.get(group_title, []):
            qualification = by_title.get(setting.course.lower())
            if qualification is None:
                logger.warning(
                    "Dropping unresolved expectation",
                    group=group_title,
                    course=setting.course,
                )
                continue
            expectations.append(
                GroupExpectation(
                    qualification=Qualification(title=qualification.title),
                    type=setting.type,
                )
            )
        return expectations

    def _member_from_record(
        self, record: D4HMember, groups_by_id: dict[int, TeamGroup]
    ) -> TeamMember:
        group_ids = list(record.group_ids)
        if record.is_operational:
            group_ids.append(OPERATIONAL_GROUP.id)
        groups = [groups_by_id[gid] for gid in group_ids if gid in groups_by_id]

        status = TeamStatus()
        titles = {g.title for g in groups}
        for status_group in self._settings.status_groups:
            if status_group.title in titles:
                status = status.merged_with(status_group)

        member = TeamMember(
            name=MemberName.from_last_first(record.name),
            team_status=status,
            groups=groups,
            platforms={self.name: record},
        )
        member.set_emails(d4h_emails(record), self._settings.team_email_domain)
        return member

    def get_member_concerns(self, member: TeamMember) -> list[CheckConcern]:
        """Check a member against its D4H record."""
        record = member.platforms.get(self.name)
        if record is None or member.team_status.trainee:
            return []
        if member.team_status.current:
            return self._check_active_member(member, record)
        return self._check_non_member(record)

    def _check_active_member(
        self, member: TeamMember, record: D4HMember
    ) -> list[CheckConcern]:
        concerns = ConcernList(self.name)
        team_name = self._settings.team_name

        if not record.is_operational:
            concerns.add(f"Has unexpected status: {record.status.value}")

        if member.team_email:
            platform_email = next(
                (e for e in d4h_emails(record) if e.lower() == member.team_email),
                None,
            )
            if platform_email is not None and platform_email != member.team_email:
                concerns.add(f"{platform_email} is not lowercase", ConcernLevel.WARN)

        self._check_join_date(record, concerns)

        unit_status = record.custom_field(UNIT_STATUS_FIELD)
        if member.team_status.field and team_name not in (unit_status or ""):
            concerns.add(
                f'Unit status does not include "{team_name}": "{unit_status or ""}"'
            )
        return concerns.concerns

    def _check_join_date(self, record: D4HMember, concerns: ConcernList) -> None:
        team_name = self._settings.team_name
        text = record.custom_field(JOIN_DATE_FIELD)
        entries = [e.strip() for e in re.split(r"[;,]", text or "") if e.strip()]
        if not entries:
            concerns.add(f'Has no "{JOIN_DATE_FIELD}"')
            return

        matches = [TEAM_JOIN_PATTERN.match(e) for e in entries]
        if any(m is None for m in matches):
            concerns.add(f'Can\'t parse {JOIN_DATE_FIELD} of "{text}"')
            return

        team_joins = [m for m in matches if m["unit"] in (None, team_name)]
        if not team_joins:
            concerns.add(f"Can't find {JOIN_DATE_FIELD} for {team_name}")
        elif len(team_joins) > 1:
            concerns.add(
                f"Multiple {JOIN_DATE_FIELD} entries. Can't identify only one "
                f'as applicable to {team_name}: "{text}"'
            )

    def _check_non_member(self, record: D4HMember) -> list[CheckConcern]:
        concerns = ConcernList(self.name)
        team_name = self._settings.team_name
        if record.position and team_name in record.position:
            concerns.add(
                f'Non-member has "{team_name}" in position text: {record.position}'
            )
        unit_status = record.custom_field(UNIT_STATUS_FIELD)
        if unit_status and team_name in unit_status:
            concerns.add(f'Non-member has "{team_name}" in unit status: {unit_status}')
        return concerns.concerns

    def get_membership_concerns(
        self, member: TeamMember, groups: list[TeamGroup]
    ) -> list[CheckConcern]:
        """Check the member's D4H groups against its team status."""
        concerns = ConcernList(self.name)
        team_name = self._settings.team_name
        titles = [g.title for g in member.groups]

        if member.team_status.trainee:
            return []

        if member.team_status.current:
            status_titles = [
                s.title
                for s in self._settings.status_groups
                if s.title != team_name and s.title in titles
            ]
            if len(status_titles) > 1:
                concerns.add(
                    f"Member belongs to multiple status groups: {', '.join(status_titles)}"
                )
        else:
            emails = {e.lower() for e in member.emails}
            team_groups = [
                title
                for title in titles
                if title.startswith(f"{team_name} ")
                and not any(
                    e.lower() in emails
                    for e in self._settings.add_group_members.get(title, [])
                )
            ]
            if team_groups:
                concerns.add(
                    f"Non-member belongs to group(s) {', '.join(team_groups)}"
                )
        return concerns.concerns
