"""Helpers shared by the agents' concern checks."""

from team_roster.model.schemas import CheckConcern, ConcernLevel, TeamMember


class ConcernList:
    """Collects concerns raised by one platform."""

    def __init__(self, platform: str):
        self.platform = platform
        self.concerns: list[CheckConcern] = []

    def add(self, text: str, level: ConcernLevel = ConcernLevel.FIX) -> None:
        self.concerns.append(
            CheckConcern(concern=text, platform=self.platform, level=level)
        )


def email_mismatch_level(
    platform_email: str | None, team_email: str | None
) -> ConcernLevel | None:
    """Compare a platform's primary email with the member's team email.

    Returns:
        None when identical, WARN when they differ only by case,
        FIX otherwise
    """
    if platform_email == team_email:
        return None
    if platform_email and team_email and platform_email.lower() == team_email.lower():
        return ConcernLevel.WARN
    return ConcernLevel.FIX


def add_link_conflicts(concerns: ConcernList, member: TeamMember) -> None:
    """Report records of this platform that matched several members."""
    for conflict in member.link_conflicts:
        if conflict.platform != concerns.platform:
            continue
        concerns.add(
            f"{conflict.record} {conflict.reason}: "
            f"{'; '.join(conflict.candidates)}",
            ConcernLevel.ERROR,
        )
