"""Training expectation checks.

Compares a member's qualification awards with the expectations of the
groups it belongs to.
"""

from datetime import datetime, timedelta

from team_roster.model.schemas import (
    ExpectationResult,
    ExpectationStatus,
    TeamGroup,
    TeamMember,
    TrainingAward,
)

DEFAULT_WARN_DAYS = 180


def _best_award(awards: list[TrainingAward]) -> TrainingAward | None:
    """Award expiring last; awards that never expire win."""
    if not awards:
        return None
    return max(
        awards,
        key=lambda a: (a.expires_at is None, a.expires_at or datetime.min),
    )


def award_status(
    award: TrainingAward | None, now: datetime, warn_days: int = DEFAULT_WARN_DAYS
) -> ExpectationStatus:
    """Status of one award at `now`."""
    if award is None:
        return ExpectationStatus.MISSING
    if award.expires_at is None:
        return ExpectationStatus.MET
    if award.expires_at <= now:
        return ExpectationStatus.MISSING
    if award.expires_at - now < timedelta(days=warn_days):
        return ExpectationStatus.EXPIRING
    return ExpectationStatus.MET


def check_expectations(
    member: TeamMember,
    awards: list[TrainingAward],
    now: datetime,
    warn_days: int = DEFAULT_WARN_DAYS,
    required_groups: list[TeamGroup] | None = None,
) -> list[ExpectationResult]:
    """Check every expectation of the member's groups.

    Groups without expectations are skipped. Awards match expectations by
    qualification title, ignoring case.

    Args:
        member: Member whose groups define the expectations
        awards: The member's qualification awards
        now: Reference time (timezone-aware when awards are)
        warn_days: Window before expiry reported as expiring
        required_groups: Groups checked for everyone (the operational
            pseudo-group), ahead of the member's own groups

    Returns:
        One result per group expectation, groups in the member's order
    """
    by_title: dict[str, list[TrainingAward]] = {}
    for award in awards:
        by_title.setdefault(award.qualification_title.lower(), []).append(award)

    groups: list[TeamGroup] = []
    for group in [*(required_groups or []), *member.groups]:
        if all(g.title != group.title for g in groups):
            groups.append(group)

    results = []
    for group in groups:
        for expectation in group.expectations:
            title = expectation.qualification.title
            award = _best_award(by_title.get(title.lower(), []))
            results.append(
                ExpectationResult(
                    group=group.title,
                    qualification=title,
                    status=award_status(award, now, warn_days),
                    expires_at=award.expires_at if award else None,
                )
            )
    return results
