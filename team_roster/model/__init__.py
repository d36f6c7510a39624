"""Canonical team model: schemas, roster, container and builder."""

from team_roster.model.schemas import (
    CheckConcern,
    ConcernLevel,
    MemberReport,
    TeamGroup,
    TeamMember,
)
from team_roster.model.team_model import MemberRoster, TeamModelContainer

__all__ = [
    "CheckConcern",
    "ConcernLevel",
    "MemberReport",
    "MemberRoster",
    "TeamGroup",
    "TeamModelContainer",
    "TeamMember",
]
