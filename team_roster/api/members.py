"""Member lookup endpoints.

Search the merged team model and report a member's training status
against the expectations of its groups.
"""

from datetime import UTC, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from team_roster.api.dependencies import build_model, get_d4h_platform, get_model_builder
from team_roster.model.agents.d4h_agent import OPERATIONAL_GROUP
from team_roster.model.expectations import check_expectations
from team_roster.model.model_builder import ModelBuilder
from team_roster.model.schemas import ExpectationResult, TeamMember
from team_roster.platforms.d4h import D4HPlatform

router = APIRouter(prefix="/members", tags=["members"])


class MemberSummary(BaseModel):
    """A member as shown by the lookup endpoints."""

    id: UUID
    name: str
    last_first: str
    team_email: str | None
    emails: list[str]
    status: str
    current: bool
    trainee: bool
    groups: list[str]
    platforms: list[str]

    @classmethod
    def from_member(cls, member: TeamMember) -> "MemberSummary":
        return cls(
            id=member.id,
            name=member.name.preferred_full,
            last_first=member.name.last_first,
            team_email=member.team_email,
            emails=member.emails,
            status=member.team_status.title,
            current=member.team_status.current,
            trainee=member.team_status.trainee,
            groups=[g.title for g in member.groups],
            platforms=sorted(member.platforms),
        )


class TrainingResponse(BaseModel):
    """Training status of one member."""

    member: MemberSummary
    results: list[ExpectationResult]


@router.get("/search", response_model=list[MemberSummary])
async def search_members(
    q: str = Query(..., description="Team email or full name"),
    builder: ModelBuilder = Depends(get_model_builder),
) -> list[MemberSummary]:
    """Find members by team email or full name."""
    model = build_model(builder)
    return [MemberSummary.from_member(m) for m in model.search_for_member(q)]


@router.get("/training", response_model=TrainingResponse)
async def member_training(
    q: str = Query(..., description="Team email or full name"),
    builder: ModelBuilder = Depends(get_model_builder),
    d4h: D4HPlatform = Depends(get_d4h_platform),
) -> TrainingResponse:
    """Training expectations of exactly one member.

    Raises:
        HTTPException: 404 when nobody matches, 409 when several do
    """
    model = build_model(builder)
    matches = model.search_for_member(q)
    if not matches:
        raise HTTPException(status_code=404, detail=f'I don\'t know "{q}".')
    if len(matches) > 1:
        raise HTTPException(
            status_code=409,
            detail=f'"{q}" matches {len(matches)} members. Use a team email.',
        )

    member = matches[0]
    operational = model.find_group(OPERATIONAL_GROUP.title)
    results = check_expectations(
        member,
        d4h.get_awards_for_member(member),
        datetime.now(UTC),
        required_groups=[operational] if operational else None,
    )
    return TrainingResponse(member=MemberSummary.from_member(member), results=results)
