"""Task endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from team_roster.api.dependencies import get_model_builder, get_slack_platform
from team_roster.errors import PlatformNotReadyError
from team_roster.model.model_builder import ModelBuilder
from team_roster.platforms.slack import SlackPlatform
from team_roster.tasks.membership_report import (
    MembershipReportResult,
    membership_report_task,
)

router = APIRouter(prefix="/task", tags=["tasks"])


@router.get("/membership-report", response_model=MembershipReportResult)
async def membership_report(
    to: str = Query(default="", description="';'-separated Slack targets"),
    noslack: bool = Query(default=False, description="Only return the markdown"),
    builder: ModelBuilder = Depends(get_model_builder),
    slack: SlackPlatform | None = Depends(get_slack_platform),
) -> MembershipReportResult:
    """Run the membership report and post it to each target."""
    targets = [t.strip() for t in to.split(";") if t.strip()]
    try:
        return await membership_report_task(
            builder, slack, targets, post=not noslack
        )
    except PlatformNotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
