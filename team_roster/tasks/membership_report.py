"""Membership report task.

Builds the user and group membership reports, renders them as markdown and
posts the result to Slack.
"""

import structlog
from pydantic import BaseModel, Field

from team_roster.model.model_builder import ModelBuilder
from team_roster.model.schemas import CheckConcern, ConcernLevel, MemberReport
from team_roster.platforms.slack import SlackPlatform

logger = structlog.get_logger()

# Longer messages are uploaded as a file instead of posted
MAX_MESSAGE_LENGTH = 5000

REPORT_TITLE = "Membership report"
REPORT_INTRO = "Took a look at the team's platforms. Found some things to check out:"

_LEVEL_PREFIX = {
    ConcernLevel.FIX: ":exclamation: ",
    ConcernLevel.ERROR: ":x: ",
    ConcernLevel.WARN: "",
}


class MembershipReportResult(BaseModel):
    """Outcome of one report run."""

    user_concerns: int = Field(description="Members in the user report")
    membership_concerns: int = Field(description="Members in the membership report")
    markdown: str | None = Field(default=None, description="Rendered report, None if clean")
    posted_to: list[str] = Field(default_factory=list)


def concern_to_markdown(concern: CheckConcern) -> str:
    platform = f"{concern.platform} " if concern.platform else ""
    return f"- {_LEVEL_PREFIX[concern.level]}{platform}{concern.concern}"


def report_to_markdown(report: MemberReport) -> str:
    member = report.member
    lines = [f"**{member.name.preferred_full}** {member.team_email or 'N/A'}"]
    lines.extend(concern_to_markdown(c) for c in report.concerns)
    return "\n".join(lines)


def render_membership_report(
    user_report: list[MemberReport], membership_report: list[MemberReport]
) -> str | None:
    """Render both reports as one markdown document.

    Returns:
        Markdown text, None when neither report has anything to say
    """
    if not user_report and not membership_report:
        return None

    sections = [REPORT_INTRO]
    if user_report:
        sections.append("*Members*")
        sections.extend(report_to_markdown(r) for r in user_report)
    if membership_report:
        sections.append("*Group memberships*")
        sections.extend(report_to_markdown(r) for r in membership_report)
    return "\n\n".join(sections)


async def membership_report_task(
    builder: ModelBuilder,
    slack: SlackPlatform | None,
    targets: list[str],
    post: bool = True,
) -> MembershipReportResult:
    """Build the reports and deliver them to each Slack target.

    Args:
        builder: Model builder with every agent registered
        slack: Platform used to post, required when posting
        targets: '#channel', '@Real Name' or conversation ids
        post: When False only the markdown is returned

    Returns:
        MembershipReportResult with the markdown and where it went
    """
    model = builder.build_model()
    user_report = builder.get_model_user_report(model)
    membership_report = builder.get_model_group_membership_report(model)
    markdown = render_membership_report(user_report, membership_report)

    result = MembershipReportResult(
        user_concerns=len(user_report),
        membership_concerns=len(membership_report),
        markdown=markdown,
    )
    logger.info(
        "Built membership report",
        user_concerns=result.user_concerns,
        membership_concerns=result.membership_concerns,
    )

    if markdown is None or not post or slack is None:
        return result

    for target in targets:
        if len(markdown) > MAX_MESSAGE_LENGTH:
            delivered = await slack.upload_text(
                target, markdown, filename="membership-report.md", title=REPORT_TITLE
            )
        else:
            delivered = await slack.post_message(target, markdown) is not None
        if delivered:
            result.posted_to.append(target)
    return result
