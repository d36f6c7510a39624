"""Tasks run on demand through the API."""

from team_roster.tasks.membership_report import (
    MembershipReportResult,
    membership_report_task,
)

__all__ = ["MembershipReportResult", "membership_report_task"]
