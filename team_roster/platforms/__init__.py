"""Source platforms and their cached snapshots.

- D4HPlatform: authoritative membership platform
- GooglePlatform: Workspace directory users
- SlackPlatform: workspace users and channel memberships
- CalTopoPlatform: CalTopo team members
- BasePlatform: snapshot, JSON cache file and TTL refresh shared by all
"""

from team_roster.platforms.base import BasePlatform
from team_roster.platforms.caltopo import CalTopoPlatform
from team_roster.platforms.d4h import D4HPlatform
from team_roster.platforms.google import GooglePlatform
from team_roster.platforms.slack import SlackPlatform

__all__ = [
    "BasePlatform",
    "CalTopoPlatform",
    "D4HPlatform",
    "GooglePlatform",
    "SlackPlatform",
]
