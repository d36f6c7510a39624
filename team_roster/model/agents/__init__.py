"""Model agents: one per platform.

- D4HAgent: seeds groups and members (primary)
- GoogleAgent, SlackAgent, CalTopoAgent: link their records onto the roster
"""

from team_roster.model.agents.caltopo_agent import CalTopoAgent
from team_roster.model.agents.d4h_agent import D4HAgent
from team_roster.model.agents.google_agent import GoogleAgent
from team_roster.model.agents.slack_agent import SlackAgent

__all__ = [
    "CalTopoAgent",
    "D4HAgent",
    "GoogleAgent",
    "SlackAgent",
]
