"""Pytest configuration and fixtures.

Builds an in-memory team across all four platforms:

- Alice Smith: current field member, present everywhere
- Bob Jones: current member without a team email
- Carol Lee: trainee
- Dan Former: former member who still has accounts
"""

from pathlib import Path

import pytest

from team_roster.config import SyncSettings
from team_roster.model.agents import CalTopoAgent, D4HAgent, GoogleAgent, SlackAgent
from team_roster.model.model_builder import ModelBuilder
from team_roster.platforms.caltopo import CalTopoData, CalTopoPlatform
from team_roster.platforms.d4h import D4HData, D4HPlatform
from team_roster.platforms.google import GoogleData, GooglePlatform
from team_roster.platforms.slack import SlackData, SlackPlatform

SYNC_SETTINGS = {
    "platforms": {
        "D4H": {
            "teamId": 1234,
            "teamName": "ESAR",
            "teamEmailDomain": "kcesar.org",
            "excludeGroups": "^Excluded",
            "statusGroups": [
                {"title": "ESAR", "current": True},
                {"title": "ESAR Support", "current": True, "mission": True},
                {"title": "ESAR Field", "current": True, "mission": True, "field": True},
                {"title": "ESAR Trainees", "trainee": True},
            ],
            "expectations": {
                "OPERATIONAL": [{"course": "First Aid"}],
                "ESAR Field": [{"course": "navigation"}, {"course": "Missing Course"}],
            },
            "addGroupMembers": {},
        },
        "Google": {"ignoreUsers": []},
        "Slack": {
            "channels": [
                {"slack": "field-team", "groups": ["ESAR Field"], "sync": True},
                {"slack": "general", "groups": ["ESAR"]},
            ],
        },
        "CalTopo": {
            "teams": [
                {
                    "id": "T1",
                    "name": "ESAR Members",
                    "expectGroups": ["ESAR"],
                    "minPermission": 10,
                },
            ],
        },
    },
    "aliasEmails": {"old@kcesar.org": "dformer@kcesar.org"},
}


def _custom_fields(**fields: str) -> list[dict]:
    labels = {
        "secondary": "Secondary Email",
        "unit_status": "Unit Status",
        "joined": "Joined Unit Date",
    }
    return [{"label": labels[k], "value": v} for k, v in fields.items()]


D4H_DATA = {
    "groups": [
        {"id": 10, "title": "ESAR"},
        {"id": 11, "title": "ESAR Field"},
        {"id": 12, "title": "ESAR Trainees"},
        {"id": 13, "title": "ESAR Support"},
        {"id": 20, "title": "Excluded Admin"},
    ],
    "qualifications": [
        {"id": 1, "title": "First Aid"},
        {"id": 2, "title": "Navigation"},
    ],
    "members": [
        {
            "id": 101,
            "name": "Smith, Alice",
            "email": "asmith@kcesar.org",
            "position": "Field Team",
            "status": {"type": "Operational", "value": "Operational"},
            "group_ids": [10, 11],
            "custom_fields": _custom_fields(
                secondary="alice@gmail.com; ",
                unit_status="ESAR Field",
                joined="ESAR 2019-05-01",
            ),
        },
        {
            "id": 102,
            "name": "Jones, Bob",
            "email": "bob@example.com",
            "position": "",
            "status": {"type": "Operational", "value": "Operational"},
            "group_ids": [10],
            "custom_fields": _custom_fields(
                unit_status="ESAR", joined="2020-01-01"
            ),
        },
        {
            "id": 103,
            "name": "Lee, Carol",
            "email": "clee@kcesar.org",
            "position": "",
            "status": {"type": "Non-Operational", "value": "Trainee"},
            "group_ids": [12],
            "custom_fields": [],
        },
        {
            "id": 104,
            "name": "Former, Dan",
            "email": "dformer@kcesar.org",
            "position": "ESAR Alumni",
            "status": {"type": "Retired", "value": "Retired"},
            "group_ids": [],
            "custom_fields": _custom_fields(unit_status=""),
        },
    ],
    "awards": [
        {
            "id": 1001,
            "startsAt": "2024-01-01T00:00:00Z",
            "endsAt": None,
            "qualification": {"id": 1, "title": "First Aid"},
            "member": {"id": 101},
        },
        {
            "id": 1002,
            "startsAt": "2024-01-01T00:00:00Z",
            "endsAt": "2026-12-01T00:00:00Z",
            "qualification": {"id": 2, "title": "Navigation"},
            "member": {"id": 101},
        },
    ],
}

GOOGLE_DATA = {
    "users": [
        {
            "primaryEmail": "asmith@kcesar.org",
            "name": {"givenName": "Alice", "familyName": "Smith", "fullName": "Alice Smith"},
            "emails": [
                {"address": "asmith@kcesar.org", "primary": True},
                {"address": "alice.smith@kcesar.org"},
            ],
            "orgUnitPath": "/Members",
        },
        {
            "primaryEmail": "dformer@kcesar.org",
            "name": {"givenName": "Dan", "familyName": "Former", "fullName": "Dan Former"},
            "emails": [{"address": "dformer@kcesar.org", "primary": True}],
            "orgUnitPath": "/Members",
        },
        {
            "primaryEmail": "service@kcesar.org",
            "name": {"fullName": "Service Account"},
            "orgUnitPath": "/Services",
        },
    ],
}

SLACK_DATA = {
    "users": [
        {
            "id": "U1",
            "name": "alice",
            "real_name": "Alice Smith",
            "profile": {"email": "ASmith@kcesar.org", "real_name": "Alice Smith"},
        },
        {
            "id": "U2",
            "name": "bob",
            "real_name": "Bob Jones",
            "profile": {"email": "bob@example.com", "real_name": "Bob Jones"},
        },
        {"id": "B1", "name": "reportbot", "is_bot": True, "profile": {}},
        {"id": "USLACKBOT", "name": "slackbot", "profile": {}},
    ],
    "channels": [
        {"id": "C1", "name": "field-team", "name_normalized": "field-team", "is_private": True},
        {"id": "C2", "name": "general", "name_normalized": "general", "is_private": False},
        {"id": "C3", "name": "secret", "name_normalized": "secret", "is_private": True},
    ],
    "memberships": [
        {"channel_id": "C1", "user_id": "U1"},
        {"channel_id": "C2", "user_id": "U1"},
        {"channel_id": "C3", "user_id": "U2"},
    ],
}

CALTOPO_DATA = {
    "users": [
        {"id": "CT1", "fullName": "Alice Smith", "email": "alice@gmail.com", "groups": {"T1": 10}},
        {"id": "CT2", "fullName": "Bob Jones", "email": "bjones@old.org", "groups": {"T1": 5}},
        {"id": "CT3", "fullName": "Old Account", "email": "old@kcesar.org", "groups": {"T1": 10}},
    ],
}


@pytest.fixture
def sync_settings() -> SyncSettings:
    """Sync settings as parsed from a settings file."""
    return SyncSettings.model_validate(SYNC_SETTINGS)


@pytest.fixture
def d4h_platform(tmp_path: Path) -> D4HPlatform:
    """D4H platform with an in-memory snapshot."""
    platform = D4HPlatform(team_id=1234, v3_token=None, v2_token=None, cache_dir=tmp_path)
    platform.set_snapshot(D4HData.model_validate(D4H_DATA))
    return platform


@pytest.fixture
def google_platform(tmp_path: Path) -> GooglePlatform:
    """Google platform with an in-memory snapshot."""
    platform = GooglePlatform(
        customer=None,
        credentials=None,
        admin_email=None,
        cache_dir=tmp_path,
    )
    platform.set_snapshot(GoogleData.model_validate(GOOGLE_DATA))
    return platform


@pytest.fixture
def slack_platform(tmp_path: Path, sync_settings: SyncSettings) -> SlackPlatform:
    """Slack platform with an in-memory snapshot."""
    platform = SlackPlatform(
        bot_token="xoxb-test",
        channels=sync_settings.platforms.slack.channels,
        cache_dir=tmp_path,
    )
    platform.set_snapshot(SlackData.model_validate(SLACK_DATA))
    return platform


@pytest.fixture
def caltopo_platform(tmp_path: Path, sync_settings: SyncSettings) -> CalTopoPlatform:
    """CalTopo platform with an in-memory snapshot."""
    platform = CalTopoPlatform(
        auth_id=None,
        auth_secret=None,
        teams=sync_settings.platforms.caltopo.teams,
        cache_dir=tmp_path,
    )
    platform.set_snapshot(CalTopoData.model_validate(CALTOPO_DATA))
    return platform


@pytest.fixture
def d4h_agent(sync_settings, d4h_platform) -> D4HAgent:
    return D4HAgent(sync_settings.platforms.d4h, d4h_platform)


@pytest.fixture
def google_agent(sync_settings, google_platform) -> GoogleAgent:
    return GoogleAgent(sync_settings.platforms.google, google_platform)


@pytest.fixture
def slack_agent(sync_settings, slack_platform) -> SlackAgent:
    return SlackAgent(sync_settings.platforms.slack, slack_platform)


@pytest.fixture
def caltopo_agent(sync_settings, caltopo_platform) -> CalTopoAgent:
    return CalTopoAgent(sync_settings.caltopo_settings(), caltopo_platform)


@pytest.fixture
def model_builder(d4h_agent, google_agent, slack_agent, caltopo_agent) -> ModelBuilder:
    """Builder wired the way the service wires it."""
    builder = ModelBuilder(d4h_agent)
    builder.add_agent(google_agent)
    builder.add_agent(slack_agent)
    builder.add_agent(caltopo_agent)
    return builder
