"""Slack workspace platform.

Caches workspace users, channels and the memberships of the channels named
in the Slack settings. Also posts report messages for the task runner.
"""

import asyncio
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, Field
from slack_sdk import WebClient

from team_roster.config import SlackChannelSetting
from team_roster.platforms.base import BasePlatform

logger = structlog.get_logger()

PLATFORM_NAME = "Slack"
SLACKBOT_ID = "USLACKBOT"
PAGE_LIMIT = 200


class SlackProfile(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str | None = None
    real_name: str | None = None
    display_name: str | None = None


class SlackUser(BaseModel):
    """Workspace user (users.list member)."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    real_name: str | None = None
    deleted: bool = False
    is_bot: bool = False
    profile: SlackProfile = Field(default_factory=SlackProfile)

    @property
    def display_name(self) -> str | None:
        return self.real_name or self.profile.real_name


class SlackUserAndChannels(SlackUser):
    """A user with the ids of the cached channels it belongs to."""

    channels: list[str] = Field(default_factory=list)


class SlackChannel(BaseModel):
    """Conversation (conversations.list channel)."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    name_normalized: str | None = None
    is_private: bool = False


class SlackMembership(BaseModel):
    channel_id: str
    user_id: str


class SlackData(BaseModel):
    """Cached Slack records."""

    users: list[SlackUser] = Field(default_factory=list)
    channels: list[SlackChannel] = Field(default_factory=list)
    memberships: list[SlackMembership] = Field(default_factory=list)


class SlackPlatform(BasePlatform[SlackData]):
    """Cached Slack users, channels and synced channel memberships."""

    name = PLATFORM_NAME
    data_model = SlackData

    def __init__(
        self,
        bot_token: str | None,
        channels: list[SlackChannelSetting],
        cache_dir: Path,
        ttl_seconds: float = 15 * 60,
    ):
        """Initialize with bot token.

        Args:
            bot_token: Slack bot token (xoxb-...)
            channels: Channel settings; memberships are cached for these
            cache_dir: Directory for the cache file
            ttl_seconds: Cache freshness window
        """
        super().__init__(cache_dir, ttl_seconds)
        self._token = bot_token
        self._channel_settings = channels
        self._client: WebClient | None = None

    def _get_client(self) -> WebClient:
        """Get or create Slack client."""
        if self._client is None:
            if not self._token:
                raise ValueError("No Slack token. Set SLACK_BOT_TOKEN env var.")
            self._client = WebClient(token=self._token)
        return self._client

    def get_all_users(self) -> list[SlackUser]:
        return self.snapshot.users

    def get_all_channels(self) -> list[SlackChannel]:
        return self.snapshot.channels

    def get_users_and_channels(self) -> list[SlackUserAndChannels]:
        """Every user with the channel ids it is a member of."""
        data = self.snapshot
        by_user: dict[str, list[str]] = {}
        for membership in data.memberships:
            by_user.setdefault(membership.user_id, []).append(membership.channel_id)
        return [
            SlackUserAndChannels(**user.model_dump(), channels=by_user.get(user.id, []))
            for user in data.users
        ]

    def get_channel(self, channel_id: str) -> SlackChannel | None:
        return next((c for c in self.snapshot.channels if c.id == channel_id), None)

    def get_channel_by_name(self, name: str) -> SlackChannel | None:
        """Find a channel by its normalized name."""
        return next(
            (c for c in self.snapshot.channels if c.name_normalized == name), None
        )

    def find_channel(self, key: str) -> str | None:
        """Resolve a message target to a conversation id.

        '#name' looks up a channel, '@Real Name' a user (case-insensitive),
        anything else is taken as an id.
        """
        if key.startswith("#"):
            channel = next(
                (c for c in self.snapshot.channels if c.name == key[1:]), None
            )
            return channel.id if channel else None
        if key.startswith("@"):
            wanted = key[1:].lower()
            user = next(
                (
                    u
                    for u in self.snapshot.users
                    if (u.real_name or "").lower() == wanted
                ),
                None,
            )
            return user.id if user else None
        return key

    async def fetch(self) -> SlackData:
        """Fetch users, channels and synced channel memberships."""
        client = self._get_client()

        def _fetch() -> SlackData:
            users = _paginate(client.users_list, "members")
            channels = _paginate(
                client.conversations_list,
                "channels",
                types="private_channel,public_channel",
            )

            by_name = {c.get("name_normalized") or c.get("name"): c for c in channels}
            memberships = []
            for setting in self._channel_settings:
                channel = by_name.get(setting.slack)
                if channel is None:
                    logger.warning("Configured channel not found", channel=setting.slack)
                    continue
                for user_id in _paginate(
                    client.conversations_members, "members", channel=channel["id"]
                ):
                    memberships.append({"channel_id": channel["id"], "user_id": user_id})

            return SlackData.model_validate(
                {"users": users, "channels": channels, "memberships": memberships}
            )

        return await asyncio.to_thread(_fetch)

    async def post_message(self, target: str, text: str) -> str | None:
        """Post markdown text to a channel or user.

        Args:
            target: '#channel', '@Real Name' or a conversation id

        Returns:
            Message timestamp, None if the target could not be resolved
        """
        channel = self.find_channel(target)
        if channel is None:
            logger.warning("Unknown Slack target", target=target)
            return None
        client = self._get_client()
        response = await asyncio.to_thread(
            client.chat_postMessage, channel=channel, text=text, mrkdwn=True
        )
        return response["ts"]

    async def upload_text(
        self, target: str, content: str, filename: str, title: str
    ) -> bool:
        """Upload text as a file to a channel or user.

        Returns:
            False if the target could not be resolved
        """
        channel = self.find_channel(target)
        if channel is None:
            logger.warning("Unknown Slack target", target=target)
            return False
        client = self._get_client()
        await asyncio.to_thread(
            client.files_upload_v2,
            channel=channel,
            content=content,
            filename=filename,
            title=title,
        )
        return True


def _paginate(method, key: str, **kwargs) -> list:
    """Collect every page of a cursor-paginated Web API method."""
    items: list = []
    cursor = None
    while True:
        response = method(limit=PAGE_LIMIT, cursor=cursor, **kwargs)
        items.extend(response.get(key, []))
        cursor = (response.get("response_metadata") or {}).get("next_cursor")
        if not cursor:
            return items
