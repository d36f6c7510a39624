"""Application configuration.

Two layers:
- Settings: secrets and runtime options from environment variables / .env
  (pydantic-settings pattern)
- SyncSettings: per-platform reconciliation policy loaded from a JSON file
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings

from team_roster.errors import SettingsError
from team_roster.model.schemas import ExpectationType, TeamStatus


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Team Roster"
    app_version: str = "0.1.0"
    app_env: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Sync settings and platform caches
    settings_path: Path = Field(default=Path("data/settings.json"))
    cache_dir: Path = Field(default=Path("data/platform-cache"))
    cache_ttl_minutes: int = Field(default=15, ge=0)
    refresh_interval_minutes: int = Field(default=15, ge=1)

    # D4H
    d4h_token: str | None = Field(default=None)
    d4h_v2_token: str | None = Field(default=None)

    # Google Workspace
    google_customer: str | None = Field(default=None)
    google_credentials: str | None = Field(
        default=None, description="Service account JSON (contents, not a path)"
    )
    google_admin_email: str | None = Field(default=None)

    # Slack
    slack_bot_token: str | None = Field(default=None)

    # CalTopo
    caltopo_auth_id: str | None = Field(default=None)
    caltopo_auth_secret: str | None = Field(default=None)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


class _SettingsModel(BaseModel):
    """Base for sync settings sections (camelCase JSON keys)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ExpectationSetting(_SettingsModel):
    """A qualification members of a group are expected to hold."""

    course: str = Field(description="Qualification title in the D4H catalog")
    type: ExpectationType = Field(default=ExpectationType.SIMPLE)


class D4HSettings(_SettingsModel):
    """Policy for the authoritative D4H membership platform."""

    team_id: int = Field(description="D4H team id")
    team_name: str = Field(description="Team designation, e.g. 'ESAR'")
    team_email_domain: str = Field(description="Organization email domain")
    exclude_groups: str | None = Field(
        default=None, description="Regex of D4H group titles to ignore"
    )
    status_groups: list[TeamStatus] = Field(
        default_factory=list,
        description="Status definitions applied in order, later entries win",
    )
    expectations: dict[str, list[ExpectationSetting]] = Field(
        default_factory=dict, description="Group title -> expected qualifications"
    )
    add_group_members: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Group title -> emails allowed in the group without membership",
    )


class GoogleSettings(_SettingsModel):
    """Policy for the Google Workspace directory."""

    org_units: list[str] = Field(default_factory=lambda: ["/Members", "/Trainees"])
    ignore_users: list[str] = Field(default_factory=list)
    alias_emails: dict[str, str] = Field(default_factory=dict)


class SlackChannelSetting(_SettingsModel):
    """Slack channel expected to mirror one or more team groups."""

    slack: str = Field(description="Normalized channel name")
    groups: list[str] = Field(default_factory=list)
    sync: bool = Field(default=False, description="Check membership drift")


class SlackSettings(_SettingsModel):
    """Policy for the Slack workspace."""

    channels: list[SlackChannelSetting] = Field(default_factory=list)
    alias_emails: dict[str, str] = Field(default_factory=dict)


class CalTopoTeamSetting(_SettingsModel):
    """A CalTopo team and who belongs in it."""

    id: str
    name: str
    allow_members: bool = False
    allow_external: bool = False
    expect_groups: list[str] = Field(default_factory=list)
    min_permission: int | None = None


class CalTopoSettings(_SettingsModel):
    """Policy for CalTopo teams."""

    teams: list[CalTopoTeamSetting] = Field(default_factory=list)
    extra_members: list[str] = Field(default_factory=list)
    alias_emails: dict[str, str] = Field(default_factory=dict)


class PlatformSettings(_SettingsModel):
    """Settings for each platform, keyed by platform name."""

    d4h: D4HSettings = Field(alias="D4H")
    google: GoogleSettings = Field(default_factory=GoogleSettings, alias="Google")
    slack: SlackSettings = Field(default_factory=SlackSettings, alias="Slack")
    caltopo: CalTopoSettings = Field(default_factory=CalTopoSettings, alias="CalTopo")


class SyncSettings(_SettingsModel):
    """Root of the sync settings file."""

    platforms: PlatformSettings
    alias_emails: dict[str, str] = Field(
        default_factory=dict, description="Old account email -> team email"
    )

    def caltopo_settings(self) -> CalTopoSettings:
        """CalTopo settings with the global alias table merged in."""
        caltopo = self.platforms.caltopo
        return caltopo.model_copy(
            update={"alias_emails": {**self.alias_emails, **caltopo.alias_emails}}
        )


def load_sync_settings(path: Path) -> SyncSettings:
    """Load and validate the sync settings file.

    Args:
        path: JSON settings file

    Returns:
        Parsed SyncSettings

    Raises:
        SettingsError: If the file can't be read or doesn't validate
    """
    try:
        return SyncSettings.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SettingsError(f"Can't read sync settings {path}: {e}") from e
    except ValidationError as e:
        raise SettingsError(f"Invalid sync settings {path}: {e}") from e
