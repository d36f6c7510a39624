"""Exception hierarchy for team roster reconciliation."""


class TeamRosterError(Exception):
    """Base class for errors raised by this package."""


class SettingsError(TeamRosterError):
    """Sync settings file is missing or invalid."""


class PlatformNotReadyError(TeamRosterError):
    """A platform snapshot was requested before any data was loaded."""

    def __init__(self, platform: str):
        super().__init__(f"{platform} has no cached data. Refresh it before building.")
        self.platform = platform


class PlatformRequestError(TeamRosterError):
    """An upstream API returned an error or an unexpected payload."""

    def __init__(self, platform: str, message: str):
        super().__init__(f"{platform}: {message}")
        self.platform = platform
