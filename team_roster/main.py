"""FastAPI application entry point."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI

from team_roster.api.router import api_router
from team_roster.config import Settings, SyncSettings, load_sync_settings, settings
from team_roster.model.agents import CalTopoAgent, D4HAgent, GoogleAgent, SlackAgent
from team_roster.model.model_builder import ModelBuilder
from team_roster.platforms import (
    BasePlatform,
    CalTopoPlatform,
    D4HPlatform,
    GooglePlatform,
    SlackPlatform,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_platforms(
    app_settings: Settings, sync: SyncSettings
) -> dict[str, BasePlatform]:
    """Create every platform from secrets and sync settings.

    Returns:
        Platforms keyed by name, in build order
    """
    ttl = app_settings.cache_ttl_minutes * 60
    cache_dir = app_settings.cache_dir
    platforms: list[BasePlatform] = [
        D4HPlatform(
            team_id=sync.platforms.d4h.team_id,
            v3_token=app_settings.d4h_token,
            v2_token=app_settings.d4h_v2_token,
            cache_dir=cache_dir,
            ttl_seconds=ttl,
        ),
        GooglePlatform(
            customer=app_settings.google_customer,
            credentials=app_settings.google_credentials,
            admin_email=app_settings.google_admin_email,
            cache_dir=cache_dir,
            ttl_seconds=ttl,
        ),
        SlackPlatform(
            bot_token=app_settings.slack_bot_token,
            channels=sync.platforms.slack.channels,
            cache_dir=cache_dir,
            ttl_seconds=ttl,
        ),
        CalTopoPlatform(
            auth_id=app_settings.caltopo_auth_id,
            auth_secret=app_settings.caltopo_auth_secret,
            teams=sync.platforms.caltopo.teams,
            cache_dir=cache_dir,
            ttl_seconds=ttl,
        ),
    ]
    return {p.name: p for p in platforms}


def create_model_builder(
    sync: SyncSettings, platforms: dict[str, BasePlatform]
) -> ModelBuilder:
    """Wire the agents onto their platforms.

    D4H seeds the model; Google, Slack and CalTopo link onto it in that order.
    """
    builder = ModelBuilder(D4HAgent(sync.platforms.d4h, platforms["D4H"]))
    builder.add_agent(GoogleAgent(sync.platforms.google, platforms["Google"]))
    builder.add_agent(SlackAgent(sync.platforms.slack, platforms["Slack"]))
    builder.add_agent(CalTopoAgent(sync.caltopo_settings(), platforms["CalTopo"]))
    return builder


def _get_refresh_scheduler_context(platforms: dict[str, BasePlatform]):
    """Get refresh scheduler lifespan context manager.

    Returns a no-op context if scheduler is disabled via environment.
    """
    from team_roster.platforms.scheduler import refresh_scheduler_lifespan

    # Allow disabling scheduler for tests
    if os.environ.get("DISABLE_REFRESH_SCHEDULER"):

        @asynccontextmanager
        async def noop_context():
            yield

        return noop_context()

    return refresh_scheduler_lifespan(
        list(platforms.values()), settings.refresh_interval_minutes
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan management.

    Startup:
    - Load sync settings
    - Create platforms and load their saved caches
    - Wire the model builder
    - Start the refresh scheduler
    """
    logger.info("Starting Team Roster...")

    sync = load_sync_settings(settings.settings_path)
    platforms = create_platforms(settings, sync)
    for platform in platforms.values():
        await platform.load_saved_cache()
    logger.info(
        "Loaded saved caches: %s",
        [name for name, p in platforms.items() if p.is_ready],
    )

    app.state.sync_settings = sync
    app.state.platforms = platforms
    app.state.d4h = platforms["D4H"]
    app.state.slack = platforms["Slack"]
    app.state.model_builder = create_model_builder(sync, platforms)
    logger.info("ModelBuilder initialized")

    async with AsyncExitStack() as stack:
        await stack.enter_async_context(_get_refresh_scheduler_context(platforms))
        yield

    logger.info("Shutting down Team Roster...")


app = FastAPI(
    title=settings.app_name,
    description="Team roster reconciliation across D4H, Google, Slack and CalTopo",
    version=settings.app_version,
    lifespan=lifespan,
)

app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "team_roster.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
