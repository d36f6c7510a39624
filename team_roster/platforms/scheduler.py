"""APScheduler integration for periodic platform cache refresh.

Provides scheduler setup, the refresh job and FastAPI lifespan integration.
"""

import asyncio
from collections.abc import Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from team_roster.platforms.base import BasePlatform

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = structlog.get_logger()

REFRESH_JOB_ID = "platform_cache_refresh"

# Module-level scheduler instance
_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the scheduler instance.

    Returns:
        AsyncIOScheduler instance
    """
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=UTC)
    return _scheduler


def reset_scheduler() -> None:
    """Reset the scheduler instance (for testing)."""
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None


def _release_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Forget a scheduler that was already shut down."""
    global _scheduler
    if _scheduler is scheduler:
        _scheduler = None


async def refresh_platforms(
    platforms: Sequence[BasePlatform], force: bool = False
) -> dict[str, str]:
    """Refresh every platform concurrently.

    One platform failing does not stop the others; its previous snapshot
    stays in place.

    Args:
        platforms: Platforms to refresh
        force: Fetch even when a snapshot is still fresh

    Returns:
        Platform name -> "ok" or the error message
    """
    results = await asyncio.gather(
        *(p.refresh(force=force) for p in platforms), return_exceptions=True
    )
    outcome: dict[str, str] = {}
    for platform, result in zip(platforms, results, strict=True):
        if isinstance(result, Exception):
            logger.error("Platform refresh failed", platform=platform.name, error=str(result))
            outcome[platform.name] = str(result)
        else:
            outcome[platform.name] = "ok"
    return outcome


@asynccontextmanager
async def refresh_scheduler_lifespan(
    platforms: Sequence[BasePlatform], interval_minutes: int
) -> "AsyncGenerator[None, None]":
    """Lifespan context manager for the refresh scheduler.

    Starts the scheduler with a job refreshing every platform on the given
    interval. Shuts down cleanly on exit.

    Usage:
        async with refresh_scheduler_lifespan(platforms, 15):
            # Scheduler is running
            yield
        # Scheduler stopped
    """
    scheduler = get_scheduler()

    scheduler.add_job(
        refresh_platforms,
        "interval",
        minutes=interval_minutes,
        args=[list(platforms)],
        id=REFRESH_JOB_ID,
        next_run_time=datetime.now(UTC),
        replace_existing=True,
        max_instances=1,  # Prevent overlap if a refresh runs long
    )

    logger.info("Starting refresh scheduler", interval_minutes=interval_minutes)
    scheduler.start()

    try:
        yield
    finally:
        logger.info("Shutting down refresh scheduler")
        scheduler.shutdown(wait=False)
        _release_scheduler(scheduler)
