"""Base class for cached platform snapshots.

Each platform keeps the records it last fetched in a typed cache that is
saved as JSON under the cache directory. The model agents only ever read the
current snapshot; refreshing it is the platform's job.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Generic, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from team_roster.errors import PlatformNotReadyError

logger = structlog.get_logger()

DataT = TypeVar("DataT", bound=BaseModel)


class BasePlatform(ABC, Generic[DataT]):
    """Cached records of one platform.

    Subclasses set `name` and `data_model` and implement `fetch`.
    """

    name: str
    data_model: type[DataT]

    def __init__(self, cache_dir: Path, ttl_seconds: float = 15 * 60):
        """Initialize with an empty cache.

        Args:
            cache_dir: Directory holding `<name>.json` cache files
            ttl_seconds: Age after which `refresh` fetches again
        """
        self._cache_dir = cache_dir
        self._ttl = ttl_seconds
        self._data: DataT | None = None
        self._timestamp: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def cache_path(self) -> Path:
        return self._cache_dir / f"{self.name}.json"

    @property
    def is_ready(self) -> bool:
        """True once a snapshot was loaded or fetched."""
        return self._data is not None

    @property
    def timestamp(self) -> float:
        return self._timestamp

    @property
    def snapshot(self) -> DataT:
        """Current records.

        Raises:
            PlatformNotReadyError: If nothing was loaded yet
        """
        if self._data is None:
            raise PlatformNotReadyError(self.name)
        return self._data

    def set_snapshot(self, data: DataT, timestamp: float | None = None) -> None:
        """Replace the snapshot in one step."""
        self._data = data
        self._timestamp = time.time() if timestamp is None else timestamp

    @abstractmethod
    async def fetch(self) -> DataT:
        """Fetch fresh records from the platform's API."""
        ...

    async def load_saved_cache(self) -> bool:
        """Load the snapshot saved by a previous run.

        Returns:
            True if a cache file was found and loaded
        """
        path = self.cache_path
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            logger.info("No saved cache, refresh needed", platform=self.name)
            return False

        try:
            saved = _SavedCache.model_validate_json(text)
            data = self.data_model.model_validate(saved.data)
        except ValidationError as e:
            logger.warning(
                "Ignoring unreadable cache file",
                platform=self.name,
                path=str(path),
                error=str(e),
            )
            return False

        self.set_snapshot(data, saved.timestamp)
        logger.info("Loaded saved cache", platform=self.name, timestamp=saved.timestamp)
        return True

    async def save_cache(self) -> None:
        """Write the current snapshot to the cache directory."""
        saved = _SavedCache(
            timestamp=self._timestamp,
            data=self.snapshot.model_dump(mode="json", by_alias=True),
        )

        def _write() -> None:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            self.cache_path.write_text(
                saved.model_dump_json(indent=2), encoding="utf-8"
            )

        await asyncio.to_thread(_write)

    async def refresh(self, force: bool = False) -> None:
        """Bring the snapshot up to date.

        Loads the saved cache on first use and fetches from the API when the
        snapshot is older than the TTL (or when forced). Fetch errors
        propagate and leave the previous snapshot in place.

        Args:
            force: Fetch even if the snapshot is still fresh
        """
        async with self._lock:
            if self._data is None:
                await self.load_saved_cache()

            age = time.time() - self._timestamp
            if self._data is not None and age < self._ttl and not force:
                return

            logger.debug("Fetching platform data", platform=self.name)
            start = time.monotonic()
            data = await self.fetch()
            self.set_snapshot(data)
            await self.save_cache()
            logger.info(
                "Refreshed platform cache",
                platform=self.name,
                duration_ms=int((time.monotonic() - start) * 1000),
            )


class _SavedCache(BaseModel):
    """On-disk cache envelope."""

    timestamp: float
    data: dict
