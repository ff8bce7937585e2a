"""In-memory cache of the user's rated MyAnimeList catalog."""

import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from ..core.exceptions import ApiError
from ..core.logging import get_logger
from ..core.models import CatalogEntry

if TYPE_CHECKING:
    from ..config.models import Config
    from ..providers.mal import MALApiClient

logger = get_logger("catalog_cache")


class CatalogCache:
    """Holds the last fetched catalog and refreshes it when it gets old.

    The list and its timestamp are swapped together under one lock; the
    network fetch itself runs unlocked. A failed refresh serves the previous
    list, and ``None`` means no catalog has ever been fetched.
    """

    def __init__(
        self,
        client: "MALApiClient",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.client = client
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._entries: list[CatalogEntry] | None = None
        self._last_fetch: datetime | None = None

    async def get_entries(
        self, config: "Config", force_refresh: bool = False
    ) -> list[CatalogEntry] | None:
        """Return the rated catalog, refetching it when the cache expired."""
        max_age = timedelta(hours=config.refresh_interval_hours)
        with self._lock:
            if (
                not force_refresh
                and self._entries is not None
                and self._last_fetch is not None
                and self._clock() - self._last_fetch < max_age
            ):
                return self._entries

        try:
            entries = await self.client.fetch_rated_catalog(config.mal)
        except ApiError as e:
            with self._lock:
                previous = self._entries
            logger.error(
                "Failed to refresh MAL catalog",
                error=e.message,
                serving_stale=previous is not None,
            )
            return previous

        with self._lock:
            self._entries = entries
            self._last_fetch = self._clock()

        logger.info("Refreshed MAL catalog", entries=len(entries))
        return entries

    def invalidate(self) -> None:
        """Drop the cached catalog so the next call refetches it."""
        with self._lock:
            self._entries = None
            self._last_fetch = None

    @property
    def last_fetch_time(self) -> datetime | None:
        with self._lock:
            return self._last_fetch

    @property
    def entry_count(self) -> int:
        with self._lock:
            return len(self._entries) if self._entries is not None else 0
