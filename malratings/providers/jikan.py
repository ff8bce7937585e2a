"""AniDB to MyAnimeList id mapping through the Jikan API."""

import re
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ..core.exceptions import ApiError
from ..core.logging import get_logger
from ..core.models import IdentifierMapping, JikanAnime, JikanSearchResponse
from .base import ApiClient
from .ratelimit import RateLimiter

if TYPE_CHECKING:
    from .health import ProviderHealthMonitor

logger = get_logger("anidb_mapping")

ANIDB_URL_PATTERN = re.compile(r"anidb\.net/(?:anime/|perl-bin/animedb\.pl\?.*aid=)(\d+)")


class AniDBToMALMappingService(ApiClient):
    """Resolves AniDB ids to MAL ids, caching results for a day.

    Jikan allows three requests per second; requests are spaced
    ``RATE_LIMIT_DELAY`` apart by a ``RateLimiter`` that should be shared by
    every user of the Jikan API in the process.
    """

    BASE_URL = "https://api.jikan.moe/v4"
    RATE_LIMIT_DELAY = 0.5  # 2 requests per second
    CACHE_EXPIRY = timedelta(hours=24)

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        health_monitor: "ProviderHealthMonitor | None" = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        super().__init__("Jikan", health_monitor=health_monitor)
        self.rate_limiter = rate_limiter or RateLimiter(self.RATE_LIMIT_DELAY)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._mapping_cache: dict[int, IdentifierMapping] = {}
        self._lock = threading.Lock()

    def _cached(self, anidb_id: int) -> IdentifierMapping | None:
        with self._lock:
            mapping = self._mapping_cache.get(anidb_id)
            if mapping is None:
                return None
            if self._clock() - mapping.last_updated < self.CACHE_EXPIRY:
                return mapping
            logger.debug("Cached mapping expired", anidb_id=anidb_id)
            del self._mapping_cache[anidb_id]
            return None

    async def resolve_mal_id(self, anidb_id: int) -> int | None:
        """MAL id for ``anidb_id``, or None when no mapping is available."""
        cached = self._cached(anidb_id)
        if cached is not None:
            logger.debug(
                "Found cached AniDB mapping", anidb_id=anidb_id, mal_id=cached.mal_id
            )
            return cached.mal_id

        logger.info("Mapping AniDB id via Jikan", anidb_id=anidb_id)
        anime = await self._search_by_anidb_id(anidb_id)
        if anime is None:
            logger.warning("No MAL mapping found", anidb_id=anidb_id)
            return None

        mapping = IdentifierMapping(
            anidb_id=anidb_id,
            mal_id=anime.mal_id,
            title=anime.title,
            last_updated=self._clock(),
            is_confirmed=True,
        )
        with self._lock:
            self._mapping_cache[anidb_id] = mapping

        logger.info("Mapped AniDB id", anidb_id=anidb_id, mal_id=anime.mal_id)
        return anime.mal_id

    async def _search_by_anidb_id(self, anidb_id: int) -> JikanAnime | None:
        await self.rate_limiter.wait()

        params = {
            "q": "",
            "limit": 25,
            "page": 1,
            "external": "true",
            "anidb": anidb_id,
        }
        try:
            data = await self._get_json(f"{self.BASE_URL}/anime", params=params)
            response = JikanSearchResponse.model_validate(data)
        except ApiError as e:
            if e.is_rate_limited:
                logger.warning(
                    "Jikan rate limit exceeded (HTTP 429)", anidb_id=anidb_id
                )
            else:
                logger.debug("Jikan search failed", anidb_id=anidb_id, error=e.message)
            return None
        except ValidationError as e:
            logger.debug("Malformed Jikan response", anidb_id=anidb_id, error=str(e))
            return None

        return self._pick_result(response.data, anidb_id)

    @staticmethod
    def _pick_result(results: list[JikanAnime], anidb_id: int) -> JikanAnime | None:
        """Prefer a result linking to the AniDB page, else the first result."""
        if not results:
            return None
        for anime in results:
            for link in anime.external:
                match = ANIDB_URL_PATTERN.search(link.url or "")
                if match and int(match.group(1)) == anidb_id:
                    return anime
        return results[0]

    def clear_cache(self) -> None:
        """Clear the mapping cache."""
        with self._lock:
            self._mapping_cache.clear()
        logger.info("Cleared AniDB to MAL mapping cache")

    def get_cache_stats(self) -> tuple[int, int]:
        """Return (cached mappings, of which expired)."""
        now = self._clock()
        with self._lock:
            expired = sum(
                1
                for mapping in self._mapping_cache.values()
                if now - mapping.last_updated >= self.CACHE_EXPIRY
            )
            return len(self._mapping_cache), expired
