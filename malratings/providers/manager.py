"""Wires the remote clients, caches and matching together."""

from typing import Any

from ..config.manager import ConfigManager
from ..core.logging import get_logger
from ..core.matching import TitleMatcher
from ..core.orchestrator import MatchOrchestrator
from ..core.ratings import RatingService
from ..io.cache import CatalogCache
from .base import ApiClient
from .health import ProviderHealthMonitor
from .jikan import AniDBToMALMappingService
from .mal import MALApiClient
from .ratelimit import RateLimiter
from .shoko import ShokoApiClient

logger = get_logger("provider_manager")


class ProviderManager:
    """Owns every long-lived client and cache for one configuration."""

    def __init__(self, config_manager: ConfigManager):
        self.config_manager = config_manager
        self.health_monitor = ProviderHealthMonitor()
        self.rate_limiter = RateLimiter(AniDBToMALMappingService.RATE_LIMIT_DELAY)

        self.mal_client = MALApiClient(health_monitor=self.health_monitor)
        self.mapping_service = AniDBToMALMappingService(
            rate_limiter=self.rate_limiter, health_monitor=self.health_monitor
        )
        self.shoko_client: ShokoApiClient | None = None
        self._initialize_shoko()

        self.catalog_cache = CatalogCache(self.mal_client)
        self.matcher = TitleMatcher()
        self.orchestrator = MatchOrchestrator(
            self.matcher,
            shoko_client=self.shoko_client,
            mapping_service=self.mapping_service,
        )
        self.rating_service = RatingService(self.catalog_cache, self.orchestrator)

    def _initialize_shoko(self) -> None:
        shoko_config = self.config_manager.load_config().shoko
        if not shoko_config.enabled:
            return
        self.shoko_client = ShokoApiClient(
            shoko_config.server_url,
            api_key=shoko_config.api_key,
            health_monitor=self.health_monitor,
        )
        logger.info(
            "Initialized Shoko client",
            server_url=shoko_config.server_url,
            primary=shoko_config.use_as_primary,
        )

    @property
    def clients(self) -> list[ApiClient]:
        clients: list[ApiClient] = [self.mal_client, self.mapping_service]
        if self.shoko_client is not None:
            clients.append(self.shoko_client)
        return clients

    async def get_statistics(self) -> dict[str, Any]:
        """Integration status, cache sizes and per-API health."""
        config = self.config_manager.load_config()

        shoko_connected = False
        if self.shoko_client is not None:
            shoko_connected = await self.shoko_client.test_connection()

        cached, expired = self.mapping_service.get_cache_stats()
        last_fetch = self.catalog_cache.last_fetch_time
        return {
            "shoko_enabled": config.shoko.enabled,
            "shoko_connected": shoko_connected,
            "shoko_primary": config.index_strategy_active,
            "fallback_to_string_matching": config.matching.fallback_to_string_matching,
            "cached_mappings": cached,
            "expired_mappings": expired,
            "catalog_entries": self.catalog_cache.entry_count,
            "catalog_last_fetch": last_fetch.isoformat() if last_fetch else None,
            "health": self.health_monitor.summary(),
        }

    async def close_all(self) -> None:
        """Close all client connections."""
        for client in self.clients:
            await client.close()
