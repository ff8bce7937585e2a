"""Shoko Server client for series lookups and AniDB ids."""

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from pydantic import ValidationError

from ..core.exceptions import ApiError
from ..core.logging import get_logger
from ..core.models import ShokoFile, ShokoSeries
from .base import ApiClient

if TYPE_CHECKING:
    from .health import ProviderHealthMonitor

logger = get_logger("shoko_client")


class ShokoApiClient(ApiClient):
    """Looks up series on a local Shoko server (API v3).

    Lookups never raise: any failure is logged and yields an empty result.
    """

    SEARCH_LIMIT = 10

    def __init__(
        self,
        server_url: str,
        api_key: str | None = None,
        health_monitor: "ProviderHealthMonitor | None" = None,
    ) -> None:
        super().__init__("Shoko", health_monitor=health_monitor)
        self.server_url = server_url.rstrip("/")
        self.api_key = api_key or None

    def _default_headers(self) -> dict[str, str]:
        headers = super()._default_headers()
        if self.api_key:
            headers["apikey"] = self.api_key
        return headers

    def _url(self, path: str) -> str:
        return f"{self.server_url}/{path.lstrip('/')}"

    async def test_connection(self) -> bool:
        """Check that the server answers its init status endpoint."""
        logger.info("Testing Shoko connection", server_url=self.server_url)
        try:
            await self._get_json(self._url("api/v3/Init/Status"))
        except ApiError as e:
            logger.warning("Shoko connection failed", error=e.message, status=e.status)
            return False
        logger.info("Shoko connection successful", server_url=self.server_url)
        return True

    async def find_series_by_name(self, name: str) -> list[ShokoSeries]:
        """Fuzzy search for series by name."""
        if not name:
            return []

        params = {"query": name, "fuzzy": "true", "limit": self.SEARCH_LIMIT}
        try:
            data = await self._get_json(self._url("api/v3/Series/Search"), params=params)
            series = self._parse_series_list(data)
        except (ApiError, ValidationError) as e:
            logger.warning("Shoko name search failed", name=name, error=str(e))
            return []

        logger.info("Shoko name search", name=name, results=len(series))
        for item in series[:3]:
            logger.debug(
                "Shoko candidate",
                series=item.display_name,
                anidb_id=item.ids.anidb if item.ids else None,
            )
        return series

    async def get_series_by_id(self, series_id: int) -> ShokoSeries | None:
        """Load one series by its Shoko id."""
        try:
            data = await self._get_json(self._url(f"api/v3/Series/{series_id}"))
            return ShokoSeries.model_validate(data)
        except (ApiError, ValidationError) as e:
            logger.warning("Failed to load Shoko series", series_id=series_id, error=str(e))
            return None

    async def find_series_by_path(self, path: str) -> list[ShokoSeries]:
        """Find the series a file on disk belongs to."""
        if not path:
            return []

        endpoint = self._url(f"api/v3/File/PathEndsWith/{quote(path, safe='')}")
        try:
            data = await self._get_json(endpoint)
            files = [ShokoFile.model_validate(item) for item in (data or [])]
        except (ApiError, ValidationError, TypeError) as e:
            logger.debug("File not found in Shoko", path=path, error=str(e))
            return []

        if not files:
            logger.debug("No Shoko files for path", path=path)
            return []

        series: list[ShokoSeries] = []
        for series_id in files[0].series_ids:
            item = await self.get_series_by_id(series_id)
            if item is not None:
                series.append(item)

        if series:
            logger.info("Shoko path lookup", path=path, results=len(series))
        return series

    @staticmethod
    def _parse_series_list(data: Any) -> list[ShokoSeries]:
        # Older servers wrap search results as {"Series": [...], "Total": n}
        if isinstance(data, dict):
            data = data.get("Series") or []
        if not isinstance(data, list):
            return []
        return [ShokoSeries.model_validate(item) for item in data]

    @staticmethod
    def extract_anidb_id(series: ShokoSeries) -> int | None:
        """AniDB id from ``IDs.AniDB``, falling back to the nested AniDB info."""
        candidates = (
            series.ids.anidb if series.ids else None,
            series.anidb.id if series.anidb else None,
        )
        for anidb_id in candidates:
            if anidb_id is not None and anidb_id > 0:
                return anidb_id

        logger.debug("No AniDB id in Shoko series", series=series.display_name)
        return None
