"""MyAnimeList API client for the user's personal anime list."""

from typing import TYPE_CHECKING

from pydantic import ValidationError

from ..config.models import MALConfig
from ..core.exceptions import ApiError, ConfigurationError
from ..core.logging import get_logger
from ..core.models import AnimeListPage, CatalogEntry
from .base import ApiClient

if TYPE_CHECKING:
    from .health import ProviderHealthMonitor

logger = get_logger("mal_client")


class MALApiClient(ApiClient):
    """Fetches the rated anime list from the MyAnimeList v2 API."""

    BASE_URL = "https://api.myanimelist.net/v2"
    LIST_FIELDS = "list_status,alternative_titles"
    PAGE_LIMIT = 1000  # MAL maximum for animelist

    def __init__(self, health_monitor: "ProviderHealthMonitor | None" = None) -> None:
        super().__init__("MyAnimeList", health_monitor=health_monitor)

    @staticmethod
    def _auth_headers(access_token: str, client_id: str | None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {access_token}"}
        if client_id:
            headers["X-MAL-Client-ID"] = client_id
        return headers

    async def fetch_rated_catalog(self, credentials: MALConfig) -> list[CatalogEntry]:
        """Fetch every list entry that carries a personal score.

        Follows ``paging.next`` until the list is exhausted. A failing page
        ends pagination and the entries gathered so far are returned; if the
        first page already fails there is nothing to return and ``ApiError``
        is raised instead.
        """
        if not credentials.has_token:
            logger.error("MAL access token is not configured")
            raise ConfigurationError("MAL access token is required")

        headers = self._auth_headers(credentials.access_token, credentials.client_id)
        url: str | None = f"{self.BASE_URL}/users/@me/animelist"
        params: dict[str, str | int] | None = {
            "fields": self.LIST_FIELDS,
            "limit": self.PAGE_LIMIT,
        }

        entries: list[CatalogEntry] = []
        pages = 0
        while url:
            try:
                data = await self._get_json(url, params=params, headers=headers)
                page = AnimeListPage.model_validate(data)
            except (ApiError, ValidationError) as e:
                if pages == 0:
                    logger.error("Failed to fetch first MAL list page", error=str(e))
                    if isinstance(e, ApiError):
                        raise
                    raise ApiError("Malformed MAL list response") from e
                logger.warning(
                    "MAL list page failed, keeping partial list",
                    page=pages + 1,
                    fetched=len(entries),
                    error=str(e),
                )
                break

            pages += 1
            entries.extend(page.data)
            logger.debug("Fetched MAL list page", page=pages, count=len(page.data))

            # The next link already carries the query string
            url = page.paging.next if page.paging else None
            params = None

        rated = [entry for entry in entries if entry.score > 0]
        logger.info(
            "Fetched MAL anime list",
            total=len(entries),
            rated=len(rated),
            pages=pages,
        )
        return rated

    async def validate_credentials(
        self, access_token: str, client_id: str | None = None
    ) -> bool:
        """Check that the token is accepted by ``/users/@me``."""
        if not access_token:
            return False
        try:
            await self._get_json(
                f"{self.BASE_URL}/users/@me",
                headers=self._auth_headers(access_token, client_id),
            )
        except ApiError as e:
            logger.error("MAL token validation failed", error=e.message, status=e.status)
            return False
        return True
