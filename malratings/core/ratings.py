"""Rating decisions for library items."""

import asyncio
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from .logging import get_logger
from .models import LocalTitleContext, MatchResult

if TYPE_CHECKING:
    from ..config.models import Config
    from ..io.cache import CatalogCache
    from .orchestrator import MatchOrchestrator

logger = get_logger("ratings")


class LibraryItemKind(str, Enum):
    SERIES = "series"
    SEASON = "season"
    EPISODE = "episode"


class LibraryItem(BaseModel):
    """A media library item as the host reports it."""

    name: str
    kind: LibraryItemKind = LibraryItemKind.SERIES
    series_name: str | None = None
    path: str | None = None
    community_rating: float | None = None

    @property
    def match_name(self) -> str:
        """Seasons and episodes are matched by the series they belong to."""
        if self.kind is not LibraryItemKind.SERIES and self.series_name:
            return self.series_name
        return self.name


class RatingUpdate(BaseModel):
    """What should happen to one item's community rating."""

    item: LibraryItem
    result: MatchResult | None = None
    new_rating: float | None = None
    should_apply: bool = False
    reason: str = ""

    def summary(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.item.name,
            "kind": self.item.kind.value,
            "current_rating": self.item.community_rating,
            "new_rating": self.new_rating,
            "apply": self.should_apply,
            "reason": self.reason,
        }
        if self.result is not None:
            data.update(self.result.summary())
        return data


class RatingService:
    """Decides community ratings from the user's MyAnimeList scores."""

    def __init__(self, cache: "CatalogCache", orchestrator: "MatchOrchestrator"):
        self.cache = cache
        self.orchestrator = orchestrator

    async def rate_item(self, item: LibraryItem, config: "Config") -> RatingUpdate:
        """Work out the rating update for a single item."""
        if not config.enabled_for_anime:
            return RatingUpdate(item=item, reason="disabled")
        if not config.mal.has_token:
            logger.warning("MAL access token not configured", item=item.name)
            return RatingUpdate(item=item, reason="no_token")

        entries = await self.cache.get_entries(config)
        if not entries:
            logger.warning("MAL catalog unavailable", item=item.name)
            return RatingUpdate(item=item, reason="catalog_unavailable")

        context = LocalTitleContext(name=item.match_name, path=item.path)
        result = await self.orchestrator.resolve(context, entries, config)

        new_rating = result.rating
        if new_rating is None:
            if result.is_unmatched:
                reason = "unmatched"
            elif result.match is None:
                reason = "no_title"
            else:
                reason = "unrated"
            return RatingUpdate(item=item, result=result, reason=reason)

        if (
            item.community_rating is not None
            and not config.overwrite_existing_ratings
            and new_rating > 0
        ):
            logger.debug(
                "Keeping existing rating",
                item=item.name,
                current=item.community_rating,
                new=new_rating,
            )
            return RatingUpdate(
                item=item,
                result=result,
                new_rating=new_rating,
                reason="existing_rating_kept",
            )

        logger.info(
            "Rating item",
            item=item.name,
            kind=item.kind.value,
            rating=new_rating,
            previous=item.community_rating,
        )
        return RatingUpdate(
            item=item,
            result=result,
            new_rating=new_rating,
            should_apply=True,
            reason="zero_policy" if new_rating == 0 else "matched",
        )

    async def rate_items(
        self, items: Sequence[LibraryItem], config: "Config"
    ) -> list[RatingUpdate]:
        """Rate several items, at most ``max_concurrent_operations`` at once."""
        semaphore = asyncio.Semaphore(config.max_concurrent_operations)

        async def rate_one(item: LibraryItem) -> RatingUpdate:
            async with semaphore:
                return await self.rate_item(item, config)

        updates = await asyncio.gather(*(rate_one(item) for item in items))
        applied = sum(1 for update in updates if update.should_apply)
        logger.info("Rated library items", total=len(updates), applied=applied)
        return list(updates)
