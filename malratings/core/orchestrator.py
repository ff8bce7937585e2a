"""Combines Shoko lookups, AniDB mapping and title matching."""

from collections.abc import Sequence
from typing import TYPE_CHECKING

from .logging import get_logger
from .matching import TitleMatcher
from .models import CatalogEntry, LocalTitleContext, MatchResult, MatchStrategy

if TYPE_CHECKING:
    from ..config.models import Config
    from ..providers.jikan import AniDBToMALMappingService
    from ..providers.shoko import ShokoApiClient

logger = get_logger("orchestrator")


class MatchOrchestrator:
    """Decides which catalog entry, if any, a local title refers to.

    With Shoko enabled as primary, the file path (or the name) is looked up
    on the Shoko server and the AniDB ids of the top candidates are mapped
    to MAL ids. Title matching runs when that finds nothing and the string
    fallback is on, or whenever the Shoko strategy is inactive.
    """

    MAX_INDEX_CANDIDATES = 3

    def __init__(
        self,
        matcher: TitleMatcher | None = None,
        shoko_client: "ShokoApiClient | None" = None,
        mapping_service: "AniDBToMALMappingService | None" = None,
    ) -> None:
        self.matcher = matcher or TitleMatcher()
        self.shoko_client = shoko_client
        self.mapping_service = mapping_service

    async def resolve(
        self,
        context: LocalTitleContext,
        entries: Sequence[CatalogEntry],
        config: "Config",
    ) -> MatchResult:
        """Match ``context`` against ``entries`` and apply the zero policies."""
        if not context.name or not context.name.strip():
            logger.warning("Cannot match an item without a name")
            return MatchResult()

        logger.info("Resolving local title", title=context.name, path=context.path)

        match: CatalogEntry | None = None
        strategy: MatchStrategy | None = None

        shoko, mapping = self.shoko_client, self.mapping_service
        index_active = False
        if config.index_strategy_active and shoko is not None and mapping is not None:
            index_active = True
            match = await self._match_via_index(context, entries, shoko, mapping)
            if match is not None:
                strategy = MatchStrategy.INDEX

        if match is None and (
            config.matching.fallback_to_string_matching or not index_active
        ):
            title_match = self.matcher.match(context.name, entries)
            if title_match is not None:
                match, strategy = title_match.entry, title_match.strategy

        if match is None:
            should_zero = config.matching.set_unmatched_rating_to_zero
            logger.warning(
                "No match found using any strategy",
                title=context.name,
                set_zero=should_zero,
            )
            suggestions = self.matcher.suggest(context.name, entries, limit=3)
            logger.debug(
                "Closest catalog titles",
                title=context.name,
                suggestions=[(s.title, round(s.similarity)) for s in suggestions],
            )
            return MatchResult(is_unmatched=True, should_apply_zero_rating=should_zero)

        if match.score == 0:
            should_zero = config.matching.set_unrated_rating_to_zero
            logger.info(
                "Matched an unrated entry",
                title=context.name,
                mal_title=match.title,
                set_zero=should_zero,
            )
            return MatchResult(
                match=match,
                strategy=strategy,
                is_unrated=True,
                should_apply_zero_rating=should_zero,
            )

        logger.info(
            "Matched local title",
            title=context.name,
            mal_title=match.title,
            mal_id=match.id,
            strategy=strategy.value if strategy else None,
            score=match.score,
        )
        return MatchResult(match=match, strategy=strategy)

    async def _match_via_index(
        self,
        context: LocalTitleContext,
        entries: Sequence[CatalogEntry],
        shoko: "ShokoApiClient",
        mapping: "AniDBToMALMappingService",
    ) -> CatalogEntry | None:
        series = []
        if context.path:
            series = await shoko.find_series_by_path(context.path)
        if not series:
            series = await shoko.find_series_by_name(context.name)
        if not series:
            logger.debug("No Shoko series found", title=context.name)
            return None

        by_id = {entry.id: entry for entry in reversed(entries)}
        for candidate in series[: self.MAX_INDEX_CANDIDATES]:
            anidb_id = shoko.extract_anidb_id(candidate)
            if anidb_id is None:
                continue

            mal_id = await mapping.resolve_mal_id(anidb_id)
            if mal_id is None:
                logger.debug("No MAL id for AniDB id", anidb_id=anidb_id)
                continue

            entry = by_id.get(mal_id)
            if entry is not None:
                logger.info(
                    "Matched via Shoko",
                    title=context.name,
                    anidb_id=anidb_id,
                    mal_id=mal_id,
                    mal_title=entry.title,
                )
                return entry
            logger.debug("MAL id not in the user's list", mal_id=mal_id)

        return None
