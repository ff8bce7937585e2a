"""Core data models for malratings."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def convert_score_to_rating(score: Any) -> float:
    """Map a MAL score (1-10) to a community rating; anything else is 0.0."""
    if isinstance(score, bool) or not isinstance(score, int):
        return 0.0
    if 1 <= score <= 10:
        return float(score)
    return 0.0


class MatchStrategy(str, Enum):
    """How a catalog entry was matched to a local title."""

    INDEX = "index"  # Shoko -> AniDB -> MAL id
    EXACT = "exact"
    NORMALIZED = "normalized"
    FUZZY = "fuzzy"


# --- MyAnimeList -------------------------------------------------------------


class AlternativeTitles(BaseModel):
    """Alternative titles of a MyAnimeList anime."""

    model_config = ConfigDict(frozen=True)

    synonyms: tuple[str, ...] | None = ()
    en: str | None = None
    ja: str | None = None


class AnimeNode(BaseModel):
    """The anime record of a list entry."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str = ""
    alternative_titles: AlternativeTitles | None = None


class ListStatus(BaseModel):
    """The user's personal status for a list entry."""

    model_config = ConfigDict(frozen=True)

    status: str = ""
    score: int = 0
    num_episodes_watched: int = 0
    is_rewatching: bool = False
    updated_at: datetime | None = None


class CatalogEntry(BaseModel):
    """One entry of the user's MyAnimeList anime list."""

    model_config = ConfigDict(frozen=True)

    node: AnimeNode
    list_status: ListStatus | None = None

    @property
    def id(self) -> int:
        return self.node.id

    @property
    def title(self) -> str:
        return self.node.title

    @property
    def score(self) -> int:
        """Personal score, 0 when unrated or when there is no list status."""
        return self.list_status.score if self.list_status else 0

    @property
    def english_title(self) -> str | None:
        alt = self.node.alternative_titles
        return alt.en if alt and alt.en else None

    @property
    def synonyms(self) -> tuple[str, ...]:
        alt = self.node.alternative_titles
        return (alt.synonyms or ()) if alt else ()

    @property
    def titles(self) -> list[str]:
        """Canonical, English and synonym titles, in that order."""
        titles = [self.title]
        if self.english_title:
            titles.append(self.english_title)
        titles.extend(s for s in self.synonyms if s)
        return titles


class Paging(BaseModel):
    """Cursor links of a paginated MyAnimeList response."""

    next: str | None = None
    previous: str | None = None


class AnimeListPage(BaseModel):
    """One page of ``/users/@me/animelist``."""

    data: list[CatalogEntry] = Field(default_factory=list)
    paging: Paging | None = None


# --- Shoko -------------------------------------------------------------------


class ShokoModel(BaseModel):
    """Shoko v3 payloads use PascalCase keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ShokoSeriesIDs(ShokoModel):
    id: int = Field(default=0, alias="ID")
    parent_group: int | None = Field(default=None, alias="ParentGroup")
    top_level_group: int | None = Field(default=None, alias="TopLevelGroup")
    anidb: int | None = Field(default=None, alias="AniDB")
    tmdb: list[int] | None = Field(default=None, alias="TMDB")
    tvdb: list[int] | None = Field(default=None, alias="TvDB")


class ShokoRating(ShokoModel):
    rating: float | None = Field(default=None, alias="Rating")
    max_rating: int = Field(default=0, alias="MaxRating")
    source: str | None = Field(default=None, alias="Source")
    votes: int | None = Field(default=None, alias="Votes")


class ShokoAniDBInfo(ShokoModel):
    id: int = Field(default=0, alias="ID")
    type: str | None = Field(default=None, alias="Type")
    title: str | None = Field(default=None, alias="Title")
    description: str | None = Field(default=None, alias="Description")
    rating: ShokoRating | None = Field(default=None, alias="Rating")


class ShokoSeries(ShokoModel):
    """A series as returned by the Shoko server."""

    ids: ShokoSeriesIDs | None = Field(default=None, alias="IDs")
    name: str | None = Field(default=None, alias="Name")
    anidb: ShokoAniDBInfo | None = Field(default=None, alias="AniDB")

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.anidb and self.anidb.title:
            return self.anidb.title
        return "Unknown"


class ShokoFileIDs(ShokoModel):
    id: int = Field(default=0, alias="ID")
    anidb: int | None = Field(default=None, alias="AniDB")


class ShokoFile(ShokoModel):
    ids: ShokoFileIDs | None = Field(default=None, alias="IDs")
    path: str | None = Field(default=None, alias="Path")
    series_ids: list[int] = Field(default_factory=list, alias="SeriesIDs")


# --- Jikan -------------------------------------------------------------------


class JikanExternalLink(BaseModel):
    name: str | None = None
    url: str | None = None


class JikanAnime(BaseModel):
    mal_id: int
    title: str | None = None
    title_english: str | None = None
    title_japanese: str | None = None
    external: list[JikanExternalLink] = Field(default_factory=list)


class JikanPagination(BaseModel):
    last_visible_page: int = 0
    has_next_page: bool = False
    current_page: int = 0


class JikanSearchResponse(BaseModel):
    data: list[JikanAnime] = Field(default_factory=list)
    pagination: JikanPagination | None = None


class IdentifierMapping(BaseModel):
    """A resolved AniDB -> MyAnimeList id mapping."""

    anidb_id: int
    mal_id: int
    title: str | None = None
    last_updated: datetime
    is_confirmed: bool = False


# --- Matching ----------------------------------------------------------------


class LocalTitleContext(BaseModel):
    """What the host library knows about the item being rated."""

    name: str
    path: str | None = None


class MatchResult(BaseModel):
    """Outcome of matching one local title against the catalog."""

    match: CatalogEntry | None = None
    strategy: MatchStrategy | None = None
    is_unmatched: bool = False
    is_unrated: bool = False
    should_apply_zero_rating: bool = False

    @model_validator(mode="after")
    def check_flags(self) -> MatchResult:
        if self.match is not None and self.match.score > 0:
            if self.is_unmatched or self.is_unrated:
                raise ValueError("a scored match cannot be unmatched or unrated")
        if self.match is None and self.is_unrated:
            raise ValueError("an unrated result needs a matched entry")
        return self

    @property
    def rating(self) -> float | None:
        """Community rating to apply, or None to leave the item untouched."""
        if self.match is not None and self.match.score > 0:
            return convert_score_to_rating(self.match.score)
        if self.should_apply_zero_rating:
            return 0.0
        return None

    def summary(self) -> dict[str, Any]:
        return {
            "mal_id": self.match.id if self.match else None,
            "mal_title": self.match.title if self.match else None,
            "strategy": self.strategy.value if self.strategy else None,
            "unmatched": self.is_unmatched,
            "unrated": self.is_unrated,
            "rating": self.rating,
        }
