"""Title matching of local anime names against the MyAnimeList catalog."""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from rapidfuzz import fuzz, process

from .logging import get_logger
from .models import CatalogEntry, MatchStrategy

logger = get_logger("matching")


@dataclass(frozen=True)
class TitleMatch:
    """A catalog entry selected by one of the matching tiers."""

    entry: CatalogEntry
    strategy: MatchStrategy
    score: float  # 1.0 for exact/normalized, word overlap for fuzzy
    matched_title: str


@dataclass(frozen=True)
class Suggestion:
    """A near-miss catalog title, for diagnostics only."""

    entry: CatalogEntry
    title: str
    similarity: float  # 0-100


SEASON_PATTERN = re.compile(r"Season\s*(\d+)", re.IGNORECASE)
YEAR_PATTERN = re.compile(r"\((\d{4})\)")
PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")
WHITESPACE_PATTERN = re.compile(r"\s+")

STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by",
        "season", "series", "anime", "movie", "film", "ova", "special",
        "episode", "ep",
    }
)

FUZZY_THRESHOLD = 0.7


def normalize_title(title: str | None) -> str:
    """Normalize a title for tier-2 comparison.

    Bracketed years are dropped, punctuation becomes whitespace, whitespace
    runs collapse, and ``Season N`` becomes ``SN``. Case is preserved; callers
    compare case-insensitively. The result is a fixed point:
    ``normalize_title(normalize_title(t)) == normalize_title(t)``.
    """
    if not title:
        return ""

    norm = YEAR_PATTERN.sub("", title)
    norm = PUNCTUATION_PATTERN.sub(" ", norm)
    norm = WHITESPACE_PATTERN.sub(" ", norm).strip()
    # Seasons collapse after punctuation is gone so "Season.2" becomes "S2" too
    norm = SEASON_PATTERN.sub(r"S\1", norm)
    return norm


def significant_words(title: str | None) -> list[str]:
    """Lower-cased words longer than two characters that are not stop words."""
    normalized = normalize_title(title)
    if not normalized:
        return []
    words = normalized.lower().split(" ")
    return [w for w in words if len(w) > 2 and w not in STOP_WORDS]


def word_overlap(words_a: Sequence[str], words_b: Sequence[str]) -> float:
    """Shared words over the size of the larger word set, in [0, 1]."""
    set_a, set_b = set(words_a), set(words_b)
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / max(len(set_a), len(set_b))


def _exact_match(
    title: str, entries: Sequence[CatalogEntry]
) -> TitleMatch | None:
    wanted = title.casefold()
    for entry in entries:
        for candidate in entry.titles:
            if candidate.casefold() == wanted:
                return TitleMatch(entry, MatchStrategy.EXACT, 1.0, candidate)
    return None


def _normalized_match(
    title: str, entries: Sequence[CatalogEntry]
) -> TitleMatch | None:
    wanted = normalize_title(title).casefold()
    if not wanted:
        return None
    logger.debug("Normalized local title", original=title, normalized=wanted)

    for entry in entries:
        for candidate in entry.titles:
            if normalize_title(candidate).casefold() == wanted:
                return TitleMatch(entry, MatchStrategy.NORMALIZED, 1.0, candidate)
    return None


def _fuzzy_match(
    title: str, entries: Sequence[CatalogEntry]
) -> TitleMatch | None:
    local_words = significant_words(title)
    if not local_words:
        logger.debug("No significant words for fuzzy matching", title=title)
        return None

    best: TitleMatch | None = None
    for entry in entries:
        entry_best: tuple[float, str] | None = None
        for candidate in entry.titles:
            score = word_overlap(local_words, significant_words(candidate))
            if entry_best is None or score > entry_best[0]:
                entry_best = (score, candidate)

        if entry_best is None or entry_best[0] <= FUZZY_THRESHOLD:
            continue
        # Strictly greater: the first entry reaching the top score keeps it
        if best is None or entry_best[0] > best.score:
            best = TitleMatch(
                entry, MatchStrategy.FUZZY, entry_best[0], entry_best[1]
            )

    return best


TitleStrategy = Callable[[str, Sequence[CatalogEntry]], TitleMatch | None]


class TitleMatcher:
    """Three-tier title matcher: exact, normalized, then fuzzy word overlap.

    Tiers run in order and the first one that yields an entry wins. Exact and
    normalized tiers return the first entry in catalog order; the fuzzy tier
    returns the best-scoring entry above ``FUZZY_THRESHOLD``.
    """

    STRATEGIES: tuple[TitleStrategy, ...] = (
        _exact_match,
        _normalized_match,
        _fuzzy_match,
    )

    def match(
        self, title: str | None, entries: Sequence[CatalogEntry]
    ) -> TitleMatch | None:
        """Find the best catalog entry for ``title`` with tier details."""
        if not title or not title.strip():
            logger.warning("Cannot match an empty title")
            return None

        logger.debug(
            "Starting title match", title=title, entry_count=len(entries)
        )
        for strategy in self.STRATEGIES:
            result = strategy(title, entries)
            if result is not None:
                logger.info(
                    f"Found {result.strategy.value} match",
                    title=title,
                    mal_title=result.entry.title,
                    mal_id=result.entry.id,
                    matched_title=result.matched_title,
                    similarity=round(result.score, 3),
                    score=result.entry.score,
                )
                return result

        logger.warning("No title match found", title=title)
        return None

    def find_match(
        self, title: str | None, entries: Sequence[CatalogEntry]
    ) -> CatalogEntry | None:
        """Find the catalog entry for ``title``, or None."""
        result = self.match(title, entries)
        return result.entry if result else None

    def suggest(
        self, title: str, entries: Sequence[CatalogEntry], limit: int = 5
    ) -> list[Suggestion]:
        """Closest catalog titles by token-set similarity, best first.

        Diagnostic only: suggestions never decide a match.
        """
        if not title or not entries:
            return []

        choices: list[tuple[str, CatalogEntry]] = [
            (candidate, entry) for entry in entries for candidate in entry.titles
        ]
        ranked = process.extract(
            normalize_title(title).lower(),
            [normalize_title(c).lower() for c, _ in choices],
            scorer=fuzz.token_set_ratio,
            limit=limit * 3,
        )

        suggestions: list[Suggestion] = []
        seen: set[int] = set()
        for _, similarity, index in ranked:
            candidate, entry = choices[index]
            if entry.id in seen:
                continue
            seen.add(entry.id)
            suggestions.append(Suggestion(entry, candidate, similarity))
            if len(suggestions) >= limit:
                break
        return suggestions
