"""Engine orchestration: fetch, score, geo filter and sort, personalize, compose."""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from thirdplace import config, popularity
from thirdplace.candidates import CandidateSource, LocationProvider
from thirdplace.errors import CandidateRetrievalError, InvalidInputError
from thirdplace.feed import DiscoveryFeedComposer
from thirdplace.geofilter import annotate_distances, filter_within_radius, sort_by_distance
from thirdplace.models import (
    ContentItem,
    ContentKind,
    Coordinates,
    DiscoveryFeed,
    FeedSection,
    PartialDegradation,
    PersonalizedResult,
    QueryFilters,
    ScoredItem,
    Timeframe,
    UserContext,
    UserPreferences,
    Venue,
    VenueRelatedResult,
)
from thirdplace.personalization import (
    personalization_factors,
    personalize,
    recommendation_quality,
)
from thirdplace.trend import TrendScorer, VelocityEstimator

logger = logging.getLogger(__name__)

# Candidate over-fetch so geo filtering and re-ranking still fill the limit.
_POPULAR_OVERFETCH: dict[str, int] = {"venue": 3, "article": 2}
_TRENDING_OVERFETCH = 2

# Similarity: same category is worth 60, tag overlap (Jaccard) up to 40.
_SIMILAR_CATEGORY = 60.0
_SIMILAR_TAGS = 40.0


# ── Option validation ──────────────────────────────────────────────────────
class _Options(BaseModel):
    model_config = ConfigDict(extra="forbid")


class _PopularOptions(_Options):
    kind: ContentKind
    limit: int = Field(default=20, ge=0)
    timeframe: Timeframe = Timeframe.MONTH
    location: Coordinates | None = None
    radius: float | None = Field(default=None, ge=0)
    category: str | None = None


class _TrendingOptions(_Options):
    kind: ContentKind
    limit: int = Field(default=15, ge=0)
    timeframe: Timeframe = Timeframe.WEEK
    location: Coordinates | None = None
    radius: float | None = Field(default=None, ge=0)
    category: str | None = None


class _PersonalizedOptions(_Options):
    preferences: UserPreferences
    limit: int = Field(default=20, ge=0)
    include_venues: bool = True
    include_articles: bool = True
    location: Coordinates | None = None


class _VenueRelatedOptions(_Options):
    venue_id: str = Field(min_length=1)
    limit: int = Field(default=10, ge=0)
    include_nearby: bool = True
    include_similar: bool = True
    timeframe: Timeframe = Timeframe.MONTH


class _FeedOptions(_Options):
    context: UserContext
    limit: int = Field(default=config.FEED_LIMIT, ge=0)
    location: Coordinates | None = None
    all_or_nothing: bool = False


OptionsT = TypeVar("OptionsT", bound=_Options)


def _validate(model: type[OptionsT], **kwargs: Any) -> OptionsT:
    try:
        return model(**kwargs)
    except ValidationError as exc:
        raise InvalidInputError(str(exc)) from exc


def _half(limit: int) -> int:
    return math.ceil(limit / 2)


def _similarity(anchor: Venue, other: ContentItem) -> int:
    score = 0.0
    if anchor.category is not None and anchor.category == other.category:
        score += _SIMILAR_CATEGORY
    union = anchor.tags | other.tags
    if union:
        score += _SIMILAR_TAGS * len(anchor.tags & other.tags) / len(union)
    return popularity.round_score(score)


class DiscoveryEngine:
    """Stateless entry point for popular, trending, personalized, venue-related
    and discovery-feed results.

    ``clock`` and ``rng`` are injectable so results are reproducible in tests;
    the candidate source and location provider are constructed by the caller.
    """

    def __init__(
        self,
        candidates: CandidateSource,
        *,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
        location_provider: LocationProvider | None = None,
        velocity_estimator: VelocityEstimator | None = None,
        unit: str = config.DISTANCE_UNIT,
        max_workers: int = config.FANOUT_WORKERS,
    ) -> None:
        self._candidates = candidates
        self._clock = clock or (lambda: datetime.now(UTC))
        self._rng = rng or random.Random()
        self._location_provider = location_provider
        self._trend = TrendScorer(velocity_estimator)
        self._unit = unit
        self._max_workers = max_workers

    # ── public ──────────────────────────────────────────────────────────
    def get_popular(
        self,
        kind: ContentKind | str,
        *,
        limit: int = 20,
        timeframe: Timeframe | str = Timeframe.MONTH,
        location: Coordinates | dict[str, float] | None = None,
        radius: float | None = None,
        category: str | None = None,
    ) -> list[ScoredItem]:
        """Most popular items of *kind*, optionally restricted to a radius."""
        opts = _validate(
            _PopularOptions,
            kind=kind,
            limit=limit,
            timeframe=timeframe,
            location=location,
            radius=radius,
            category=category,
        )
        return self._popular(opts, self._clock())

    def get_trending(
        self,
        kind: ContentKind | str,
        *,
        limit: int = 15,
        timeframe: Timeframe | str = Timeframe.WEEK,
        location: Coordinates | dict[str, float] | None = None,
        radius: float | None = None,
        category: str | None = None,
    ) -> list[ScoredItem]:
        """Recently appearing, fast-moving items of *kind*."""
        opts = _validate(
            _TrendingOptions,
            kind=kind,
            limit=limit,
            timeframe=timeframe,
            location=location,
            radius=radius,
            category=category,
        )
        return self._trending(opts, self._clock())

    def get_personalized(
        self,
        preferences: UserPreferences | dict[str, Any],
        *,
        limit: int = 20,
        include_venues: bool = True,
        include_articles: bool = True,
        location: Coordinates | dict[str, float] | None = None,
    ) -> PersonalizedResult:
        """Popular venues and articles re-ranked by the user's preferences.

        *limit* is split evenly between venues and articles.
        """
        opts = _validate(
            _PersonalizedOptions,
            preferences=preferences,
            limit=limit,
            include_venues=include_venues,
            include_articles=include_articles,
            location=location,
        )
        prefs = opts.preferences
        now = self._clock()
        per_kind = _half(opts.limit)
        where = opts.location or prefs.location or self._current_location()

        result = PersonalizedResult(personalization_factors=personalization_factors(prefs))
        if opts.include_venues:
            base = self._popular(
                _PopularOptions(kind=ContentKind.VENUE, limit=per_kind * 2, location=where), now
            )
            result.venues = personalize(base, prefs)[:per_kind]
        if opts.include_articles:
            base = self._popular(
                _PopularOptions(kind=ContentKind.ARTICLE, limit=per_kind * 2), now
            )
            result.articles = personalize(base, prefs)[:per_kind]

        result.total_score = recommendation_quality(result.venues, result.articles)
        logger.info(
            "Personalized: %d venues, %d articles (factors=%s)",
            len(result.venues),
            len(result.articles),
            ",".join(result.personalization_factors) or "none",
        )
        return result

    def get_venue_related(
        self,
        venue_id: str,
        *,
        limit: int = 10,
        include_nearby: bool = True,
        include_similar: bool = True,
        timeframe: Timeframe | str = Timeframe.MONTH,
    ) -> VenueRelatedResult:
        """Similar venues, nearby venues and articles linking to *venue_id*.

        An unknown venue yields an empty result rather than an error.
        """
        opts = _validate(
            _VenueRelatedOptions,
            venue_id=venue_id,
            limit=limit,
            include_nearby=include_nearby,
            include_similar=include_similar,
            timeframe=timeframe,
        )
        now = self._clock()
        found = self._fetch(
            ContentKind.VENUE, QueryFilters(item_ids=frozenset({opts.venue_id})), 1
        )
        anchor = next((i for i in found if isinstance(i, Venue) and i.id == opts.venue_id), None)
        if anchor is None:
            logger.warning("Venue %s not found; no related content", opts.venue_id)
            return VenueRelatedResult()

        result = VenueRelatedResult(venue=anchor)
        half = _half(opts.limit)
        if opts.include_similar and half:
            result.similar_venues = self._similar_venues(anchor, half, opts.timeframe, now)
        if opts.include_nearby and half:
            result.nearby_venues = self._nearby_venues(anchor, half, opts.timeframe, now)
        if opts.limit:
            articles = self._fetch(
                ContentKind.ARTICLE,
                QueryFilters(linked_venue_id=anchor.id),
                opts.limit * 2,
            )
            result.related_articles = [
                s.model_copy(update={"recommendation_type": "venue-related"})
                for s in popularity.rank(articles, opts.timeframe, now)[: opts.limit]
            ]

        logger.info(
            "Venue %s related: %d similar, %d nearby, %d articles",
            anchor.id,
            len(result.similar_venues),
            len(result.nearby_venues),
            len(result.related_articles),
        )
        return result

    def get_discovery_feed(
        self,
        context: UserContext | dict[str, Any] | None = None,
        *,
        limit: int = config.FEED_LIMIT,
        location: Coordinates | dict[str, float] | None = None,
        all_or_nothing: bool = False,
    ) -> DiscoveryFeed:
        """Shuffled mix of popular/trending venues and articles.

        The four sections are fetched concurrently. A failed section is left
        empty and reported in ``DiscoveryFeed.degradation`` unless
        *all_or_nothing* is set; if every section fails the call raises
        ``CandidateRetrievalError``.
        """
        opts = _validate(
            _FeedOptions,
            context=context if context is not None else UserContext(),
            limit=limit,
            location=location,
            all_or_nothing=all_or_nothing,
        )
        ctx = opts.context
        now = self._clock()
        where = (
            opts.location
            or ctx.location
            or (ctx.preferences.location if ctx.preferences else None)
            or self._current_location()
        )
        radius = config.FEED_RADIUS if where is not None else None
        sizes = config.feed_section_sizes()

        branches: dict[FeedSection, Callable[[], list[ScoredItem]]] = {
            FeedSection.POPULAR_VENUES: lambda: self._popular(
                _PopularOptions(
                    kind=ContentKind.VENUE,
                    limit=sizes[FeedSection.POPULAR_VENUES.value],
                    location=where,
                    radius=radius,
                ),
                now,
            ),
            FeedSection.TRENDING_VENUES: lambda: self._trending(
                _TrendingOptions(
                    kind=ContentKind.VENUE,
                    limit=sizes[FeedSection.TRENDING_VENUES.value],
                    location=where,
                    radius=radius,
                ),
                now,
            ),
            FeedSection.POPULAR_ARTICLES: lambda: self._popular(
                _PopularOptions(
                    kind=ContentKind.ARTICLE,
                    limit=sizes[FeedSection.POPULAR_ARTICLES.value],
                ),
                now,
            ),
            FeedSection.TRENDING_ARTICLES: lambda: self._trending(
                _TrendingOptions(
                    kind=ContentKind.ARTICLE,
                    limit=sizes[FeedSection.TRENDING_ARTICLES.value],
                ),
                now,
            ),
        }

        sections: dict[FeedSection, list[ScoredItem]] = {}
        degradation = PartialDegradation()
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = {section: pool.submit(fn) for section, fn in branches.items()}
            for section, future in futures.items():
                try:
                    sections[section] = future.result()
                except CandidateRetrievalError as exc:
                    if opts.all_or_nothing:
                        raise
                    logger.warning("Feed section %s unavailable: %s", section.value, exc)
                    sections[section] = []
                    degradation.missing_sections.append(section)
                    degradation.errors[section.value] = str(exc)

        if len(degradation.missing_sections) == len(branches):
            raise CandidateRetrievalError(
                "Discovery feed unavailable: every section failed "
                f"({'; '.join(degradation.errors.values())})"
            )

        composer = DiscoveryFeedComposer(rng=self._rng)
        items = composer.compose(sections, opts.limit, ctx)
        return DiscoveryFeed(
            items=items,
            degradation=degradation if degradation.missing_sections else None,
        )

    # ── private ─────────────────────────────────────────────────────────
    def _fetch(self, kind: ContentKind, filters: QueryFilters, limit: int) -> list[ContentItem]:
        try:
            return self._candidates.fetch_candidates(kind, filters, limit)
        except CandidateRetrievalError:
            raise
        except Exception as exc:
            logger.exception("Candidate retrieval failed for %s", kind)
            raise CandidateRetrievalError(f"Could not fetch {kind} candidates: {exc}") from exc

    def _current_location(self) -> Coordinates | None:
        if self._location_provider is None:
            return None
        try:
            return self._location_provider.current_location()
        except Exception:
            logger.warning("Location unavailable; continuing without it", exc_info=True)
            return None

    def _geo(
        self,
        ranked: list[ScoredItem],
        location: Coordinates | None,
        radius: float | None,
    ) -> list[ScoredItem]:
        if location is None:
            return ranked
        with_distance = annotate_distances(location, ranked, self._unit)
        return filter_within_radius(location, radius, with_distance, self._unit)

    def _popular(self, opts: _PopularOptions, now: datetime) -> list[ScoredItem]:
        if opts.limit == 0:
            return []
        candidates = self._fetch(
            opts.kind,
            QueryFilters(category=opts.category, sort_by="popular"),
            opts.limit * _POPULAR_OVERFETCH[opts.kind],
        )
        ranked = popularity.rank(candidates, opts.timeframe, now)
        results = self._geo(ranked, opts.location, opts.radius)[: opts.limit]
        logger.info("Popular %s: %d candidates → %d results", opts.kind, len(candidates), len(results))
        return results

    def _trending(self, opts: _TrendingOptions, now: datetime) -> list[ScoredItem]:
        if opts.limit == 0:
            return []
        candidates = self._fetch(
            opts.kind,
            QueryFilters(category=opts.category, sort_by="recent"),
            opts.limit * _TRENDING_OVERFETCH,
        )
        ranked = self._trend.rank(candidates, opts.timeframe, now)
        results = self._geo(ranked, opts.location, opts.radius)[: opts.limit]
        logger.info("Trending %s: %d candidates → %d results", opts.kind, len(candidates), len(results))
        return results

    def _similar_venues(
        self, anchor: Venue, limit: int, timeframe: Timeframe, now: datetime
    ) -> list[ScoredItem]:
        candidates = [
            c
            for c in self._fetch(
                ContentKind.VENUE, QueryFilters(category=anchor.category), limit * 3
            )
            if c.id != anchor.id
        ]
        scored = [
            popularity.annotate(c, timeframe, now).model_copy(
                update={"similarity_score": _similarity(anchor, c), "recommendation_type": "similar"}
            )
            for c in candidates
        ]
        scored.sort(key=lambda s: (-(s.similarity_score or 0), -(s.popularity_score or 0)))
        return scored[:limit]

    def _nearby_venues(
        self, anchor: Venue, limit: int, timeframe: Timeframe, now: datetime
    ) -> list[ScoredItem]:
        if anchor.coordinates is None:
            logger.debug("Venue %s has no coordinates; skipping nearby", anchor.id)
            return []
        radius = config.NEARBY_RADIUS
        candidates = [
            c
            for c in self._fetch(
                ContentKind.VENUE,
                QueryFilters(near=anchor.coordinates, radius=radius),
                limit * 3,
            )
            if c.id != anchor.id
        ]
        scored = [
            popularity.annotate(c, timeframe, now).model_copy(update={"recommendation_type": "nearby"})
            for c in candidates
        ]
        within = filter_within_radius(anchor.coordinates, radius, scored, self._unit)
        return sort_by_distance(anchor.coordinates, within, self._unit)[:limit]
